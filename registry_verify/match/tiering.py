"""
Confidence tiers for RegistryVerify.

Every registry source is judged against the same thresholds so tiers are
comparable across registries.
"""

from enum import Enum


class Tier(Enum):
    ALTA = "ALTA"
    REVISAR = "REVISAR"
    SIN = "SIN"

    @property
    def rank(self) -> int:
        """Confidence order: SIN < REVISAR < ALTA."""
        return _TIER_RANK[self]


_TIER_RANK = {Tier.SIN: 0, Tier.REVISAR: 1, Tier.ALTA: 2}


def determine_tier(score: float, thresholds) -> Tier:
    """
    Determine tier based on score thresholds.

    Args:
        score: Match score in [0, 1]
        thresholds: Object with ``alta`` and ``baja`` attributes

    Returns:
        ALTA if score >= alta, REVISAR if baja <= score < alta, else SIN
    """
    if score >= thresholds.alta:
        return Tier.ALTA
    elif score >= thresholds.baja:
        return Tier.REVISAR
    else:
        return Tier.SIN
