"""
Weighted similarity scorer for RegistryVerify.

Combines fuzzy name and street-core similarity with categorical bonuses
(postal code, house number, municipality) into a score clamped to [0, 1],
and maps scores onto confidence tiers.
"""

import logging
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..models import CustomerRecord, RegistryCandidate
from ..normalize.address_normalizer import municipalities_match
from ..normalize.config import MatchConfig
from ..normalize.text_normalizer import TextNormalizer
from .similarity import fuzzy_from_features, text_features
from .tiering import Tier, determine_tier

logger = logging.getLogger(__name__)


class MatchScorer:
    """
    Scores customer/registry candidate pairs.

    Name and street dominate (0.85 combined); postal code is the strongest
    confirming bonus, house number and municipality are secondary ones.
    """

    def __init__(self, config: Optional[MatchConfig] = None,
                 text_normalizer: Optional[TextNormalizer] = None):
        """
        Initialize scorer with configuration.

        Args:
            config: Matching configuration with weights, bonuses and thresholds
            text_normalizer: Shared text normalizer (built from config if omitted)
        """
        self.config = config or MatchConfig.from_dict({})
        self.text_normalizer = text_normalizer or TextNormalizer(self.config)
        self.thresholds = self.config.thresholds

        # Candidate names and street cores repeat across thousands of customers.
        self._features = lru_cache(maxsize=65536)(self._compute_features)

        logger.info(f"Initialized MatchScorer (name={self.config.name_weight}, "
                    f"street={self.config.street_weight}, alta={self.thresholds.alta}, "
                    f"baja={self.thresholds.baja})")

    def _compute_features(self, text: str):
        return text_features(text, self.text_normalizer)

    def fuzzy(self, a: str, b: str) -> float:
        """max(token-set Dice, trigram Dice) between two strings."""
        return fuzzy_from_features(self._features(a or ""), self._features(b or ""))

    def score_breakdown(self, customer: CustomerRecord,
                        candidate: RegistryCandidate) -> Dict[str, float]:
        """
        Calculate every score component for one pair.

        Args:
            customer: Customer record
            candidate: Registry candidate

        Returns:
            Dictionary with similarities, bonuses and the clamped score
        """
        name_similarity = self.fuzzy(customer.display_name, candidate.name)
        street_similarity = self.fuzzy(customer.street_core, candidate.street_core)

        same_postal_code = bool(customer.postal_code and candidate.postal_code
                                and customer.postal_code == candidate.postal_code)
        same_house_number = bool(customer.house_number and candidate.house_number
                                 and str(customer.house_number) == str(candidate.house_number))
        same_municipality = municipalities_match(customer.municipality, candidate.municipality)

        postal_code_bonus = self.config.postal_code_bonus if same_postal_code else 0.0
        house_number_bonus = self.config.house_number_bonus if same_house_number else 0.0
        municipality_bonus = self.config.municipality_bonus if same_municipality else 0.0

        raw_score = (
            self.config.name_weight * name_similarity +
            self.config.street_weight * street_similarity +
            postal_code_bonus + house_number_bonus + municipality_bonus
        )

        return {
            "name_similarity": name_similarity,
            "street_similarity": street_similarity,
            "postal_code_bonus": postal_code_bonus,
            "house_number_bonus": house_number_bonus,
            "municipality_bonus": municipality_bonus,
            "raw_score": raw_score,
            "score": max(0.0, min(1.0, raw_score)),
        }

    def score(self, customer: CustomerRecord, candidate: RegistryCandidate) -> float:
        """Similarity score in [0, 1] for one customer/candidate pair."""
        return self.score_breakdown(customer, candidate)["score"]

    def rank_candidates(self, customer: CustomerRecord,
                        candidates: Sequence[RegistryCandidate]) -> List[Tuple[float, RegistryCandidate]]:
        """
        Score a candidate block and sort it by descending score.

        The sort is stable, so equal scores keep registry order.

        Args:
            customer: Customer record
            candidates: Candidate block from the blocking index

        Returns:
            List of (score, candidate) tuples, best first
        """
        scored = [(self.score(customer, candidate), candidate) for candidate in candidates]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return scored

    def determine_tier(self, score: float) -> Tier:
        return determine_tier(score, self.thresholds)

    def round_score(self, score: float) -> float:
        return round(score, self.config.score_precision)


def get_scoring_statistics(scores: Sequence[float], thresholds) -> Dict[str, object]:
    """
    Calculate score distribution statistics for a set of best-match scores.

    Args:
        scores: Scores (one per match record)
        thresholds: Thresholds used for tiering

    Returns:
        Dictionary with score statistics and tier percentages
    """
    series = pd.Series(list(scores), dtype="float64")
    if series.empty:
        return {"total": 0, "thresholds": thresholds.to_dict()}

    alta = int((series >= thresholds.alta).sum())
    revisar = int(((series >= thresholds.baja) & (series < thresholds.alta)).sum())
    sin = int((series < thresholds.baja).sum())

    return {
        "total": int(len(series)),
        "score_statistics": {
            "mean_score": float(series.mean()),
            "median_score": float(series.median()),
            "min_score": float(series.min()),
            "max_score": float(series.max()),
        },
        "tier_percentages": {
            Tier.ALTA.value: alta / len(series) * 100,
            Tier.REVISAR.value: revisar / len(series) * 100,
            Tier.SIN.value: sin / len(series) * 100,
        },
        "thresholds": thresholds.to_dict(),
    }
