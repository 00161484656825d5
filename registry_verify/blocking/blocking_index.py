"""
Candidate blocking for RegistryVerify.

Restricts pairwise scoring to a plausible subset of one registry source per
customer: exact postal code first, then municipality containment, then a
capped scan of the whole source.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import CustomerRecord, RegistryCandidate
from ..normalize.address_normalizer import municipalities_match
from ..normalize.config import MatchConfig

logger = logging.getLogger(__name__)

STRATEGY_POSTAL_CODE = "postal_code"
STRATEGY_MUNICIPALITY = "municipality"
STRATEGY_FALLBACK = "fallback"


class BlockingIndex:
    """
    Blocking index over the candidates of a single registry source.

    Postal-code groups are precomputed once per source; each group keeps
    registry order so ties downstream resolve deterministically.
    """

    def __init__(self, candidates: Sequence[RegistryCandidate],
                 config: Optional[MatchConfig] = None):
        """
        Initialize blocking index for one source.

        Args:
            candidates: Registry candidates of the source, in registry order
            config: Matching configuration with the fallback cap
        """
        self.config = config or MatchConfig.from_dict({})
        self.candidates = list(candidates)
        self.max_fallback_candidates = self.config.max_fallback_candidates

        self.by_postal_code: Dict[str, List[RegistryCandidate]] = defaultdict(list)
        for candidate in self.candidates:
            if candidate.postal_code:
                self.by_postal_code[candidate.postal_code].append(candidate)

        self.strategy_counts: Counter = Counter()

        logger.debug(f"Initialized BlockingIndex with {len(self.candidates)} candidates "
                     f"in {len(self.by_postal_code)} postal code blocks")

    def candidates_for(self, customer: CustomerRecord) -> List[RegistryCandidate]:
        """Candidate block to score for a customer."""
        return self.block_for(customer)[0]

    def block_for(self, customer: CustomerRecord) -> Tuple[List[RegistryCandidate], str]:
        """
        Build the candidate block for a customer.

        Args:
            customer: Customer record

        Returns:
            Tuple of (candidate block, strategy name that produced it)
        """
        if customer.postal_code:
            block = self.by_postal_code.get(customer.postal_code, [])
            if block:
                self.strategy_counts[STRATEGY_POSTAL_CODE] += 1
                return list(block), STRATEGY_POSTAL_CODE

        if customer.municipality:
            block = [
                candidate for candidate in self.candidates
                if municipalities_match(candidate.municipality, customer.municipality)
            ]
            if block:
                self.strategy_counts[STRATEGY_MUNICIPALITY] += 1
                return block, STRATEGY_MUNICIPALITY

        self.strategy_counts[STRATEGY_FALLBACK] += 1
        return self.candidates[:self.max_fallback_candidates], STRATEGY_FALLBACK


def get_blocking_statistics(index: BlockingIndex) -> Dict[str, object]:
    """
    Calculate blocking statistics for a source.

    Args:
        index: Blocking index after a matching pass

    Returns:
        Dictionary with block counts and per-strategy usage
    """
    block_sizes = [len(block) for block in index.by_postal_code.values()]
    lookups = sum(index.strategy_counts.values())

    statistics = {
        "total_candidates": len(index.candidates),
        "postal_code_blocks": len(index.by_postal_code),
        "max_postal_code_block": max(block_sizes) if block_sizes else 0,
        "lookups": lookups,
        "strategy_usage": dict(index.strategy_counts),
        "fallback_percentage": (index.strategy_counts[STRATEGY_FALLBACK] / lookups * 100
                                if lookups else 0.0),
    }
    return statistics
