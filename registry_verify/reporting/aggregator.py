"""
Result aggregation for RegistryVerify.

Orders the combined match records deterministically and computes the
summary counters echoed alongside the thresholds used.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Sequence

from ..models import CustomerRecord, MatchOutput, MatchRecord, MatchSummary, TopCandidate
from ..match.tiering import Tier
from ..normalize.config import Thresholds

logger = logging.getLogger(__name__)


def sort_matches(matches: Sequence[MatchRecord]) -> List[MatchRecord]:
    """
    Sort match records by customer id ascending, then score descending.

    Missing ids sort as the empty string. Both sorts are stable, so records
    with equal keys keep source order.
    """
    by_score = sorted(matches, key=lambda record: record.score, reverse=True)
    return sorted(by_score, key=lambda record: record.customer.customer_id or "")


def build_summary(customers: Sequence[CustomerRecord], matches: Sequence[MatchRecord],
                  thresholds: Thresholds) -> MatchSummary:
    """
    Compute summary counters.

    Args:
        customers: Customer records of the run
        matches: All match records across sources
        thresholds: Thresholds used for tiering

    Returns:
        MatchSummary with distinct customers, tier totals and per-source counts
    """
    tier_counts = Counter(record.tier for record in matches)

    per_source: Dict[str, Dict[str, int]] = defaultdict(lambda: {tier.value: 0 for tier in Tier})
    for record in matches:
        per_source[record.source][record.tier.value] += 1

    return MatchSummary(
        n_customers=len({customer.identity_key for customer in customers}),
        alta=tier_counts[Tier.ALTA],
        revisar=tier_counts[Tier.REVISAR],
        sin=tier_counts[Tier.SIN],
        thresholds=thresholds.to_dict(),
        per_source=dict(per_source),
    )


class ResultAggregator:
    """Builds the final MatchOutput from per-source results."""

    def __init__(self, thresholds: Thresholds):
        self.thresholds = thresholds

    def aggregate(self, customers: Sequence[CustomerRecord], matches: Sequence[MatchRecord],
                  top3: Sequence[TopCandidate]) -> MatchOutput:
        """
        Aggregate the combined result set.

        Args:
            customers: Customer records of the run
            matches: Match records from every source
            top3: Shortlist entries from every source, in emission order

        Returns:
            MatchOutput with sorted matches and summary
        """
        summary = build_summary(customers, matches, self.thresholds)

        logger.info(f"Aggregated {len(matches)} match records for {summary.n_customers} customers: "
                    f"{summary.alta} ALTA, {summary.revisar} REVISAR, {summary.sin} SIN")

        return MatchOutput(matches=sort_matches(matches), top3=list(top3), summary=summary)
