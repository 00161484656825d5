"""
Matching engine for RegistryVerify.

Reconciles a customer roster against one or more registry sources: for every
source and customer it blocks candidates, scores them, keeps the best match
and the top-k shortlist, then aggregates everything into one MatchOutput.
"""

import logging
import time
from typing import Dict, List, Mapping, Optional, Tuple

from ..blocking.blocking_index import BlockingIndex, get_blocking_statistics
from ..ingestion.registry_loader import Matrix, RegistryTableLoader
from ..ingestion.schema_validator import CustomerRows, CustomerSchemaValidator
from ..match.scorer import MatchScorer
from ..match.tiering import Tier
from ..models import CustomerRecord, MatchOutput, MatchRecord, RegistryCandidate, TopCandidate
from ..normalize.address_normalizer import AddressNormalizer
from ..normalize.config import MatchConfig
from ..normalize.text_normalizer import TextNormalizer
from ..reporting.aggregator import ResultAggregator

logger = logging.getLogger(__name__)


class MatchEngine:
    """
    Deterministic customer/registry matching engine.

    Synchronous and free of shared mutable state between runs; every run is
    a pure function of the customer rows, the registry matrices and the
    configuration.
    """

    def __init__(self, config: Optional[MatchConfig] = None):
        """
        Initialize engine with configuration.

        Args:
            config: Matching configuration (defaults if omitted)
        """
        self.config = config or MatchConfig.from_dict({})
        self.text_normalizer = TextNormalizer(self.config)
        self.address_normalizer = AddressNormalizer(self.config, self.text_normalizer)
        self.validator = CustomerSchemaValidator(self.config, self.address_normalizer)
        self.loader = RegistryTableLoader(self.config, self.text_normalizer, self.address_normalizer)
        self.scorer = MatchScorer(self.config, self.text_normalizer)
        self.aggregator = ResultAggregator(self.config.thresholds)

        self.source_statistics: Dict[str, Dict[str, object]] = {}

        logger.info("Initialized MatchEngine")

    def match_customer(self, customer: CustomerRecord, index: BlockingIndex,
                       source_name: str) -> Tuple[MatchRecord, List[TopCandidate]]:
        """
        Match one customer against one source.

        Args:
            customer: Customer record
            index: Blocking index of the source
            source_name: Registry source label

        Returns:
            Tuple of (best match record or SIN sentinel, shortlist entries)
        """
        block = index.candidates_for(customer)
        scored = self.scorer.rank_candidates(customer, block)

        if not scored:
            sentinel = MatchRecord(customer=customer, source=source_name, score=0.0, tier=Tier.SIN)
            return sentinel, []

        best_score, best_candidate = scored[0]
        record = MatchRecord(
            customer=customer,
            source=source_name,
            score=self.scorer.round_score(best_score),
            tier=self.scorer.determine_tier(best_score),
            candidate=best_candidate,
        )

        shortlist = [
            TopCandidate(customer=customer, rank=rank, score=self.scorer.round_score(score),
                         candidate=candidate)
            for rank, (score, candidate) in enumerate(scored[:self.config.top_k], start=1)
        ]
        return record, shortlist

    def match_source(self, customers: List[CustomerRecord], candidates: List[RegistryCandidate],
                     source_name: str) -> Tuple[List[MatchRecord], List[TopCandidate]]:
        """
        Match every customer against the candidates of one source.

        Args:
            customers: Customer records
            candidates: Candidates loaded from the source
            source_name: Registry source label

        Returns:
            Tuple of (one match record per customer, shortlist entries)
        """
        index = BlockingIndex(candidates, self.config)
        matches: List[MatchRecord] = []
        top3: List[TopCandidate] = []

        for customer in customers:
            record, shortlist = self.match_customer(customer, index, source_name)
            matches.append(record)
            top3.extend(shortlist)

        self.source_statistics[source_name] = get_blocking_statistics(index)
        return matches, top3

    def run(self, customers: CustomerRows, registries: Mapping[str, Matrix]) -> MatchOutput:
        """
        Run the full matching pass.

        Args:
            customers: Customer rows (DataFrame or sequence of mappings)
            registries: Registry source label -> raw matrix, in processing order

        Returns:
            MatchOutput with matches, shortlist and summary

        Raises:
            CustomerSchemaError: If a required customer column is missing
        """
        start_time = time.time()
        customer_records = self.validator.build_records(customers)
        self.source_statistics = {}

        all_matches: List[MatchRecord] = []
        all_top3: List[TopCandidate] = []

        for source_name, matrix in registries.items():
            candidates = self.loader.load_candidates(matrix, source_name)
            matches, top3 = self.match_source(customer_records, candidates, source_name)
            all_matches.extend(matches)
            all_top3.extend(top3)

            logger.info(f"Matched {len(customer_records)} customers against {len(candidates)} "
                        f"candidates from '{source_name}'")

        output = self.aggregator.aggregate(customer_records, all_matches, all_top3)

        logger.info(f"Matching completed in {time.time() - start_time:.2f} seconds")
        return output


def match_customers_against_registries(customers: CustomerRows,
                                       registries: Mapping[str, Matrix],
                                       config: Optional[MatchConfig] = None) -> MatchOutput:
    """
    Convenience function to run the matching engine once.

    Args:
        customers: Customer rows
        registries: Registry source label -> raw matrix
        config: Matching configuration (defaults if omitted)

    Returns:
        MatchOutput
    """
    engine = MatchEngine(config)
    return engine.run(customers, registries)
