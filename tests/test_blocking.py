"""
Unit tests for blocking module.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from registry_verify.blocking.blocking_index import (
    STRATEGY_FALLBACK, STRATEGY_MUNICIPALITY, STRATEGY_POSTAL_CODE,
    BlockingIndex, get_blocking_statistics
)
from registry_verify.models import CustomerRecord, RegistryCandidate
from registry_verify.normalize.config import MatchConfig


def make_candidate(row_index, postal_code=None, municipality=""):
    return RegistryCandidate(
        source_name="registro.csv",
        row_index=row_index,
        name=f"CENTRO {row_index}",
        street_core="mayor",
        municipality=municipality,
        postal_code=postal_code,
    )


def make_customer(postal_code=None, municipality=""):
    return CustomerRecord(
        customer_id="C1",
        display_name="CLINICA NORTE",
        postal_code=postal_code,
        street_core="mayor",
        house_number=None,
        municipality=municipality,
    )


class TestBlockingIndex:
    """Test cases for the blocking cascade."""

    def setup_method(self):
        """Setup test fixtures."""
        self.config = MatchConfig.from_dict({})
        self.candidates = [
            make_candidate(0, "10600", "PLASENCIA"),
            make_candidate(1, "10001", "CACERES"),
            make_candidate(2, "10600", "PLASENCIA"),
            make_candidate(3, None, "PLASENCIA"),
            make_candidate(4, "27001", "VILLALUGO"),
        ]
        self.index = BlockingIndex(self.candidates, self.config)

    def test_postal_code_block(self):
        """Exact postal code matches win and keep registry order."""
        block, strategy = self.index.block_for(make_customer("10600", "PLASENCIA"))

        assert strategy == STRATEGY_POSTAL_CODE
        assert [c.row_index for c in block] == [0, 2]

    def test_municipality_block(self):
        """Unknown postal codes fall back to municipality containment."""
        block, strategy = self.index.block_for(make_customer("99999", "PLASENCIA"))

        assert strategy == STRATEGY_MUNICIPALITY
        assert [c.row_index for c in block] == [0, 2, 3]

    def test_municipality_containment_is_bidirectional(self):
        """Short municipality names match longer ones containing them."""
        block, strategy = self.index.block_for(make_customer(None, "LUGO"))

        assert strategy == STRATEGY_MUNICIPALITY
        assert [c.row_index for c in block] == [4]

    def test_fallback_block(self):
        """Without postal code or municipality hits, the whole source is scanned."""
        block, strategy = self.index.block_for(make_customer("99999", "BADAJOZ"))

        assert strategy == STRATEGY_FALLBACK
        assert [c.row_index for c in block] == [0, 1, 2, 3, 4]

    def test_fallback_cap(self):
        """The fallback scan is capped to the first candidates."""
        config = MatchConfig.from_dict({"blocking": {"max_fallback_candidates": 2}})
        index = BlockingIndex(self.candidates, config)

        block = index.candidates_for(make_customer())
        assert [c.row_index for c in block] == [0, 1]

    def test_empty_source(self):
        """An empty source yields an empty block."""
        index = BlockingIndex([], self.config)
        block, strategy = index.block_for(make_customer("10600", "PLASENCIA"))

        assert block == []
        assert strategy == STRATEGY_FALLBACK

    def test_block_is_a_copy(self):
        """Callers cannot mutate the precomputed postal code groups."""
        block = self.index.candidates_for(make_customer("10600"))
        block.clear()

        assert len(self.index.candidates_for(make_customer("10600"))) == 2

    def test_blocking_statistics(self):
        """Strategy usage is tracked per lookup."""
        self.index.candidates_for(make_customer("10600"))
        self.index.candidates_for(make_customer("99999", "PLASENCIA"))
        self.index.candidates_for(make_customer())
        self.index.candidates_for(make_customer())

        stats = get_blocking_statistics(self.index)

        assert stats["total_candidates"] == 5
        assert stats["postal_code_blocks"] == 3
        assert stats["max_postal_code_block"] == 2
        assert stats["lookups"] == 4
        assert stats["strategy_usage"] == {
            STRATEGY_POSTAL_CODE: 1, STRATEGY_MUNICIPALITY: 1, STRATEGY_FALLBACK: 2
        }
        assert stats["fallback_percentage"] == 50.0


if __name__ == "__main__":
    pytest.main([__file__])
