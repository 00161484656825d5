"""
Data model for RegistryVerify.

Customer and registry records derived from the raw inputs, plus the match
records, shortlist entries and summary returned by the engine.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .match.tiering import Tier


@dataclass(frozen=True)
class CustomerRecord:
    """A customer roster row prepared for matching."""

    customer_id: Optional[str]
    display_name: str
    postal_code: Optional[str]
    street_core: str
    house_number: Optional[str]
    municipality: str
    raw_street: str = ""
    raw_city: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def identity_key(self) -> str:
        """Composite key approximating row identity without relying on an id."""
        return f"{self.display_name}|{self.postal_code or ''}|{self.house_number or ''}"


@dataclass(frozen=True)
class RegistryCandidate:
    """One registry body row, normalized once per source load."""

    source_name: str
    row_index: int
    name: str
    street_core: str
    municipality: str
    postal_code: Optional[str] = None
    house_number: Optional[str] = None
    raw_via: Optional[str] = None
    raw_municipality: Optional[str] = None
    center_code: Optional[str] = None
    authorization_date: Optional[str] = None
    service_offering: Optional[str] = None


@dataclass(frozen=True)
class MatchRecord:
    """Best candidate of one registry source for one customer."""

    customer: CustomerRecord
    source: str
    score: float
    tier: Tier
    candidate: Optional[RegistryCandidate] = None

    @property
    def is_sentinel(self) -> bool:
        return self.candidate is None

    def as_row(self) -> Dict[str, Any]:
        customer = self.customer
        candidate = self.candidate
        return {
            "CUSTOMER_id": customer.customer_id,
            "CUSTOMER_name": customer.display_name,
            "CUSTOMER_street": customer.raw_street,
            "CUSTOMER_city": customer.raw_city,
            "CUSTOMER_cp": customer.postal_code,
            "CUSTOMER_num": customer.house_number,
            "MIN_nombre": (candidate.name or None) if candidate else None,
            "MIN_via": candidate.raw_via if candidate else None,
            "MIN_num": candidate.house_number if candidate else None,
            "MIN_municipio": candidate.raw_municipality if candidate else None,
            "MIN_cp": candidate.postal_code if candidate else None,
            "MIN_codigo_centro": candidate.center_code if candidate else None,
            "MIN_fecha_autoriz": candidate.authorization_date if candidate else None,
            "MIN_oferta_asist": candidate.service_offering if candidate else None,
            "MIN_source": self.source,
            "SCORE": self.score,
            "TIER": self.tier.value,
        }


@dataclass(frozen=True)
class TopCandidate:
    """Shortlist entry (rank 1..top_k) kept for human review."""

    customer: CustomerRecord
    rank: int
    score: float
    candidate: RegistryCandidate

    def as_row(self) -> Dict[str, Any]:
        customer = self.customer
        candidate = self.candidate
        return {
            "CUSTOMER_id": customer.customer_id,
            "CUSTOMER_name": customer.display_name,
            "CUSTOMER_cp": customer.postal_code,
            "CUSTOMER_num": customer.house_number,
            "CAND_RANK": self.rank,
            "CAND_SCORE": self.score,
            "CAND_MIN_nombre": candidate.name or None,
            "CAND_MIN_via": candidate.raw_via,
            "CAND_MIN_num": candidate.house_number,
            "CAND_MIN_mun": candidate.raw_municipality,
            "CAND_MIN_cp": candidate.postal_code,
            "CAND_MIN_codigo_centro": candidate.center_code,
            "CAND_MIN_fecha_autoriz": candidate.authorization_date,
            "CAND_MIN_oferta_asist": candidate.service_offering,
            "CAND_MIN_source": candidate.source_name,
        }


@dataclass(frozen=True)
class MatchSummary:
    n_customers: int
    alta: int
    revisar: int
    sin: int
    thresholds: Dict[str, float]
    per_source: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_customers": self.n_customers,
            "alta": self.alta,
            "revisar": self.revisar,
            "sin": self.sin,
            "thresholds": dict(self.thresholds),
            "per_source": {source: dict(counts) for source, counts in self.per_source.items()},
        }


@dataclass(frozen=True)
class MatchOutput:
    """Full result set of one engine run."""

    matches: List[MatchRecord]
    top3: List[TopCandidate]
    summary: MatchSummary

    def to_dict(self) -> Dict[str, Any]:
        """Serializable representation (plain dicts, lists and scalars)."""
        return {
            "matches": [record.as_row() for record in self.matches],
            "top3": [entry.as_row() for entry in self.top3],
            "summary": self.summary.to_dict(),
        }

    def to_frames(self) -> Dict[str, pd.DataFrame]:
        """Matches and shortlist as DataFrames with the report column names."""
        matches_df = pd.DataFrame([record.as_row() for record in self.matches],
                                  columns=MATCH_COLUMNS)
        top3_df = pd.DataFrame([entry.as_row() for entry in self.top3],
                               columns=TOP_CANDIDATE_COLUMNS)
        return {"matches": matches_df, "top3": top3_df}


MATCH_COLUMNS = [
    "CUSTOMER_id", "CUSTOMER_name", "CUSTOMER_street", "CUSTOMER_city", "CUSTOMER_cp",
    "CUSTOMER_num", "MIN_nombre", "MIN_via", "MIN_num", "MIN_municipio", "MIN_cp",
    "MIN_codigo_centro", "MIN_fecha_autoriz", "MIN_oferta_asist", "MIN_source",
    "SCORE", "TIER",
]

TOP_CANDIDATE_COLUMNS = [
    "CUSTOMER_id", "CUSTOMER_name", "CUSTOMER_cp", "CUSTOMER_num", "CAND_RANK",
    "CAND_SCORE", "CAND_MIN_nombre", "CAND_MIN_via", "CAND_MIN_num", "CAND_MIN_mun",
    "CAND_MIN_cp", "CAND_MIN_codigo_centro", "CAND_MIN_fecha_autoriz",
    "CAND_MIN_oferta_asist", "CAND_MIN_source",
]
