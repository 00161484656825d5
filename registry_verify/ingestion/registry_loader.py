"""
Registry table loading for RegistryVerify.

Turns the raw 2-D matrix of one registry spreadsheet into RegistryCandidates.
Registry files from different sources and years carry a varying number of
title rows before the real header, so the header row is located
heuristically by keyword count instead of a fixed index.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from ..models import RegistryCandidate
from ..normalize.address_normalizer import AddressNormalizer
from ..normalize.config import MatchConfig
from ..normalize.text_normalizer import TextNormalizer
from .cells import cell_at, cell_text, is_blank_row, postal_cell_text

logger = logging.getLogger(__name__)

Matrix = Union[pd.DataFrame, Sequence[Sequence[Any]]]

MIN_FIELDS_BY_NAME = 5


def column_letter_to_index(letter: str) -> int:
    """
    Convert a spreadsheet column letter to a zero-based index.

    Args:
        letter: Column letter(s), e.g. "A", "Z", "AA"

    Returns:
        Zero-based column index (A=0, Z=25, AA=26)

    Raises:
        ValueError: If the letter is empty or not alphabetic
    """
    letters = (letter or "").strip().upper()
    if not letters or not letters.isalpha() or not letters.isascii():
        raise ValueError(f"Invalid column letter: {letter!r}")

    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def matrix_rows(matrix: Optional[Matrix]) -> List[List[Any]]:
    """Raw matrix as a list of row lists (DataFrames are read positionally)."""
    if matrix is None:
        return []
    if isinstance(matrix, pd.DataFrame):
        return matrix.astype(object).where(matrix.notna(), None).values.tolist()
    return [list(row) for row in matrix]


class RegistryTableLoader:
    """
    Loads registry candidates from a raw spreadsheet matrix.

    Columns are located with a fixed column-letter map; with
    ``column_resolution: auto`` header names are tried first.
    """

    def __init__(self, config: Optional[MatchConfig] = None,
                 text_normalizer: Optional[TextNormalizer] = None,
                 address_normalizer: Optional[AddressNormalizer] = None):
        """
        Initialize registry loader with configuration.

        Args:
            config: Matching configuration with column letters and header keywords
            text_normalizer: Shared text normalizer
            address_normalizer: Shared address normalizer
        """
        self.config = config or MatchConfig.from_dict({})
        self.text_normalizer = text_normalizer or TextNormalizer(self.config)
        self.address_normalizer = address_normalizer or AddressNormalizer(
            self.config, self.text_normalizer)

        self.header_keywords = [self.text_normalizer.normalize(keyword)
                                for keyword in self.config.header_keywords]
        self.header_scan_rows = self.config.header_scan_rows
        self.letter_columns = {
            field_name: column_letter_to_index(letter)
            for field_name, letter in self.config.column_map.items()
        }

        logger.debug(f"Initialized RegistryTableLoader with columns {self.config.column_map}")

    def header_score(self, row: Sequence[Any]) -> int:
        """Number of header keyword occurrences in a row."""
        text = " ".join(self.text_normalizer.normalize(cell_text(cell) or "") for cell in row)
        return sum(text.count(keyword) for keyword in self.header_keywords if keyword)

    def detect_header_row(self, rows: Sequence[Sequence[Any]]) -> Optional[int]:
        """
        Locate the header row.

        Scans at most ``header_scan_rows`` rows; the first row with the highest
        keyword count wins.

        Args:
            rows: Raw matrix rows

        Returns:
            Header row index, or None when no row contains any keyword
        """
        best_index = None
        best_score = 0

        for index, row in enumerate(rows[:self.header_scan_rows]):
            score = self.header_score(row)
            if score > best_score:
                best_index = index
                best_score = score

        return best_index

    def extract_body(self, rows: Sequence[Sequence[Any]], header_index: int) -> List[List[Any]]:
        """Rows after the header, without fully blank rows."""
        return [list(row) for row in rows[header_index + 1:] if not is_blank_row(row)]

    def resolve_columns_by_name(self, header_row: Sequence[Any]) -> Dict[str, Optional[int]]:
        """
        Locate registry fields by header name.

        Args:
            header_row: Raw header cells

        Returns:
            Mapping of field name to column index (None when not found)
        """
        headers = [self.text_normalizer.normalize(cell_text(cell) or "").lower()
                   for cell in header_row]

        def find(predicate) -> Optional[int]:
            for index, header in enumerate(headers):
                if header and predicate(header):
                    return index
            return None

        return {
            "name": find(lambda h: "nombre" in h and "centro" in h),
            "via": find(lambda h: ("nombre" in h and "via" in h) or "direccion" in h),
            "municipality": find(lambda h: "municipio" in h),
            "postal_code": find(lambda h: "postal" in h or h == "cp"),
            "number": find(lambda h: "numero" in h and "via" in h),
            "center_code": find(lambda h: "codigo" in h and "centro" in h),
            "authorization_date": find(lambda h: "fecha" in h and "autoriz" in h),
            "service_offering": find(lambda h: "oferta" in h and "asist" in h),
        }

    def resolve_columns(self, header_row: Sequence[Any]) -> Dict[str, Optional[int]]:
        """
        Resolve the column index of each registry field.

        Args:
            header_row: Raw header cells

        Returns:
            Mapping of field name to column index
        """
        if self.config.column_resolution == "auto":
            by_name = self.resolve_columns_by_name(header_row)
            found = sum(1 for index in by_name.values() if index is not None)
            if found >= MIN_FIELDS_BY_NAME:
                logger.info(f"Registry columns mapped by header name ({found} fields)")
                return by_name
            logger.info(f"Only {found} registry columns found by name, using column letters")

        return dict(self.letter_columns)

    def build_candidate(self, row: Sequence[Any], row_index: int,
                        columns: Dict[str, Optional[int]], source_name: str) -> RegistryCandidate:
        """Build one RegistryCandidate from a body row."""
        def text(field_name: str) -> Optional[str]:
            return cell_text(cell_at(row, columns.get(field_name)))

        via = text("via")
        municipality = text("municipality")

        return RegistryCandidate(
            source_name=source_name,
            row_index=row_index,
            name=self.text_normalizer.normalize(text("name")),
            street_core=self.address_normalizer.street_core(via),
            municipality=self.address_normalizer.normalize_municipality(municipality),
            postal_code=self.address_normalizer.normalize_postal_code(
                postal_cell_text(cell_at(row, columns.get("postal_code")))),
            house_number=self.address_normalizer.extract_first_number(text("number")),
            raw_via=via,
            raw_municipality=municipality,
            center_code=text("center_code"),
            authorization_date=text("authorization_date"),
            service_offering=text("service_offering"),
        )

    def load_candidates(self, matrix: Matrix, source_name: str) -> List[RegistryCandidate]:
        """
        Load all candidates of one registry source.

        Args:
            matrix: Raw 2-D matrix of cell values
            source_name: Label identifying the registry file

        Returns:
            List of RegistryCandidates in registry order (empty if unusable)
        """
        rows = matrix_rows(matrix)
        if not rows:
            logger.warning(f"Registry source '{source_name}' has no rows")
            return []

        header_index = self.detect_header_row(rows)
        if header_index is None:
            logger.warning(f"No header row found in the first {self.header_scan_rows} rows "
                           f"of registry source '{source_name}'")
            return []

        body = self.extract_body(rows, header_index)
        if not body:
            logger.warning(f"Registry source '{source_name}' has an empty body")
            return []

        columns = self.resolve_columns(rows[header_index])
        candidates = [
            self.build_candidate(row, index, columns, source_name)
            for index, row in enumerate(body)
        ]

        logger.info(f"Loaded {len(candidates)} candidates from registry source '{source_name}' "
                    f"(header at row {header_index})")
        return candidates
