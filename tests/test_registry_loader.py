"""
Unit tests for registry ingestion.
"""

import pytest
import sys
from datetime import datetime
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from registry_verify.ingestion.cells import (
    CellKind, cell_at, cell_text, classify_cell, is_blank_row, postal_cell_text
)
from registry_verify.ingestion.registry_loader import RegistryTableLoader, column_letter_to_index
from registry_verify.normalize.config import MatchConfig

# Default column letters: C=2, E=4, K=10, M=12, N=13, O=14, Y=24, AC=28
WIDTH = 29


def registry_row(name=None, via=None, number=None, municipality=None, postal_code=None,
                 center_code=None, authorization_date=None, service_offering=None):
    row = [None] * WIDTH
    row[2] = center_code
    row[4] = name
    row[10] = municipality
    row[12] = via
    row[13] = number
    row[14] = postal_code
    row[24] = authorization_date
    row[28] = service_offering
    return row


def title_row(text):
    row = [None] * WIDTH
    row[0] = text
    return row


HEADER = registry_row(
    name="Nombre del centro",
    via="Nombre vía",
    number="Número vía",
    municipality="Municipio",
    postal_code="Código postal",
    center_code="Código centro",
    authorization_date="Fecha última autorización",
    service_offering="Oferta asistencial",
)


class TestColumnLetters:
    """Test cases for column letter conversion."""

    def test_column_letter_to_index(self):
        """Spreadsheet letters map to zero-based indexes."""
        assert column_letter_to_index("A") == 0
        assert column_letter_to_index("E") == 4
        assert column_letter_to_index("Z") == 25
        assert column_letter_to_index("AA") == 26
        assert column_letter_to_index("ab") == 27
        assert column_letter_to_index("AC") == 28

    def test_invalid_letters(self):
        """Empty or non-alphabetic letters are rejected."""
        for letter in ["", "A1", "  ", None, "Ñ"]:
            with pytest.raises(ValueError):
                column_letter_to_index(letter)


class TestCells:
    """Test cases for cell coercion."""

    def test_classify_cell(self):
        """Cells are classified before coercion."""
        assert classify_cell(None) is CellKind.ABSENT
        assert classify_cell("   ") is CellKind.ABSENT
        assert classify_cell(float("nan")) is CellKind.ABSENT
        assert classify_cell(pd.NaT) is CellKind.ABSENT
        assert classify_cell("Plasencia") is CellKind.TEXT
        assert classify_cell(10600) is CellKind.NUMBER
        assert classify_cell(datetime(2019, 5, 14)) is CellKind.DATE

    def test_cell_text(self):
        """Numbers lose their trailing .0 and dates render as ISO dates."""
        assert cell_text(10600.0) == "10600"
        assert cell_text(10600) == "10600"
        assert cell_text(2.5) == "2.5"
        assert cell_text(datetime(2019, 5, 14, 10, 30)) == "2019-05-14"
        assert cell_text(pd.Timestamp("2020-01-02")) == "2020-01-02"
        assert cell_text("  Plasencia ") == "Plasencia"
        assert cell_text("") is None
        assert cell_text(None) is None

    def test_postal_cell_text(self):
        """Numeric postal codes get their leading zero back."""
        assert postal_cell_text(8001.0) == "08001"
        assert postal_cell_text(8001) == "08001"
        assert postal_cell_text(10600.0) == "10600"
        assert postal_cell_text("08001") == "08001"
        assert postal_cell_text("CP 8001") == "CP 8001"
        assert postal_cell_text(None) is None

    def test_cell_at(self):
        """Out-of-range columns read as absent."""
        row = ["a", "b"]
        assert cell_at(row, 1) == "b"
        assert cell_at(row, 5) is None
        assert cell_at(row, None) is None

    def test_is_blank_row(self):
        assert is_blank_row([None, "", "  ", float("nan")])
        assert not is_blank_row([None, "x"])
        assert is_blank_row([])


class TestRegistryTableLoader:
    """Test cases for registry table loading."""

    def setup_method(self):
        """Setup test fixtures."""
        self.loader = RegistryTableLoader(MatchConfig.from_dict({}))
        self.matrix = [
            title_row("Registro General de Centros, Servicios y Establecimientos Sanitarios"),
            title_row("Fecha de extracción: 01/03/2024"),
            HEADER,
            registry_row("Hospital Virgen del Puerto", "CL VALCORCHERO", 2, "PLASENCIA", 10600.0,
                         center_code="CS-001", authorization_date=datetime(2019, 5, 14),
                         service_offering="Hospital general"),
            [None] * WIDTH,
            ["", "  "] + [None] * (WIDTH - 2),
            registry_row("Farmacia López", "Avenida de la Constitución", "12-14", "Cáceres", "10001"),
        ]

    def test_detect_header_row(self):
        """Header is the row with the most keyword occurrences."""
        assert self.loader.detect_header_row(self.matrix) == 2

    def test_header_tie_goes_to_earliest_row(self):
        """Ties keep the first row reaching the best count."""
        rows = [["Nombre"], ["Nombre"], ["otro"]]
        assert self.loader.detect_header_row(rows) == 0

    def test_no_header_found(self):
        """Rows without any keyword yield no header."""
        rows = [["foo", "bar"], [None, None], [1, 2]]
        assert self.loader.detect_header_row(rows) is None

    def test_header_scan_limit(self):
        """Only the first header_scan_rows rows are scanned."""
        rows = [title_row("listado") for _ in range(30)] + [HEADER]
        assert self.loader.detect_header_row(rows) is None
        assert self.loader.load_candidates(rows, "late_header.csv") == []

    def test_load_candidates(self):
        """Body rows become normalized candidates; blank rows are skipped."""
        candidates = self.loader.load_candidates(self.matrix, "registro_2024.xlsx")

        assert len(candidates) == 2
        first, second = candidates

        assert first.source_name == "registro_2024.xlsx"
        assert first.row_index == 0
        assert first.name == "HOSPITAL VIRGEN DEL PUERTO"
        assert first.street_core == "cl valcorchero"
        assert first.municipality == "PLASENCIA"
        assert first.postal_code == "10600"
        assert first.house_number == "2"
        assert first.raw_via == "CL VALCORCHERO"
        assert first.center_code == "CS-001"
        assert first.authorization_date == "2019-05-14"
        assert first.service_offering == "Hospital general"

        assert second.row_index == 1
        assert second.name == "FARMACIA LOPEZ"
        assert second.street_core == "constitucion"
        assert second.municipality == "CACERES"
        assert second.raw_municipality == "Cáceres"
        assert second.house_number == "12"
        assert second.authorization_date is None

    def test_short_rows_read_missing_columns_as_absent(self):
        """Rows narrower than the column map yield None for the missing fields."""
        short = registry_row("Clínica Norte", "Calle Mayor", "5", "Plasencia", "10600")[:15]
        candidates = self.loader.load_candidates([HEADER, short], "short.csv")

        assert len(candidates) == 1
        assert candidates[0].postal_code == "10600"
        assert candidates[0].authorization_date is None
        assert candidates[0].service_offering is None

    def test_numeric_postal_code_keeps_leading_zero(self):
        """Postal codes stored as numbers by spreadsheets still yield 5 digits."""
        row = registry_row("Farmacia Diagonal", "Avinguda Diagonal", 100, "Barcelona", 8001.0)
        candidates = self.loader.load_candidates([HEADER, row], "registro_bcn.xlsx")

        assert candidates[0].postal_code == "08001"

    def test_empty_sources(self):
        """Empty, header-less or body-less matrices yield no candidates."""
        assert self.loader.load_candidates([], "empty.csv") == []
        assert self.loader.load_candidates(None, "missing.csv") == []
        assert self.loader.load_candidates([[None, None], ["", ""]], "blank.csv") == []
        assert self.loader.load_candidates([HEADER, [None] * WIDTH], "header_only.csv") == []

    def test_dataframe_matrix(self):
        """DataFrames are read positionally like a raw matrix."""
        df = pd.DataFrame(self.matrix)
        candidates = self.loader.load_candidates(df, "registro.xlsx")

        assert len(candidates) == 2
        assert candidates[0].postal_code == "10600"
        assert candidates[0].house_number == "2"

    def test_auto_column_resolution(self):
        """With auto resolution, columns are located by header name."""
        loader = RegistryTableLoader(MatchConfig.from_dict({
            "registry": {"column_resolution": "auto"}
        }))
        matrix = [
            ["Código centro", "Nombre del centro", "Municipio", "Código postal", "Nombre vía", "Número vía"],
            ["CS-009", "Centro de Salud Norte", "Plasencia", "10600", "Calle Mayor", "7"],
        ]
        candidates = loader.load_candidates(matrix, "auto.csv")

        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.center_code == "CS-009"
        assert candidate.name == "CENTRO DE SALUD NORTE"
        assert candidate.municipality == "PLASENCIA"
        assert candidate.postal_code == "10600"
        assert candidate.street_core == "mayor"
        assert candidate.house_number == "7"

    def test_auto_resolution_falls_back_to_letters(self):
        """Too few named columns keep the column-letter map."""
        loader = RegistryTableLoader(MatchConfig.from_dict({
            "registry": {"column_resolution": "auto"}
        }))
        columns = loader.resolve_columns(["Nombre del centro", "Municipio"])
        assert columns["name"] == 4
        assert columns["service_offering"] == 28


if __name__ == "__main__":
    pytest.main([__file__])
