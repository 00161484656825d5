"""
Local file loader for RegistryVerify.

Reads the customer roster as rows keyed by column name, and registry
spreadsheets as raw matrices (``header=None``) so real column positions are
preserved for the column-letter map.
"""

import logging
from pathlib import Path
from typing import Any, Container, Dict, List, Sequence

import pandas as pd

from .cells import is_blank_row

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = (".csv", ".xlsx", ".xls")

# Registry layouts reach column AC; wider files are rejected by the parser.
REGISTRY_CSV_MAX_COLUMNS = 256


def _trim_empty_columns(raw: pd.DataFrame) -> pd.DataFrame:
    """Drop trailing all-empty columns, keeping the positions of the others."""
    used = [position for position, has_value in enumerate(raw.notna().any()) if has_value]
    if not used:
        return raw.iloc[:, :0]
    return raw.iloc[:, :used[-1] + 1]


def _check_format(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported file format: {path} (expected one of {', '.join(SUPPORTED_FORMATS)})")
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    return suffix


def load_customer_rows(input_path: str) -> List[Dict[str, Any]]:
    """
    Load the customer roster.

    Args:
        input_path: Path to a CSV or Excel file (first sheet)

    Returns:
        List of row dictionaries, empty cells as None
    """
    path = Path(input_path)
    suffix = _check_format(path)

    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""])
    else:
        df = pd.read_excel(path, sheet_name=0, dtype=object)

    df = df.astype(object).where(df.notna(), None)
    rows = df.to_dict(orient="records")

    logger.info(f"Loaded {len(rows)} customer rows from {input_path}")
    return rows


def load_registry_matrix(input_path: str) -> List[List[Any]]:
    """
    Load a registry spreadsheet as a raw matrix.

    Args:
        input_path: Path to a CSV or Excel file (first sheet)

    Returns:
        Matrix of cell values, fully blank rows dropped
    """
    path = Path(input_path)
    suffix = _check_format(path)

    if suffix == ".csv":
        # Title rows make registry CSVs ragged; read_csv only accepts short rows
        # when the full width is given up front through names.
        try:
            raw = pd.read_csv(path, header=None, names=range(REGISTRY_CSV_MAX_COLUMNS),
                              dtype=str, keep_default_na=False, na_values=[""],
                              encoding="utf-8-sig")
        except pd.errors.EmptyDataError:
            raw = pd.DataFrame()
        raw = _trim_empty_columns(raw)
    else:
        raw = pd.read_excel(path, sheet_name=0, header=None)

    rows = raw.astype(object).where(raw.notna(), None).values.tolist()
    matrix = [row for row in rows if not is_blank_row(row)]

    logger.info(f"Loaded registry matrix of {len(matrix)} rows from {input_path}")
    return matrix


def load_registry_sources(input_paths: Sequence[str]) -> Dict[str, List[List[Any]]]:
    """
    Load several registry files, keyed by file name.

    Args:
        input_paths: Registry file paths, in processing order

    Returns:
        Mapping of source label (file name) to raw matrix
    """
    sources: Dict[str, List[List[Any]]] = {}
    for input_path in input_paths:
        label = registry_source_label(Path(input_path), sources)
        sources[label] = load_registry_matrix(input_path)
    return sources


def registry_source_label(path: Path, taken: Container[str]) -> str:
    """
    Source label for a registry file.

    The file name, prefixed with its parent directory when another source
    already uses that name, then suffixed with a counter if still taken.
    """
    label = path.name
    if label not in taken:
        return label

    label = f"{path.parent.name}/{path.name}" if path.parent.name else path.name
    candidate = label
    counter = 2
    while candidate in taken:
        candidate = f"{label} ({counter})"
        counter += 1

    logger.warning(f"Registry file name '{path.name}' given twice, labelling {path} as '{candidate}'")
    return candidate
