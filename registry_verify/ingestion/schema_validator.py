"""
Customer schema validation for RegistryVerify.

Validates the customer roster against the required columns and derives the
CustomerRecord used for matching. Fails fast: a missing required column
aborts the run with a descriptive error instead of producing garbage scores.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from ..models import CustomerRecord
from ..normalize.address_normalizer import AddressNormalizer
from ..normalize.config import MatchConfig
from .cells import cell_text, postal_cell_text

logger = logging.getLogger(__name__)

CustomerRows = Union[pd.DataFrame, Sequence[Mapping[str, Any]]]


class CustomerSchemaError(ValueError):
    """Required customer field absent across the whole dataset."""

    def __init__(self, message: str, missing_field: Optional[str] = None,
                 present_columns: Sequence[str] = ()):
        super().__init__(message)
        self.missing_field = missing_field
        self.present_columns = list(present_columns)


def rows_from_input(customers: CustomerRows) -> List[Dict[str, Any]]:
    """Customer rows as a list of dictionaries (DataFrames are converted)."""
    if isinstance(customers, pd.DataFrame):
        return customers.to_dict(orient="records")
    return [dict(row) for row in customers]


class CustomerSchemaValidator:
    """
    Validates customer rows and builds CustomerRecords.

    Security note: customer names can identify people; keep them out of
    validation log messages.
    """

    def __init__(self, config: Optional[MatchConfig] = None,
                 address_normalizer: Optional[AddressNormalizer] = None):
        """
        Initialize validator with configuration.

        Args:
            config: Matching configuration with customer column names
            address_normalizer: Shared address normalizer
        """
        self.config = config or MatchConfig.from_dict({})
        self.address_normalizer = address_normalizer or AddressNormalizer(self.config)
        self.required_columns = self.config.required_customer_columns

        logger.debug(f"Initialized CustomerSchemaValidator (required: {self.required_columns})")

    def validate(self, rows: Sequence[Mapping[str, Any]]) -> List[str]:
        """
        Check that every required column is present.

        Args:
            rows: Customer rows

        Returns:
            Ordered list of the columns present across all rows

        Raises:
            CustomerSchemaError: If the dataset is empty or a required column is missing
        """
        if not rows:
            raise CustomerSchemaError("Customer dataset is empty")

        present: Dict[str, None] = {}
        for row in rows:
            for column in row.keys():
                present.setdefault(str(column), None)
        columns = list(present)

        for column in self.required_columns:
            if column not in present:
                message = (f"Customer data is missing required column '{column}'. "
                           f"Columns present: {', '.join(columns)}")
                logger.error(message)
                raise CustomerSchemaError(message, missing_field=column, present_columns=columns)

        logger.info(f"Customer schema validation passed for {len(rows)} rows")
        return columns

    def build_record(self, row: Mapping[str, Any]) -> CustomerRecord:
        """
        Derive a CustomerRecord from one customer row.

        Args:
            row: Raw customer row

        Returns:
            CustomerRecord with normalized matching keys
        """
        name_parts = [cell_text(row.get(column)) for column in self.config.customer_name_columns]
        display_name = " ".join(part for part in name_parts if part).strip()

        street = cell_text(row.get(self.config.customer_street_column)) or ""
        city = cell_text(row.get(self.config.customer_city_column)) or ""
        postal_raw = postal_cell_text(row.get(self.config.customer_postal_column))

        return CustomerRecord(
            customer_id=cell_text(row.get(self.config.customer_id_column)),
            display_name=display_name,
            postal_code=self.address_normalizer.normalize_postal_code(postal_raw),
            street_core=self.address_normalizer.street_core(street),
            house_number=self.address_normalizer.extract_house_number(street),
            municipality=self.address_normalizer.normalize_municipality(city),
            raw_street=street,
            raw_city=city,
            raw=dict(row),
        )

    def build_records(self, customers: CustomerRows) -> List[CustomerRecord]:
        """Validate the roster and derive one CustomerRecord per row."""
        rows = rows_from_input(customers)
        self.validate(rows)
        records = [self.build_record(row) for row in rows]

        missing_postal = sum(1 for record in records if not record.postal_code)
        if missing_postal:
            logger.warning(f"{missing_postal} of {len(records)} customer rows have no usable postal code")

        return records
