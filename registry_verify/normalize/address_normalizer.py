"""
Address normalization for RegistryVerify.

Derives the comparable parts of a Spanish address: the street-name core
(without via-type words such as "calle" or "avenida"), the house number,
the 5-digit postal code and the normalized municipality.
"""

import re
import logging
from typing import Optional

from .config import MatchConfig
from .text_normalizer import TextNormalizer, strip_accents

logger = logging.getLogger(__name__)


class AddressNormalizer:
    """
    Normalizes address components for registry matching.

    Two addresses differing only in the via-type prefix ("Calle Mayor" vs
    "Avenida Mayor") compare on the same street core.
    """

    def __init__(self, config: Optional[MatchConfig] = None,
                 text_normalizer: Optional[TextNormalizer] = None):
        """
        Initialize address normalizer with configuration.

        Args:
            config: Matching configuration with via-type words
            text_normalizer: Shared text normalizer (built from config if omitted)
        """
        self.config = config or MatchConfig.from_dict({})
        self.text_normalizer = text_normalizer or TextNormalizer(self.config)
        self.via_words = self.config.via_words

        self.postal_code_pattern = re.compile(r"(\d{5})")
        self.trailing_number_pattern = re.compile(r"(?:^|\s|,)(\d{1,4})\s*[A-Z]?$")
        self.marker_number_pattern = re.compile(r"\b(?:Nº|NO|NUM|NUMERO)\.?\s*(\d{1,4})")
        self.first_number_pattern = re.compile(r"(\d{1,4})")

        logger.debug("Initialized AddressNormalizer")

    def street_core(self, street) -> str:
        """
        Extract the street-name core of a raw street string.

        Args:
            street: Raw street string

        Returns:
            Street tokens without via-type words, joined by single spaces
        """
        tokens = self.text_normalizer.tokenize(street)
        return " ".join(token for token in tokens if token not in self.via_words)

    def extract_house_number(self, street) -> Optional[str]:
        """
        Extract the house number from a raw street string.

        A trailing number (optionally followed by a letter, e.g. "23B") wins;
        otherwise a number after an explicit marker (nº, no, num, numero).

        Args:
            street: Raw street string

        Returns:
            House number digits, or None if not found
        """
        if not isinstance(street, str) or not street.strip():
            return None

        match = self.trailing_number_pattern.search(self.text_normalizer.normalize(street))
        if match:
            return match.group(1)

        match = self.marker_number_pattern.search(strip_accents(street.upper()))
        if match:
            return match.group(1)

        return None

    def extract_first_number(self, value) -> Optional[str]:
        """First 1-4 digit run of the normalized value (registry number cells)."""
        match = self.first_number_pattern.search(self.text_normalizer.normalize(value))
        return match.group(1) if match else None

    def normalize_postal_code(self, value) -> Optional[str]:
        """
        Extract a 5-digit postal code.

        Args:
            value: Raw postal code cell, possibly with surrounding text

        Returns:
            First 5-digit run found anywhere in the value, or None
        """
        if not isinstance(value, str):
            return None

        match = self.postal_code_pattern.search(value)
        return match.group(1) if match else None

    def normalize_municipality(self, value) -> str:
        """Normalize a municipality name (always returns a string)."""
        return self.text_normalizer.normalize(value)


def municipalities_match(left: str, right: str) -> bool:
    """
    Bidirectional containment match between two normalized municipalities.

    Short names embedded in longer ones ("LUGO" in "VILLALUGO") also match.
    """
    if not left or not right:
        return False
    return left == right or left in right or right in left
