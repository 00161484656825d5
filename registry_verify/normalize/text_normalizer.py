"""
Text normalization for RegistryVerify.

Canonicalizes free-text names and addresses from customer rosters and
registry spreadsheets (case, diacritics, punctuation, Spanish abbreviations)
and splits them into filtered token lists.
"""

import re
import logging
import unicodedata
from typing import List, Optional, Pattern, Tuple

from .config import MatchConfig

logger = logging.getLogger(__name__)

# Word boundaries are ASCII letters/digits only, so "_" separates words the
# same way it does after punctuation removal.
_BOUNDARY_BEFORE = r"(?<![A-Z0-9])"
_BOUNDARY_AFTER = r"(?![A-Z0-9])"


def strip_accents(text: str) -> str:
    """Drop combining marks after NFD decomposition."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _compile_abbreviation(pattern: str) -> Pattern:
    if pattern.startswith(r"\b"):
        pattern = _BOUNDARY_BEFORE + pattern[2:]
    if pattern.endswith(r"\b"):
        pattern = pattern[:-2] + _BOUNDARY_AFTER
    return re.compile(pattern)


class TextNormalizer:
    """
    Normalizes raw strings for consistent matching.

    Produces uppercase ASCII text with expanded abbreviations and
    single-spaced words; tokenization drops Spanish stop words but always
    keeps numeric tokens.
    """

    def __init__(self, config: Optional[MatchConfig] = None):
        """
        Initialize text normalizer with configuration.

        Args:
            config: Matching configuration with stop words and abbreviations
        """
        self.config = config or MatchConfig.from_dict({})
        self.stop_words = self.config.stop_words

        self.abbreviation_patterns: List[Tuple[Pattern, str]] = [
            (_compile_abbreviation(pattern), replacement.upper())
            for pattern, replacement in self.config.abbreviations
        ]
        self.non_alnum_pattern = re.compile(r"[^A-Z0-9\s]")
        self.whitespace_pattern = re.compile(r"\s+")
        self.token_split_pattern = re.compile(r"[^0-9a-zñ]+")

        logger.debug(f"Initialized TextNormalizer with {len(self.abbreviation_patterns)} abbreviations")

    def normalize(self, text) -> str:
        """
        Normalize a single string.

        Args:
            text: Raw text (non-string values yield an empty string)

        Returns:
            Uppercase, accent-free, abbreviation-expanded text
        """
        if not isinstance(text, str) or not text:
            return ""

        normalized = strip_accents(text.upper())

        for pattern, replacement in self.abbreviation_patterns:
            normalized = pattern.sub(replacement, normalized)

        normalized = self.non_alnum_pattern.sub(" ", normalized)
        return self.whitespace_pattern.sub(" ", normalized).strip()

    def tokenize(self, text) -> List[str]:
        """
        Split text into lowercase tokens, dropping stop words.

        Numeric tokens are always kept since they may be house numbers or codes.

        Args:
            text: Raw or normalized text

        Returns:
            List of tokens
        """
        normalized = self.normalize(text)
        if not normalized:
            return []

        tokens = self.token_split_pattern.split(normalized.lower())
        return [
            token for token in tokens
            if token and (token.isdigit() or token not in self.stop_words)
        ]
