"""
String similarity primitives for RegistryVerify.

Both measures are Dice coefficients in [0, 1]: one over token sets, one over
character trigrams. The trigram variant tolerates partial matches and minor
misspellings that token overlap misses.
"""

from typing import FrozenSet, Optional, Set, Tuple

from ..normalize.text_normalizer import TextNormalizer

_default_normalizer: Optional[TextNormalizer] = None


def _normalizer(normalizer: Optional[TextNormalizer]) -> TextNormalizer:
    global _default_normalizer
    if normalizer is not None:
        return normalizer
    if _default_normalizer is None:
        _default_normalizer = TextNormalizer()
    return _default_normalizer


def dice_coefficient(left: Set[str], right: Set[str]) -> float:
    """2*|A & B| / (|A| + |B|); 0 when both sets are empty."""
    total = len(left) + len(right)
    if total == 0:
        return 0.0
    return 2.0 * len(left & right) / total


def character_ngrams(text: str, n: int = 3) -> Set[str]:
    """Set of overlapping n-character substrings."""
    return {text[i:i + n] for i in range(len(text) - n + 1)}


def token_set_similarity(a: str, b: str,
                         normalizer: Optional[TextNormalizer] = None) -> float:
    normalizer = _normalizer(normalizer)
    return dice_coefficient(set(normalizer.tokenize(a)), set(normalizer.tokenize(b)))


def trigram_similarity(a: str, b: str,
                       normalizer: Optional[TextNormalizer] = None) -> float:
    normalizer = _normalizer(normalizer)
    return dice_coefficient(character_ngrams(normalizer.normalize(a)),
                            character_ngrams(normalizer.normalize(b)))


def fuzzy_similarity(a: str, b: str,
                     normalizer: Optional[TextNormalizer] = None) -> float:
    """
    Fuzzy similarity between two strings.

    Args:
        a: First string (raw or normalized)
        b: Second string (raw or normalized)
        normalizer: Text normalizer to use (a default one if omitted)

    Returns:
        max(token-set Dice, trigram Dice), symmetric in a and b
    """
    normalizer = _normalizer(normalizer)
    return max(token_set_similarity(a, b, normalizer),
               trigram_similarity(a, b, normalizer))


def text_features(text: str, normalizer: Optional[TextNormalizer] = None) -> Tuple[FrozenSet[str], FrozenSet[str]]:
    """Token set and trigram set of a string, for repeated comparisons."""
    normalizer = _normalizer(normalizer)
    return (frozenset(normalizer.tokenize(text)),
            frozenset(character_ngrams(normalizer.normalize(text))))


def fuzzy_from_features(left: Tuple[FrozenSet[str], FrozenSet[str]],
                        right: Tuple[FrozenSet[str], FrozenSet[str]]) -> float:
    """fuzzy_similarity computed on precomputed text_features."""
    return max(dice_coefficient(left[0], right[0]), dice_coefficient(left[1], right[1]))
