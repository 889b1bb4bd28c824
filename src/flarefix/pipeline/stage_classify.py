"""Text Quality Stage - Decide whether a page's text layer can be trusted.

A cheap, explainable heuristic: the share of characters in a small accepted
set (ASCII letters, digits, space and . , ! ?) and the number of words.
Text failing either check is treated as garbled and sent to OCR.
"""

import string
from typing import Optional

from flarefix.config import settings
from flarefix.models import ClassificationResult, Verdict

ACCEPTED_CHARACTERS = frozenset(string.ascii_letters + string.digits + " .,!?")


def readability_ratio(text: str) -> float:
    """Fraction of characters of `text` in the accepted set (0.0 for empty text)."""
    if not text:
        return 0.0
    readable = sum(1 for ch in text if ch in ACCEPTED_CHARACTERS)
    return readable / len(text)


class TextQualityClassifier:
    """Classifies page text as clean or garbled.

    Deterministic and stateless: the same text always yields the same result.
    """

    def __init__(
        self,
        min_readability_ratio: Optional[float] = None,
        max_symbol_ratio: Optional[float] = None,
        min_word_count: Optional[int] = None,
    ):
        """Initialize classifier.

        Args:
            min_readability_ratio: Below this ratio text is garbled (default 0.90).
            max_symbol_ratio: Above this ratio text is garbled (default 0.10).
            min_word_count: Fewer words than this is garbled (default 5).
        """
        self.min_readability_ratio = (
            settings.min_readability_ratio
            if min_readability_ratio is None
            else min_readability_ratio
        )
        self.max_symbol_ratio = (
            settings.max_symbol_ratio if max_symbol_ratio is None else max_symbol_ratio
        )
        self.min_word_count = (
            settings.min_word_count if min_word_count is None else min_word_count
        )

    def classify(self, text: str) -> ClassificationResult:
        """Classify a page's extracted text.

        Args:
            text: Extracted text, possibly empty.

        Returns:
            ClassificationResult with verdict and metrics.
        """
        if not text:
            return ClassificationResult(verdict=Verdict.GARBLED)

        ratio = readability_ratio(text)
        symbol_ratio = 1.0 - ratio
        word_count = len(text.split())

        # The two ratio checks overlap; both are kept so either threshold
        # can be tuned on its own.
        garbled = (
            ratio < self.min_readability_ratio
            or symbol_ratio > self.max_symbol_ratio
            or word_count < self.min_word_count
        )

        return ClassificationResult(
            verdict=Verdict.GARBLED if garbled else Verdict.CLEAN,
            readability_ratio=ratio,
            symbol_ratio=symbol_ratio,
            word_count=word_count,
            char_count=len(text),
        )

    def is_garbled(self, text: str) -> bool:
        """Shortcut for `classify(text).is_garbled`."""
        return self.classify(text).is_garbled
