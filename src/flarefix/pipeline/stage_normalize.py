"""Normalization Stage - Clean raw extracted or OCR text."""

import re

_NEWLINE_RUNS = re.compile(r"\n{2,}")


def clean_text(text: str) -> str:
    """Collapse runs of blank lines and trim surrounding whitespace.

    Idempotent: clean_text(clean_text(x)) == clean_text(x).

    Args:
        text: Raw text.

    Returns:
        Canonical multi-line string.
    """
    if not text:
        return ""
    return _NEWLINE_RUNS.sub("\n", text).strip()


class TextNormalizer:
    """Stage wrapper around `clean_text` so it can be swapped in the pipeline."""

    def clean(self, text: str) -> str:
        return clean_text(text)
