"""Field Extraction Stage - Parse order fields from combined document text.

Each field is matched independently; a missing pattern leaves only that
field unset.
"""

import re
from typing import Optional

from flarefix.models import ExtractedFields

ORDER_NUMBER_PATTERN = re.compile(r"Order #(\S+)")
ORDER_DATE_PATTERN = re.compile(r"placed on ([A-Za-z]+ \d{1,2}, \d{4})")
RECIPIENT_PATTERN = re.compile(
    r"Invoice issued for and on behalf of:[ \t]*\r?\n"
    r"([^\r\n]*\S[^\r\n]*)\r?\n"
    r"([^\r\n]*\S[^\r\n]*)\r?\n"
    r"([^\r\n]*\S[^\r\n]*)"
)


def _first_group(pattern: re.Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    return match.group(1) if match else None


class FieldExtractor:
    """Extracts order number, order date and recipient block."""

    def extract(self, combined_text: str) -> ExtractedFields:
        """Extract fields from text.

        Args:
            combined_text: Full document text.

        Returns:
            ExtractedFields; absent fields are None.
        """
        text = combined_text or ""

        recipient_name = None
        recipient_address = None
        match = RECIPIENT_PATTERN.search(text)
        if match:
            recipient_name = match.group(1).strip() or None
            address_lines = [match.group(2).strip(), match.group(3).strip()]
            recipient_address = "\n".join(address_lines).strip() or None

        return ExtractedFields(
            order_number=_first_group(ORDER_NUMBER_PATTERN, text),
            order_date=_first_group(ORDER_DATE_PATTERN, text),
            recipient_name=recipient_name,
            recipient_address=recipient_address,
        )
