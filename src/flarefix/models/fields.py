"""Structured fields parsed from combined document text."""

from typing import Optional

from pydantic import BaseModel, Field


class ExtractedFields(BaseModel):
    """Order fields found in the text. Each field is independent."""

    order_number: Optional[str] = Field(None, description="Token after 'Order #'")
    order_date: Optional[str] = Field(None, description="e.g. 'March 3, 2024'")
    recipient_name: Optional[str] = None
    recipient_address: Optional[str] = Field(None, description="Two lines joined by newline")

    class Config:
        frozen = True

    @property
    def is_empty(self) -> bool:
        """Check if no field was found."""
        return not any(
            (self.order_number, self.order_date, self.recipient_name, self.recipient_address)
        )
