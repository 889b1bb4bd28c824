"""Progress events emitted while a document is processed."""

from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import Field

from .base import BaseIRModel


class EventKind(str, Enum):
    """Well-defined points in a repair run."""

    DOCUMENT_STARTED = "document_started"
    PAGE_STARTED = "page_started"
    PAGE_CLASSIFIED = "page_classified"
    OCR_COMPLETED = "ocr_completed"
    PAGE_COMPLETED = "page_completed"
    FIELDS_EXTRACTED = "fields_extracted"
    DOCUMENT_COMPLETED = "document_completed"


class PipelineEvent(BaseIRModel):
    """A single progress event. `data` carries kind-specific values."""

    kind: EventKind
    document_id: UUID
    page_index: Optional[int] = Field(None, ge=0)
    page_count: int = Field(default=0, ge=0)
    data: dict[str, Any] = Field(default_factory=dict)
