"""IR (Intermediate Representation) models for Flare Fixer.

Pydantic models for the data flowing through the repair stages.

Model Hierarchy:
- Document -> Pages -> ClassificationResult / PageResult
- Document -> CombinedText -> ExtractedFields
- Document -> OutputArtifact
"""

from .base import (
    BaseIRModel,
    PageOutcome,
    ReconstructionStrategy,
    RepairMode,
    TextSource,
    Verdict,
)
from .document import (
    CombinedText,
    CombinedTextEntry,
    Document,
    DocumentMetadata,
    OutputArtifact,
    RepairResult,
)
from .events import EventKind, PipelineEvent
from .fields import ExtractedFields
from .page import ClassificationResult, Page, PageResult

__all__ = [
    # Base types
    "BaseIRModel",
    "PageOutcome",
    "ReconstructionStrategy",
    "RepairMode",
    "TextSource",
    "Verdict",
    # Document
    "CombinedText",
    "CombinedTextEntry",
    "Document",
    "DocumentMetadata",
    "OutputArtifact",
    "RepairResult",
    # Page
    "ClassificationResult",
    "Page",
    "PageResult",
    # Fields
    "ExtractedFields",
    # Events
    "EventKind",
    "PipelineEvent",
]
