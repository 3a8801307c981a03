"""
Core domain models.

This package contains data types, the error taxonomy and path helpers
shared by every pipeline stage.
"""

from .errors import (
    BotProtectionDetected,
    ConversionError,
    EngineUnavailable,
    ExportError,
    ItemError,
    ItemFetchError,
    JobError,
    MergeToolUnavailable,
    MissingLocalFile,
    NoExtractableText,
    RenderFailure,
)
from .paths import build_output_path, resolve_local_path, sanitize_project_name
from .types import (
    AssemblySequence,
    AttributionEntry,
    Contributor,
    ExportFormat,
    ExportJob,
    ExportOptions,
    ExportResult,
    FailedItem,
    Item,
    ItemType,
    MarkdownBatch,
    MarkdownFragment,
    NativeArtifact,
    NativeArtifactEntry,
    ProjectSnapshot,
)

__all__ = [
    "AssemblySequence",
    "AttributionEntry",
    "BotProtectionDetected",
    "Contributor",
    "ConversionError",
    "EngineUnavailable",
    "ExportError",
    "ExportFormat",
    "ExportJob",
    "ExportOptions",
    "ExportResult",
    "FailedItem",
    "Item",
    "ItemError",
    "ItemFetchError",
    "ItemType",
    "JobError",
    "MarkdownBatch",
    "MarkdownFragment",
    "MergeToolUnavailable",
    "MissingLocalFile",
    "NativeArtifact",
    "NativeArtifactEntry",
    "NoExtractableText",
    "ProjectSnapshot",
    "RenderFailure",
    "build_output_path",
    "resolve_local_path",
    "sanitize_project_name",
]
