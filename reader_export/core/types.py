"""
Core data types for the export pipeline.

This module defines the structures that flow through an export:
- Item / ProjectSnapshot: read-only input captured at submission time
- MarkdownFragment / NativeArtifact: output of item normalization
- AssemblySequence: ordered markdown batches and native PDF entries
- ExportJob / FailedItem: job state exposed to progress subscribers
- AttributionEntry: citation collected while fetching sources
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import json
from pathlib import Path
from typing import Any, Union
import time
from urllib.parse import urlparse


class ItemType:
    """Known item type names."""

    HEADING = "heading"
    TITLEPAGE = "titlepage"
    URL = "url"
    WIKIPEDIA = "wikipedia"
    IMAGE = "image"
    PDF = "pdf"
    DOCX = "docx"

    ALL = (HEADING, TITLEPAGE, URL, WIKIPEDIA, IMAGE, PDF, DOCX)


class ExportFormat:
    """Supported output formats and their file extensions."""

    PDF = "pdf"
    EPUB = "epub"
    MARKDOWN = "markdown"

    ALL = (PDF, EPUB, MARKDOWN)

    @staticmethod
    def extension(fmt: str) -> str:
        return "md" if fmt == ExportFormat.MARKDOWN else fmt


@dataclass
class Item:
    """A single content unit of a project.

    Attributes:
        id: Stable item identifier
        type: One of ItemType.ALL
        title: Display title (also used as the item's heading)
        source_url: Remote source for url/wikipedia/image items
        local_path: Stored file reference for pdf/docx/image uploads
        options: Type-specific options (caption, widthPct, subtitle, ...)
        position: Ordering key within the project
        created_at: ISO 8601 creation timestamp from the persistence layer
        cached_content: Previously fetched markdown for url items
    """

    id: str
    type: str
    title: str = ""
    source_url: str | None = None
    local_path: str | None = None
    options: dict[str, Any] = field(default_factory=dict)
    position: int = 0
    created_at: str | None = None
    cached_content: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Item":
        """Build an item from a stored row or an API payload.

        Accepts the snake_case column names as well as the camelCase
        ingestion keys. `sourceRef` is a URL when it has a scheme or host,
        otherwise a local file handle. Options may arrive as a JSON string.
        """
        data = {_INGESTION_KEYS.get(key, key): value for key, value in data.items()}
        source_ref = data.pop("source_ref", None)
        if source_ref:
            source_ref = str(source_ref)
            target = "source_url" if _is_remote_ref(source_ref) else "local_path"
            if not data.get(target):
                data[target] = source_ref
        known = {name for name in cls.__dataclass_fields__}
        payload = {key: value for key, value in data.items() if key in known}
        payload["id"] = str(payload.get("id", ""))
        payload["options"] = _parse_options(payload.get("options"))
        return cls(**payload)


_INGESTION_KEYS = {
    "sourceRef": "source_ref",
    "sourceUrl": "source_url",
    "localPath": "local_path",
    "createdAt": "created_at",
    "cachedContent": "cached_content",
    "options_json": "options",
    "typeOptions": "options",
}


def _is_remote_ref(ref: str) -> bool:
    parsed = urlparse(ref)
    if parsed.scheme and len(parsed.scheme) > 1:
        return True
    return ref.startswith("//") or bool(parsed.netloc)


def _parse_options(raw: Any) -> dict[str, Any]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            raise ValueError(f"Item options are not valid JSON: {raw[:80]!r}") from None
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Item options must be an object, got {type(raw).__name__}")
    return dict(raw)


@dataclass
class Contributor:
    """Person credited in the attribution banner."""

    username: str = ""
    first_name: str = ""
    last_name: str = ""
    affiliation: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Contributor":
        known = cls.__dataclass_fields__
        return cls(**{key: value or "" for key, value in data.items() if key in known})

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or (self.username or "")


@dataclass
class ProjectSnapshot:
    """Immutable view of a project taken when an export is submitted."""

    id: str
    name: str
    items: list[Item] = field(default_factory=list)
    author: Contributor | None = None
    original_author: Contributor | None = None
    is_copy: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectSnapshot":
        author = data.get("author")
        original = data.get("original_author")
        return cls(
            id=str(data.get("id", "project")),
            name=data.get("name") or "Untitled",
            items=[Item.from_dict(raw) for raw in data.get("items") or []],
            author=Contributor.from_dict(author) if isinstance(author, dict) else None,
            original_author=Contributor.from_dict(original) if isinstance(original, dict) else None,
            is_copy=bool(data.get("is_copy", False)),
        )


@dataclass
class ExportOptions:
    include_toc: bool = True
    show_page_numbers: bool = True


@dataclass
class MarkdownFragment:
    """Markdown produced for one item.

    page_break_before is decided by the sequencer, not the normalizer.
    page_count is set when the source document was counted exactly.
    """

    item_id: str
    title: str
    markdown: str
    page_break_before: bool = False
    page_count: int | None = None


@dataclass
class NativeArtifact:
    """An existing PDF embedded into a PDF export as-is."""

    item_id: str
    title: str
    path: Path
    page_count: int | None = None


Fragment = Union[MarkdownFragment, NativeArtifact]


@dataclass
class MarkdownBatch:
    fragments: list[MarkdownFragment] = field(default_factory=list)

    kind = "markdown_batch"


@dataclass
class NativeArtifactEntry:
    artifact: NativeArtifact

    kind = "native_artifact"

    @property
    def path(self) -> Path:
        return self.artifact.path


SequenceElement = Union[MarkdownBatch, NativeArtifactEntry]


@dataclass
class AssemblySequence:
    """Ordered document components.

    Flattening the elements in order reproduces the item order; a PDF title
    page lives outside the elements because it is rendered on its own.
    """

    elements: list[SequenceElement] = field(default_factory=list)
    title_page: MarkdownFragment | None = None
    title_page_item: Item | None = None
    estimated_pages: float = 1.0
    failed_items: list[FailedItem] = field(default_factory=list)

    def flattened_ids(self) -> list[str]:
        ids: list[str] = []
        for element in self.elements:
            if isinstance(element, MarkdownBatch):
                ids.extend(fragment.item_id for fragment in element.fragments)
            else:
                ids.append(element.artifact.item_id)
        return ids

    def markdown_batches(self) -> list[MarkdownBatch]:
        return [element for element in self.elements if isinstance(element, MarkdownBatch)]


@dataclass
class FailedItem:
    """An item that could not be (fully) included.

    fatal is False for items that still contributed a placeholder, such as
    scanned PDFs without extractable text.
    """

    item_id: str
    title: str
    kind: str
    reason: str
    url: str | None = None
    fatal: bool = True


@dataclass
class AttributionEntry:
    kind: str
    title: str
    url: str
    accessed_date: str
    revision: str | None = None


@dataclass
class ExportJob:
    """Progress state of a single export run."""

    id: str
    step: int = 0
    total: int = 1
    message: str = "Starting export..."
    done: bool = False
    error: str | None = None
    output_path: str | None = None
    failed_items: list[FailedItem] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ExportResult:
    output_path: Path
    failed_items: list[FailedItem] = field(default_factory=list)
