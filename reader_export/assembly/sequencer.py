"""
Assembly sequencing: ordered items in, ordered document components out.

The sequencer walks the project items by position, delegates each one to
the normalizer and arranges the results:

- a page break is requested before every emitted item except the first and
  except directly after a heading or title page
- for PDF output an embedded PDF closes the current markdown batch and
  becomes its own component, so batches and native PDFs alternate in item
  order
- items that fail emit nothing and leave the page-break state untouched
- the attribution section, when there is one, is appended last
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from ..core.errors import ItemError, NoExtractableText
from ..core.types import (
    AssemblySequence,
    ExportFormat,
    FailedItem,
    Fragment,
    Item,
    ItemType,
    MarkdownBatch,
    MarkdownFragment,
    NativeArtifact,
    NativeArtifactEntry,
    ProjectSnapshot,
)
from ..utils.logging import log_event
from .attribution import AttributionCollector

logger = logging.getLogger("reader_export.assembly")

ATTRIBUTION_ID = "attribution"

# Heuristic page increments used when no exact count is available.
_PAGES_PER_BREAK = 1.0
_PAGES_BY_TYPE = {
    ItemType.URL: 2.0,
    ItemType.WIKIPEDIA: 2.0,
    ItemType.IMAGE: 0.5,
}


class ItemNormalizer(Protocol):
    attributions: AttributionCollector

    def normalize(self, item: Item, workdir: Path) -> Fragment: ...

    def title_page_source(self, item: Item) -> str: ...


class Reporter(Protocol):
    def report(self, message: str) -> None: ...


def order_items(items: list[Item]) -> list[Item]:
    """Sort by position; sorted() is stable so ties keep insertion order."""
    return sorted(items, key=lambda item: item.position)


def failed_item(item: Item, exc: ItemError) -> FailedItem:
    return FailedItem(
        item_id=item.id,
        title=item.title or "",
        kind=exc.kind,
        reason=str(exc),
        url=exc.url or item.source_url,
        fatal=exc.fatal,
    )


class Sequencer:
    """Builds the AssemblySequence for one export.

    Args:
        normalizer: Item normalizer for the export target
        target: Output format
        reporter: Optional progress reporter, advanced once per item
    """

    def __init__(self, normalizer: ItemNormalizer, target: str, reporter: Reporter | None = None):
        self.normalizer = normalizer
        self.target = target
        self.reporter = reporter

    def _report(self, message: str) -> None:
        if self.reporter is not None:
            self.reporter.report(message)

    def build(self, project: ProjectSnapshot, workdir: Path) -> AssemblySequence:
        is_pdf = self.target == ExportFormat.PDF
        sequence = AssemblySequence()
        batch = MarkdownBatch()
        emitted_any = False
        previous_was_heading = False
        estimate = 1.0

        for item in order_items(project.items):
            if is_pdf and item.type == ItemType.TITLEPAGE and sequence.title_page_item is None:
                # rendered on its own page ahead of everything else
                sequence.title_page_item = item
                sequence.title_page = MarkdownFragment(
                    item_id=item.id,
                    title=item.title or "",
                    markdown=self.normalizer.title_page_source(item),
                )
                if not emitted_any:
                    # only a leading title page sits next to the flow that follows it
                    emitted_any = True
                    previous_was_heading = True
                continue

            try:
                fragment = self.normalizer.normalize(item, workdir)
            except NoExtractableText as exc:
                sequence.failed_items.append(failed_item(item, exc))
                fragment = exc.placeholder
                if fragment is None:
                    self._report(f"Skipped ({exc.kind}): {item.title}")
                    continue
            except ItemError as exc:
                logger.warning("Skipping item %s (%s): %s", item.id, exc.kind, exc)
                sequence.failed_items.append(failed_item(item, exc))
                self._report(f"Skipped ({exc.kind}): {item.title}")
                continue

            page_break = emitted_any and not previous_was_heading
            if page_break:
                estimate += _PAGES_PER_BREAK

            if isinstance(fragment, NativeArtifact):
                if batch.fragments:
                    sequence.elements.append(batch)
                    batch = MarkdownBatch()
                sequence.elements.append(NativeArtifactEntry(fragment))
                previous_was_heading = False
                estimate += fragment.page_count or 1
                self._report(f"Added PDF in sequence: {fragment.title}")
            else:
                fragment.page_break_before = page_break
                batch.fragments.append(fragment)
                previous_was_heading = item.type in (ItemType.HEADING, ItemType.TITLEPAGE)
                estimate += _estimate_fragment(item, fragment)
                self._report(f"Added {item.type}: {fragment.title}")
            emitted_any = True

        section = self.normalizer.attributions.render_section(project)
        if section:
            batch.fragments.append(
                MarkdownFragment(
                    item_id=ATTRIBUTION_ID,
                    title="Attributions",
                    markdown=section,
                    page_break_before=emitted_any,
                )
            )
            estimate += _PAGES_PER_BREAK

        if batch.fragments:
            sequence.elements.append(batch)

        sequence.estimated_pages = estimate
        log_event(
            logger,
            "Sequence built",
            event="sequence_built",
            elements=len(sequence.elements),
            failed=len(sequence.failed_items),
            estimated_pages=estimate,
        )
        return sequence


def _estimate_fragment(item: Item, fragment: MarkdownFragment) -> float:
    if fragment.page_count:
        return float(fragment.page_count)
    if item.type in (ItemType.HEADING, ItemType.TITLEPAGE):
        return 0.0
    return _PAGES_BY_TYPE.get(item.type, 1.0)
