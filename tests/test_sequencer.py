"""Tests for item ordering, page-break placement and PDF batching."""

from __future__ import annotations

from pathlib import Path

from reader_export.assembly import AttributionCollector, Sequencer, order_items
from reader_export.core.errors import ItemFetchError, NoExtractableText
from reader_export.core.types import (
    ExportFormat,
    Item,
    MarkdownBatch,
    MarkdownFragment,
    NativeArtifact,
    NativeArtifactEntry,
    ProjectSnapshot,
)


class _StubNormalizer:
    """Emits `# title` for every item; options select failures or native PDFs."""

    def __init__(self, target: str = ExportFormat.MARKDOWN):
        self.target = target
        self.attributions = AttributionCollector()
        self.seen: list[str] = []

    def normalize(self, item: Item, workdir: Path):
        self.seen.append(item.id)
        if item.options.get("fail"):
            raise ItemFetchError(f"cannot fetch {item.id}", url=item.source_url)
        if item.options.get("scanned"):
            placeholder = MarkdownFragment(item.id, item.title, f"# {item.title}\n\n*placeholder*")
            raise NoExtractableText("no text", placeholder=placeholder)
        if item.type == "pdf" and self.target == ExportFormat.PDF:
            return NativeArtifact(item.id, item.title, workdir / f"{item.id}.pdf", page_count=4)
        if item.options.get("cite"):
            self.attributions.add_web(item.title, f"https://example.com/{item.id}")
        return MarkdownFragment(item.id, item.title, f"# {item.title}")

    def title_page_source(self, item: Item) -> str:
        return f"LATEX {item.title}"


def _item(item_id: str, type_: str, position: int, **options) -> Item:
    return Item(id=item_id, type=type_, title=item_id.upper(), position=position, options=options)


def _project(*items: Item) -> ProjectSnapshot:
    return ProjectSnapshot(id="p1", name="Econ 101", items=list(items))


def _breaks(sequence) -> dict[str, bool]:
    return {
        fragment.item_id: fragment.page_break_before
        for batch in sequence.markdown_batches()
        for fragment in batch.fragments
    }


def test_order_is_stable_for_equal_positions() -> None:
    items = [_item("b", "url", 2), _item("a", "url", 1), _item("c", "url", 2), _item("d", "url", 0)]
    assert [item.id for item in order_items(items)] == ["d", "a", "b", "c"]


def test_page_breaks_skip_first_item_and_follow_headings(tmp_path: Path) -> None:
    project = _project(
        _item("intro", "url", 0),
        _item("ch1", "heading", 1),
        _item("a", "url", 2),
        _item("b", "url", 3),
    )
    sequence = Sequencer(_StubNormalizer(), ExportFormat.MARKDOWN).build(project, tmp_path)
    assert sequence.flattened_ids() == ["intro", "ch1", "a", "b"]
    assert _breaks(sequence) == {"intro": False, "ch1": True, "a": False, "b": True}


def test_failed_item_leaves_break_state_untouched(tmp_path: Path) -> None:
    project = _project(
        _item("ch1", "heading", 0),
        _item("broken", "url", 1, fail=True),
        _item("a", "url", 2),
        _item("b", "url", 3),
    )
    sequence = Sequencer(_StubNormalizer(), ExportFormat.EPUB).build(project, tmp_path)
    assert sequence.flattened_ids() == ["ch1", "a", "b"]
    assert _breaks(sequence) == {"ch1": False, "a": False, "b": True}
    [failed] = sequence.failed_items
    assert (failed.item_id, failed.kind, failed.fatal) == ("broken", "fetch_error", True)


def test_failed_first_item_does_not_count_as_emitted(tmp_path: Path) -> None:
    project = _project(_item("broken", "url", 0, fail=True), _item("a", "url", 1))
    sequence = Sequencer(_StubNormalizer(), ExportFormat.MARKDOWN).build(project, tmp_path)
    assert _breaks(sequence) == {"a": False}


def test_scanned_pdf_placeholder_is_kept(tmp_path: Path) -> None:
    project = _project(_item("a", "url", 0), _item("scan", "pdf", 1, scanned=True))
    sequence = Sequencer(_StubNormalizer(), ExportFormat.EPUB).build(project, tmp_path)
    assert sequence.flattened_ids() == ["a", "scan"]
    assert _breaks(sequence)["scan"] is True
    [failed] = sequence.failed_items
    assert failed.kind == "no_extractable_text"
    assert failed.fatal is False


def test_pdf_target_alternates_batches_and_native_pdfs(tmp_path: Path) -> None:
    project = _project(
        _item("a", "url", 0),
        _item("doc", "pdf", 1),
        _item("b", "url", 2),
        _item("c", "url", 3),
    )
    sequence = Sequencer(_StubNormalizer(ExportFormat.PDF), ExportFormat.PDF).build(project, tmp_path)
    kinds = [type(element) for element in sequence.elements]
    assert kinds == [MarkdownBatch, NativeArtifactEntry, MarkdownBatch]
    assert sequence.flattened_ids() == ["a", "doc", "b", "c"]
    # the batch after a native PDF still breaks before its first item
    assert _breaks(sequence) == {"a": False, "b": True, "c": True}


def test_pdf_title_page_is_taken_out_of_the_flow(tmp_path: Path) -> None:
    project = _project(
        _item("tp", "titlepage", 0),
        _item("a", "url", 1),
        _item("tp2", "titlepage", 2),
    )
    normalizer = _StubNormalizer(ExportFormat.PDF)
    sequence = Sequencer(normalizer, ExportFormat.PDF).build(project, tmp_path)
    assert sequence.title_page is not None
    assert sequence.title_page.markdown == "LATEX TP"
    assert sequence.title_page_item.id == "tp"
    assert sequence.flattened_ids() == ["a", "tp2"]
    assert _breaks(sequence) == {"a": False, "tp2": True}
    assert "tp" not in normalizer.seen


def test_pdf_title_page_after_content_keeps_break_between_neighbours(tmp_path: Path) -> None:
    project = _project(
        _item("a", "url", 0),
        _item("tp", "titlepage", 1),
        _item("b", "url", 2),
    )
    sequence = Sequencer(_StubNormalizer(ExportFormat.PDF), ExportFormat.PDF).build(project, tmp_path)
    assert sequence.title_page_item.id == "tp"
    assert sequence.flattened_ids() == ["a", "b"]
    assert _breaks(sequence) == {"a": False, "b": True}


def test_title_page_stays_in_flow_for_epub(tmp_path: Path) -> None:
    project = _project(_item("tp", "titlepage", 0), _item("a", "url", 1))
    sequence = Sequencer(_StubNormalizer(), ExportFormat.EPUB).build(project, tmp_path)
    assert sequence.title_page is None
    assert sequence.flattened_ids() == ["tp", "a"]
    assert _breaks(sequence) == {"tp": False, "a": False}


def test_attribution_section_is_appended_last(tmp_path: Path) -> None:
    project = _project(_item("a", "url", 0, cite=True), _item("doc", "pdf", 1))
    sequence = Sequencer(_StubNormalizer(ExportFormat.PDF), ExportFormat.PDF).build(project, tmp_path)
    assert sequence.flattened_ids() == ["a", "doc", "attribution"]
    last = sequence.elements[-1].fragments[-1]
    assert last.page_break_before is True
    assert "## Sources" in last.markdown
    assert "https://example.com/a" in last.markdown


def test_no_attribution_without_citations(tmp_path: Path) -> None:
    project = _project(_item("a", "url", 0))
    sequence = Sequencer(_StubNormalizer(), ExportFormat.MARKDOWN).build(project, tmp_path)
    assert sequence.flattened_ids() == ["a"]


def test_estimate_counts_native_pages_and_breaks(tmp_path: Path) -> None:
    project = _project(_item("ch", "heading", 0), _item("doc", "pdf", 1), _item("a", "url", 2))
    sequence = Sequencer(_StubNormalizer(ExportFormat.PDF), ExportFormat.PDF).build(project, tmp_path)
    # 1 base + 4 native pages + 1 break before "a" + 2 for a web page
    assert sequence.estimated_pages == 8.0


def test_reporter_advances_once_per_item(tmp_path: Path) -> None:
    messages: list[str] = []

    class _Reporter:
        def report(self, message: str) -> None:
            messages.append(message)

    project = _project(_item("a", "url", 0), _item("broken", "url", 1, fail=True))
    Sequencer(_StubNormalizer(), ExportFormat.MARKDOWN, _Reporter()).build(project, tmp_path)
    assert messages == ["Added url: A", "Skipped (fetch_error): BROKEN"]
