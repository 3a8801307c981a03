"""End-to-end export tests with fake external tools and a mocked network."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import httpx
from PIL import Image
import pytest

from fakes import (
    ARTICLE_HTML,
    FakeMerger,
    FakePageCounter,
    FakeTypesetter,
    make_config,
    make_toolbox,
    mock_client,
)
from reader_export import ExportService, export_project
from reader_export.assembly import PAGE_BREAK_MARKUP
from reader_export.core.errors import EngineUnavailable
from reader_export.core.types import ExportFormat, ExportOptions, Item, ProjectSnapshot
from reader_export.tools import DocxToMarkdown

CHALLENGE = "<html><head><title>Just a moment...</title></head><body>cf-browser-verification</body></html>"
NOW = datetime(2024, 5, 1, 12, 0, 0)


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "blocked.example":
        return httpx.Response(403, text=CHALLENGE)
    return httpx.Response(200, text=ARTICLE_HTML)


def _project(*items: Item) -> ProjectSnapshot:
    return ProjectSnapshot(id="p1", name="Econ 101", items=list(items))


def test_markdown_export_has_no_break_after_title_and_heading(tmp_path: Path) -> None:
    project = _project(
        Item(id="tp", type="titlepage", title="Econ 101", position=0),
        Item(id="h1", type="heading", title="Chapter 1", position=1),
        Item(id="a", type="url", title="Article A", source_url="https://example.com/a", position=2),
    )
    result = export_project(
        project, ExportFormat.MARKDOWN, None, make_config(tmp_path), make_toolbox(), client=mock_client(_handler),
        now=NOW,
    )
    text = result.output_path.read_text(encoding="utf-8")
    assert result.output_path.parent == tmp_path / "exports"
    assert result.output_path.name.startswith("Econ_101-")
    assert text.startswith("# Econ 101\n\n# Chapter 1\n\n# Article A\n\n")
    assert "Supply and demand describe how prices form" in text
    assert PAGE_BREAK_MARKUP not in text
    assert "## Sources" in text
    assert result.failed_items == []


def test_image_defaults_in_export(tmp_path: Path) -> None:
    cfg = make_config(tmp_path)
    Image.new("RGB", (8, 8)).save(tmp_path / "uploads" / "fig.png")
    project = _project(
        Item(id="i1", type="image", title="Diagram", local_path="fig.png", position=0),
        Item(id="i2", type="image", local_path="fig.png", position=1),
    )
    result = export_project(project, ExportFormat.MARKDOWN, None, cfg, make_toolbox(), now=NOW)
    assets = f"{result.output_path.stem}_assets"
    text = result.output_path.read_text(encoding="utf-8")
    assert f"# Diagram\n\n![Diagram]({assets}/img-i1.png){{width=80%}}" in text
    assert f"![Untitled]({assets}/img-i2.png){{width=80%}}" in text
    assert (result.output_path.parent / assets / "img-i2.png").exists()


class _MediaDocxConverter(DocxToMarkdown):
    """Extracts media the way pandoc does: every document starts at image1.png."""

    name = "media-docx"

    def convert(self, docx_path: Path, media_dir: Path) -> str:
        image = media_dir / "media" / "image1.png"
        image.parent.mkdir(parents=True, exist_ok=True)
        image.write_bytes(docx_path.read_bytes())
        return f"![fig]({image})\n"


def test_docx_media_with_same_name_keep_separate_assets(tmp_path: Path) -> None:
    cfg = make_config(tmp_path)
    (tmp_path / "uploads" / "a.docx").write_bytes(b"first")
    (tmp_path / "uploads" / "b.docx").write_bytes(b"second")
    project = _project(
        Item(id="a", type="docx", title="A", local_path="a.docx", position=0),
        Item(id="b", type="docx", title="B", local_path="b.docx", position=1),
    )
    toolbox = make_toolbox(docx_converters=[_MediaDocxConverter()])
    result = export_project(project, ExportFormat.MARKDOWN, None, cfg, toolbox, now=NOW)

    assets = f"{result.output_path.stem}_assets"
    text = result.output_path.read_text(encoding="utf-8")
    assert f"![fig]({assets}/docx-a_media_image1.png)" in text
    assert f"![fig]({assets}/docx-b_media_image1.png)" in text
    assets_dir = result.output_path.parent / assets
    assert (assets_dir / "docx-a_media_image1.png").read_bytes() == b"first"
    assert (assets_dir / "docx-b_media_image1.png").read_bytes() == b"second"


def test_bot_protected_item_is_reported_and_skipped(tmp_path: Path) -> None:
    project = _project(
        Item(id="ok", type="url", title="Open Page", source_url="https://example.com/a", position=0),
        Item(id="bot", type="url", title="Guarded Page", source_url="https://blocked.example/x", position=1),
        Item(id="h", type="heading", title="After", position=2),
    )
    result = export_project(
        project, ExportFormat.MARKDOWN, None, make_config(tmp_path), make_toolbox(), client=mock_client(_handler)
    )
    [failed] = result.failed_items
    assert (failed.item_id, failed.kind) == ("bot", "bot_protection")
    assert failed.url == "https://blocked.example/x"
    text = result.output_path.read_text(encoding="utf-8")
    assert "Guarded Page" not in text
    assert "# Open Page" in text
    assert "# After" in text


def test_pdf_export_falls_back_to_secondary_engine(tmp_path: Path) -> None:
    cfg = make_config(tmp_path)
    (tmp_path / "uploads" / "reading.pdf").write_bytes(b"%PDF-native")
    primary = FakeTypesetter("tectonic", fail=True)
    secondary = FakeTypesetter("xelatex")
    merger = FakeMerger()
    toolbox = make_toolbox(
        pdf_typesetters=[primary, secondary],
        mergers=[merger],
        page_counters=[FakePageCounter(5)],
    )
    project = _project(
        Item(id="tp", type="titlepage", title="Econ 101", position=0),
        Item(id="a", type="url", title="Cached A", cached_content="Alpha text.", position=1),
        Item(id="doc", type="pdf", title="Reading", local_path="reading.pdf", position=2),
        Item(id="h2", type="heading", title="Chapter 2", position=3),
        Item(id="b", type="url", title="Cached B", cached_content="Beta text.", position=4),
    )
    result = export_project(project, ExportFormat.PDF, ExportOptions(), cfg, toolbox, now=NOW)

    assert result.failed_items == []
    assert result.output_path.suffix == ".pdf"
    [inputs] = merger.calls
    assert [path.name for path in inputs] == ["titlepage.pdf", "batch-0.pdf", "reading.pdf", "batch-1.pdf"]
    assert len(primary.requests) == len(secondary.requests) == 3
    merged = result.output_path.read_bytes()
    assert merged.index(b"Alpha text.") < merged.index(b"%PDF-native") < merged.index(b"Beta text.")


def test_pdf_export_without_engine_fails_fast(tmp_path: Path) -> None:
    project = _project(Item(id="h", type="heading", title="Only", position=0))
    with pytest.raises(EngineUnavailable):
        export_project(project, ExportFormat.PDF, None, make_config(tmp_path), make_toolbox())
    assert not (tmp_path / "exports").exists() or not any((tmp_path / "exports").iterdir())


def test_unknown_format(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        export_project(_project(), "docx", None, make_config(tmp_path), make_toolbox())


def test_service_runs_export_to_completion(tmp_path: Path) -> None:
    service = ExportService(
        make_config(tmp_path), toolbox_factory=lambda render_cfg: make_toolbox(), client=mock_client(_handler)
    )
    project = _project(
        Item(id="h", type="heading", title="Chapter 1", position=0),
        Item(id="a", type="url", title="Article A", source_url="https://example.com/a", position=1),
        Item(id="bot", type="url", title="Guarded", source_url="https://blocked.example/", position=2),
    )
    job_id = service.start_export(project, ExportFormat.MARKDOWN)
    states = list(service.subscribe(job_id))

    final = states[-1]
    assert final["done"] is True
    assert final["error"] is None
    assert final["step"] == final["total"] == 7
    assert Path(final["output_path"]).exists()
    assert [item["kind"] for item in final["failed_items"]] == ["bot_protection"]
    assert service.get_progress(job_id)["output_path"] == final["output_path"]
    assert service.get_progress("unknown") is None


def test_service_reports_job_failure(tmp_path: Path) -> None:
    service = ExportService(make_config(tmp_path), toolbox_factory=lambda render_cfg: make_toolbox())
    job_id = service.start_export(_project(Item(id="h", type="heading", title="X")), ExportFormat.EPUB)
    final = list(service.subscribe(job_id))[-1]
    assert final["done"] is True
    assert final["error"] == "EPUB export requires pandoc"
    assert final["output_path"] is None


def test_service_rejects_unknown_format(tmp_path: Path) -> None:
    service = ExportService(make_config(tmp_path), toolbox_factory=lambda render_cfg: make_toolbox())
    with pytest.raises(ValueError):
        service.start_export(_project(), "rtf")
