"""Tests for the closing attribution section."""

from __future__ import annotations

from reader_export.assembly import AttributionCollector
from reader_export.assembly.attribution import today_utc
from reader_export.core.types import Contributor, ProjectSnapshot


def _project(**kwargs) -> ProjectSnapshot:
    return ProjectSnapshot(id="p", name="Econ 101", **kwargs)


def test_no_entries_means_no_section() -> None:
    assert AttributionCollector().render_section(_project()) is None


def test_section_lists_wikipedia_and_sources() -> None:
    collector = AttributionCollector()
    collector.add_wikipedia("Supply and demand", "https://en.wikipedia.org/wiki/Supply_and_demand?oldid=9", "9")
    collector.add_web("Market news", "https://news.example/markets")
    collector.add_image("", "https://img.example/chart.png")
    author = Contributor(first_name="Ada", last_name="Lovelace", affiliation="Analytical U")

    section = collector.render_section(_project(author=author))
    today = today_utc()
    assert section.startswith("**Reader collection assembled by Ada Lovelace** of Analytical U.")
    assert "## Attributions" in section
    assert "Creative Commons Attribution-ShareAlike" in section
    assert f"• Supply and demand — https://en.wikipedia.org/wiki/Supply_and_demand?oldid=9 (rev 9) (accessed {today})" in section
    assert "## Sources" in section
    assert f"• Market news — https://news.example/markets (web) (accessed {today})" in section
    assert f"• (Untitled) — https://img.example/chart.png (image) (accessed {today})" in section
    assert section.index("## Attributions") < section.index("## Sources")
    assert "Based on a previous version" not in section


def test_copied_project_credits_original_author() -> None:
    collector = AttributionCollector()
    collector.add_web("Page", "https://example.com")
    project = _project(
        author=Contributor(username="editor1"),
        original_author=Contributor(first_name="Grace", last_name="Hopper"),
        is_copy=True,
    )
    section = collector.render_section(project)
    assert "**Reader collection assembled by editor1**." in section
    assert "Based on a previous version originally assembled by **Grace Hopper**." in section
    assert "## Attributions" not in section


def test_contributor_from_dict_tolerates_nulls() -> None:
    contributor = Contributor.from_dict({"username": "u", "first_name": None, "extra": 1})
    assert contributor.display_name == "u"
