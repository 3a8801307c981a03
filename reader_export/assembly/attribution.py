"""
Citation collection and the closing attribution section.

Entries are recorded while items are normalized: fetched Wikipedia articles
(with revision), fetched web pages and downloaded remote images. Cached
pages were not fetched by this export and are not cited.
"""

from __future__ import annotations

from datetime import datetime, timezone

from ..config import WikipediaConfig
from ..core.types import AttributionEntry, Contributor, ProjectSnapshot
from .templating import render_template


def today_utc() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


class AttributionCollector:
    """Accumulates AttributionEntry records for one export."""

    def __init__(self, wiki_cfg: WikipediaConfig | None = None):
        self.wiki_cfg = wiki_cfg or WikipediaConfig()
        self.entries: list[AttributionEntry] = []

    def add_wikipedia(self, title: str, url: str, revision: str | None = None) -> AttributionEntry:
        return self._add("wikipedia", title, url, revision)

    def add_web(self, title: str, url: str) -> AttributionEntry:
        return self._add("web", title, url)

    def add_image(self, title: str, url: str) -> AttributionEntry:
        return self._add("image", title, url)

    def _add(self, kind: str, title: str, url: str, revision: str | None = None) -> AttributionEntry:
        entry = AttributionEntry(
            kind=kind,
            title=(title or "").strip(),
            url=url,
            accessed_date=today_utc(),
            revision=revision,
        )
        self.entries.append(entry)
        return entry

    @property
    def wikipedia(self) -> list[AttributionEntry]:
        return [entry for entry in self.entries if entry.kind == "wikipedia"]

    @property
    def sources(self) -> list[AttributionEntry]:
        return [entry for entry in self.entries if entry.kind != "wikipedia"]

    def render_section(self, project: ProjectSnapshot) -> str | None:
        """Render the closing section, or None when nothing was cited.

        The section opens with the author banner, followed by
        "## Attributions" for Wikipedia content and "## Sources" for web
        pages and images. The page break before it is added by the
        sequencer.
        """
        if not self.entries:
            return None
        editor = project.author or Contributor()
        original = project.original_author or editor
        text = render_template(
            "attribution.md.j2",
            editor=editor.display_name,
            affiliation=(editor.affiliation or "").strip(),
            original=original.display_name if project.is_copy else "",
            original_affiliation=(original.affiliation or "").strip(),
            license_note=self.wiki_cfg.license_note,
            wikipedia=self.wikipedia,
            sources=self.sources,
        )
        return text.strip()
