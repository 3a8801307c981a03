"""Section headings and the title page."""

from __future__ import annotations

from ..assembly.templating import render_template
from ..core.types import Item, MarkdownFragment


def _title(item: Item) -> str:
    return (item.title or "").strip() or "Untitled"


def _subtitle(item: Item) -> str:
    return str(item.options.get("subtitle") or "").strip()


def heading_fragment(item: Item) -> MarkdownFragment:
    return MarkdownFragment(item_id=item.id, title=_title(item), markdown=f"# {_title(item)}")


def title_page_fragment(item: Item) -> MarkdownFragment:
    """Title page for flowing formats: the title, then the subtitle one level down."""
    lines = [f"# {_title(item)}"]
    if _subtitle(item):
        lines.append(f"## {_subtitle(item)}")
    return MarkdownFragment(item_id=item.id, title=_title(item), markdown="\n\n".join(lines))


def title_page_latex(item: Item) -> str:
    """Standalone title page source for PDF output.

    Rendered in isolation, with page styles cleared so the page carries no
    number, and the title set about a third of the way down.
    """
    return render_template("titlepage.md.j2", title=_title(item), subtitle=_subtitle(item))
