"""
Plain-text cleanup for text extracted from PDFs.

Extracted text is hard-wrapped at the original line width and may carry
control characters that break EPUB/XML output. clean_extracted_text strips
those characters and rejoins wrapped lines into paragraphs.
"""

from __future__ import annotations

import re

PAGE_BREAK_MARKER = "--- Page Break ---"

_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_SPECIALS = re.compile(r"[\ufff0-\uffff\u200b-\u200d\ufeff]")
_INVALID_XML = re.compile(r"[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")
_SENTENCE_END = re.compile(r"[.!?:]\s*$")
_MEANINGFUL = re.compile(r"[^\w.,;:!?\-'\"()]")


def clean_extracted_text(text: str | None) -> str | None:
    """Normalize extracted PDF text into markdown-friendly paragraphs.

    Form feeds become page-break markers, lines are rejoined when a line
    neither ends with terminal punctuation nor is followed by a capitalised
    line, runs of four or more newlines collapse to three and repeated
    spaces collapse to one.
    """
    if not text:
        return None

    # form feeds must survive control-character stripping
    text = text.replace("\f", f"\n\n{PAGE_BREAK_MARKER}\n\n")
    text = _CONTROL.sub("", text)
    text = _SPECIALS.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"^[ \t]+", "", text, flags=re.MULTILINE)
    text = text.strip()

    paragraphs = re.split(r"\n\s*\n+", text)
    result = "\n\n".join(_reflow_paragraph(paragraph) for paragraph in paragraphs)
    result = re.sub(r"\n{4,}", "\n\n\n", result).strip()
    result = _INVALID_XML.sub(" ", result)
    return re.sub(r" +", " ", result)


def _reflow_paragraph(paragraph: str) -> str:
    if PAGE_BREAK_MARKER in paragraph:
        return paragraph
    lines = [line.strip() for line in paragraph.split("\n") if line.strip()]
    if len(lines) <= 1:
        return paragraph

    sentences: list[str] = []
    current = ""
    for index, line in enumerate(lines):
        current = f"{current} {line}" if current else line
        is_last = index == len(lines) - 1
        next_starts_sentence = is_last or lines[index + 1][:1].isupper()
        if _SENTENCE_END.search(line) or next_starts_sentence:
            sentences.append(current)
            current = ""
    if current:
        sentences.append(current)
    return " ".join(sentences)


def has_extractable_text(text: str | None) -> bool:
    """Return True if text looks like a real text layer, not scan noise.

    Requires at least 15 meaningful characters (word characters and basic
    punctuation) and more than 4 distinct non-space characters.
    """
    if not text:
        return False
    compact = re.sub(r"\s+", " ", text).strip()
    if len(_MEANINGFUL.sub("", compact)) < 15:
        return False
    return len(set(re.sub(r"\s", "", compact.lower()))) > 4
