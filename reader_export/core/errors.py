"""
Exception hierarchy for the export pipeline.

Item-scoped errors (ItemError subclasses) are recorded against the item and
the export continues. Job-scoped errors (JobError subclasses) end the job.
"""

from __future__ import annotations


class ExportError(Exception):
    """Base class for all export failures."""


class ItemError(ExportError):
    """A failure confined to a single item."""

    kind = "item_error"
    fatal = True

    def __init__(self, message: str, *, url: str | None = None):
        super().__init__(message)
        self.url = url


class ItemFetchError(ItemError):
    kind = "fetch_error"


class BotProtectionDetected(ItemError):
    kind = "bot_protection"


class MissingLocalFile(ItemError):
    kind = "missing_file"


class ConversionError(ItemError):
    kind = "conversion_error"


class NoExtractableText(ItemError):
    """The document has no usable text layer.

    Non-fatal: the item keeps a placeholder fragment in the document.
    """

    kind = "no_extractable_text"
    fatal = False

    def __init__(self, message: str, *, placeholder=None, url: str | None = None):
        super().__init__(message, url=url)
        self.placeholder = placeholder


class JobError(ExportError):
    """A failure that aborts the whole export."""


class EngineUnavailable(JobError):
    pass


class RenderFailure(JobError):
    pass


class MergeToolUnavailable(JobError):
    pass
