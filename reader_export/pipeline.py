"""
Export orchestration.

This module coordinates one export:
1. Check that the target format can be produced on this host
2. Create a scratch workdir for the job
3. Normalize and sequence the items (failures are recorded, not fatal)
4. Render the sequence (and merge PDF components)
5. Report completion with the output path and failed items

ExportService runs exports on background threads and exposes their
progress through a JobStore.
"""

from __future__ import annotations

import copy
from datetime import datetime
import logging
from pathlib import Path
import re
import tempfile
import threading
from typing import Callable, Iterator

import httpx

from .assembly import Renderer, Sequencer, merge_components
from .config import AppConfig, RenderConfig
from .core.errors import EngineUnavailable, ExportError
from .core.paths import build_output_path
from .core.types import ExportFormat, ExportOptions, ExportResult, ProjectSnapshot
from .fetch.fetcher import open_client
from .jobs import InMemoryJobStore, JobStore, ProgressReporter, total_steps
from .normalize import Normalizer
from .tools import Toolbox
from .utils.logging import job_context, log_event

logger = logging.getLogger("reader_export.pipeline")


class _NullReporter:
    def report(self, message: str) -> None:
        logger.debug(message)


def check_engines(fmt: str, toolbox: Toolbox) -> None:
    """Fail fast when the target format cannot be typeset on this host."""
    if fmt == ExportFormat.PDF and not toolbox.pdf_typesetters:
        raise EngineUnavailable("No PDF engine detected. Install tectonic or xelatex.")
    if fmt == ExportFormat.EPUB and toolbox.epub_typesetter is None:
        raise EngineUnavailable("EPUB export requires pandoc")


def export_project(
    project: ProjectSnapshot,
    fmt: str,
    options: ExportOptions | None,
    cfg: AppConfig,
    toolbox: Toolbox | None = None,
    reporter: ProgressReporter | None = None,
    client: httpx.Client | None = None,
    now: datetime | None = None,
) -> ExportResult:
    """Export a project snapshot to a single file.

    Args:
        project: Items and credits to export
        fmt: One of ExportFormat.ALL
        options: Table of contents and page number switches
        cfg: Application configuration
        toolbox: External tool adapters (discovered when omitted)
        reporter: Progress reporter for the job
        client: Shared HTTP client for fetching
        now: Timestamp used in the output file name

    Returns:
        ExportResult with the output path and the failed items

    Raises:
        ValueError: Unknown format
        JobError: The export could not be produced
    """
    if fmt not in ExportFormat.ALL:
        raise ValueError(f"Unsupported export format: {fmt}")
    options = options or ExportOptions()
    toolbox = toolbox or Toolbox.discover(cfg.render)
    reporter = reporter or _NullReporter()
    check_engines(fmt, toolbox)

    reporter.report("Preparing workspace")
    output = build_output_path(cfg.storage.exports_path, project.name, fmt, now)
    output.parent.mkdir(parents=True, exist_ok=True)
    tmp_root = None
    if cfg.storage.tmp_dir:
        Path(cfg.storage.tmp_dir).mkdir(parents=True, exist_ok=True)
        tmp_root = cfg.storage.tmp_dir
    prefix = "build-" + re.sub(r"[^A-Za-z0-9_-]", "_", project.id)[:40] + "-"

    log_event(
        logger,
        "Export started",
        event="export_started",
        project_id=project.id,
        format=fmt,
        items=len(project.items),
        tools=toolbox.describe(),
    )
    with tempfile.TemporaryDirectory(prefix=prefix, dir=tmp_root) as tmp, open_client(cfg.fetch, client) as http:
        workdir = Path(tmp)
        normalizer = Normalizer(cfg, toolbox, fmt, client=http)
        reporter.report("Collecting items")
        sequence = Sequencer(normalizer, fmt, reporter).build(project, workdir)

        renderer = Renderer(cfg.render, toolbox, options, reporter)
        if fmt == ExportFormat.MARKDOWN:
            renderer.render_markdown(sequence, output, workdir)
        elif fmt == ExportFormat.EPUB:
            renderer.render_epub(sequence, output, workdir, project.name)
        else:
            components = renderer.render_pdf_components(sequence, workdir)
            reporter.report(f"Merging {len(components)} PDF components")
            merge_components(components, output, toolbox.mergers)

    log_event(
        logger,
        "Export finished",
        event="export_finished",
        project_id=project.id,
        output=str(output),
        failed=len(sequence.failed_items),
        estimated_pages=sequence.estimated_pages,
    )
    return ExportResult(output_path=output, failed_items=sequence.failed_items)


class ExportService:
    """Runs exports on daemon threads and tracks them in a JobStore.

    Args:
        cfg: Application configuration
        store: Job store (in-memory with configured retention by default)
        toolbox_factory: Builds the Toolbox; defaults to host discovery
        client: Shared HTTP client passed to every export
    """

    def __init__(
        self,
        cfg: AppConfig,
        store: JobStore | None = None,
        toolbox_factory: Callable[[RenderConfig], Toolbox] | None = None,
        client: httpx.Client | None = None,
    ):
        self.cfg = cfg
        self.store = store or InMemoryJobStore(cfg.jobs.retention_seconds)
        self.toolbox_factory = toolbox_factory or Toolbox.discover
        self.client = client
        self._toolbox: Toolbox | None = None
        self._lock = threading.Lock()

    @property
    def toolbox(self) -> Toolbox:
        with self._lock:
            if self._toolbox is None:
                self._toolbox = self.toolbox_factory(self.cfg.render)
            return self._toolbox

    def start_export(
        self, project: ProjectSnapshot, fmt: str, options: ExportOptions | None = None
    ) -> str:
        """Start an export in the background and return its job id.

        The project is deep-copied so later edits do not affect the run.
        """
        if fmt not in ExportFormat.ALL:
            raise ValueError(f"Unsupported export format: {fmt}")
        snapshot = copy.deepcopy(project)
        total = total_steps(len(snapshot.items), fmt)
        job = self.store.create(total=total)
        thread = threading.Thread(
            target=self._run,
            args=(job.id, snapshot, fmt, options or ExportOptions(), total),
            name=f"export-{job.id}",
            daemon=True,
        )
        thread.start()
        return job.id

    def _run(self, job_id: str, project: ProjectSnapshot, fmt: str, options: ExportOptions, total: int) -> None:
        reporter = ProgressReporter(self.store, job_id, total)
        try:
            with job_context(job_id):
                result = export_project(
                    project, fmt, options, self.cfg, toolbox=self.toolbox, reporter=reporter, client=self.client
                )
        except ExportError as exc:
            logger.error("Export %s failed: %s", job_id, exc)
            reporter.fail(str(exc))
            return
        except Exception as exc:  # noqa: BLE001
            # the worker thread is the last place this can be reported
            logger.exception("Export %s crashed", job_id)
            reporter.fail(f"{type(exc).__name__}: {exc}")
            return
        reporter.complete(str(result.output_path), result.failed_items)

    def get_progress(self, job_id: str) -> dict | None:
        job = self.store.get(job_id)
        return job.to_dict() if job else None

    def subscribe(self, job_id: str) -> Iterator[dict]:
        for job in self.store.subscribe(job_id):
            yield job.to_dict()
