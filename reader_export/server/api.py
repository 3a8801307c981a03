"""
HTTP API for starting exports and following their progress.

Endpoints:
- POST /api/export: start an export, returns {"jobId": ...}
- GET /api/progress/{job_id}: Server-Sent Events stream of job snapshots
- GET /api/jobs/{job_id}: current job snapshot
- GET /api/download/{job_id}: the finished output file
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse
from starlette.concurrency import iterate_in_threadpool

from ..core.types import ExportFormat, ExportOptions, ProjectSnapshot
from ..pipeline import ExportService

_MEDIA_TYPES = {
    ExportFormat.PDF: "application/pdf",
    ExportFormat.EPUB: "application/epub+zip",
    ExportFormat.MARKDOWN: "text/markdown",
}


class ExportRequest(BaseModel):
    project: dict[str, Any]
    format: str = ExportFormat.PDF
    include_toc: bool = Field(True, alias="includeToc")
    show_page_numbers: bool = Field(True, alias="showPageNumbers")

    model_config = {"populate_by_name": True}


def create_app(service: ExportService) -> FastAPI:
    app = FastAPI(title="reader-export")

    def _job_or_404(job_id: str) -> dict:
        state = service.get_progress(job_id)
        if state is None:
            raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
        return state

    @app.post("/api/export")
    async def start_export(body: ExportRequest) -> dict:
        if body.format not in ExportFormat.ALL:
            raise HTTPException(status_code=400, detail=f"Unsupported format: {body.format}")
        try:
            project = ProjectSnapshot.from_dict(body.project)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        options = ExportOptions(include_toc=body.include_toc, show_page_numbers=body.show_page_numbers)
        job_id = service.start_export(project, body.format, options)
        return {"jobId": job_id}

    @app.get("/api/progress/{job_id}")
    async def progress_stream(job_id: str, request: Request) -> EventSourceResponse:
        _job_or_404(job_id)

        async def event_generator():
            async for state in iterate_in_threadpool(service.subscribe(job_id)):
                if await request.is_disconnected():
                    break
                yield {"event": "progress", "id": f"{job_id}-{state['step']}", "data": json.dumps(state)}

        return EventSourceResponse(event_generator())

    @app.get("/api/jobs/{job_id}")
    async def get_job(job_id: str) -> dict:
        return _job_or_404(job_id)

    @app.get("/api/download/{job_id}")
    async def download(job_id: str) -> FileResponse:
        state = _job_or_404(job_id)
        if not state["done"] or state["error"]:
            raise HTTPException(status_code=409, detail="Export is not complete")
        path = Path(state["output_path"])
        if not path.exists():
            raise HTTPException(status_code=404, detail="Export file not found on server")
        ext = path.suffix.lstrip(".")
        fmt = ExportFormat.MARKDOWN if ext == "md" else ext
        return FileResponse(path=str(path), media_type=_MEDIA_TYPES.get(fmt), filename=path.name)

    return app
