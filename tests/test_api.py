"""Tests for the HTTP API."""

from __future__ import annotations

import json

from fastapi.testclient import TestClient

from fakes import make_config, make_toolbox
from reader_export.pipeline import ExportService
from reader_export.server import create_app

PROJECT = {
    "id": "p1",
    "name": "Econ 101",
    "items": [
        {"id": "h", "type": "heading", "title": "Chapter 1", "position": 0},
        {"id": "u", "type": "url", "title": "Saved", "cached_content": "Saved text.", "position": 1},
    ],
    "author": {"username": "prof", "first_name": None},
}


def _client(tmp_path) -> tuple[TestClient, ExportService]:
    service = ExportService(make_config(tmp_path), toolbox_factory=lambda render_cfg: make_toolbox())
    return TestClient(create_app(service)), service


def test_export_progress_and_download(tmp_path) -> None:
    client, service = _client(tmp_path)
    resp = client.post("/api/export", json={"project": PROJECT, "format": "markdown", "includeToc": False})
    assert resp.status_code == 200
    job_id = resp.json()["jobId"]
    list(service.subscribe(job_id))

    job = client.get(f"/api/jobs/{job_id}").json()
    assert job["done"] is True
    assert job["error"] is None

    download = client.get(f"/api/download/{job_id}")
    assert download.status_code == 200
    assert download.headers["content-type"].startswith("text/markdown")
    assert download.text == "# Chapter 1\n\n# Saved\n\nSaved text.\n"

    stream = client.get(f"/api/progress/{job_id}")
    assert stream.status_code == 200
    data_lines = [line[len("data:"):].strip() for line in stream.text.splitlines() if line.startswith("data:")]
    assert json.loads(data_lines[-1])["done"] is True
    assert "event: progress" in stream.text


def test_unknown_job_is_404(tmp_path) -> None:
    client, _ = _client(tmp_path)
    assert client.get("/api/jobs/nope").status_code == 404
    assert client.get("/api/download/nope").status_code == 404
    assert client.get("/api/progress/nope").status_code == 404


def test_download_before_completion_is_409(tmp_path) -> None:
    client, service = _client(tmp_path)
    service.store.create(job_id="pending")
    assert client.get("/api/download/pending").status_code == 409


def test_unsupported_format_is_400(tmp_path) -> None:
    client, _ = _client(tmp_path)
    resp = client.post("/api/export", json={"project": PROJECT, "format": "rtf"})
    assert resp.status_code == 400


def test_malformed_item_options_are_400(tmp_path) -> None:
    client, _ = _client(tmp_path)
    project = dict(PROJECT, items=[{"id": "i", "type": "image", "sourceRef": "fig.png", "options": "{broken"}])
    resp = client.post("/api/export", json={"project": project, "format": "markdown"})
    assert resp.status_code == 400
