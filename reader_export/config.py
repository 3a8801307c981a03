"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FetchConfig: HTTP fetching and browser profile settings
- ExtractConfig: Main-content extraction chain
- WikipediaConfig: Wikipedia REST access and license note
- ImageConfig: Image sizing defaults
- RenderConfig: Typesetting engines, merge tools and pandoc settings
- StorageConfig: Upload, export and scratch directories
- JobsConfig: Job state retention
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml


_CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class FetchConfig:
    """Configuration for HTTP content fetching.

    Attributes:
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
        user_agents: Browser User-Agent strings tried in order when a site
            challenges or rejects the client
        challenge_markers: Body substrings that identify a bot-protection page
        retry_delay_seconds: Pause between profile attempts
    """

    timeout_seconds: float = 30.0
    trust_env: bool = True
    user_agents: list[str] = field(
        default_factory=lambda: [
            _CHROME_MAC,
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
            "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/17.0 Safari/605.1.15",
        ]
    )
    challenge_markers: list[str] = field(
        default_factory=lambda: [
            "Just a moment",
            "cf-browser-verification",
            "challenge-platform",
        ]
    )
    retry_delay_seconds: float = 1.0


@dataclass
class ExtractConfig:
    """Configuration for main-content extraction.

    Attributes:
        primary: First extraction strategy ("readability", "trafilatura",
            "selectors", "paragraphs" or "body")
        fallback: Strategies tried in order when the primary yields too little
        min_content_chars: Minimum HTML length accepted from a strategy
        min_paragraph_chars: Minimum text length of a paragraph kept by the
            "paragraphs" strategy
    """

    primary: str = "readability"
    fallback: list[str] = field(default_factory=lambda: ["selectors", "paragraphs", "body"])
    min_content_chars: int = 100
    min_paragraph_chars: int = 50


@dataclass
class WikipediaConfig:
    rest_url_template: str = "https://{lang}.wikipedia.org/api/rest_v1/page/html/{title}"
    license_note: str = (
        "This document includes content from Wikipedia, available under the "
        "Creative Commons Attribution-ShareAlike License (CC BY-SA)."
    )


@dataclass
class ImageConfig:
    """Configuration for image items.

    Attributes:
        max_pixels: Longest allowed side of a raster image before downscaling
        default_width_pct: Width used when an item has no widthPct option
    """

    max_pixels: int = 4000
    default_width_pct: int = 80


@dataclass
class RenderConfig:
    """Configuration for typesetting and merging.

    Attributes:
        pandoc: Pandoc executable name or path
        pdf_engines: PDF engines in priority order
        merge_tools: PDF merge tools in priority order
        margin: Page margin passed as the geometry variable
        toc_depth: Table-of-contents depth
        command_timeout_seconds: Timeout applied to every external command
    """

    pandoc: str = "pandoc"
    pdf_engines: list[str] = field(default_factory=lambda: ["tectonic", "xelatex"])
    merge_tools: list[str] = field(default_factory=lambda: ["qpdf", "pdfunite", "gs", "pikepdf"])
    margin: str = "1in"
    toc_depth: int = 3
    command_timeout_seconds: float = 300.0


@dataclass
class StorageConfig:
    uploads_dir: str = "data/uploads"
    exports_dir: str = "data/exports"
    tmp_dir: str | None = None

    @property
    def uploads_path(self) -> Path:
        return Path(self.uploads_dir).resolve()

    @property
    def exports_path(self) -> Path:
        return Path(self.exports_dir).resolve()


@dataclass
class JobsConfig:
    """Configuration for job state.

    Attributes:
        retention_seconds: How long a finished job stays queryable
    """

    retention_seconds: float = 3600.0


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file inside the exports directory
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "export.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    wikipedia: WikipediaConfig = field(default_factory=WikipediaConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    jobs: JobsConfig = field(default_factory=JobsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    "fetch": FetchConfig,
    "extract": ExtractConfig,
    "wikipedia": WikipediaConfig,
    "image": ImageConfig,
    "render": RenderConfig,
    "storage": StorageConfig,
    "jobs": JobsConfig,
    "logging": LoggingConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path or not Path(path).exists():
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    sections = {}
    for name, cls in _SECTIONS.items():
        known = cls.__dataclass_fields__
        values = {k: v for k, v in (data.get(name) or {}).items() if k in known}
        sections[name] = cls(**values)
    return AppConfig(**sections)
