"""
Process execution, executable discovery and fallback chains.

Every external collaborator (pandoc, PDF engines, ImageMagick, poppler,
qpdf, ghostscript) is invoked through run_command so timeouts and error
reporting are uniform. run_chain drives the ordered fallback lists used for
extraction, typesetting, text extraction, page counting and merging.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import shutil
import subprocess
from typing import Callable, Iterable, Sequence, TypeVar

logger = logging.getLogger("reader_export.tools")

T = TypeVar("T")
R = TypeVar("R")

# Install locations that are often missing from a service's PATH.
COMMON_LOCATIONS: dict[str, list[str]] = {
    "tectonic": [
        "/usr/local/bin/tectonic",
        "/opt/homebrew/bin/tectonic",
        "/usr/bin/tectonic",
        "~/.cargo/bin/tectonic",
    ],
    "xelatex": [
        "/usr/local/bin/xelatex",
        "/opt/homebrew/bin/xelatex",
        "/usr/bin/xelatex",
        "/Library/TeX/texbin/xelatex",
        "/usr/local/texlive/2024/bin/x86_64-linux/xelatex",
        "/usr/local/texlive/2024/bin/universal-darwin/xelatex",
    ],
    "qpdf": ["/usr/bin/qpdf", "/usr/local/bin/qpdf", "/opt/homebrew/bin/qpdf"],
    "pdfunite": ["/usr/bin/pdfunite", "/usr/local/bin/pdfunite", "/opt/homebrew/bin/pdfunite"],
    "gs": ["/usr/bin/gs", "/usr/local/bin/gs", "/opt/homebrew/bin/gs"],
}


class ToolError(RuntimeError):
    """An external command failed or could not be started."""

    def __init__(self, cmd: Sequence[str], message: str, returncode: int | None = None):
        self.cmd = list(cmd)
        self.returncode = returncode
        super().__init__(f"{' '.join(str(part) for part in cmd)}\n{message}".strip())


@dataclass
class CommandResult:
    stdout: str
    stderr: str
    returncode: int


def run_command(
    cmd: Sequence[str | Path],
    timeout: float | None = None,
    ok_codes: Iterable[int] = (0,),
    cwd: Path | None = None,
) -> CommandResult:
    """Run a command to completion, raising ToolError on failure.

    Args:
        cmd: Program and arguments
        timeout: Seconds before the process is killed
        ok_codes: Exit codes treated as success (qpdf exits 3 on warnings)
        cwd: Working directory for the process

    Returns:
        CommandResult with decoded stdout/stderr
    """
    args = [str(part) for part in cmd]
    try:
        res = subprocess.run(
            args,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError as exc:
        raise ToolError(args, f"executable not found: {exc}") from exc
    except subprocess.TimeoutExpired as exc:
        raise ToolError(args, f"timed out after {timeout}s") from exc

    if res.returncode not in set(ok_codes):
        raise ToolError(args, (res.stderr or "").strip()[-2000:], res.returncode)
    return CommandResult(stdout=res.stdout or "", stderr=res.stderr or "", returncode=res.returncode)


def find_executable(name: str, extra_locations: Iterable[str] | None = None) -> str | None:
    """Locate an executable on PATH or in common install locations."""
    if os.path.isabs(name):
        return name if os.access(name, os.X_OK) else None
    found = shutil.which(name)
    if found:
        return found
    candidates = list(extra_locations or []) + COMMON_LOCATIONS.get(name, [])
    for candidate in candidates:
        path = Path(os.path.expanduser(candidate))
        if path.is_file() and os.access(path, os.X_OK):
            return str(path)
    return None


class ChainExhausted(Exception):
    """Every candidate of a fallback chain failed."""

    def __init__(self, errors: list[tuple[str, Exception]] | None = None):
        self.errors = list(errors or [])
        super().__init__(str(self))

    @property
    def last_error(self) -> Exception | None:
        return self.errors[-1][1] if self.errors else None

    def __str__(self) -> str:
        if not self.errors:
            return "no candidates available"
        return "; ".join(f"{name}: {exc}" for name, exc in self.errors)


def run_chain(
    candidates: Sequence[T],
    attempt: Callable[[T], R | None],
    name_of: Callable[[T], str] = lambda candidate: getattr(candidate, "name", repr(candidate)),
) -> tuple[T, R]:
    """Try candidates in order and return the first success.

    A candidate fails by raising an exception or returning None. Failures
    are logged at debug level and collected into ChainExhausted.

    Returns:
        The winning candidate and its result
    """
    errors: list[tuple[str, Exception]] = []
    for candidate in candidates:
        name = name_of(candidate)
        try:
            result = attempt(candidate)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Chain candidate %s failed: %s", name, exc)
            errors.append((name, exc))
            continue
        if result is None:
            errors.append((name, ValueError("no result")))
            continue
        return candidate, result
    raise ChainExhausted(errors)
