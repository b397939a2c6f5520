"""Compile Typst snippets to SVG with the external ``typst`` binary.

Each invocation works inside its own temporary directory, which is removed on
every exit path: success, compiler failure, timeout, or interruption of the
calling thread. Running compilers are tracked in a :class:`ProcessRegistry` so
an interrupted run can kill them before exiting.

Failures are values, not exceptions: :meth:`TypstRenderer.render_external`
returns a :class:`RenderFailure` with a readable reason and the caller falls
back to highlight-only output.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import shutil
import subprocess
import tempfile
import threading
import typing as typ
from pathlib import Path

from ._constants import DEFAULT_TIMEOUT_SECONDS, DEFAULT_TYPST_BINARY, PRELUDE

logger = logging.getLogger(__name__)

INPUT_FILENAME = "input.typ"
OUTPUT_FILENAME = "output.svg"
OUTPUT_FORMAT = "svg"
STDERR_EXCERPT_LINES = 5


@dc.dataclass(frozen=True, slots=True)
class RenderSuccess:
    """A rendered artifact held in memory."""

    data: bytes
    format: str = OUTPUT_FORMAT


@dc.dataclass(frozen=True, slots=True)
class RenderFailure:
    """Why a render did not produce an artifact."""

    reason: str


RenderResult: typ.TypeAlias = RenderSuccess | RenderFailure


class ProcessRegistry:
    """Thread-safe set of running compiler processes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._processes: set[subprocess.Popen[bytes]] = set()
        self._closed = False

    def add(self, process: subprocess.Popen[bytes]) -> None:
        """Track ``process``; kill it at once if the registry was shut down."""
        with self._lock:
            closed = self._closed
            if not closed:
                self._processes.add(process)
        if closed:
            _kill(process)

    def discard(self, process: subprocess.Popen[bytes]) -> None:
        with self._lock:
            self._processes.discard(process)

    def terminate_all(self) -> int:
        """Kill every tracked process and refuse new ones.

        Returns
        -------
        int
            Number of processes that were still running.
        """
        with self._lock:
            self._closed = True
            running = list(self._processes)
            self._processes.clear()
        for process in running:
            _kill(process)
        return len(running)

    def __len__(self) -> int:
        with self._lock:
            return len(self._processes)


def _kill(process: subprocess.Popen[bytes]) -> None:
    if process.poll() is None:
        process.kill()


class TypstRenderer:
    """Run ``typst compile`` on snippets under a timeout."""

    def __init__(
        self,
        *,
        binary: str = DEFAULT_TYPST_BINARY,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        prelude: str = PRELUDE,
        registry: ProcessRegistry | None = None,
    ) -> None:
        """Configure the renderer.

        Parameters
        ----------
        binary : str, optional
            Executable name or path, resolved through ``PATH`` on each call.
        timeout : float, optional
            Seconds a single compile may run before it is killed.
        prelude : str, optional
            Text prepended to sources rendered with ``use_prelude=True``.
        registry : ProcessRegistry, optional
            Shared registry of running processes; a private one by default.
        """
        self.binary = binary
        self.timeout = timeout
        self.prelude = prelude
        self.registry = registry or ProcessRegistry()

    def compose(self, source: str, *, use_prelude: bool) -> str:
        """Return the document handed to the compiler."""
        if not use_prelude:
            return source
        prelude = self.prelude
        if prelude and not prelude.endswith("\n"):
            prelude += "\n"
        return prelude + source

    def render_external(self, source: str, use_prelude: bool) -> RenderResult:
        """Compile ``source`` and return the SVG bytes or a failure reason."""
        executable = shutil.which(self.binary)
        if executable is None:
            return RenderFailure(f"'{self.binary}' executable not found on PATH")

        try:
            with tempfile.TemporaryDirectory(prefix="typst-highlight-") as workdir:
                input_path = Path(workdir) / INPUT_FILENAME
                output_path = Path(workdir) / OUTPUT_FILENAME
                input_path.write_text(
                    self.compose(source, use_prelude=use_prelude), encoding="utf-8"
                )
                failure = self._run(
                    [executable, "compile", str(input_path), str(output_path)], workdir
                )
                if failure is not None:
                    return failure
                return _read_artifact(output_path)
        except OSError as exc:
            return RenderFailure(f"temporary files unavailable: {exc}")

    def _run(self, command: list[str], workdir: str) -> RenderFailure | None:
        """Run ``command`` to completion; return a failure or ``None``."""
        try:
            process = subprocess.Popen(  # noqa: S603
                command,
                cwd=workdir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            return RenderFailure(f"could not start '{self.binary}': {exc}")

        self.registry.add(process)
        try:
            _stdout, stderr = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            return RenderFailure(
                f"'{self.binary}' timed out after {self.timeout:g} seconds"
            )
        finally:
            # Interruptions land here too; never leave the child running.
            _kill(process)
            self.registry.discard(process)

        if process.returncode != 0:
            detail = _stderr_excerpt(stderr)
            suffix = f": {detail}" if detail else ""
            return RenderFailure(
                f"'{self.binary}' exited with status {process.returncode}{suffix}"
            )
        return None


def _read_artifact(path: Path) -> RenderResult:
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return RenderFailure("compiler exited successfully but wrote no output")
    except OSError as exc:
        return RenderFailure(f"could not read compiler output: {exc}")
    if not data.strip():
        return RenderFailure("compiler produced an empty output file")
    return RenderSuccess(data=data, format=OUTPUT_FORMAT)


def _stderr_excerpt(stderr: bytes | None) -> str:
    if not stderr:
        return ""
    lines = stderr.decode("utf-8", errors="replace").strip().splitlines()
    return " | ".join(line.strip() for line in lines[:STDERR_EXCERPT_LINES] if line.strip())


__all__ = [
    "INPUT_FILENAME",
    "OUTPUT_FILENAME",
    "ProcessRegistry",
    "RenderFailure",
    "RenderResult",
    "RenderSuccess",
    "TypstRenderer",
]
