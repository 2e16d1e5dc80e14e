"""Building one drone in a separate process while streaming its output."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional

from .logging import get_logger

Sink = Callable[[str], None]


class BuildWorker:
    """Runs ``dronehive build-drone`` out of process.

    Output is forwarded line by line as the worker produces it, with no
    backpressure. The only way to cancel a running worker is to kill its
    process.
    """

    def __init__(
        self,
        name: str,
        host: Path,
        *,
        python: Optional[str] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        self.name = name
        self.host = Path(host)
        self.python = python or sys.executable
        self._popen = popen
        self.returncode: Optional[int] = None
        self.logger = get_logger("worker")

    @property
    def command(self) -> List[str]:
        return [
            self.python,
            "-m",
            "dronehive.cli",
            "--host",
            str(self.host),
            "build-drone",
            self.name,
        ]

    def stream(self) -> Iterator[str]:
        """Yield the worker's combined output; ``returncode`` is set once exhausted."""
        self.logger.info("Starting build worker: %s", " ".join(self.command))
        process = self._popen(
            self.command,
            cwd=str(self.host),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )
        if process.stdout is None:
            raise RuntimeError("Build worker started without an output pipe")
        try:
            with process.stdout:
                for line in process.stdout:
                    yield line.rstrip("\n")
        finally:
            # Reaped even when the consumer stops reading early.
            self.returncode = process.wait()
            self.logger.info("Build worker for %s exited with status %s", self.name, self.returncode)

    def run(self, sink: Sink) -> int:
        """Run to completion, appending every output line to ``sink``."""
        for line in self.stream():
            sink(line)
        return self.returncode if self.returncode is not None else 1


def run_build_worker(name: str, host: Path, sink: Sink, **kwargs: Any) -> int:
    """Build ``name`` out of process, feeding each output line to ``sink``."""
    return BuildWorker(name, host, **kwargs).run(sink)


__all__ = ["BuildWorker", "Sink", "run_build_worker"]
