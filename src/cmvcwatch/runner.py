"""External command execution used by the detector.

The detector only needs "run this argv with this environment and give me
stdout and the exit status"; anything else (timeouts, remote agents) is
up to the runner implementation.
"""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel

logger = structlog.get_logger()


class CommandResult(BaseModel):
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        env: Mapping[str, str],
        cwd: Path | None = None,
    ) -> CommandResult: ...


class SubprocessRunner:
    """Runs commands locally and blocks until they finish."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    def run(
        self,
        argv: Sequence[str],
        env: Mapping[str, str],
        cwd: Path | None = None,
    ) -> CommandResult:
        logger.debug("runner.exec", argv=list(argv), cwd=str(cwd) if cwd else None)
        proc = subprocess.run(  # noqa: S603
            list(argv),
            env=dict(env),
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=self._timeout,
            check=False,
        )
        return CommandResult(exit_code=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
