"""Structured exception hierarchy for change detection cycles.

All cmvcwatch errors extend ``CmvcWatchError`` and carry enough context
(phase, release, free-form extras) for the caller to log a single
actionable message. None of them are retried inside the library.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any


class CmvcWatchError(Exception):
    """Base exception for all cmvcwatch errors."""

    title: str = "Change Detection Error"

    def __init__(
        self,
        detail: str = "",
        *,
        phase: str = "",
        release: str = "",
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.detail = detail or self.title
        self.phase = phase
        self.release = release
        self.extra = extra or {}
        super().__init__(self.detail)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": type(self).__name__,
            "title": self.title,
            "detail": self.detail,
        }
        if self.phase:
            body["phase"] = self.phase
        if self.release:
            body["release"] = self.release
        if self.extra:
            body.update(self.extra)
        return body

    def __str__(self) -> str:
        parts = [self.detail]
        if self.phase:
            parts.append(f"phase={self.phase}")
        if self.release:
            parts.append(f"release={self.release}")
        return " ".join(parts)


class ConfigurationError(CmvcWatchError):
    """Missing or invalid family/release configuration."""

    title = "Configuration Error"


class ExecutionError(CmvcWatchError):
    """An external command finished with a failure status."""

    title = "Execution Error"

    def __init__(
        self,
        detail: str = "",
        *,
        exit_code: int | None = None,
        argv: Sequence[str] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(detail, **kwargs)
        self.exit_code = exit_code
        self.argv = list(argv)
        if exit_code is not None:
            self.extra.setdefault("exit_code", exit_code)


class MalformedReportError(CmvcWatchError):
    """The raw report does not match the expected line schema."""

    title = "Malformed Report"

    def __init__(
        self,
        detail: str = "",
        *,
        view: str = "",
        line_number: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(detail, **kwargs)
        self.view = view
        self.line_number = line_number
        if view:
            self.extra.setdefault("view", view)
        if line_number is not None:
            self.extra.setdefault("line_number", line_number)


class ChangelogFormatError(CmvcWatchError):
    """A persisted changelog cannot be read back."""

    title = "Changelog Format Error"


@contextmanager
def error_context(
    error_cls: type[CmvcWatchError] = CmvcWatchError,
    detail: str = "",
    **kwargs: Any,
) -> Iterator[None]:
    """Context manager that wraps unexpected exceptions into cmvcwatch errors.

    Usage::

        with error_context(ExecutionError, detail="Report failed", phase="tracks"):
            result = runner.run(argv, env)
    """
    try:
        yield
    except CmvcWatchError:
        raise
    except Exception as exc:
        msg = f"{detail}: {exc}" if detail else str(exc)
        raise error_cls(msg, **kwargs) from exc
