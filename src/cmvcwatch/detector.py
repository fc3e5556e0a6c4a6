"""Change detection cycle against a CMVC family.

A cycle runs two blocking queries in sequence: the TrackView report lists
tracks integrated in the monitored releases since the last successful
build, then the ChangeView report lists the files of exactly those tracks.
Polling stops after the first query; checkout assembles the full model,
runs the checkout script once per release and persists the changelog.

Nothing is retried. Any failed command aborts the cycle with an
``ExecutionError`` naming the phase (and release, for checkout).
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path

import structlog

from cmvcwatch import changelog
from cmvcwatch.assembler import from_track_records, merge_file_records, tracks_for_release
from cmvcwatch.config.settings import Settings
from cmvcwatch.dates import MIN_DATE, to_local_naive
from cmvcwatch.errors import ConfigurationError, ExecutionError, error_context
from cmvcwatch.models import ChangeModel, TimeWindow
from cmvcwatch.query import QueryBuilder, quote_for_shell
from cmvcwatch.report import has_any_track, parse_change_view, parse_track_view
from cmvcwatch.runner import CommandResult, CommandRunner

logger = structlog.get_logger()

PHASE_TRACKS = "tracks"
PHASE_FILES = "files"
PHASE_CHECKOUT = "checkout"


class ChangeDetector:
    """Runs poll and checkout cycles for one configured family."""

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner,
        *,
        clock: Callable[[], datetime] = datetime.now,
        base_env: Mapping[str, str] | None = None,
        is_posix: bool | None = None,
    ) -> None:
        self._settings = settings
        self._runner = runner
        self._clock = clock
        self._base_env = dict(os.environ if base_env is None else base_env)
        self._is_posix = os.name == "posix" if is_posix is None else is_posix
        self._queries = QueryBuilder(settings)

    # -- Window --------------------------------------------------------------

    def compute_window(self, last_successful_build: datetime | None) -> TimeWindow:
        now = to_local_naive(self._clock())
        if last_successful_build is None:
            logger.info("detector.no_successful_build", start=MIN_DATE.isoformat())
            start = MIN_DATE
        else:
            start = to_local_naive(last_successful_build)
        if start > now:
            logger.warning("detector.window_clamped", start=start.isoformat(), end=now.isoformat())
            start = now
        return TimeWindow(start=start, end=now)

    # -- Polling -------------------------------------------------------------

    def poll(self, last_successful_build: datetime | None) -> bool:
        """True when a build should be triggered."""
        self._settings.validate_for_cycle()
        if last_successful_build is None:
            logger.info("detector.poll_no_prior_build")
            return True

        window = self.compute_window(last_successful_build)
        result = self._execute(self._queries.track_view_command(window), PHASE_TRACKS)
        changed = has_any_track(result.stdout)
        logger.info("detector.poll_completed", changes=changed)
        return changed

    # -- Detection -----------------------------------------------------------

    def detect(self, last_successful_build: datetime | None) -> ChangeModel:
        """Run both report queries and assemble the change model."""
        self._settings.validate_for_cycle()
        window = self.compute_window(last_successful_build)

        result = self._execute(self._queries.track_view_command(window), PHASE_TRACKS)
        model = from_track_records(parse_track_view(result.stdout))
        if model.is_empty:
            logger.info("detector.no_tracks", start=window.start.isoformat())
            return model

        argv = self._queries.change_view_command(model.track_ids)
        if argv is not None:
            result = self._execute(argv, PHASE_FILES)
            merge_file_records(model, parse_change_view(result.stdout))
        return model

    # -- Checkout ------------------------------------------------------------

    def checkout(self, model: ChangeModel, workspace: Path, changelog_path: Path) -> None:
        """Run the checkout script per release, then persist the changelog.

        The changelog is written even when a checkout script fails, so the
        build record still shows what was going to be applied.
        """
        try:
            if not model.is_empty:
                self._checkout_releases(model, workspace)
        finally:
            changelog.write_file(model, changelog_path)

    def run_checkout_cycle(
        self,
        last_successful_build: datetime | None,
        workspace: Path,
        changelog_path: Path,
    ) -> ChangeModel:
        self._settings.validate_for_cycle(checkout=True)
        model = self.detect(last_successful_build)
        self.checkout(model, workspace, changelog_path)
        return model

    def _checkout_releases(self, model: ChangeModel, workspace: Path) -> None:
        script = self._settings.checkout_script
        if not script:
            raise ConfigurationError("no checkout script configured", phase=PHASE_CHECKOUT)
        if self._settings.wipe_workspace:
            self._wipe(workspace)
        for release in self._settings.release_list():
            tracks = quote_for_shell(tracks_for_release(model, release))
            if not tracks:
                logger.info("detector.checkout_release_skipped", release=release)
                continue
            logger.info("detector.checkout_release", release=release)
            self._execute(
                self._checkout_command(script, tracks, release),
                PHASE_CHECKOUT,
                cwd=workspace,
                release=release,
            )

    def _checkout_command(self, script: str, tracks: str, release: str) -> list[str]:
        argv = [script, tracks, release]
        if Path(script).suffix == ".groovy" and not self._is_posix:
            argv.insert(0, "groovy")
        return argv

    @staticmethod
    def _wipe(workspace: Path) -> None:
        logger.info("detector.wipe_workspace", workspace=str(workspace))
        workspace.mkdir(parents=True, exist_ok=True)
        for child in workspace.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()

    # -- Execution -----------------------------------------------------------

    def _execute(
        self,
        argv: list[str],
        phase: str,
        *,
        cwd: Path | None = None,
        release: str = "",
    ) -> CommandResult:
        env = {**self._base_env, **self._settings.build_env()}
        with error_context(
            ExecutionError,
            detail=f"could not run {argv[0]}",
            phase=phase,
            release=release,
            argv=argv,
        ):
            result = self._runner.run(argv, env, cwd)
        if not result.ok:
            logger.error("detector.command_failed", phase=phase, exit_code=result.exit_code)
            raise ExecutionError(
                f"{argv[0]} failed with exit code {result.exit_code}",
                exit_code=result.exit_code,
                argv=argv,
                phase=phase,
                release=release,
            )
        return result
