"""Outcome-dependent capture and cleanup of scenario artifacts."""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from scenarist.constants import ExecutionMode, ScenarioOutcome

if TYPE_CHECKING:
    from scenarist.config import Settings
    from scenarist.world import ScenarioContext

logger = logging.getLogger(__name__)

UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9\-_]")


def sanitize(text: str) -> str:
    """Replace every character outside ``[A-Za-z0-9-_]`` with an underscore.

    Parameters
    ----------
    text : str
        Arbitrary scenario name or identifier

    Returns
    -------
    str
        Filesystem-safe string of the same length
    """
    return UNSAFE_CHARACTERS.sub("_", text)


def screenshot_path_for(settings: Settings, artifact_key: str) -> Path:
    return settings.screenshots_dir / f"{artifact_key}_failed.png"


def video_dir_for(settings: Settings, artifact_key: str) -> Path:
    return settings.videos_dir / artifact_key


def trace_path_for(settings: Settings, artifact_key: str) -> Path:
    return settings.trace_dir / f"{artifact_key}.zip"


def prepare_output_dirs(settings: Settings, clean: bool = False) -> None:
    """Create the artifact directories, optionally emptying the results root.

    Parameters
    ----------
    settings : Settings
        Settings naming the output directories
    clean : bool
        Remove everything under ``results_dir`` first
    """
    if clean and settings.results_dir.exists():
        for child in settings.results_dir.iterdir():
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        logger.info("Emptied results directory %s", settings.results_dir)

    for directory in (
        settings.results_dir,
        settings.screenshots_dir,
        settings.videos_dir,
        settings.trace_dir,
        settings.logs_dir,
    ):
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class CollectedArtifacts:
    """Artifacts produced while finalizing one scenario.

    Attributes
    ----------
    screenshot : Path | None
        Failure screenshot, if taken
    videos : list[Path]
        Video files kept for the scenario
    deleted_videos : list[Path]
        Video files removed because the scenario passed
    trace : Path | None
        Persisted trace archive, if tracing was active
    errors : list[str]
        Capture steps that failed
    """

    screenshot: Path | None = None
    videos: list[Path] = field(default_factory=list)
    deleted_videos: list[Path] = field(default_factory=list)
    trace: Path | None = None
    errors: list[str] = field(default_factory=list)


class ArtifactCollector:
    """Captures or deletes diagnostic artifacts based on the scenario outcome.

    Failed browser scenarios get a full-page screenshot and keep their video.
    Passed ones have their video deleted. A trace, when recording, is always
    persisted. API-only scenarios produce log entries only.

    Every capture step is isolated: one failing step is recorded on the
    result and the remaining steps still run.

    Parameters
    ----------
    settings : Settings
        Settings naming the output directories
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def collect(self, world: ScenarioContext, outcome: ScenarioOutcome) -> CollectedArtifacts:
        """Capture artifacts for a finished scenario.

        For browser scenarios this closes the page and browser context, since
        video files are only complete after the context closes.

        Parameters
        ----------
        world : ScenarioContext
            World of the finished scenario
        outcome : ScenarioOutcome
            Outcome reported by the step runner

        Returns
        -------
        CollectedArtifacts
            What was captured, kept, deleted or failed
        """
        result = CollectedArtifacts()

        if world.mode == ExecutionMode.API_ONLY:
            world.logger.info("Scenario '%s' finished: %s", world.ref.name, outcome.value)
            return result

        failed = outcome != ScenarioOutcome.PASSED
        video = self._video_handle(world, result)

        if failed:
            self._capture_screenshot(world, result)

        if world.trace_active:
            self._persist_trace(world, result)

        world.close_browser_context()

        if video is not None:
            self._finalize_video(world, video, failed, result)

        world.logger.info(
            "Scenario '%s' finished: %s (screenshot=%s, trace=%s, videos kept=%d)",
            world.ref.name,
            outcome.value,
            result.screenshot,
            result.trace,
            len(result.videos),
        )
        return result

    def _video_handle(self, world: ScenarioContext, result: CollectedArtifacts) -> Any:
        if world.page is None:
            return None
        try:
            return world.page.video
        except Exception as e:
            self._record_error(world, result, "video lookup", e)
            return None

    def _capture_screenshot(self, world: ScenarioContext, result: CollectedArtifacts) -> None:
        if world.page is None:
            return

        path = screenshot_path_for(self.settings, world.artifact_key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            payload = world.page.screenshot(full_page=True, path=str(path), type="png")
        except Exception as e:
            self._record_error(world, result, "screenshot", e)
            return

        result.screenshot = path
        world.logger.info("Saved failure screenshot: %s", path)
        try:
            world.attach(payload, "image/png", name=path.name)
        except Exception as e:
            self._record_error(world, result, "screenshot attachment", e)

    def _persist_trace(self, world: ScenarioContext, result: CollectedArtifacts) -> None:
        path = trace_path_for(self.settings, world.artifact_key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            world.context.tracing.stop(path=str(path))
        except Exception as e:
            self._record_error(world, result, "trace", e)
            return
        finally:
            world.trace_active = False

        result.trace = path
        world.logger.info("Trace saved. Replay with: playwright show-trace %s", path)

    def _finalize_video(
        self, world: ScenarioContext, video: Any, failed: bool, result: CollectedArtifacts
    ) -> None:
        try:
            path = Path(video.path())
        except Exception as e:
            self._record_error(world, result, "video path", e)
            return

        if failed:
            result.videos.append(path)
            world.logger.info("Kept video: %s", path)
            return

        try:
            path.unlink(missing_ok=True)
            video_dir = path.parent
            if video_dir.exists() and not any(video_dir.iterdir()):
                video_dir.rmdir()
        except OSError as e:
            self._record_error(world, result, "video delete", e)
            return

        result.deleted_videos.append(path)
        world.logger.debug("Deleted video of passed scenario: %s", path)

    def _record_error(
        self, world: ScenarioContext, result: CollectedArtifacts, step: str, error: Exception
    ) -> None:
        message = f"{step} failed: {error}"
        result.errors.append(message)
        world.logger.warning("Artifact capture %s", message)
