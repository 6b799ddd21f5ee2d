"""Placeholder caption tracks.

Real speech-to-text is out of scope; every asset gets the same three-cue
WebVTT file so players have a track to attach. Writing it is best-effort
background work: it never blocks the upload response and its failures only
reach the logs and the runner's failure counter.
"""

import contextvars
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from postpic.core.config import Settings, settings as default_settings
from postpic.core.logging import log_error, log_info
from postpic.modules.transcoding.exceptions import SubtitleError
from postpic.modules.transcoding.workspace import subtitle_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cue:
    index: int
    start: str  # hh:mm:ss.mmm
    end: str
    content: str


PLACEHOLDER_CUES: tuple[Cue, ...] = (
    Cue(1, "00:00:00.000", "00:00:01.000", "Welcome to the video!"),
    Cue(2, "00:00:01.001", "00:00:02.000", "In this video, we'll learn how to create subtitles."),
    Cue(3, "00:00:02.001", "00:00:03.000", "Let's get started!"),
)


def render_vtt(cues: tuple[Cue, ...] = PLACEHOLDER_CUES) -> str:
    """Render cues as a WebVTT document."""
    parts = ["WEBVTT\n\n"]
    for cue in cues:
        parts.append(f"{cue.index}\n{cue.start} --> {cue.end}\n{cue.content}\n\n")
    return "".join(parts)


def write_subtitle_stub(work_dir: Union[str, Path], asset_id: str, language: str) -> Path:
    """Write the placeholder track to ``{work_dir}/{asset_id}-{language}.vtt``.

    Raises:
        SubtitleError: If the file cannot be written
    """
    dest = subtitle_path(Path(work_dir), asset_id, language)
    try:
        dest.write_text(render_vtt(), encoding="utf-8")
    except OSError as e:
        raise SubtitleError(f"Failed to write subtitle file {dest}: {e}", asset_id=asset_id) from e

    log_info(logger, f"Subtitle file {dest.name} created", asset_id=asset_id, language=language)
    return dest


SubtitleWriter = Callable[[Union[str, Path], str, str], Path]


class SubtitleRunner(ABC):
    """Fire-and-forget submission of subtitle stub jobs."""

    @abstractmethod
    def submit(self, work_dir: Path, asset_id: str, language: str) -> None:
        """Schedule a stub write. Must not block and must not raise."""
        pass

    def shutdown(self, wait: bool = True) -> None:
        """Release runner resources."""
        pass


class ThreadSubtitleRunner(SubtitleRunner):
    """Runs subtitle jobs on a small supervised in-process thread pool.

    Failures are logged from the job's done-callback and counted in
    ``failures``; ``join`` blocks until all submitted jobs have settled.
    """

    def __init__(
        self,
        max_workers: int = 1,
        writer: Optional[SubtitleWriter] = None,
    ):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="subtitle")
        self._writer = writer or write_subtitle_stub
        self._cond = threading.Condition()
        self._pending = 0
        self.failures = 0

    def submit(self, work_dir: Path, asset_id: str, language: str) -> None:
        with self._cond:
            self._pending += 1
        try:
            future = self._executor.submit(
                contextvars.copy_context().run,
                self._writer,
                str(work_dir),
                asset_id,
                language,
            )
        except RuntimeError as e:
            # Executor already shut down
            self._settle(asset_id, e)
            return
        future.add_done_callback(lambda f: self._on_done(f, asset_id))

    def _on_done(self, future: Future, asset_id: str) -> None:
        self._settle(asset_id, future.exception())

    def _settle(self, asset_id: str, error: Optional[BaseException]) -> None:
        if error is not None:
            log_error(
                logger,
                f"Subtitle generation failed for {asset_id}",
                exception=error,
                asset_id=asset_id,
            )
        with self._cond:
            if error is not None:
                self.failures += 1
            self._pending -= 1
            self._cond.notify_all()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for submitted jobs to settle. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class CelerySubtitleRunner(SubtitleRunner):
    """Dispatches subtitle jobs to Celery workers.

    A broker outage is logged and counted; the upload still succeeds.
    """

    def __init__(self):
        self.failures = 0

    def submit(self, work_dir: Path, asset_id: str, language: str) -> None:
        from postpic.modules.transcoding.tasks import generate_subtitle_stub_task

        try:
            generate_subtitle_stub_task.delay(str(work_dir), asset_id, language)
        except Exception as e:
            self.failures += 1
            log_error(
                logger,
                f"Could not dispatch subtitle job for {asset_id}",
                exception=e,
                asset_id=asset_id,
            )


def get_subtitle_runner(settings: Optional[Settings] = None) -> SubtitleRunner:
    """Build the subtitle runner selected by SUBTITLE_BACKEND."""
    settings = settings or default_settings
    backend = settings.SUBTITLE_BACKEND.lower()
    if backend == "celery":
        return CelerySubtitleRunner()
    if backend == "thread":
        return ThreadSubtitleRunner()
    raise ValueError(f"Unknown SUBTITLE_BACKEND: {settings.SUBTITLE_BACKEND}")
