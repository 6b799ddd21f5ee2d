"""Celery tasks for the rendition pipeline.

Only the subtitle stub runs out of process; the critical path stays in the
request. Subtitle jobs are never retried.
"""

import logging

from celery import Task

from postpic.core.celery_app import celery_app
from postpic.core.logging import bind_correlation_id, log_error
from postpic.modules.transcoding.subtitles import write_subtitle_stub

logger = logging.getLogger(__name__)


class SubtitleTask(Task):
    """Base task for subtitle stub generation."""
    abstract = True
    max_retries = 0

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        """Log the failure; the result backend keeps the exception."""
        asset_id = args[1] if len(args) > 1 else kwargs.get("asset_id")
        log_error(
            logger,
            f"Subtitle task {task_id} failed for {asset_id}",
            exception=exc,
            asset_id=asset_id,
            task_id=task_id,
        )


@celery_app.task(bind=True, base=SubtitleTask, name="postpic.transcoding.generate_subtitle_stub")
def generate_subtitle_stub_task(
    self: SubtitleTask,
    work_dir: str,
    asset_id: str,
    language: str,
) -> dict:
    """Write the placeholder caption track for an asset.

    Args:
        work_dir: Asset working directory
        asset_id: Asset identifier
        language: Track language used in the file name

    Returns:
        dict: Path of the written file
    """
    with bind_correlation_id(asset_id):
        path = write_subtitle_stub(work_dir, asset_id, language)
    return {"asset_id": asset_id, "path": str(path)}
