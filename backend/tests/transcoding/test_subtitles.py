"""Tests for placeholder caption tracks and their runners."""

import logging
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from postpic.core.config import Settings
from postpic.core.logging import bind_correlation_id, get_correlation_id
from postpic.modules.transcoding import tasks
from postpic.modules.transcoding.exceptions import SubtitleError
from postpic.modules.transcoding.subtitles import (
    CelerySubtitleRunner,
    ThreadSubtitleRunner,
    get_subtitle_runner,
    render_vtt,
    write_subtitle_stub,
)


EXPECTED_VTT = (
    "WEBVTT\n"
    "\n"
    "1\n"
    "00:00:00.000 --> 00:00:01.000\n"
    "Welcome to the video!\n"
    "\n"
    "2\n"
    "00:00:01.001 --> 00:00:02.000\n"
    "In this video, we'll learn how to create subtitles.\n"
    "\n"
    "3\n"
    "00:00:02.001 --> 00:00:03.000\n"
    "Let's get started!\n"
    "\n"
)


class TestStub:
    """The placeholder WebVTT document."""

    def test_render(self) -> None:
        assert render_vtt() == EXPECTED_VTT

    def test_write(self, tmp_path: Path) -> None:
        path = write_subtitle_stub(tmp_path, "abc", "english")

        assert path == tmp_path / "abc-english.vtt"
        assert path.read_bytes() == EXPECTED_VTT.encode("utf-8")

    def test_write_to_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(SubtitleError) as exc_info:
            write_subtitle_stub(tmp_path / "gone", "abc", "english")

        assert exc_info.value.asset_id == "abc"


class TestThreadSubtitleRunner:
    """In-process background runner."""

    def test_writes_file(self, tmp_path: Path) -> None:
        runner = ThreadSubtitleRunner()
        try:
            runner.submit(tmp_path, "abc", "english")
            assert runner.join(timeout=5)
        finally:
            runner.shutdown()

        assert (tmp_path / "abc-english.vtt").exists()
        assert runner.failures == 0

    def test_failure_is_counted_and_logged(self, tmp_path: Path, caplog) -> None:
        runner = ThreadSubtitleRunner()
        try:
            with caplog.at_level(logging.ERROR):
                runner.submit(tmp_path / "gone", "abc", "english")
                assert runner.join(timeout=5)
        finally:
            runner.shutdown()

        assert runner.failures == 1
        record = next(r for r in caplog.records if "Subtitle generation failed" in r.getMessage())
        assert record.asset_id == "abc"
        assert record.exc_info is not None

    def test_submit_does_not_block(self, tmp_path: Path) -> None:
        release = threading.Event()

        def slow_writer(work_dir, asset_id, language):
            release.wait(5)
            return write_subtitle_stub(work_dir, asset_id, language)

        runner = ThreadSubtitleRunner(writer=slow_writer)
        try:
            runner.submit(tmp_path, "abc", "english")
            assert not runner.join(timeout=0.05)
            release.set()
            assert runner.join(timeout=5)
        finally:
            release.set()
            runner.shutdown()

    def test_submit_after_shutdown(self, tmp_path: Path) -> None:
        runner = ThreadSubtitleRunner()
        runner.shutdown()

        runner.submit(tmp_path, "abc", "english")

        assert runner.failures == 1
        assert runner.join(timeout=1)

    def test_job_sees_submitter_correlation_id(self, tmp_path: Path) -> None:
        seen = []

        def writer(work_dir, asset_id, language):
            seen.append(get_correlation_id())
            return Path(work_dir)

        runner = ThreadSubtitleRunner(writer=writer)
        try:
            with bind_correlation_id("abc"):
                runner.submit(tmp_path, "abc", "english")
            assert runner.join(timeout=5)
        finally:
            runner.shutdown()

        assert seen == ["abc"]


class TestCelerySubtitleRunner:
    """Celery dispatch."""

    def test_dispatches_task(self, tmp_path: Path, monkeypatch) -> None:
        delay = MagicMock()
        monkeypatch.setattr(tasks.generate_subtitle_stub_task, "delay", delay)

        CelerySubtitleRunner().submit(tmp_path, "abc", "english")

        delay.assert_called_once_with(str(tmp_path), "abc", "english")

    def test_broker_outage_is_logged(self, tmp_path: Path, monkeypatch, caplog) -> None:
        delay = MagicMock(side_effect=ConnectionError("broker down"))
        monkeypatch.setattr(tasks.generate_subtitle_stub_task, "delay", delay)
        runner = CelerySubtitleRunner()

        with caplog.at_level(logging.ERROR):
            runner.submit(tmp_path, "abc", "english")

        assert runner.failures == 1
        assert any("Could not dispatch" in r.getMessage() for r in caplog.records)

    def test_task_writes_stub(self, tmp_path: Path) -> None:
        result = tasks.generate_subtitle_stub_task.run(str(tmp_path), "abc", "english")

        assert result == {"asset_id": "abc", "path": str(tmp_path / "abc-english.vtt")}
        assert (tmp_path / "abc-english.vtt").read_text(encoding="utf-8") == EXPECTED_VTT


class TestRunnerSelection:
    def test_thread_backend(self) -> None:
        runner = get_subtitle_runner(Settings(SUBTITLE_BACKEND="thread"))
        try:
            assert isinstance(runner, ThreadSubtitleRunner)
        finally:
            runner.shutdown()

    def test_celery_backend(self) -> None:
        assert isinstance(
            get_subtitle_runner(Settings(SUBTITLE_BACKEND="Celery")), CelerySubtitleRunner
        )

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError):
            get_subtitle_runner(Settings(SUBTITLE_BACKEND="cron"))
