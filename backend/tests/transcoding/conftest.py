"""Fixtures for the rendition pipeline tests."""

from pathlib import Path

import pytest

from fakes import SequentialIds
from postpic.modules.transcoding.status import StatusRegistry
from postpic.modules.transcoding.subtitles import ThreadSubtitleRunner
from postpic.modules.transcoding.workspace import WorkspaceManager


@pytest.fixture
def media_root(tmp_path: Path) -> Path:
    root = tmp_path / "postpic"
    root.mkdir()
    return root


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def workspace(media_root: Path, ids: SequentialIds) -> WorkspaceManager:
    return WorkspaceManager(media_root, url_prefix="/postpic", id_generator=ids)


@pytest.fixture
def subtitles():
    runner = ThreadSubtitleRunner()
    yield runner
    runner.shutdown(wait=True)


@pytest.fixture
def registry() -> StatusRegistry:
    return StatusRegistry()
