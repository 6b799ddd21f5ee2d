"""Tests for asset workspaces."""

import io
from pathlib import Path

import pytest
from hypothesis import given, settings, strategies as st

from fakes import BrokenReader
from postpic.modules.transcoding.exceptions import IntakeError, WorkspaceError
from postpic.modules.transcoding.workspace import (
    ASSET_ID_ALPHABET,
    ASSET_ID_LENGTH,
    WorkspaceManager,
    generate_asset_id,
    is_valid_asset_id,
    rendition_path,
    subtitle_path,
)


class TestAssetIds:
    """Identifiers double as directory names."""

    def test_generated_ids_use_alphabet(self) -> None:
        for _ in range(50):
            asset_id = generate_asset_id()
            assert len(asset_id) == ASSET_ID_LENGTH
            assert is_valid_asset_id(asset_id)

    def test_generated_ids_are_unique(self) -> None:
        assert len({generate_asset_id() for _ in range(500)}) == 500

    @pytest.mark.parametrize("asset_id", ["", "..", "a/b", "../x", "a b", "a-b", "id\x00"])
    def test_rejects_unsafe_ids(self, asset_id: str) -> None:
        assert not is_valid_asset_id(asset_id)

    @given(asset_id=st.text(alphabet=ASSET_ID_ALPHABET, min_size=1, max_size=32))
    @settings(max_examples=100)
    def test_accepts_alphabet(self, asset_id: str) -> None:
        assert is_valid_asset_id(asset_id)


class TestWorkspaceManager:
    """Allocation, intake and purge."""

    def test_allocate_creates_directory(self, workspace, media_root: Path) -> None:
        asset = workspace.allocate()

        assert asset.id == "asset0001"
        assert asset.work_dir == media_root / "asset0001"
        assert asset.work_dir.is_dir()
        assert asset.source_path is None

    def test_allocate_creates_missing_root(self, tmp_path: Path) -> None:
        manager = WorkspaceManager(tmp_path / "not" / "yet")

        asset = manager.allocate("abc")

        assert asset.work_dir.is_dir()

    def test_allocate_existing_directory_fails(self, workspace) -> None:
        workspace.allocate("same")

        with pytest.raises(WorkspaceError) as exc_info:
            workspace.allocate("same")

        assert exc_info.value.asset_id == "same"

    def test_allocate_unwritable_root_fails(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        manager = WorkspaceManager(blocker)

        with pytest.raises(WorkspaceError):
            manager.allocate("abc")

    def test_save_original_streams_bytes(self, media_root: Path) -> None:
        manager = WorkspaceManager(media_root, chunk_size=4)
        asset = manager.allocate("abc")
        payload = b"0123456789" * 100

        path = manager.save_original(asset, io.BytesIO(payload))

        assert path == media_root / "abc" / "abc.mp4"
        assert path.read_bytes() == payload
        assert asset.source_path == path

    def test_save_original_read_failure(self, workspace) -> None:
        asset = workspace.allocate()

        with pytest.raises(IntakeError) as exc_info:
            workspace.save_original(asset, BrokenReader())

        assert exc_info.value.asset_id == asset.id
        assert asset.source_path is None

    def test_purge_removes_everything(self, workspace) -> None:
        asset = workspace.allocate()
        workspace.save_original(asset, io.BytesIO(b"data"))
        rendition_path(asset.work_dir, asset.id, "720p").write_bytes(b"video")

        workspace.purge(asset)

        assert not asset.work_dir.exists()

    def test_purge_is_idempotent(self, workspace) -> None:
        asset = workspace.allocate()

        workspace.purge(asset)
        workspace.purge(asset)

        assert not asset.work_dir.exists()

    @pytest.mark.parametrize("prefix", ["/postpic", "postpic", "/postpic/"])
    def test_public_url(self, media_root: Path, prefix: str) -> None:
        manager = WorkspaceManager(media_root, url_prefix=prefix)
        path = subtitle_path(media_root / "abc", "abc", "english")

        assert manager.public_url("abc", path) == "/postpic/abc/abc-english.vtt"
