"""Per-asset scratch directories and the on-disk artifact layout.

Layout under the media root::

    {root}/{id}/{id}.mp4              original
    {root}/{id}/{id}-{label}.mp4      rendition
    {root}/{id}/{id}-{label}.jpg      per-tier poster
    {root}/{id}/{id}.jpg              default poster
    {root}/{id}/{id}-{lang}.vtt       subtitle stub

Everything under {root} is served publicly as ``{url_prefix}/{id}/{file}``.
"""

import logging
import secrets
import shutil
import string
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from postpic.core.logging import log_error, log_info
from postpic.modules.transcoding.exceptions import IntakeError, WorkspaceError
from postpic.modules.transcoding.models import Asset

logger = logging.getLogger(__name__)

ASSET_ID_ALPHABET = string.ascii_letters + string.digits + "_"
ASSET_ID_LENGTH = 16


def generate_asset_id(length: int = ASSET_ID_LENGTH) -> str:
    """Generate a random asset identifier."""
    return "".join(secrets.choice(ASSET_ID_ALPHABET) for _ in range(length))


def is_valid_asset_id(asset_id: str) -> bool:
    """Asset IDs become directory names, so only the ID alphabet is allowed."""
    return bool(asset_id) and all(c in ASSET_ID_ALPHABET for c in asset_id)


def original_path(work_dir: Path, asset_id: str) -> Path:
    return work_dir / f"{asset_id}.mp4"


def rendition_path(work_dir: Path, asset_id: str, tier_label: str) -> Path:
    return work_dir / f"{asset_id}-{tier_label}.mp4"


def tier_poster_path(work_dir: Path, asset_id: str, tier_label: str) -> Path:
    return work_dir / f"{asset_id}-{tier_label}.jpg"


def default_poster_path(work_dir: Path, asset_id: str) -> Path:
    return work_dir / f"{asset_id}.jpg"


def subtitle_path(work_dir: Path, asset_id: str, language: str) -> Path:
    return work_dir / f"{asset_id}-{language}.vtt"


class WorkspaceManager:
    """Allocates, fills and purges asset working directories.

    Example:
        manager = WorkspaceManager("./static/postpic")
        asset = manager.allocate()
        manager.save_original(asset, upload_stream)
    """

    def __init__(
        self,
        root: Union[str, Path],
        url_prefix: str = "/postpic",
        id_generator: Optional[Callable[[], str]] = None,
        chunk_size: int = 1024 * 1024,
    ):
        """Initialize workspace manager.

        Args:
            root: Media root directory
            url_prefix: Public URL prefix the media root is served under
            id_generator: Asset ID factory (default: generate_asset_id)
            chunk_size: Read size used when streaming uploads to disk
        """
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.id_generator = id_generator or generate_asset_id
        self.chunk_size = chunk_size

    def work_dir_for(self, asset_id: str) -> Path:
        return self.root / asset_id

    def allocate(self, asset_id: Optional[str] = None) -> Asset:
        """Create a fresh asset and its working directory.

        Args:
            asset_id: Caller-generated identifier (default: a new one)

        Returns:
            New Asset with an empty work_dir

        Raises:
            WorkspaceError: If the identifier is unusable or the directory
                cannot be created
        """
        if asset_id is None:
            asset_id = self.id_generator()
        if not is_valid_asset_id(asset_id):
            raise WorkspaceError(f"Invalid asset id: {asset_id!r}", asset_id=asset_id)
        work_dir = self.work_dir_for(asset_id)

        try:
            work_dir.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise WorkspaceError(
                f"Failed to create upload directory {work_dir}: {e}",
                asset_id=asset_id,
            ) from e

        log_info(logger, f"Allocated workspace {work_dir}", asset_id=asset_id)
        return Asset(id=asset_id, work_dir=work_dir)

    def save_original(self, asset: Asset, reader: BinaryIO) -> Path:
        """Stream the uploaded video into the asset's original file.

        Args:
            asset: Allocated asset
            reader: Binary stream with the upload

        Returns:
            Path of the saved original

        Raises:
            IntakeError: On any I/O error reading or writing
        """
        dest = original_path(asset.work_dir, asset.id)

        try:
            with open(dest, "wb") as f:
                shutil.copyfileobj(reader, f, self.chunk_size)
        except OSError as e:
            raise IntakeError(
                f"Failed to save video file: {e}",
                asset_id=asset.id,
            ) from e

        asset.source_path = dest
        log_info(
            logger,
            f"Saved original {dest.name} ({dest.stat().st_size} bytes)",
            asset_id=asset.id,
        )
        return dest

    def purge(self, asset: Asset) -> None:
        """Remove the asset working directory and everything in it.

        Safe to call when the directory is already gone. A removal failure
        is logged, never raised, so it cannot mask the error that triggered
        the purge.
        """
        if not asset.work_dir.exists():
            return

        try:
            shutil.rmtree(asset.work_dir)
        except OSError as e:
            log_error(
                logger,
                f"Failed to purge workspace {asset.work_dir}",
                exception=e,
                asset_id=asset.id,
            )
            return

        log_info(logger, f"Purged workspace {asset.work_dir}", asset_id=asset.id)

    def public_url(self, asset_id: str, path: Union[str, Path]) -> str:
        """Public URL for an artifact inside an asset directory."""
        return f"{self.url_prefix}/{asset_id}/{Path(path).name}"
