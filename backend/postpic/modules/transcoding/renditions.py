"""Rendition transcoding and poster extraction.

Each planned tier is an independent job: transcode the original to the
tier's size, then pull a poster from the result. A failing tier is logged
and skipped; it never aborts the other tiers. Tiers fan out over a bounded
thread pool and are re-sorted by tier rank once all have finished.
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional, Sequence

from postpic.core.logging import log_error, log_info, log_warning
from postpic.modules.transcoding.exceptions import (
    FatalPosterError,
    TierError,
    ToolchainError,
)
from postpic.modules.transcoding.ffmpeg import Toolchain
from postpic.modules.transcoding.models import Asset, PlannedTier, Rendition
from postpic.modules.transcoding.workspace import (
    default_poster_path,
    rendition_path,
    tier_poster_path,
)

logger = logging.getLogger(__name__)


class PosterGenerator:
    """Extracts still frames used as posters."""

    def __init__(self, toolchain: Toolchain, timestamp: str = "00:00:01"):
        self.toolchain = toolchain
        self.timestamp = timestamp

    def for_rendition(self, asset: Asset, planned: PlannedTier, video_path: Path) -> Path:
        """Extract the poster for one rendition.

        Raises:
            ToolchainError: If frame extraction fails
        """
        poster = tier_poster_path(asset.work_dir, asset.id, planned.tier.label)
        self.toolchain.extract_frame(video_path, poster, self.timestamp)
        return poster

    def default_poster(self, asset: Asset) -> Path:
        """Extract the default cover poster from the original.

        Raises:
            FatalPosterError: If frame extraction fails
        """
        poster = default_poster_path(asset.work_dir, asset.id)
        try:
            self.toolchain.extract_frame(asset.source_path, poster, self.timestamp)
        except ToolchainError as e:
            raise FatalPosterError(
                f"Failed to create default video poster: {e}",
                asset_id=asset.id,
            ) from e
        return poster


class RenditionTranscoder:
    """Produces renditions for every planned tier, skipping failed ones.

    Example:
        transcoder = RenditionTranscoder(toolchain, PosterGenerator(toolchain))
        renditions = transcoder.transcode_ladder(asset, plan_ladder(w, h))
    """

    def __init__(
        self,
        toolchain: Toolchain,
        posters: Optional[PosterGenerator] = None,
        max_workers: int = 1,
    ):
        """Initialize transcoder.

        Args:
            toolchain: Media toolchain
            posters: Poster generator (default: one on the same toolchain)
            max_workers: Upper bound on concurrent tier jobs
        """
        self.toolchain = toolchain
        self.posters = posters or PosterGenerator(toolchain)
        self.max_workers = max(1, max_workers)

    def render_tier(self, asset: Asset, planned: PlannedTier) -> Rendition:
        """Transcode one tier and extract its poster.

        Raises:
            TierError: If either step fails. A video written before a poster
                failure stays on disk.
        """
        label = planned.tier.label
        output = rendition_path(asset.work_dir, asset.id, label)

        try:
            self.toolchain.transcode(asset.source_path, output, planned.geometry)
        except ToolchainError as e:
            raise TierError(
                f"Transcode to {label} failed: {e}", asset_id=asset.id, tier_label=label
            ) from e

        try:
            poster = self.posters.for_rendition(asset, planned, output)
        except ToolchainError as e:
            raise TierError(
                f"Poster for {label} failed: {e}", asset_id=asset.id, tier_label=label
            ) from e

        return Rendition(
            tier_label=label,
            output_path=output,
            poster_path=poster,
            height=planned.fitted_height,
            rank=planned.rank,
        )

    def transcode_ladder(self, asset: Asset, ladder: Sequence[PlannedTier]) -> list[Rendition]:
        """Render every tier in the ladder.

        Returns:
            Successful renditions ordered by tier rank, best first
        """
        if not ladder:
            return []

        renditions: list[Rendition] = []
        workers = min(self.max_workers, len(ladder))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="transcode") as executor:
            futures = {
                executor.submit(
                    contextvars.copy_context().run, self.render_tier, asset, planned
                ): planned
                for planned in ladder
            }

            for future in as_completed(futures):
                planned = futures[future]
                label = planned.tier.label
                try:
                    rendition = future.result()
                except TierError as e:
                    log_warning(
                        logger,
                        f"Skipping {label}: {e}",
                        asset_id=asset.id,
                        tier=label,
                    )
                    continue
                except Exception as e:
                    log_error(
                        logger,
                        f"Skipping {label} after unexpected error",
                        exception=e,
                        asset_id=asset.id,
                        tier=label,
                    )
                    continue

                log_info(
                    logger,
                    f"Rendition {label} ready ({planned.geometry})",
                    asset_id=asset.id,
                    tier=label,
                )
                renditions.append(rendition)

        renditions.sort(key=lambda r: r.rank)
        return renditions
