"""Upload pipeline orchestration.

Sequences one upload run::

    allocate -> save original -> probe -> plan ladder -> tier loop
        -> default poster -> manifest (+ subtitle stub in background)

Failures up to and including the probe, and a failed default poster, abort
the run and purge the working directory. A failed tier is only skipped.
"""

import logging
from pathlib import Path
from typing import BinaryIO, Optional

from postpic.core.config import Settings, settings as default_settings
from postpic.core.logging import bind_correlation_id, log_error, log_info, log_warning
from postpic.modules.transcoding.exceptions import (
    PipelineError,
    ProbeError,
    ToolchainError,
)
from postpic.modules.transcoding.ffmpeg import FFmpegToolchain, Toolchain
from postpic.modules.transcoding.ladder import plan_ladder
from postpic.modules.transcoding.manifest import ManifestAssembler
from postpic.modules.transcoding.models import Asset, PipelineConfig, PipelineState
from postpic.modules.transcoding.renditions import PosterGenerator, RenditionTranscoder
from postpic.modules.transcoding.schemas import Manifest
from postpic.modules.transcoding.status import StatusRegistry, status_registry
from postpic.modules.transcoding.subtitles import SubtitleRunner, get_subtitle_runner
from postpic.modules.transcoding.workspace import WorkspaceManager, subtitle_path

logger = logging.getLogger(__name__)


class RenditionPipeline:
    """Turns one uploaded video into renditions, posters and a manifest.

    Example:
        pipeline = RenditionPipeline(toolchain, workspace, subtitles)
        manifest = pipeline.process_upload(upload_stream)
    """

    def __init__(
        self,
        toolchain: Toolchain,
        workspace: WorkspaceManager,
        subtitles: SubtitleRunner,
        config: Optional[PipelineConfig] = None,
        registry: Optional[StatusRegistry] = None,
    ):
        """Initialize pipeline.

        Args:
            toolchain: Media toolchain (probe/transcode/extract frame)
            workspace: Asset workspace manager
            subtitles: Background runner for subtitle stubs
            config: Pipeline knobs (default: PipelineConfig())
            registry: Status registry transitions are published to
        """
        self.toolchain = toolchain
        self.workspace = workspace
        self.subtitles = subtitles
        self.config = config or PipelineConfig()
        self.registry = registry if registry is not None else status_registry
        self.posters = PosterGenerator(toolchain, self.config.poster_timestamp)
        self.transcoder = RenditionTranscoder(
            toolchain,
            self.posters,
            max_workers=self.config.max_concurrent_transcodes,
        )
        self.assembler = ManifestAssembler(workspace)

    def process_upload(
        self,
        reader: BinaryIO,
        asset_id: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> Manifest:
        """Run the full pipeline for one upload.

        Args:
            reader: Binary stream with the uploaded video
            asset_id: Caller-generated asset identifier (default: new one)
            owner_id: Post/user the upload belongs to, logged only

        Returns:
            Manifest of the renditions that succeeded

        Raises:
            WorkspaceError: Working directory could not be created
            IntakeError: Upload could not be saved (workspace purged)
            ProbeError: Source dimensions unknown (workspace purged)
            FatalPosterError: Default poster failed (workspace purged)
        """
        asset = self.workspace.allocate(asset_id)

        with bind_correlation_id(asset.id):
            self._transition(asset, PipelineState.ALLOCATED, f"owner={owner_id}")
            try:
                return self._run(asset, reader)
            except PipelineError as e:
                e.asset_id = e.asset_id or asset.id
                log_error(
                    logger,
                    f"Upload {asset.id} aborted: {e}",
                    exception=e,
                    asset_id=asset.id,
                    owner_id=owner_id,
                )
                self.workspace.purge(asset)
                self._transition(asset, PipelineState.ABORTED, type(e).__name__)
                raise
            except Exception as e:
                log_error(
                    logger,
                    f"Upload {asset.id} aborted on unexpected error",
                    exception=e,
                    asset_id=asset.id,
                    owner_id=owner_id,
                )
                self.workspace.purge(asset)
                self._transition(asset, PipelineState.ABORTED, type(e).__name__)
                raise

    def _run(self, asset: Asset, reader: BinaryIO) -> Manifest:
        self.workspace.save_original(asset, reader)
        self._transition(asset, PipelineState.SOURCE_SAVED)

        asset.source_width, asset.source_height = self._probe(asset)
        self._transition(
            asset,
            PipelineState.DIMENSIONS_PROBED,
            f"{asset.source_width}x{asset.source_height}",
        )

        ladder = plan_ladder(asset.source_width, asset.source_height, self.config.tiers)
        self._transition(
            asset,
            PipelineState.LADDER_PLANNED,
            ",".join(p.tier.label for p in ladder) or "empty",
        )

        renditions = self.transcoder.transcode_ladder(asset, ladder)
        self._transition(
            asset,
            PipelineState.TIER_LOOP,
            f"{len(renditions)}/{len(ladder)} tiers",
        )
        if not renditions:
            # Zero usable renditions is still a success; the cover poster
            # and original are served.
            log_warning(logger, f"No renditions produced for {asset.id}", asset_id=asset.id)

        default_poster = self.posters.default_poster(asset)
        self._transition(asset, PipelineState.DEFAULT_POSTER_READY)

        subtitle = subtitle_path(asset.work_dir, asset.id, self.config.subtitle_language)
        manifest = self.assembler.assemble(asset, renditions, default_poster, subtitle)
        self._transition(asset, PipelineState.MANIFEST_READY)

        try:
            self.subtitles.submit(Path(asset.work_dir), asset.id, self.config.subtitle_language)
        except Exception as e:
            log_error(logger, f"Subtitle job not submitted for {asset.id}", exception=e, asset_id=asset.id)

        self._transition(asset, PipelineState.UPLOADED, f"heights={manifest.available_heights}")
        log_info(
            logger,
            f"Upload {asset.id} ready with heights {manifest.available_heights}",
            asset_id=asset.id,
            available_heights=manifest.available_heights,
        )
        return manifest

    def _probe(self, asset: Asset) -> tuple[int, int]:
        try:
            return self.toolchain.probe(asset.source_path)
        except ToolchainError as e:
            raise ProbeError(f"Failed to get video dimensions: {e}", asset_id=asset.id) from e

    def _transition(self, asset: Asset, state: PipelineState, detail: Optional[str] = None) -> None:
        logger.debug("Asset %s -> %s (%s)", asset.id, state.value, detail)
        self.registry.publish(asset.id, state, detail)


def create_pipeline(
    settings: Optional[Settings] = None,
    config: Optional[PipelineConfig] = None,
) -> RenditionPipeline:
    """Build a pipeline wired from application settings.

    Binary paths, the media root and the subtitle backend come from settings;
    every pipeline knob (timeout, URL prefix, chunk size, ...) comes from
    ``config``, which defaults to one derived from the same settings.
    """
    settings = settings or default_settings
    config = config or PipelineConfig.from_settings(settings)
    toolchain = FFmpegToolchain(
        ffmpeg_path=settings.FFMPEG_PATH,
        ffprobe_path=settings.FFPROBE_PATH,
        timeout=config.toolchain_timeout,
    )
    workspace = WorkspaceManager(
        settings.MEDIA_ROOT,
        url_prefix=config.url_prefix,
        chunk_size=config.upload_chunk_size,
    )
    return RenditionPipeline(
        toolchain=toolchain,
        workspace=workspace,
        subtitles=get_subtitle_runner(settings),
        config=config,
    )
