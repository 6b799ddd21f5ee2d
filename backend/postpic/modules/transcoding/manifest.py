"""Manifest assembly."""

from pathlib import Path
from typing import Sequence

from postpic.modules.transcoding.models import Asset, Rendition
from postpic.modules.transcoding.schemas import Manifest
from postpic.modules.transcoding.workspace import WorkspaceManager


class ManifestAssembler:
    """Builds the public manifest from whatever renditions succeeded."""

    def __init__(self, workspace: WorkspaceManager):
        self.workspace = workspace

    def assemble(
        self,
        asset: Asset,
        renditions: Sequence[Rendition],
        default_poster: Path,
        subtitle: Path,
    ) -> Manifest:
        """Compose the manifest.

        Renditions are re-sorted by tier rank so the output never depends on
        the order tiers finished in.
        """
        ordered = sorted(renditions, key=lambda r: r.rank)
        rendition_urls = [self.workspace.public_url(asset.id, r.output_path) for r in ordered]

        return Manifest(
            asset_id=asset.id,
            available_heights=[r.height for r in ordered],
            rendition_urls=rendition_urls,
            poster_urls=[self.workspace.public_url(asset.id, r.poster_path) for r in ordered],
            primary_rendition_url=rendition_urls[0] if rendition_urls else None,
            default_poster_url=self.workspace.public_url(asset.id, default_poster),
            subtitle_url=self.workspace.public_url(asset.id, subtitle),
        )
