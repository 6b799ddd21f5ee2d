"""Domain models for the video rendition pipeline.

Tiers, planned tiers, assets and renditions are plain dataclasses; nothing
here is persisted. The manifest handed back to callers lives in schemas.py.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from postpic.core.config import Settings, settings as default_settings


class PipelineState(str, Enum):
    """States of a single upload run."""
    ALLOCATED = "allocated"
    SOURCE_SAVED = "source_saved"
    DIMENSIONS_PROBED = "dimensions_probed"
    LADDER_PLANNED = "ladder_planned"
    TIER_LOOP = "tier_loop"
    DEFAULT_POSTER_READY = "default_poster_ready"
    MANIFEST_READY = "manifest_ready"
    UPLOADED = "uploaded"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Tier:
    """A named resolution ceiling, e.g. 720p fits inside 1280x720."""
    label: str
    max_width: int
    max_height: int


# Ordered by quality, best first. A tier's rank is its index here.
DEFAULT_TIERS: tuple[Tier, ...] = (
    Tier("4320p", 7680, 4320),
    Tier("2160p", 3840, 2160),
    Tier("1440p", 2560, 1440),
    Tier("1080p", 1920, 1080),
    Tier("720p", 1280, 720),
    Tier("480p", 854, 480),
    Tier("360p", 640, 360),
    Tier("240p", 426, 240),
    Tier("144p", 256, 144),
)


@dataclass(frozen=True)
class PlannedTier:
    """A tier accepted for a given source, with the fitted output size."""
    tier: Tier
    fitted_width: int
    fitted_height: int
    rank: int = 0

    @property
    def geometry(self) -> str:
        """Scale geometry passed to the toolchain, e.g. ``1280x720``."""
        return f"{self.fitted_width}x{self.fitted_height}"


@dataclass
class Asset:
    """One uploaded video and the scratch directory it owns."""
    id: str
    work_dir: Path
    source_path: Optional[Path] = None
    source_width: int = 0
    source_height: int = 0


@dataclass(frozen=True)
class Rendition:
    """A tier whose transcode and poster both succeeded."""
    tier_label: str
    output_path: Path
    poster_path: Path
    height: int
    rank: int


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable knobs injected into the orchestrator.

    Tests build reduced configs directly; the application builds one from
    settings with :meth:`from_settings`. The toolchain timeout, URL prefix and
    chunk size configure the collaborators :func:`service.create_pipeline`
    builds.
    """
    tiers: tuple[Tier, ...] = DEFAULT_TIERS
    poster_timestamp: str = "00:00:01"
    subtitle_language: str = "english"
    max_concurrent_transcodes: int = 1
    toolchain_timeout: Optional[float] = None
    url_prefix: str = "/postpic"
    upload_chunk_size: int = 1024 * 1024
    tier_ranks: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_concurrent_transcodes < 1:
            raise ValueError("max_concurrent_transcodes must be at least 1")
        labels = [tier.label for tier in self.tiers]
        if len(set(labels)) != len(labels):
            raise ValueError("Tier labels must be unique")
        object.__setattr__(
            self, "tier_ranks", {label: rank for rank, label in enumerate(labels)}
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PipelineConfig":
        """Build a config from application settings."""
        settings = settings or default_settings
        return cls(
            tiers=DEFAULT_TIERS,
            poster_timestamp=settings.POSTER_TIMESTAMP,
            subtitle_language=settings.SUBTITLE_LANGUAGE,
            max_concurrent_transcodes=settings.MAX_CONCURRENT_TRANSCODES,
            toolchain_timeout=settings.TOOLCHAIN_TIMEOUT_SECONDS,
            url_prefix=settings.PUBLIC_URL_PREFIX,
            upload_chunk_size=settings.UPLOAD_CHUNK_SIZE,
        )
