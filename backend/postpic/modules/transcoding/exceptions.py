"""Errors raised by the rendition pipeline and the media toolchain."""

from typing import Optional, Sequence


class ToolchainError(Exception):
    """An external media tool failed, timed out, or returned garbage."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(command) if command else []
        self.returncode = returncode
        self.stderr = stderr


class PipelineError(Exception):
    """Base class for upload pipeline failures."""

    def __init__(self, message: str, asset_id: Optional[str] = None):
        super().__init__(message)
        self.asset_id = asset_id


class WorkspaceError(PipelineError):
    """The asset scratch directory could not be created."""


class IntakeError(PipelineError):
    """The uploaded bytes could not be saved."""


class ProbeError(PipelineError):
    """The source video dimensions could not be determined."""


class TierError(PipelineError):
    """A single rendition tier failed; the tier is skipped."""

    def __init__(self, message: str, asset_id: Optional[str] = None, tier_label: str = ""):
        super().__init__(message, asset_id)
        self.tier_label = tier_label


class FatalPosterError(PipelineError):
    """The default cover poster could not be extracted."""


class SubtitleError(PipelineError):
    """The placeholder caption track could not be written."""
