"""FFmpeg toolchain adapter.

Wraps the three external media operations the pipeline needs (probe,
transcode, extract a still frame) behind the :class:`Toolchain` interface so
the pipeline can be driven by a fake in tests.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence, Union

from postpic.core.logging import log_warning
from postpic.modules.transcoding.exceptions import ToolchainError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Characters of stderr kept on a ToolchainError
STDERR_TAIL = 500


class Toolchain(ABC):
    """Media operations used by the rendition pipeline."""

    @abstractmethod
    def probe(self, path: PathLike) -> tuple[int, int]:
        """Return (width, height) of the first video stream."""
        pass

    @abstractmethod
    def transcode(self, input_path: PathLike, output_path: PathLike, geometry: str) -> None:
        """Scale input to ``WxH`` geometry and write an MP4 to output_path."""
        pass

    @abstractmethod
    def extract_frame(self, input_path: PathLike, output_path: PathLike, timestamp: str) -> None:
        """Write a single JPEG still taken at timestamp."""
        pass


def parse_geometry(geometry: str) -> tuple[int, int]:
    """Parse ``WxH`` into a (width, height) tuple.

    Raises:
        ValueError: If geometry is malformed or not positive
    """
    try:
        width_str, height_str = geometry.lower().split("x")
        width, height = int(width_str), int(height_str)
    except ValueError:
        raise ValueError(f"Invalid geometry: {geometry!r}") from None
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid geometry: {geometry!r}")
    return width, height


def _even(dimension: int) -> int:
    return max(2, dimension - dimension % 2)


def parse_probe_output(output: str) -> tuple[int, int]:
    """Parse ffprobe ``csv=p=0`` output of the form ``width,height``.

    Raises:
        ValueError: If output does not hold two positive integers
    """
    line = output.strip().splitlines()[0] if output.strip() else ""
    parts = [p for p in line.split(",") if p.strip()]
    if len(parts) < 2:
        raise ValueError(f"Unexpected ffprobe output: {output!r}")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Unexpected ffprobe output: {output!r}") from None
    if width <= 0 or height <= 0:
        raise ValueError(f"Unexpected ffprobe output: {output!r}")
    return width, height


class FFmpegToolchain(Toolchain):
    """Toolchain backed by the ffmpeg and ffprobe binaries.

    Every call runs with a timeout; on expiry the child process is killed
    and the call fails with ToolchainError.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout: Optional[float] = None,
    ):
        """Initialize toolchain.

        Args:
            ffmpeg_path: Path to ffmpeg binary
            ffprobe_path: Path to ffprobe binary
            timeout: Per-call timeout in seconds (None waits forever)
        """
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    def build_probe_command(self, path: PathLike) -> list[str]:
        return [
            self.ffprobe_path,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height",
            "-of", "csv=p=0",
            str(path),
        ]

    def build_transcode_command(
        self,
        input_path: PathLike,
        output_path: PathLike,
        geometry: str,
    ) -> list[str]:
        """Build FFmpeg command for scaling to a rendition tier.

        libx264 with 4:2:0 chroma needs even dimensions, so odd planned sizes
        are rounded down by one pixel here; the manifest keeps the planned size.
        """
        width, height = (_even(d) for d in parse_geometry(geometry))
        return [
            self.ffmpeg_path,
            "-y",  # Overwrite output
            "-i", str(input_path),
            "-vf", f"scale={width}:{height}",
            "-c:v", "libx264",
            "-crf", "23",
            "-preset", "veryfast",
            "-c:a", "aac",
            "-b:a", "128k",
            "-movflags", "+faststart",
            str(output_path),
        ]

    def build_frame_command(
        self,
        input_path: PathLike,
        output_path: PathLike,
        timestamp: str,
    ) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-i", str(input_path),
            "-ss", timestamp,
            "-vframes", "1",
            "-q:v", "2",
            str(output_path),
        ]

    def probe(self, path: PathLike) -> tuple[int, int]:
        """Get video dimensions using ffprobe.

        Raises:
            ToolchainError: If ffprobe fails or its output cannot be parsed
        """
        cmd = self.build_probe_command(path)
        stdout = self._run(cmd)
        try:
            return parse_probe_output(stdout)
        except ValueError as e:
            raise ToolchainError(str(e), command=cmd) from e

    def transcode(self, input_path: PathLike, output_path: PathLike, geometry: str) -> None:
        try:
            cmd = self.build_transcode_command(input_path, output_path, geometry)
        except ValueError as e:
            raise ToolchainError(str(e)) from e
        self._run(cmd)
        self._check_output(cmd, output_path)

    def extract_frame(self, input_path: PathLike, output_path: PathLike, timestamp: str) -> None:
        cmd = self.build_frame_command(input_path, output_path, timestamp)
        self._run(cmd)
        # A timestamp past the end of the clip exits 0 without writing a frame
        self._check_output(cmd, output_path)

    def _check_output(self, cmd: Sequence[str], output_path: PathLike) -> None:
        path = Path(output_path)
        if not path.is_file() or path.stat().st_size == 0:
            raise ToolchainError(
                f"{Path(cmd[0]).name} exited 0 but wrote no output to {path.name}",
                command=cmd,
                returncode=0,
            )

    def _run(self, cmd: Sequence[str]) -> str:
        """Run a command and return its stdout.

        Raises:
            ToolchainError: On missing binary, timeout, or non-zero exit
        """
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                list(cmd),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ToolchainError(f"{cmd[0]} not found", command=cmd) from e
        except subprocess.TimeoutExpired as e:
            # subprocess.run kills the child before re-raising
            log_warning(
                logger,
                f"{Path(cmd[0]).name} timed out after {self.timeout} seconds",
                timeout_seconds=self.timeout,
            )
            raise ToolchainError(
                f"{Path(cmd[0]).name} timed out after {self.timeout} seconds",
                command=cmd,
            ) from e

        if result.returncode != 0:
            stderr_tail = (result.stderr or "")[-STDERR_TAIL:]
            raise ToolchainError(
                f"{Path(cmd[0]).name} exited with code {result.returncode}",
                command=cmd,
                returncode=result.returncode,
                stderr=stderr_tail,
            )

        return result.stdout or ""
