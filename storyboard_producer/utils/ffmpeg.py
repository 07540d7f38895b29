"""
FFmpeg Runner
=============

Thin wrapper around the ffmpeg and ffprobe executables.

Every failure of the tool surfaces as an AssemblyError carrying the tail of
its stderr; nothing is retried here.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..core.exceptions import AssemblyError

logger = logging.getLogger(__name__)


# Probing is quick; rendering is bounded only by the caller's patience
PROBE_TIMEOUT = 30


class FFmpegRunner:
    """Runs ffmpeg/ffprobe as blocking child processes."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout: Optional[float] = None,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check that ffmpeg can be executed."""
        return _executable(self.ffmpeg_path)

    def is_probe_available(self) -> bool:
        """Check that ffprobe can be executed."""
        return _executable(self.ffprobe_path)

    def probe_duration(self, video_path: Union[str, Path]) -> float:
        """Get the duration of a media file in seconds."""
        video_path = Path(video_path)
        if not video_path.exists():
            raise AssemblyError(
                f"Video file not found: {video_path}",
                tool="ffprobe",
                stage="probe",
            )

        stdout = self._probe(
            [
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                str(video_path),
            ]
        )
        try:
            return float(stdout.strip())
        except ValueError:
            raise AssemblyError(
                f"Failed to parse video duration: {stdout.strip()!r}",
                tool="ffprobe",
                stage="probe",
            )

    def has_audio_stream(self, video_path: Union[str, Path]) -> bool:
        """Whether a media file carries at least one audio stream."""
        stdout = self._probe(
            [
                "-v", "error",
                "-select_streams", "a",
                "-show_entries", "stream=index",
                "-of", "csv=p=0",
                str(video_path),
            ]
        )
        return bool(stdout.strip())

    def run(self, args: Sequence[str], stage: str) -> subprocess.CompletedProcess:
        """
        Run ffmpeg with the given arguments, overwriting outputs.

        Args:
            args: Arguments after ``ffmpeg -y``
            stage: Pipeline stage, recorded on errors ("concat", "crossfade", ...)

        Returns:
            The completed process
        """
        cmd: List[str] = [self.ffmpeg_path, "-y", *args]
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            raise AssemblyError(
                f"ffmpeg failed during {stage} (exit code {e.returncode})",
                tool="ffmpeg",
                stage=stage,
                stderr=e.stderr,
            )
        except subprocess.TimeoutExpired:
            raise AssemblyError(
                f"ffmpeg timed out during {stage} after {self.timeout}s",
                tool="ffmpeg",
                stage=stage,
            )
        except OSError as e:
            raise AssemblyError(
                f"Could not run ffmpeg: {e}",
                tool="ffmpeg",
                stage=stage,
            )

    def _probe(self, args: Sequence[str]) -> str:
        try:
            result = subprocess.run(
                [self.ffprobe_path, *args],
                capture_output=True,
                text=True,
                check=True,
                timeout=PROBE_TIMEOUT,
            )
        except subprocess.CalledProcessError as e:
            raise AssemblyError(
                "Failed to probe media file",
                tool="ffprobe",
                stage="probe",
                stderr=e.stderr,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise AssemblyError(
                f"Could not run ffprobe: {e}",
                tool="ffprobe",
                stage="probe",
            )
        return result.stdout


def _executable(path: str) -> bool:
    try:
        subprocess.run(
            [path, "-version"],
            capture_output=True,
            check=True,
            timeout=PROBE_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"{path} unavailable: {e}")
        return False
    return True
