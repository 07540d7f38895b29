"""
Audio Mixer
===========

Lays a background music track under an assembled video.
"""

import logging
from pathlib import Path
from typing import List, Union

from ..core.exceptions import ValidationError
from ..utils.ffmpeg import FFmpegRunner

logger = logging.getLogger(__name__)


class AudioMixer:
    """
    Mixes an external audio file into a video at a given volume.

    The video stream is copied untouched. The mix lasts as long as the
    video's own audio; longer music is cut off.
    """

    def __init__(self, runner: FFmpegRunner, audio_codec: str = "aac"):
        self.runner = runner
        self.audio_codec = audio_codec

    def mix(
        self,
        video_path: Union[str, Path],
        audio_path: Union[str, Path],
        output_path: Union[str, Path],
        volume: float = 0.5,
    ) -> str:
        """
        Mix background audio into a video.

        Args:
            video_path: Assembled video
            audio_path: Music file
            output_path: Where to write the result
            volume: Music volume, 0.0 (silent) to 1.0 (unchanged)

        Returns:
            Path to the mixed video
        """
        video_path = Path(video_path)
        audio_path = Path(audio_path)
        output_path = Path(output_path)

        if not video_path.exists():
            raise ValidationError(f"Video file not found: {video_path}", field="video_path")
        if not audio_path.exists():
            raise ValidationError(
                f"Background music file not found: {audio_path}",
                field="background_music",
            )
        if not 0.0 <= volume <= 1.0:
            raise ValidationError(
                f"Music volume must be between 0 and 1, got {volume}",
                field="music_volume",
                value=volume,
                constraint="0.0 <= volume <= 1.0",
            )

        output_path.parent.mkdir(parents=True, exist_ok=True)

        args: List[str] = ["-i", str(video_path), "-i", str(audio_path)]
        if self.runner.has_audio_stream(video_path):
            args.extend([
                "-filter_complex",
                f"[1:a]volume={volume}[bg];"
                f"[0:a][bg]amix=inputs=2:duration=first:dropout_transition=0[aout]",
            ])
        else:
            # Nothing to mix against, so the music becomes the soundtrack
            args.extend(["-filter_complex", f"[1:a]volume={volume}[aout]", "-shortest"])

        args.extend([
            "-map", "0:v",
            "-map", "[aout]",
            "-c:v", "copy",
            "-c:a", self.audio_codec,
            str(output_path),
        ])

        logger.info(f"Adding background music at volume {volume}")
        self.runner.run(args, stage="audio_mix")
        return str(output_path)
