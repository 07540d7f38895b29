"""
Transition Compositor
=====================

Joins an ordered list of scene clips into one video with a cut, crossfade
or fade transition between neighbours.

Assembly runs in three phases so each can be tested on its own:
probe clip durations, build a TransitionPlan, render a filter graph.
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..core.config import TransitionKind
from ..core.exceptions import AssemblyError, ValidationError
from ..utils.ffmpeg import FFmpegRunner
from .filter_graph import FilterGraph, format_seconds
from .models import ClipHandle

logger = logging.getLogger(__name__)


@dataclass
class TransitionPlan:
    """
    Ordered clips plus the timing of every junction between them.

    ``offsets[i]`` is where the blend between clip ``i`` and clip ``i + 1``
    starts on the output timeline. Each blend eats ``duration`` seconds from
    the tail of one clip and the head of the next, so offsets accumulate
    ``d_i - duration`` per clip.
    """

    clips: List[ClipHandle]
    kind: TransitionKind
    duration: float
    offsets: List[float] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        clips: Sequence[ClipHandle],
        kind: TransitionKind,
        duration: float,
    ) -> "TransitionPlan":
        if not clips:
            raise ValidationError("No clips to assemble", field="clips")

        offsets: List[float] = []
        if kind.blends and len(clips) > 1:
            if duration <= 0:
                raise ValidationError(
                    f"Transition duration must be positive, got {duration}",
                    field="transition_duration",
                    value=duration,
                )
            for clip in clips:
                if clip.duration is None:
                    raise AssemblyError(
                        f"Clip for scene {clip.index + 1} was not probed",
                        stage="plan",
                    )
                if duration >= clip.duration:
                    raise ValidationError(
                        f"Transition duration {duration}s must be shorter than scene "
                        f"{clip.index + 1} ({clip.duration:.3f}s)",
                        field="transition_duration",
                        value=duration,
                        constraint=f"< {clip.duration:.3f}",
                    )

            offset = 0.0
            for clip in clips[:-1]:
                offset += clip.duration - duration
                offsets.append(offset)

        return cls(clips=list(clips), kind=kind, duration=duration, offsets=offsets)

    def fade_out_start(self, position: int) -> float:
        """Where, within clip ``position``, its tail fade begins."""
        return self.clips[position].duration - self.duration


class TransitionCompositor:
    """
    Produces exactly one output video from N ordered clips.

    Failures of the media tool are raised as AssemblyError and are not
    retried: by this point every clip has already been paid for.
    """

    def __init__(
        self,
        runner: FFmpegRunner,
        video_codec: str = "libx264",
        audio_codec: str = "aac",
    ):
        self.runner = runner
        self.video_codec = video_codec
        self.audio_codec = audio_codec

    def compose(
        self,
        clips: Sequence[ClipHandle],
        output_path: Union[str, Path],
        kind: TransitionKind = TransitionKind.CROSSFADE,
        duration: float = 0.5,
        include_audio: bool = True,
        work_dir: Optional[Union[str, Path]] = None,
    ) -> str:
        """
        Assemble clips into one video.

        Args:
            clips: Clips in final playback order
            output_path: Where to write the assembled video
            kind: Transition between neighbouring clips
            duration: Transition length in seconds (ignored for cuts)
            include_audio: Whether the clips carry audio to keep
            work_dir: Directory for intermediate files such as the concat
                manifest; the system temporary directory when omitted

        Returns:
            Path to the assembled video
        """
        if not clips:
            raise ValidationError("No videos provided for concatenation", field="clips")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        for clip in clips:
            if not Path(clip.path).exists():
                raise AssemblyError(f"Video file not found: {clip.path}", stage="compose")

        if len(clips) == 1:
            shutil.copyfile(clips[0].path, output_path)
            logger.info(f"Single scene copied to {output_path}")
            return str(output_path)

        logger.info(f"Stitching {len(clips)} scenes with {kind.value} transition")

        if kind is TransitionKind.CUT:
            self._concat(clips, output_path, work_dir)
        else:
            self.probe(clips)
            plan = TransitionPlan.build(clips, kind, duration)
            if kind is TransitionKind.CROSSFADE:
                graph = self.build_crossfade_graph(plan, include_audio)
            else:
                graph = self.build_fade_graph(plan, include_audio)
            self._render(plan, graph, output_path, include_audio)

        if not output_path.exists():
            raise AssemblyError(
                f"ffmpeg reported success but wrote no output at {output_path}",
                tool="ffmpeg",
                stage=kind.value,
            )

        return str(output_path)

    def probe(self, clips: Sequence[ClipHandle]) -> None:
        """Fill in the duration of every clip."""
        for clip in clips:
            clip.duration = self.runner.probe_duration(clip.path)
            logger.debug(f"Scene {clip.index + 1} duration: {clip.duration:.3f}s")

    # -------------------------------------------------------------------------
    # Graph Construction
    # -------------------------------------------------------------------------

    @staticmethod
    def build_crossfade_graph(plan: TransitionPlan, include_audio: bool = True) -> FilterGraph:
        """Chain xfade (video) and acrossfade (audio) left to right."""
        graph = FilterGraph()
        duration = format_seconds(plan.duration)
        last = len(plan.clips) - 1

        video, audio = "0:v", "0:a"
        for i in range(1, len(plan.clips)):
            video_out = "outv" if i == last else f"v{i}"
            graph.add(
                [video, f"{i}:v"],
                f"xfade=transition=fade:duration={duration}:offset={format_seconds(plan.offsets[i - 1])}",
                video_out,
            )
            video = video_out

            if include_audio:
                audio_out = "outa" if i == last else f"a{i}"
                # qsin on both sides keeps perceived loudness constant
                graph.add([audio, f"{i}:a"], f"acrossfade=d={duration}:c1=qsin:c2=qsin", audio_out)
                audio = audio_out

        return graph

    @staticmethod
    def build_fade_graph(plan: TransitionPlan, include_audio: bool = True) -> FilterGraph:
        """Fade each tail out and each head in, then concatenate."""
        graph = FilterGraph()
        duration = format_seconds(plan.duration)
        last = len(plan.clips) - 1

        segments: List[str] = []
        for i in range(len(plan.clips)):
            video_filters, audio_filters = [], []
            if i > 0:
                video_filters.append(f"fade=t=in:st=0:d={duration}")
                audio_filters.append(f"afade=t=in:st=0:d={duration}")
            if i < last:
                start = format_seconds(plan.fade_out_start(i))
                video_filters.append(f"fade=t=out:st={start}:d={duration}")
                audio_filters.append(f"afade=t=out:st={start}:d={duration}")

            segments.extend(graph.add([f"{i}:v"], video_filters, f"v{i}"))
            if include_audio:
                segments.extend(graph.add([f"{i}:a"], audio_filters, f"a{i}"))

        outputs = ["outv", "outa"] if include_audio else ["outv"]
        graph.add(
            segments,
            f"concat=n={len(plan.clips)}:v=1:a={1 if include_audio else 0}",
            outputs,
        )
        return graph

    # -------------------------------------------------------------------------
    # Tool Invocation
    # -------------------------------------------------------------------------

    def _concat(
        self,
        clips: Sequence[ClipHandle],
        output_path: Path,
        work_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        """Plain concatenation through the concat demuxer, no re-encode."""
        with tempfile.NamedTemporaryFile(
            "w", prefix="concat-", suffix=".txt", dir=work_dir, delete=False
        ) as f:
            f.write("".join(f"file '{_escape_manifest_path(clip.path)}'\n" for clip in clips))
        manifest = Path(f.name)

        try:
            self.runner.run(
                [
                    "-f", "concat",
                    "-safe", "0",
                    "-i", str(manifest),
                    "-c", "copy",
                    str(output_path),
                ],
                stage="concat",
            )
        finally:
            manifest.unlink(missing_ok=True)

    def _render(
        self,
        plan: TransitionPlan,
        graph: FilterGraph,
        output_path: Path,
        include_audio: bool,
    ) -> None:
        args: List[str] = []
        for clip in plan.clips:
            args.extend(["-i", str(clip.path)])

        args.extend(["-filter_complex", graph.render(), "-map", "[outv]"])
        if include_audio:
            args.extend(["-map", "[outa]", "-c:a", self.audio_codec])
        else:
            args.append("-an")
        args.extend([
            "-c:v", self.video_codec,
            "-pix_fmt", "yuv420p",
            "-movflags", "+faststart",
            str(output_path),
        ])

        self.runner.run(args, stage=plan.kind.value)


def _escape_manifest_path(path: Union[str, Path]) -> str:
    # concat demuxer syntax: close the quote, emit an escaped quote, reopen
    return str(Path(path).absolute()).replace("'", "'\\''")
