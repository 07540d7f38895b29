"""
Storyboard Producer
===================

Main orchestration class: turns an ordered list of scene descriptions into
one assembled video.

Scenes are generated concurrently and may fail individually; the video is
stitched from whichever scenes succeeded, in storyboard order.
"""

import asyncio
import logging
import shutil
import tempfile
import time
from pathlib import Path
from typing import Optional, List

from ..api import get_provider
from ..api.base import BaseVideoProvider
from ..context import ReferenceLoader
from ..core.config import Config, StoryboardConfig
from ..core.exceptions import AllScenesFailedError, ValidationError
from ..utils.ffmpeg import FFmpegRunner
from ..utils.storage import generate_filename, save_metadata, get_file_size, format_file_size
from .audio_mixer import AudioMixer
from .compositor import TransitionCompositor
from .models import ClipHandle, SceneRequest, SceneResult, SceneTiming, StoryboardResult
from .scene_generator import SceneGenerator

logger = logging.getLogger(__name__)


class StoryboardProducer:
    """
    Generates a storyboard video end to end.

    Handles:
    - Up-front validation (nothing is sent to the provider on bad input)
    - Bounded concurrent scene generation with per-scene failure capture
    - Transition assembly and the optional background music stage
    - A private run directory that is always removed

    Example:
        async with StoryboardProducer(Config.load()) as producer:
            result = await producer.generate_storyboard(
                StoryboardConfig(scenes=["A fox wakes up", "The fox runs"])
            )
            print(result.video_path)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        provider: Optional[BaseVideoProvider] = None,
        runner: Optional[FFmpegRunner] = None,
        compositor: Optional[TransitionCompositor] = None,
        mixer: Optional[AudioMixer] = None,
        reference_loader: Optional[ReferenceLoader] = None,
    ):
        """
        Initialize the producer.

        Args:
            config: Pipeline configuration (defaults when omitted)
            provider: Generation provider; created from ``config`` on first use
            runner: ffmpeg wrapper shared by the compositor and the mixer
            compositor: Transition compositor override
            mixer: Audio mixer override
            reference_loader: Reference image loader override
        """
        self.config = config or Config()

        self._provider = provider
        self._owns_provider = provider is None

        self.runner = runner or FFmpegRunner(
            ffmpeg_path=self.config.output.ffmpeg_path,
            ffprobe_path=self.config.output.ffprobe_path,
        )
        self.compositor = compositor or TransitionCompositor(self.runner)
        self.mixer = mixer or AudioMixer(self.runner)
        self.reference_loader = reference_loader or ReferenceLoader()

    def _get_provider(self) -> BaseVideoProvider:
        """Get or create the provider instance."""
        if self._provider is None:
            generation = self.config.generation
            self._provider = get_provider(
                generation.provider,
                api_key=generation.api_key,
                base_url=generation.base_url,
                model=generation.model,
                reference_model=generation.reference_model,
                timeout=generation.timeout,
                max_retries=generation.max_retries,
                poll_interval=generation.poll_interval,
                max_wait=generation.max_wait,
            )
            logger.info(f"Using provider: {self._provider.provider_name}")
        return self._provider

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self, storyboard: StoryboardConfig) -> None:
        """
        Check a storyboard before anything is generated.

        Raises:
            ValidationError: On the first rule the storyboard breaks
        """
        if not storyboard.scenes:
            raise ValidationError("At least one scene is required", field="scenes")
        for number, scene in enumerate(storyboard.scenes, start=1):
            if not scene.strip():
                raise ValidationError(
                    f"Scene {number} has no description",
                    field="scenes",
                    value=number,
                )

        if not self.runner.is_available():
            raise ValidationError(
                "ffmpeg is not available. Install ffmpeg or set output.ffmpeg_path.",
                field="ffmpeg_path",
                value=self.runner.ffmpeg_path,
            )
        blended = storyboard.transition.blends and len(storyboard.scenes) > 1
        if blended and not self.runner.is_probe_available():
            raise ValidationError(
                f"ffprobe is required for {storyboard.transition.value} transitions. "
                "Install ffmpeg or set output.ffprobe_path.",
                field="ffprobe_path",
                value=self.runner.ffprobe_path,
            )

        if storyboard.reference_images:
            self.reference_loader.validate_count(storyboard.reference_images)

        audio = storyboard.audio
        if not 0.0 <= audio.music_volume <= 1.0:
            raise ValidationError(
                f"Music volume must be between 0 and 1, got {audio.music_volume}",
                field="music_volume",
                value=audio.music_volume,
                constraint="0.0 <= volume <= 1.0",
            )
        if audio.background_music and not Path(audio.background_music).is_file():
            raise ValidationError(
                f"Background music file not found: {audio.background_music}",
                field="background_music",
            )

        # A single clip is copied, so its transition is never used
        if blended:
            duration = storyboard.transition_duration
            clip_duration = self.config.generation.clip_duration
            if not 0 < duration < clip_duration:
                raise ValidationError(
                    f"Transition duration must be greater than 0 and shorter than "
                    f"the {clip_duration}s scene length, got {duration}",
                    field="transition_duration",
                    value=duration,
                    constraint=f"0 < duration < {clip_duration}",
                )

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate_storyboard(self, storyboard: StoryboardConfig) -> StoryboardResult:
        """
        Generate every scene and assemble the storyboard video.

        Args:
            storyboard: Scenes plus style, references, transition and audio policy

        Returns:
            StoryboardResult with the output path, timings and success/failure counts

        Raises:
            ValidationError: Invalid input; the provider was not called
            AllScenesFailedError: No scene produced a clip
            AssemblyError: ffmpeg failed while stitching or mixing
        """
        start = time.monotonic()

        self.validate(storyboard)
        references = []
        if storyboard.reference_images:
            references = self.reference_loader.load(storyboard.reference_images)

        scenes = SceneRequest.from_storyboard(storyboard, references)
        output_path = self._resolve_output_path(storyboard)
        generator = SceneGenerator(
            self._get_provider(),
            self.config.generation,
            aspect_ratio=storyboard.aspect_ratio,
            generate_audio=storyboard.audio.generate_audio,
        )

        logger.info(
            f"Generating storyboard: {len(scenes)} scenes, "
            f"{len(references)} reference images, {storyboard.transition.value} transition"
        )

        run_dir = Path(tempfile.mkdtemp(prefix="storyboard-", dir=self.config.output.temp_dir))
        try:
            results = await self._generate_scenes(generator, scenes, run_dir)

            clips = [result.clip for result in results if result.succeeded]
            failures = {result.index: result.error for result in results if not result.succeeded}

            if not clips:
                raise AllScenesFailedError(failures=failures)
            if failures:
                failed = ", ".join(str(index + 1) for index in sorted(failures))
                logger.warning(
                    f"{len(failures)} of {len(scenes)} scenes failed (scenes {failed}); "
                    f"assembling the remaining {len(clips)}"
                )

            video_path = await self._assemble(clips, storyboard, run_dir, output_path)
        finally:
            self._cleanup(run_dir)

        result = StoryboardResult(
            video_path=video_path,
            total_time=time.monotonic() - start,
            scene_times=[SceneTiming(index=r.index, elapsed=r.elapsed) for r in results],
            success_count=len(clips),
            failure_count=len(failures),
            failures=failures,
        )

        if self.config.output.save_metadata:
            metadata = result.to_dict()
            metadata.update({
                "scenes": list(storyboard.scenes),
                "storyboard": storyboard.to_dict(),
            })
            result.metadata_path = save_metadata(metadata, Path(video_path).with_suffix(".json"))

        size = get_file_size(video_path)
        logger.info(
            f"Storyboard complete in {result.total_time:.1f}s: {video_path}"
            + (f" ({format_file_size(size)})" if size is not None else "")
        )
        return result

    async def _generate_scenes(
        self,
        generator: SceneGenerator,
        scenes: List[SceneRequest],
        run_dir: Path,
    ) -> List[SceneResult]:
        """Run every scene, bounded by the concurrency limit; results by index."""
        limit = self.config.generation.max_concurrent_generations or len(scenes)
        semaphore = asyncio.Semaphore(limit)
        results: List[Optional[SceneResult]] = [None] * len(scenes)

        async def run(scene: SceneRequest) -> None:
            async with semaphore:
                results[scene.index] = await generator.generate(scene, run_dir)

        await asyncio.gather(*(run(scene) for scene in scenes))
        return results

    async def _assemble(
        self,
        clips: List[ClipHandle],
        storyboard: StoryboardConfig,
        run_dir: Path,
        output_path: Path,
    ) -> str:
        """Stitch clips, then mix in background music when configured."""
        audio = storyboard.audio

        stitched_path = output_path
        if audio.background_music:
            stitched_path = run_dir / generate_filename("stitched", include_timestamp=False)

        video_path = await asyncio.to_thread(
            self.compositor.compose,
            clips,
            stitched_path,
            storyboard.transition,
            storyboard.transition_duration,
            audio.generate_audio,
            run_dir,
        )

        if audio.background_music:
            video_path = await asyncio.to_thread(
                self.mixer.mix,
                video_path,
                audio.background_music,
                output_path,
                audio.music_volume,
            )

        return video_path

    def _resolve_output_path(self, storyboard: StoryboardConfig) -> Path:
        if storyboard.output_path:
            return Path(storyboard.output_path)
        return Path(self.config.output.base_path) / generate_filename("storyboard")

    def _cleanup(self, run_dir: Path) -> None:
        try:
            shutil.rmtree(run_dir)
        except OSError as e:
            logger.warning(f"Failed to remove temporary directory {run_dir}: {e}")
        else:
            logger.debug(f"Removed temporary directory {run_dir}")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the provider if this producer created it."""
        if self._provider is not None and self._owns_provider:
            await self._provider.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
