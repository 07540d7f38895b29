"""
Scene Generator
===============

Turns one SceneRequest into one downloaded clip.

A scene never raises: whatever goes wrong (rejection, timeout, download
failure) is recorded on the returned SceneResult so sibling scenes keep
running.
"""

import logging
import time
from pathlib import Path
from typing import Optional, Union

from ..api.base import BaseVideoProvider, GenerationRequest
from ..core.config import GenerationConfig
from ..core.exceptions import GenerationError
from ..core.security import PathValidator, redact_api_key
from ..utils.storage import generate_filename
from .models import ClipHandle, SceneRequest, SceneResult

logger = logging.getLogger(__name__)


class SceneGenerator:
    """Generates and downloads the clip for a single scene."""

    def __init__(
        self,
        provider: BaseVideoProvider,
        generation: Optional[GenerationConfig] = None,
        aspect_ratio: str = "16:9",
        generate_audio: bool = True,
    ):
        self.provider = provider
        self.generation = generation or GenerationConfig()
        self.aspect_ratio = aspect_ratio
        self.generate_audio = generate_audio

    def build_request(self, scene: SceneRequest) -> GenerationRequest:
        return GenerationRequest(
            prompt=scene.prompt,
            aspect_ratio=self.aspect_ratio,
            resolution=self.generation.resolution,
            duration=self.generation.clip_duration,
            with_audio=self.generate_audio,
        )

    async def generate(self, scene: SceneRequest, work_dir: Union[str, Path]) -> SceneResult:
        """
        Generate one scene into ``work_dir``.

        Args:
            scene: The scene to generate
            work_dir: Run-private directory the clip is written to

        Returns:
            SceneResult holding either the clip or the error message
        """
        start = time.monotonic()
        clip_path: Optional[Path] = None

        logger.info(f"Generating scene {scene.scene_number}: {scene.description[:60]}")

        try:
            request = self.build_request(scene)
            if scene.references:
                result = await self.provider.generate_video_with_references(request, scene.references)
            else:
                result = await self.provider.generate_video(request)

            logger.debug(f"Scene {scene.scene_number} result: {result.to_dict()}")
            if not result.is_complete() or not result.video_url:
                raise GenerationError(
                    result.error_message or "No video was generated",
                    job_id=result.job_id,
                    stage="generation",
                    prompt=request.prompt,
                )

            validator = PathValidator(work_dir)
            clip_path = validator.validate_video(
                Path(work_dir) / generate_filename(f"scene-{scene.index}", include_timestamp=False)
            )
            await self.provider.download_video(result, clip_path)

        except Exception as e:
            elapsed = time.monotonic() - start
            message = redact_api_key(str(e)) or e.__class__.__name__
            logger.error(f"Scene {scene.scene_number} failed after {elapsed:.1f}s: {message}")
            if clip_path is not None:
                clip_path.unlink(missing_ok=True)
            return SceneResult(index=scene.index, elapsed=elapsed, error=message)

        elapsed = time.monotonic() - start
        logger.info(f"Scene {scene.scene_number} completed in {elapsed:.1f}s")
        return SceneResult(
            index=scene.index,
            elapsed=elapsed,
            clip=ClipHandle(path=clip_path, index=scene.index),
        )
