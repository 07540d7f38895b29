"""
Storyboard Models
=================

Data structures passed between the producer, the scene generator and the
compositor.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict, Any

from ..api.base import ReferenceImage
from ..core.config import StoryboardConfig


@dataclass
class SceneRequest:
    """One scene to generate, addressed by its position in the storyboard."""

    index: int
    description: str
    character_prefix: Optional[str] = None
    style_prefix: Optional[str] = None
    references: List[ReferenceImage] = field(default_factory=list)

    @property
    def scene_number(self) -> int:
        return self.index + 1

    @property
    def prompt(self) -> str:
        """Style label, then character description, then the scene itself."""
        prompt = self.description
        if self.character_prefix:
            prompt = f"{self.character_prefix}. {prompt}"
        if self.style_prefix:
            prompt = f"{self.style_prefix} style: {prompt}"
        return prompt

    @classmethod
    def from_storyboard(
        cls,
        storyboard: StoryboardConfig,
        references: Optional[List[ReferenceImage]] = None,
    ) -> List["SceneRequest"]:
        """Build one request per scene, sharing the same reference set."""
        return [
            cls(
                index=index,
                description=description,
                character_prefix=storyboard.character_description or None,
                style_prefix=storyboard.style or None,
                references=list(references or []),
            )
            for index, description in enumerate(storyboard.scenes)
        ]


@dataclass
class ClipHandle:
    """A generated clip on disk; ``duration`` is filled in once probed."""

    path: Path
    index: int
    duration: Optional[float] = None


@dataclass
class SceneResult:
    """Outcome of one scene: a clip or an error message, never both."""

    index: int
    elapsed: float
    clip: Optional[ClipHandle] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.clip is not None


@dataclass
class SceneTiming:
    """How long one scene took to generate."""

    index: int
    elapsed: float

    @property
    def scene(self) -> int:
        return self.index + 1

    def to_dict(self) -> Dict[str, Any]:
        return {"scene": self.scene, "index": self.index, "elapsed": round(self.elapsed, 3)}


@dataclass
class StoryboardResult:
    """What a storyboard run produced."""

    video_path: str
    total_time: float
    scene_times: List[SceneTiming]
    success_count: int
    failure_count: int
    failures: Dict[int, str] = field(default_factory=dict)
    metadata_path: Optional[str] = None

    @property
    def degraded(self) -> bool:
        """True when the video was assembled without some of its scenes."""
        return self.failure_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "video_path": self.video_path,
            "total_time": round(self.total_time, 3),
            "scene_times": [timing.to_dict() for timing in self.scene_times],
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "failures": {str(index): error for index, error in self.failures.items()},
            "degraded": self.degraded,
        }
