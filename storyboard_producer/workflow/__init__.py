"""
Workflow Orchestration
======================

High-level orchestration for storyboard production.

Components:
- StoryboardProducer: Main entry point, scenes in, one video out
- SceneGenerator: Generates and downloads a single scene clip
- TransitionCompositor: Stitches clips with cut, crossfade or fade
- AudioMixer: Lays background music under the stitched video
"""

from .audio_mixer import AudioMixer
from .compositor import TransitionCompositor, TransitionPlan
from .filter_graph import FilterGraph
from .models import ClipHandle, SceneRequest, SceneResult, SceneTiming, StoryboardResult
from .producer import StoryboardProducer
from .scene_generator import SceneGenerator

__all__ = [
    "StoryboardProducer",
    "SceneGenerator",
    "TransitionCompositor",
    "TransitionPlan",
    "FilterGraph",
    "AudioMixer",
    "SceneRequest",
    "SceneResult",
    "SceneTiming",
    "ClipHandle",
    "StoryboardResult",
]
