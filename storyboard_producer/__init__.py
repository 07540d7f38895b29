"""
Storyboard Producer
===================

Generates one clip per storyboard scene with Google Veo and stitches the
clips into a single video with cut, crossfade or fade transitions.

Features:
- Concurrent scene generation that survives individual scene failures
- Character consistency through up to 3 reference images
- Shared style and character prompt prefixes
- Optional background music mixed under the final cut

Quick Start:
    from storyboard_producer import Config, StoryboardConfig, StoryboardProducer

    storyboard = StoryboardConfig(
        scenes=["A detective enters the rain-soaked alley", "He finds a clue"],
        style="film noir",
        character_description="Detective in a trench coat",
        transition="crossfade",
    )

    async with StoryboardProducer(Config.load()) as producer:
        result = await producer.generate_storyboard(storyboard)
        print(result.video_path, result.success_count, result.failure_count)
"""

__version__ = "0.1.0"

from .core.config import Config, GenerationConfig, OutputConfig, StoryboardConfig, AudioConfig, TransitionKind
from .core.exceptions import (
    StoryboardError,
    ConfigurationError,
    ValidationError,
    ProviderError,
    GenerationError,
    AllScenesFailedError,
    AssemblyError,
    SecurityError,
)
from .api import get_provider, list_providers
from .workflow import StoryboardProducer, StoryboardResult

__all__ = [
    # Version
    "__version__",

    # Configuration
    "Config",
    "GenerationConfig",
    "OutputConfig",
    "StoryboardConfig",
    "AudioConfig",
    "TransitionKind",

    # Exceptions
    "StoryboardError",
    "ConfigurationError",
    "ValidationError",
    "ProviderError",
    "GenerationError",
    "AllScenesFailedError",
    "AssemblyError",
    "SecurityError",

    # Pipeline
    "StoryboardProducer",
    "StoryboardResult",
    "get_provider",
    "list_providers",
]
