"""
API Integration Layer
=====================

Access to the generative video service used for scene clips.

Usage:
    from storyboard_producer.api import get_provider
    from storyboard_producer.api.base import GenerationRequest

    provider = get_provider("google", api_key=key)
    result = await provider.generate_video(GenerationRequest(prompt="A person walking"))
"""

from .base import (
    BaseVideoProvider,
    GenerationRequest,
    GenerationStatus,
    ReferenceImage,
    VideoGenerationResult,
)
from .factory import get_provider, list_providers

__all__ = [
    "BaseVideoProvider",
    "GenerationRequest",
    "GenerationStatus",
    "ReferenceImage",
    "VideoGenerationResult",
    "get_provider",
    "list_providers",
]
