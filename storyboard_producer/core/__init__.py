"""
Core Module
===========

Core utilities, configuration, and exceptions for the storyboard producer.
"""

from .config import (
    Config,
    GenerationConfig,
    OutputConfig,
    StoryboardConfig,
    AudioConfig,
    TransitionKind,
)
from .exceptions import (
    StoryboardError,
    ConfigurationError,
    ValidationError,
    ProviderError,
    RateLimitError,
    GenerationError,
    AllScenesFailedError,
    AssemblyError,
    SecurityError,
    TimeoutError,
)
from .security import PathValidator, sanitize_prompt, redact_api_key

__all__ = [
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
    "RateLimitError",
    "GenerationError",
    "AllScenesFailedError",
    "AssemblyError",
    "SecurityError",
    "TimeoutError",
    # Security
    "PathValidator",
    "sanitize_prompt",
    "redact_api_key",
]
