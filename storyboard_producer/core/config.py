"""
Configuration System
====================

Typed dataclass configuration for the storyboard pipeline.

Two documents are configured independently:

- ``Config``: how the pipeline talks to its collaborators (generation
  service credentials and polling, output locations). Loaded from YAML with
  ``${VAR}`` environment interpolation.
- ``StoryboardConfig``: what a single run produces (scenes, transition,
  audio, destination).
"""

import os
import re
import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class TransitionKind(Enum):
    """How two adjacent clips are joined."""

    CUT = "cut"
    CROSSFADE = "crossfade"
    FADE = "fade"

    @property
    def blends(self) -> bool:
        """Whether this transition overlaps or fades clip edges."""
        return self is not TransitionKind.CUT


# =============================================================================
# Pipeline Configuration
# =============================================================================


@dataclass
class GenerationConfig:
    """Generation service settings."""

    provider: str = "google"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = "veo-3.0-generate-001"
    reference_model: str = "veo-3.1-generate-preview"
    resolution: str = "720p"
    clip_duration: int = 8
    poll_interval: float = 10.0
    max_wait: float = 600.0
    max_retries: int = 3
    timeout: int = 300
    max_concurrent_generations: Optional[int] = None

    VALID_PROVIDERS = {"google"}
    VALID_RESOLUTIONS = {"720p", "1080p"}
    VALID_DURATIONS = {4, 6, 8}

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if self.provider not in self.VALID_PROVIDERS:
            raise ConfigurationError(
                f"Invalid provider: {self.provider}",
                config_key="generation.provider",
            )
        if self.resolution not in self.VALID_RESOLUTIONS:
            raise ConfigurationError(
                f"Invalid resolution: {self.resolution}",
                config_key="generation.resolution",
            )
        if self.clip_duration not in self.VALID_DURATIONS:
            raise ConfigurationError(
                f"Clip duration must be one of {sorted(self.VALID_DURATIONS)}, got {self.clip_duration}",
                config_key="generation.clip_duration",
            )
        if self.poll_interval < 0:
            raise ConfigurationError(
                f"poll_interval must not be negative, got {self.poll_interval}",
                config_key="generation.poll_interval",
            )
        if self.max_wait <= 0:
            raise ConfigurationError(
                f"max_wait must be positive, got {self.max_wait}",
                config_key="generation.max_wait",
            )
        if not 0 <= self.max_retries <= 10:
            raise ConfigurationError(
                f"max_retries must be 0-10, got {self.max_retries}",
                config_key="generation.max_retries",
            )
        if self.max_concurrent_generations is not None and self.max_concurrent_generations < 1:
            raise ConfigurationError(
                f"max_concurrent_generations must be at least 1, got {self.max_concurrent_generations}",
                config_key="generation.max_concurrent_generations",
            )


@dataclass
class OutputConfig:
    """Output and temporary storage settings."""

    base_path: str = "./output"
    temp_dir: Optional[str] = None
    save_metadata: bool = True
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"


@dataclass
class Config:
    """
    Main configuration container with validation and loading.

    Credentials live here as plain values; the pipeline never reads the
    process environment. ``load`` is the one place where ``${VAR}``
    references are resolved.
    """

    generation: GenerationConfig = field(default_factory=GenerationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from file with environment variable interpolation.

        Args:
            path: Path to a YAML config file, searched before the defaults

        Returns:
            Validated Config instance
        """
        search_paths = [
            Path("./config/defaults.yaml"),
            Path("./defaults.yaml"),
            Path.home() / ".storyboard-producer" / "config.yaml",
        ]

        if path:
            search_paths.insert(0, Path(path))

        config_data = {}

        for search_path in search_paths:
            if search_path.exists():
                logger.info(f"Loading config from: {search_path}")
                config_data = _read_yaml(search_path)
                break
        else:
            logger.info("No config file found, using defaults")

        config_data = cls._interpolate_env_vars(config_data)

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary with validation."""
        try:
            return cls(
                generation=GenerationConfig(**(data.get("generation") or {})),
                output=OutputConfig(**(data.get("output") or {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @staticmethod
    def _interpolate_env_vars(data: Any) -> Any:
        """Recursively interpolate ${VAR} patterns with environment variables."""
        if isinstance(data, str):
            # Handle ${VAR} and ${VAR:-default} patterns
            pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

            def replace(match):
                var_name = match.group(1)
                default = match.group(2) or ""
                return os.environ.get(var_name, default)

            return re.sub(pattern, replace, data)
        elif isinstance(data, dict):
            return {k: Config._interpolate_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [Config._interpolate_env_vars(item) for item in data]
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary, without the API key."""
        generation = asdict(self.generation)
        generation["api_key"] = "***REDACTED***" if self.generation.api_key else None
        return {"generation": generation, "output": asdict(self.output)}


# =============================================================================
# Storyboard (per-run) Configuration
# =============================================================================


@dataclass
class AudioConfig:
    """Audio options for a storyboard run."""

    generate_audio: bool = True
    background_music: Optional[str] = None
    music_volume: float = 0.5


@dataclass
class StoryboardConfig:
    """
    Everything a single storyboard run needs to know.

    Structural problems (scenes that are not a list of strings, an unknown
    transition, an unsupported aspect ratio) are configuration errors
    raised here. Range checks that depend on the run (scene count, blank
    scenes, reference count, volume) are made by the producer before it
    calls anything external.
    """

    scenes: List[str] = field(default_factory=list)
    style: Optional[str] = None
    character_description: Optional[str] = None
    reference_images: List[str] = field(default_factory=list)
    aspect_ratio: str = "16:9"
    transition: TransitionKind = TransitionKind.CROSSFADE
    transition_duration: float = 0.5
    audio: AudioConfig = field(default_factory=AudioConfig)
    output_path: Optional[str] = None

    VALID_ASPECT_RATIOS = {"16:9", "9:16", "1:1"}

    def __post_init__(self):
        if not isinstance(self.scenes, list) or not all(isinstance(s, str) for s in self.scenes):
            raise ConfigurationError(
                "Scenes must be a list of scene descriptions",
                config_key="storyboard.scenes",
                expected_type="list of str",
            )
        if isinstance(self.transition, str):
            try:
                self.transition = TransitionKind(self.transition.lower())
            except ValueError:
                raise ConfigurationError(
                    f"Unknown transition type: {self.transition}",
                    config_key="storyboard.transition",
                )
        if isinstance(self.audio, dict):
            self.audio = AudioConfig(**self.audio)
        if self.aspect_ratio not in self.VALID_ASPECT_RATIOS:
            raise ConfigurationError(
                f"Invalid aspect ratio: {self.aspect_ratio}",
                config_key="storyboard.aspect_ratio",
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoryboardConfig":
        """Create a StoryboardConfig from a dictionary."""
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid storyboard: {e}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "StoryboardConfig":
        """Load a storyboard definition from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Storyboard file not found: {path}", config_key=str(path))
        return cls.from_dict(_read_yaml(path))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary."""
        data = asdict(self)
        data["transition"] = self.transition.value
        return data


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in config file: {e}",
            config_key=str(path),
        )

