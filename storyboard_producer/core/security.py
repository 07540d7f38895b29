"""
Security Utilities
==================

Guards for the three places untrusted text meets the outside world:

- clip paths written into a run directory (``PathValidator``)
- prompts sent to the generation service (``sanitize_prompt``)
- error messages that may echo a request URL or header (``redact_api_key``)
"""

import re
import logging
from pathlib import Path
from typing import Union

from .exceptions import SecurityError

logger = logging.getLogger(__name__)

MAX_PROMPT_LENGTH = 2000

VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".mov", ".mkv"})

# Literal or URL-encoded parent references and NUL bytes
_TRAVERSAL = re.compile(r"\.\.[/\\]|%(25)?2e|\x00", re.IGNORECASE)

# Chat-template markers and instruction overrides
_PROMPT_INJECTION = re.compile(
    r"ignore previous instructions|disregard above|system prompt"
    r"|\[/?INST\]|<\|im_(start|end)\|>",
    re.IGNORECASE,
)

_SECRETS = [
    (re.compile(r"AIza[\w\-]{35}"), "AIza***REDACTED***"),
    (re.compile(r"([?&]key=)[\w\-]+", re.IGNORECASE), r"\1***REDACTED***"),
    (
        re.compile(r"(x-goog-api-key|api[_-]?key)['\"]?\s*[:=]\s*['\"]?[\w\-]+", re.IGNORECASE),
        r"\1: ***REDACTED***",
    ),
    (re.compile(r"Bearer\s+[\w\-.]+", re.IGNORECASE), "Bearer ***REDACTED***"),
    (re.compile(r"\b(GEMINI_API_KEY|GOOGLE_API_KEY)=\S+"), r"\1=***REDACTED***"),
]


class PathValidator:
    """
    Resolves clip paths and refuses anything that lands outside ``base_path``.

    Usage:
        validator = PathValidator(run_dir)
        clip = validator.validate_video(run_dir / "scene-0.mp4")
    """

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path).resolve()

    def _reject(self, message: str, path: Union[str, Path], kind: str) -> SecurityError:
        logger.warning(f"Rejected path under {self.base_path}: {message}")
        return SecurityError(message, attempted_path=str(path), security_type=kind)

    def validate(self, path: Union[str, Path]) -> Path:
        """
        Resolve ``path`` against the base directory.

        Relative paths are taken relative to the base; absolute paths must
        already point inside it.

        Raises:
            SecurityError: On traversal sequences or a path outside the base
        """
        if _TRAVERSAL.search(str(path)):
            raise self._reject("Path contains a traversal sequence", path, "path_traversal")

        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.base_path / candidate
        try:
            resolved = candidate.resolve()
        except (OSError, ValueError) as e:
            raise self._reject(f"Unresolvable path: {e}", path, "invalid_path")

        if resolved != self.base_path and self.base_path not in resolved.parents:
            raise self._reject("Path is outside the allowed directory", path, "path_traversal")
        return resolved

    def validate_video(self, path: Union[str, Path]) -> Path:
        """Like ``validate``, and the file must carry a video extension."""
        resolved = self.validate(path)
        if resolved.suffix.lower() not in VIDEO_EXTENSIONS:
            raise self._reject(f"Unsupported video extension '{resolved.suffix}'", path, "invalid_extension")
        return resolved


def sanitize_prompt(prompt: str, max_length: int = MAX_PROMPT_LENGTH) -> str:
    """Drop control characters and injection markers, then cap the length."""
    if not prompt:
        return ""

    cleaned = "".join(ch for ch in prompt if ch.isprintable() or ch in "\n\t")
    stripped = _PROMPT_INJECTION.sub("", cleaned)
    if stripped != cleaned:
        logger.warning(f"Removed instruction-override phrases from prompt: {prompt[:60]!r}")
        cleaned = stripped

    if len(cleaned) > max_length:
        logger.warning(f"Prompt of {len(cleaned)} characters cut to {max_length}")
        cleaned = cleaned[:max_length]

    return cleaned.strip()


def redact_api_key(text: str) -> str:
    """Mask credentials that error messages may carry from URLs or headers."""
    if not text:
        return text
    for pattern, replacement in _SECRETS:
        text = pattern.sub(replacement, text)
    return text
