"""
Provider Registry
=================

Providers register under a short name with ``@register_provider`` and are
built by name from configuration.
"""

import importlib
import logging
from typing import Optional, List, Dict, Type

from .base import BaseVideoProvider

logger = logging.getLogger(__name__)

_PROVIDERS: Dict[str, Type[BaseVideoProvider]] = {}

# Modules that register a provider when imported
_BUILTIN_MODULES = {"google": ".google"}


def register_provider(name: str):
    def decorator(cls: Type[BaseVideoProvider]):
        _PROVIDERS[name.lower()] = cls
        return cls
    return decorator


def _load_builtins() -> None:
    for module in _BUILTIN_MODULES.values():
        importlib.import_module(module, __package__)


def get_provider(name: str, api_key: Optional[str] = None, **kwargs) -> BaseVideoProvider:
    """
    Build the provider registered as ``name``.

    Extra keyword arguments go to the provider's constructor (model names,
    polling settings, timeouts).

    Raises:
        ValueError: If no provider has that name
    """
    _load_builtins()
    try:
        provider_class = _PROVIDERS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown provider: {name} (available: {', '.join(sorted(_PROVIDERS))})")

    logger.debug(f"Creating {provider_class.__name__}")
    return provider_class(api_key=api_key, **kwargs)


def list_providers() -> List[str]:
    _load_builtins()
    return sorted(_PROVIDERS)
