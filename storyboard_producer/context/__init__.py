"""
Context Management
==================

Inputs that carry visual continuity across the scenes of a storyboard.

Components:
- ReferenceLoader: Loads and validates character/scene reference images
"""

from .reference_loader import ReferenceLoader

__all__ = [
    "ReferenceLoader",
]
