"""
Utilities
=========

Media tool wrapper and storage helpers.
"""

from .ffmpeg import FFmpegRunner
from .storage import save_metadata, generate_filename, get_file_size, format_file_size

__all__ = [
    "FFmpegRunner",
    "save_metadata",
    "generate_filename",
    "get_file_size",
    "format_file_size",
]
