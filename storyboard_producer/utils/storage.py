"""
Storage Utilities
=================

Output naming and the JSON metadata sidecar written next to a finished
video.
"""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Union

logger = logging.getLogger(__name__)

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def generate_filename(
    prefix: str = "video",
    suffix: str = ".mp4",
    include_timestamp: bool = True,
) -> str:
    """
    Build a file name from ``prefix``.

    With ``include_timestamp`` the name reads ``<prefix>_<YYYYmmdd_HHMMSS>``,
    which suits outputs a person will browse. Without it a short random tag
    is appended instead, for intermediates that share a directory.
    """
    if include_timestamp:
        return f"{prefix}_{datetime.now():%Y%m%d_%H%M%S}{suffix}"
    return f"{prefix}-{uuid.uuid4().hex[:8]}{suffix}"


def save_metadata(metadata: Dict[str, Any], output_path: Union[str, Path]) -> str:
    """Write ``metadata`` as indented JSON, stamped with ``saved_at``."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    document = {**metadata, "saved_at": datetime.now().isoformat()}
    output_path.write_text(json.dumps(document, indent=2, default=str))

    logger.debug(f"Wrote metadata sidecar {output_path}")
    return str(output_path)


def get_file_size(path: Union[str, Path]) -> Optional[int]:
    try:
        return Path(path).stat().st_size
    except FileNotFoundError:
        return None


def format_file_size(size_bytes: float) -> str:
    """Human-readable size, e.g. ``1.5 KB``."""
    size = float(size_bytes)
    for unit in SIZE_UNITS[:-1]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} {SIZE_UNITS[-1]}"
