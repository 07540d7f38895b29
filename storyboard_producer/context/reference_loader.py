"""
Reference Loader
================

Loads the reference images that keep a character or setting consistent
across every scene of a storyboard.
"""

import io
import logging
from pathlib import Path
from typing import List, Sequence, Union

from PIL import Image, UnidentifiedImageError

from ..api.base import MAX_REFERENCE_IMAGES, ReferenceImage
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ReferenceLoader:
    """
    Reads 1-3 reference images from disk.

    Each image is checked with Pillow so that a truncated download or a
    stray text file is rejected before any generation job is submitted.
    """

    def __init__(self, max_images: int = MAX_REFERENCE_IMAGES):
        self.max_images = max_images

    def validate_count(self, paths: Sequence[Union[str, Path]]) -> None:
        """Reject an empty set or more images than the service accepts."""
        if len(paths) == 0:
            raise ValidationError(
                "At least one reference image is required",
                field="reference_images",
                value=0,
                constraint=f"1-{self.max_images}",
            )
        if len(paths) > self.max_images:
            raise ValidationError(
                f"Maximum of {self.max_images} reference images allowed",
                field="reference_images",
                value=len(paths),
                constraint=f"1-{self.max_images}",
            )

    def load(self, paths: Sequence[Union[str, Path]]) -> List[ReferenceImage]:
        """
        Load and tag reference images.

        Args:
            paths: Image file paths, in the order they should be sent

        Returns:
            One ReferenceImage per path, described as "Reference image N"
        """
        self.validate_count(paths)

        references = []
        for number, path in enumerate(paths, start=1):
            path = Path(path)
            if not path.is_file():
                raise ValidationError(
                    f"Reference image not found: {path}",
                    field="reference_images",
                    value=str(path),
                )

            data = path.read_bytes()
            references.append(
                ReferenceImage(
                    data=data,
                    mime_type=self._detect_mime_type(data, path),
                    description=f"Reference image {number}",
                    source=str(path),
                )
            )
            logger.debug(f"Loaded reference image {number}: {path} ({len(data)} bytes)")

        logger.info(f"Loaded {len(references)} reference image(s)")
        return references

    @staticmethod
    def _detect_mime_type(data: bytes, path: Path) -> str:
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
                image_format = img.format
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError(
                f"Not a readable image: {path} ({e})",
                field="reference_images",
                value=str(path),
            )

        return Image.MIME.get(image_format or "", "image/png")
