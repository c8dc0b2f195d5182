"""
Thumbnail previews owned by file entries.
"""

import io
from typing import Optional, Tuple
from PIL import Image

from .logging_setup import get_logger

logger = get_logger(__name__)


class PreviewHandle:
    """
    A small decoded thumbnail bound to exactly one entry.

    The image is decoded lazily on first access and must be released exactly
    once, when its entry is removed, cleared or the session is torn down.
    """

    def __init__(self, data: bytes, max_resolution: int = 256, label: str = ""):
        """
        Initialize the preview handle.

        Args:
            data: Encoded image payload
            max_resolution: Longest edge of the thumbnail in pixels
            label: Name used in log messages
        """
        self._data = data
        self.max_resolution = max_resolution
        self.label = label
        self._image: Optional[Image.Image] = None
        self._loaded = False
        self.released = False

    def _load(self) -> None:
        self._loaded = True
        try:
            with Image.open(io.BytesIO(self._data)) as img:
                img.thumbnail((self.max_resolution, self.max_resolution))
                thumb = img.copy()
            self._image = thumb
            logger.debug(f"Created preview for {self.label} ({thumb.width}x{thumb.height})")
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning(f"Could not decode preview for {self.label}: {str(e)}")
            self._image = None

    @property
    def image(self) -> Optional[Image.Image]:
        """The thumbnail, or None if released or undecodable."""
        if self.released:
            return None
        if not self._loaded:
            self._load()
        return self._image

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        img = self.image
        return img.size if img is not None else None

    def release(self) -> bool:
        """
        Close the thumbnail and drop the payload reference.

        Returns:
            True on the first release, False for any later call
        """
        if self.released:
            logger.warning(f"Preview for {self.label} was already released")
            return False

        self.released = True
        if self._image is not None:
            self._image.close()
            self._image = None
        self._data = b""
        return True
