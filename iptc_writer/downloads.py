"""
Download targets for written images and batch archives.
"""

import os
from abc import ABC, abstractmethod
from typing import List, Tuple

from .utils import sanitize_filename
from .logging_setup import get_logger

logger = get_logger(__name__)


class DownloadSink(ABC):
    """Receives finished artifacts for the user to keep."""

    @abstractmethod
    def save(self, data: bytes, filename: str) -> str:
        """
        Hand over one downloadable file.

        Args:
            data: File contents
            filename: Suggested file name

        Returns:
            Location the file was delivered to
        """
        pass


class DirectoryDownloadSink(DownloadSink):
    """Writes downloads into a directory, never overwriting existing files."""

    def __init__(self, output_dir: str):
        self.output_dir = output_dir

    def _target_path(self, filename: str) -> str:
        base, ext = os.path.splitext(sanitize_filename(filename))
        path = os.path.join(self.output_dir, base + ext)
        counter = 2
        while os.path.exists(path):
            path = os.path.join(self.output_dir, f"{base} ({counter}){ext}")
            counter += 1
        return path

    def save(self, data: bytes, filename: str) -> str:
        os.makedirs(self.output_dir, exist_ok=True)
        path = self._target_path(filename)
        with open(path, 'wb') as f:
            f.write(data)
        logger.info(f"Saved {path} ({len(data)} bytes)")
        return path


class MemoryDownloadSink(DownloadSink):
    """Keeps downloads in memory, e.g. for embedding in another front end."""

    def __init__(self):
        self.files: List[Tuple[str, bytes]] = []

    def save(self, data: bytes, filename: str) -> str:
        self.files.append((filename, data))
        return filename
