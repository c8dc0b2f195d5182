"""
Data model for selected images.
"""

import os
import uuid
from dataclasses import dataclass, field, replace
from typing import Optional

from .preview import PreviewHandle
from .status import StatusState, INITIAL_STATUS
from .utils import guess_mime_type


@dataclass(frozen=True)
class RawFile:
    """Original payload of a selected file with its declared properties."""
    name: str
    data: bytes = field(repr=False)
    size: int
    last_modified: int  # milliseconds since the epoch
    mime_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: str) -> 'RawFile':
        """
        Read a file from disk.

        Args:
            path: Path to the image

        Returns:
            RawFile carrying the bytes, size and modification time
        """
        with open(path, 'rb') as f:
            data = f.read()
        stat = os.stat(path)
        return cls(
            name=os.path.basename(path),
            data=data,
            size=len(data),
            last_modified=int(stat.st_mtime * 1000),
            mime_type=guess_mime_type(path),
        )


def get_file_signature(raw_file: RawFile) -> str:
    """Duplicate-detection key built from name, size and modification time."""
    name = raw_file.name or "image"
    return f"{name}-{raw_file.size}-{raw_file.last_modified}"


def create_entry_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class FileEntry:
    """One selected image with its editable metadata and write status."""
    id: str
    raw_file: RawFile
    signature: str
    preview: Optional[PreviewHandle] = field(default=None, compare=False, repr=False)
    title: str = ""
    tags: str = ""
    write_status: StatusState = INITIAL_STATUS

    @classmethod
    def create(cls, raw_file: RawFile, preview_max_resolution: int = 256) -> 'FileEntry':
        """Create a new entry with a fresh id and its own preview handle."""
        return cls(
            id=create_entry_id(),
            raw_file=raw_file,
            signature=get_file_signature(raw_file),
            preview=PreviewHandle(raw_file.data, preview_max_resolution, raw_file.name),
        )

    @property
    def name(self) -> str:
        return self.raw_file.name

    def with_title(self, title: str) -> 'FileEntry':
        # Edits invalidate any previous write result
        return replace(self, title=title, write_status=INITIAL_STATUS)

    def with_tags(self, tags: str) -> 'FileEntry':
        return replace(self, tags=tags, write_status=INITIAL_STATUS)

    def with_status(self, status: StatusState) -> 'FileEntry':
        return replace(self, write_status=status)

    def release_preview(self) -> bool:
        if self.preview is None:
            return False
        return self.preview.release()
