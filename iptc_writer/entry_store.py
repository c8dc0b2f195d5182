"""
Ordered store of file entries.
"""

from collections import OrderedDict
from typing import Callable, Iterable, Iterator, List, Optional

from .models import FileEntry
from .logging_setup import get_logger

logger = get_logger(__name__)


class EntryStore:
    """
    Insertion-ordered mapping from entry id to FileEntry.

    Entries are immutable; every mutation swaps in a new entry object, so a
    reader never observes a half-applied update. The store owns each entry's
    preview and releases it when the entry leaves.
    """

    def __init__(self):
        self._entries: "OrderedDict[str, FileEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[FileEntry]:
        return iter(list(self._entries.values()))

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: str) -> Optional[FileEntry]:
        return self._entries.get(entry_id)

    def entries(self) -> List[FileEntry]:
        """Snapshot of the entries in insertion order."""
        return list(self._entries.values())

    def ids(self) -> List[str]:
        return list(self._entries.keys())

    def add(self, entries: Iterable[FileEntry]) -> None:
        """Append new entries, preserving their order."""
        for entry in entries:
            if entry.id in self._entries:
                raise ValueError(f"Duplicate entry id: {entry.id}")
            self._entries[entry.id] = entry
            logger.debug(f"Added entry {entry.name} ({entry.id})")

    def update(self, entry_id: str, mutator: Callable[[FileEntry], FileEntry]) -> Optional[FileEntry]:
        """
        Replace the entry matching `entry_id` with `mutator(entry)`.

        Args:
            entry_id: Id of the entry to change
            mutator: Pure function returning the new entry

        Returns:
            The new entry, or None if no entry has that id
        """
        current = self._entries.get(entry_id)
        if current is None:
            return None

        updated = mutator(current)
        if updated.id != entry_id:
            raise ValueError("Entry ids cannot change")
        self._entries[entry_id] = updated
        return updated

    def remove(self, entry_id: str) -> bool:
        """
        Delete one entry and release its preview.

        Returns:
            True if an entry was removed
        """
        entry = self._entries.pop(entry_id, None)
        if entry is None:
            return False
        entry.release_preview()
        logger.debug(f"Removed entry {entry.name} ({entry_id})")
        return True

    def clear(self) -> int:
        """
        Delete every entry and release all previews.

        Returns:
            Number of entries removed
        """
        entries = list(self._entries.values())
        self._entries.clear()
        for entry in entries:
            entry.release_preview()
        if entries:
            logger.debug(f"Cleared {len(entries)} entries")
        return len(entries)
