"""
Admission control for newly selected files: format filter, duplicate
detection and the entry capacity limit.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from .models import RawFile, FileEntry, get_file_signature
from .logging_setup import get_logger
from .utils import is_supported_file

logger = get_logger(__name__)

ALL_ADMITTED = "all_admitted"
PARTIALLY_ADMITTED = "partially_admitted"
NONE_DUPLICATE = "none_duplicate"
NONE_CAPACITY = "none_capacity"
NOTHING_SELECTED = "nothing_selected"


@dataclass
class SelectionResult:
    """Partition of a selection into admitted and rejected files."""
    admitted: List[RawFile] = field(default_factory=list)
    unsupported: List[RawFile] = field(default_factory=list)
    duplicates: List[RawFile] = field(default_factory=list)
    over_capacity: List[RawFile] = field(default_factory=list)
    store_full: bool = False

    @property
    def format_rejected(self) -> bool:
        return bool(self.unsupported)

    @property
    def outcome(self) -> str:
        """Which of the admission outcomes this selection produced."""
        if self.admitted:
            if self.duplicates or self.over_capacity:
                return PARTIALLY_ADMITTED
            return ALL_ADMITTED
        if self.store_full:
            return NONE_CAPACITY
        if self.duplicates:
            return NONE_DUPLICATE
        if self.over_capacity:
            return NONE_CAPACITY
        return NOTHING_SELECTED


def filter_supported(files: Iterable[RawFile]) -> tuple:
    """Split files into (supported, unsupported) by media type or extension."""
    supported, unsupported = [], []
    for raw_file in files:
        if is_supported_file(raw_file.name, raw_file.mime_type):
            supported.append(raw_file)
        else:
            unsupported.append(raw_file)
    return supported, unsupported


def admit_files(files: Sequence[RawFile], existing: Sequence[FileEntry], capacity: int) -> SelectionResult:
    """
    Decide which of the selected files may join the store.

    Args:
        files: Newly selected files in selection order
        existing: Entries already in the store
        capacity: Maximum number of entries the store may hold

    Returns:
        SelectionResult with the admitted files in selection order
    """
    result = SelectionResult()
    supported, result.unsupported = filter_supported(files)

    if result.unsupported:
        logger.warning(f"Skipping {len(result.unsupported)} unsupported file(s): "
                       f"{', '.join(f.name for f in result.unsupported)}")

    available_slots = capacity - len(existing)
    if available_slots <= 0:
        result.store_full = bool(supported)
        result.over_capacity = list(supported)
        logger.warning(f"Store is full ({len(existing)}/{capacity}); nothing admitted")
        return result

    signatures = {entry.signature for entry in existing}

    for raw_file in supported:
        signature = get_file_signature(raw_file)
        if signature in signatures:
            result.duplicates.append(raw_file)
            continue
        if available_slots <= 0:
            result.over_capacity.append(raw_file)
            continue
        result.admitted.append(raw_file)
        signatures.add(signature)
        available_slots -= 1

    logger.debug(
        f"Selection: {len(result.admitted)} admitted, {len(result.duplicates)} duplicate(s), "
        f"{len(result.over_capacity)} over capacity, {len(result.unsupported)} unsupported"
    )
    return result
