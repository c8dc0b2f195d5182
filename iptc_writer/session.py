"""
Session controller: the single owner of the entry store and the aggregate
AI and bulk-write statuses.
"""

from typing import List, Optional, Sequence

import requests

from .annotation_client import AnnotationClient, AnnotationOutcome, apply_annotations, MSG_LOADING
from .batch_orchestrator import BatchOrchestrator, BulkOutcome
from .config import AppConfig
from .dedup_guard import (
    admit_files, SelectionResult, NONE_DUPLICATE, NONE_CAPACITY, PARTIALLY_ADMITTED, NOTHING_SELECTED,
)
from .downloads import DownloadSink, DirectoryDownloadSink
from .entry_store import EntryStore
from .models import RawFile, FileEntry
from .status import StatusState, INITIAL_STATUS
from .write_client import MetadataWriteClient, WriteResult
from .logging_setup import get_logger

logger = get_logger(__name__)

MSG_UNSUPPORTED = "Only JPEG / PNG / WebP files are supported."
MSG_DUPLICATE = "These images have already been added."


def msg_capacity(limit: int) -> str:
    return f"Cannot add more images (max {limit})."


def msg_skipped(limit: int) -> str:
    return f"Some images were skipped. The current limit is {limit} images."


class Session:
    """
    Explicit state for one editing session.

    The presentation layer reads `entries`, `ai_status` and `bulk_status`
    and drives the session through the public methods below.
    """

    def __init__(self, config: AppConfig, download_sink: Optional[DownloadSink] = None,
                 http: Optional[requests.Session] = None):
        """
        Initialize the session.

        Args:
            config: Application configuration
            download_sink: Where finished files go (defaults to config.output_dir)
            http: Optional requests session shared by both clients
        """
        self.config = config
        self.store = EntryStore()
        self.ai_status = INITIAL_STATUS
        self.bulk_status = INITIAL_STATUS
        self.download_sink = download_sink or DirectoryDownloadSink(config.output_dir)

        self.annotation_client = AnnotationClient(config, session=http)
        self.write_client = MetadataWriteClient(config, self.store, self.download_sink, session=http)
        self.orchestrator = BatchOrchestrator(config, self.write_client, self.download_sink,
                                              status_callback=self._set_bulk_status)
        self._closed = False

    def __enter__(self) -> 'Session':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def entries(self) -> List[FileEntry]:
        return self.store.entries()

    def get_entry(self, entry_id: str) -> Optional[FileEntry]:
        return self.store.get(entry_id)

    def _set_bulk_status(self, status: StatusState) -> None:
        self.bulk_status = status

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Session is closed")

    def reset_statuses(self) -> None:
        self.ai_status = INITIAL_STATUS
        self.bulk_status = INITIAL_STATUS

    # Selection

    def add_files(self, files: Sequence[RawFile]) -> SelectionResult:
        """
        Admit newly selected files into the store.

        Args:
            files: Files in selection order

        Returns:
            SelectionResult describing what was admitted and why the rest was not
        """
        self._check_open()
        files = list(files)
        result = admit_files(files, self.store.entries(), self.config.max_entries)
        if not files:
            return result

        if result.format_rejected:
            self.ai_status = StatusState.error(MSG_UNSUPPORTED)
        else:
            self.ai_status = INITIAL_STATUS

        outcome = result.outcome
        if outcome == NONE_CAPACITY:
            self.ai_status = StatusState.error(msg_capacity(self.config.max_entries))
            return result
        if outcome == NONE_DUPLICATE:
            self.ai_status = StatusState.error(MSG_DUPLICATE)
            return result
        if outcome == NOTHING_SELECTED:
            return result

        if outcome == PARTIALLY_ADMITTED:
            self.ai_status = StatusState.error(msg_skipped(self.config.max_entries))
        elif not result.format_rejected:
            self.ai_status = INITIAL_STATUS

        new_entries = [FileEntry.create(raw_file, self.config.preview_max_resolution)
                       for raw_file in result.admitted]
        self.store.add(new_entries)
        self.bulk_status = INITIAL_STATUS
        logger.info(f"Added {len(new_entries)} image(s); {len(self.store)}/{self.config.max_entries} selected")
        return result

    def add_paths(self, paths: Sequence[str]) -> SelectionResult:
        """Read files from disk and admit them."""
        return self.add_files([RawFile.from_path(path) for path in paths])

    # Editing

    def set_title(self, entry_id: str, title: str) -> Optional[FileEntry]:
        return self.store.update(entry_id, lambda entry: entry.with_title(title))

    def set_tags(self, entry_id: str, tags: str) -> Optional[FileEntry]:
        return self.store.update(entry_id, lambda entry: entry.with_tags(tags))

    def remove(self, entry_id: str) -> bool:
        """Remove one entry; removing the last one resets both statuses."""
        removed = self.store.remove(entry_id)
        if removed and len(self.store) == 0:
            self.reset_statuses()
        return removed

    def clear(self) -> None:
        self.store.clear()
        self.reset_statuses()

    def close(self) -> None:
        """Release every remaining preview; later selections and writes raise RuntimeError."""
        if self._closed:
            return
        self._closed = True
        released = self.store.clear()
        logger.debug(f"Session closed, released {released} preview(s)")

    # AI annotation

    def annotate(self) -> AnnotationOutcome:
        """
        Ask the AI service for titles and tags for every entry.

        Results are merged by id into the store as it is when the response
        arrives; a late result overwrites edits made in the meantime.
        """
        self._check_open()
        entries = self.store.entries()
        validation_error = self.annotation_client.validate(entries)
        if validation_error:
            self.ai_status = StatusState.error(validation_error)
            return AnnotationOutcome(self.ai_status)

        self.ai_status = StatusState.loading(MSG_LOADING)
        outcome = self.annotation_client.annotate(entries)

        if outcome.results:
            applied = apply_annotations(self.store, outcome.results)
            logger.info(f"Applied AI suggestions to {applied} image(s)")

        self.ai_status = outcome.status
        return outcome

    # Writing

    def write(self, entry_id: str, skip_download: bool = False) -> WriteResult:
        self._check_open()
        return self.write_client.write(entry_id, skip_download=skip_download)

    def write_all(self) -> BulkOutcome:
        self._check_open()
        return self.orchestrator.write_all(self.store.ids())
