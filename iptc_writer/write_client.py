"""
Client for the metadata write service that embeds title and keywords.
"""

import traceback
from dataclasses import dataclass
from typing import Optional

import requests

from .config import AppConfig
from .downloads import DownloadSink
from .entry_store import EntryStore
from .models import FileEntry
from .status import StatusState
from .utils import get_download_name, parse_content_disposition, resolve_mime_type
from .logging_setup import get_logger

logger = get_logger(__name__)

MSG_LOADING = "Writing metadata…"
MSG_FAILED = "Failed to write metadata."
MSG_UNEXPECTED = "An unexpected error occurred."
MSG_DONE = "Write complete."
MSG_DONE_ARCHIVED = "Written (added to ZIP)"
MSG_NOT_FOUND = "The image is no longer selected."


@dataclass
class WriteResult:
    """Outcome of writing one entry."""
    entry_id: str
    success: bool
    data: Optional[bytes] = None
    download_name: Optional[str] = None
    suggested_name: Optional[str] = None
    error: Optional[str] = None


class MetadataWriteClient:
    """Sends one entry at a time to the metadata write service."""

    def __init__(self, config: AppConfig, store: EntryStore,
                 download_sink: Optional[DownloadSink] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize the write client.

        Args:
            config: Application configuration
            store: Store holding the entries to write
            download_sink: Where standalone downloads go
            session: Optional requests session to reuse connections
        """
        self.config = config
        self.store = store
        self.download_sink = download_sink
        self.api_url = config.writer.api_url
        self.timeout = config.writer.timeout
        self.download_suffix = config.writer.download_suffix
        self.http = session or requests

    def _set_status(self, entry_id: str, status: StatusState) -> None:
        self.store.update(entry_id, lambda entry: entry.with_status(status))

    def write(self, entry_id: str, skip_download: bool = False) -> WriteResult:
        """
        Write the entry's title and tags into a JPEG copy of its image.

        The entry is re-read from the store right before the request, so
        edits made up to that point are included.

        Args:
            entry_id: Id of the entry to write
            skip_download: Do not hand the artifact to the download sink

        Returns:
            WriteResult; failures are reported, never raised
        """
        entry = self.store.get(entry_id)
        if entry is None:
            logger.warning(f"Cannot write metadata: entry {entry_id} not found")
            return WriteResult(entry_id, False, error=MSG_NOT_FOUND)

        self._set_status(entry_id, StatusState.loading(MSG_LOADING))

        try:
            result = self._post(entry)
            if result.success and not skip_download and self.download_sink is not None:
                self.download_sink.save(result.data, result.download_name)
        except Exception as e:
            # Anything escaping here would leave the entry stuck in loading
            logger.error(f"Error writing metadata for {entry.name}: {str(e)}")
            if self.config.debug_mode:
                logger.error(f"Traceback: {traceback.format_exc()}")
            result = WriteResult(entry_id, False, error=MSG_UNEXPECTED)

        if result.success:
            message = MSG_DONE_ARCHIVED if skip_download else MSG_DONE
            self._set_status(entry_id, StatusState.success(message))
            logger.info(f"Wrote metadata for {entry.name} -> {result.download_name}")
        else:
            self._set_status(entry_id, StatusState.error(result.error or MSG_FAILED))
            logger.warning(f"Failed to write metadata for {entry.name}: {result.error}")

        return result

    def build_request(self, entry: FileEntry) -> tuple:
        """
        Build the multipart form for one entry.

        Returns:
            Tuple of (form fields, file parts)
        """
        data = {"title": entry.title, "tags": entry.tags}
        files = {
            "file": (entry.name, entry.raw_file.data,
                     resolve_mime_type(entry.name, entry.raw_file.mime_type)),
        }
        return data, files

    def _post(self, entry: FileEntry) -> WriteResult:
        data, files = self.build_request(entry)

        try:
            logger.debug(f"Calling metadata write service for {entry.name}")
            response = self.http.post(self.api_url, data=data, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error calling metadata write service: {str(e)}")
            return WriteResult(entry.id, False, error=MSG_UNEXPECTED)

        if not response.ok:
            message = self._error_message(response)
            logger.error(f"Metadata write service error: {response.status_code} - {message}")
            return WriteResult(entry.id, False, error=message)

        return WriteResult(
            entry.id,
            True,
            data=response.content,
            download_name=get_download_name(entry.name, self.download_suffix),
            suggested_name=parse_content_disposition(response.headers.get("Content-Disposition")),
        )

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return MSG_FAILED
        if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
            return body["error"]
        return MSG_FAILED
