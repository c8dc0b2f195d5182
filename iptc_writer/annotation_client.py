"""
Client for the AI annotation service that suggests titles and tags.
"""

import json
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

from .config import AppConfig
from .entry_store import EntryStore
from .models import FileEntry
from .status import StatusState
from .tags import normalize_tags, join_tags
from .utils import resolve_mime_type
from .logging_setup import get_logger

logger = get_logger(__name__)

MSG_NO_ENTRIES = "Select images first."
MSG_LOADING = "Analyzing with AI…"
MSG_REQUEST_FAILED = "Failed to generate titles and tags."
MSG_NO_RESULTS = "No results were returned."
MSG_MALFORMED = "The results were malformed."
MSG_TRANSPORT = "The AI request failed."
MSG_SUCCESS = "Titles and tags received. Edit them as needed."


def msg_too_many(limit: int) -> str:
    return f"At most {limit} images can be sent for AI analysis at once."


def msg_missing(count: int) -> str:
    return f"Some images did not receive results ({count} missing)."


@dataclass
class AnnotationResult:
    """One suggestion returned by the service, already sanitized."""
    id: str
    title: str = ""
    tags: List[str] = field(default_factory=list)


@dataclass
class AnnotationOutcome:
    """Result of one annotation call."""
    status: StatusState
    results: Dict[str, AnnotationResult] = field(default_factory=dict)
    missing: int = 0

    @property
    def success(self) -> bool:
        return self.status.is_success


class AnnotationClient:
    """Sends every entry to the annotation service in one request."""

    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None):
        """
        Initialize the annotation client.

        Args:
            config: Application configuration
            session: Optional requests session to reuse connections
        """
        self.config = config
        self.api_url = config.annotation.api_url
        self.timeout = config.annotation.timeout
        self.http = session or requests

    def validate(self, entries: Sequence[FileEntry]) -> Optional[str]:
        """Return a validation message, or None if the entries can be sent."""
        if not entries:
            return MSG_NO_ENTRIES
        limit = self.config.annotation.max_batch_files
        if len(entries) > limit:
            return msg_too_many(limit)
        return None

    def build_request(self, entries: Sequence[FileEntry]) -> tuple:
        """
        Build the multipart form for a request.

        Returns:
            Tuple of (form fields, file parts)
        """
        manifest = [{"id": entry.id, "name": entry.name} for entry in entries]
        data = {"meta": json.dumps(manifest, ensure_ascii=False)}
        files = [
            ("files", (entry.name, entry.raw_file.data,
                       resolve_mime_type(entry.name, entry.raw_file.mime_type)))
            for entry in entries
        ]
        return data, files

    def annotate(self, entries: Sequence[FileEntry]) -> AnnotationOutcome:
        """
        Request titles and tags for the given entries.

        Args:
            entries: Entries in store order

        Returns:
            AnnotationOutcome with the sanitized results keyed by entry id
        """
        validation_error = self.validate(entries)
        if validation_error:
            logger.warning(f"Annotation not sent: {validation_error}")
            return AnnotationOutcome(StatusState.error(validation_error))

        data, files = self.build_request(entries)
        logger.info(f"Requesting AI annotations for {len(entries)} image(s)")

        try:
            response = self.http.post(self.api_url, data=data, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error calling annotation service: {str(e)}")
            if self.config.debug_mode:
                logger.error(f"Traceback: {traceback.format_exc()}")
            return AnnotationOutcome(StatusState.error(MSG_TRANSPORT))

        body = self._parse_body(response)

        if not response.ok:
            message = MSG_REQUEST_FAILED
            if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
                message = body["error"]
            logger.error(f"Annotation service error: {response.status_code} - {message}")
            return AnnotationOutcome(StatusState.error(message))

        raw_results = body.get("results") if isinstance(body, dict) else None
        if not isinstance(raw_results, list) or not raw_results:
            logger.error("Annotation service returned no results")
            return AnnotationOutcome(StatusState.error(MSG_NO_RESULTS))

        results = self.sanitize_results(raw_results, entries)
        if not results:
            logger.error("Annotation results carried no usable ids")
            return AnnotationOutcome(StatusState.error(MSG_MALFORMED))

        missing = sum(1 for entry in entries if entry.id not in results)
        if missing:
            logger.warning(f"No annotation returned for {missing} of {len(entries)} image(s)")
            status = StatusState.success(msg_missing(missing), missing=missing)
        else:
            logger.info(f"Received annotations for all {len(entries)} image(s)")
            status = StatusState.success(MSG_SUCCESS)

        return AnnotationOutcome(status, results, missing)

    def _parse_body(self, response: requests.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            logger.debug("Annotation response body is not JSON")
            return None
        if self.config.debug_mode:
            logger.debug(f"Annotation response: {json.dumps(body, ensure_ascii=False)[:2000]}")
        return body

    def sanitize_results(self, raw_results: List[Any], entries: Sequence[FileEntry]) -> Dict[str, AnnotationResult]:
        """
        Key the raw results by entry id.

        A result without an id falls back to the manifest entry at the same
        position, unless another result already claims that id.

        Args:
            raw_results: `results` list from the response
            entries: Entries in the order they were sent

        Returns:
            Mapping of entry id to sanitized result
        """
        known_ids = {entry.id for entry in entries}
        results: Dict[str, AnnotationResult] = {}
        positional = []

        for index, item in enumerate(raw_results):
            if not isinstance(item, dict):
                continue

            title = item.get("title")
            result = AnnotationResult(
                id="",
                title=title.strip() if isinstance(title, str) else "",
                tags=normalize_tags(item.get("tags"), self.config.annotation.max_tags),
            )

            item_id = item.get("id")
            if isinstance(item_id, str) and item_id.strip():
                result.id = item_id.strip()
                if result.id not in known_ids:
                    logger.debug(f"Ignoring result for unknown id {result.id}")
                    continue
                results[result.id] = result
            elif "id" not in item and index < len(entries):
                positional.append((entries[index].id, result))

        for entry_id, result in positional:
            if entry_id not in results:
                result.id = entry_id
                results[entry_id] = result

        return results


def merge_annotation(entry: FileEntry, result: AnnotationResult) -> FileEntry:
    """
    Apply one result to an entry.

    Title and tags are only replaced by non-empty values; the write status
    is reset because the metadata may have changed.
    """
    merged = entry
    if result.title:
        merged = merged.with_title(result.title)
    if result.tags:
        merged = merged.with_tags(join_tags(result.tags))
    return merged.with_status(StatusState.idle())


def apply_annotations(store: EntryStore, results: Dict[str, AnnotationResult]) -> int:
    """
    Merge results into the current store contents by id.

    Returns:
        Number of entries updated
    """
    applied = 0
    for entry_id, result in results.items():
        if store.update(entry_id, lambda entry, r=result: merge_annotation(entry, r)) is not None:
            applied += 1
        else:
            logger.debug(f"Entry {entry_id} was removed before its annotation arrived")
    return applied
