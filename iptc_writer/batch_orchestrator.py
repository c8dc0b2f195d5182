"""
Sequential batch writing and ZIP archive assembly.
"""

import io
import os
import time
import zipfile
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import psutil

from .config import AppConfig
from .downloads import DownloadSink
from .status import StatusState
from .utils import get_archive_name, unique_member_name
from .write_client import MetadataWriteClient, WriteResult
from .logging_setup import get_logger

logger = get_logger(__name__)

MSG_NO_ENTRIES = "Select images first."
MSG_LOADING = "Writing sequentially…"
MSG_ALL_FAILED = "Writing failed. Check the status of each image."
MSG_SAVE_FAILED = "The ZIP was created but could not be saved."


def msg_all_succeeded(count: int) -> str:
    return f"All {count} files were bundled into a ZIP and downloaded."


def msg_partial(failed: int) -> str:
    return f"{failed} failed. Only the successful files are included in the ZIP."


@dataclass
class BatchStats:
    """Class to track statistics of one batch pass."""
    total_images: int = 0
    processed_images: int = 0
    successful_images: int = 0
    failed_images: int = 0
    start_time: float = 0
    total_time: float = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        result = {k: v for k, v in self.__dict__.items()}
        if self.total_images > 0:
            result['success_rate'] = self.successful_images / self.total_images
        if self.processed_images > 0:
            result['avg_time_per_image'] = self.total_time / self.processed_images
        else:
            result['avg_time_per_image'] = 0
        return result


@dataclass
class BulkOutcome:
    """Result of a batch pass."""
    status: StatusState
    results: List[WriteResult] = field(default_factory=list)
    archive_name: Optional[str] = None
    archive_data: Optional[bytes] = field(default=None, repr=False)
    archive_members: List[str] = field(default_factory=list)
    archive_location: Optional[str] = None
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return len(self.results) - self.success_count


class BatchOrchestrator:
    """
    Drives the write client over all entries, one at a time.

    Writes never overlap: entry n+1 is sent only after entry n resolved.
    """

    def __init__(self, config: AppConfig, write_client: MetadataWriteClient,
                 download_sink: Optional[DownloadSink] = None,
                 status_callback: Optional[Callable[[StatusState], None]] = None):
        """
        Initialize the batch orchestrator.

        Args:
            config: Application configuration
            write_client: Client used for every entry
            download_sink: Receives the finished archive
            status_callback: Called with every aggregate status change
        """
        self.config = config
        self.write_client = write_client
        self.download_sink = download_sink
        self.status_callback = status_callback
        self.archive_prefix = config.archive_prefix
        self.stats = BatchStats()

    def _set_status(self, status: StatusState) -> StatusState:
        if self.status_callback is not None:
            self.status_callback(status)
        return status

    def write_all(self, entry_ids: Optional[Sequence[str]] = None) -> BulkOutcome:
        """
        Write every entry and bundle the successful artifacts into a ZIP.

        Args:
            entry_ids: Ids to write in order (defaults to the whole store)

        Returns:
            BulkOutcome with per-entry results and the archive, if any
        """
        if entry_ids is None:
            entry_ids = self.write_client.store.ids()
        entry_ids = list(entry_ids)

        if not entry_ids:
            logger.warning("Batch write requested with no images")
            return BulkOutcome(self._set_status(StatusState.error(MSG_NO_ENTRIES)))

        self._set_status(StatusState.loading(MSG_LOADING))

        self.stats = BatchStats(total_images=len(entry_ids), start_time=time.time())
        total = len(entry_ids)
        logger.info(f"Starting batch write of {total} image(s)")

        results: List[WriteResult] = []
        buffer = io.BytesIO()
        members: List[str] = []

        with zipfile.ZipFile(buffer, mode='w', compression=zipfile.ZIP_DEFLATED) as archive:
            for index, entry_id in enumerate(entry_ids, start=1):
                result = self.write_client.write(entry_id, skip_download=True)
                results.append(result)

                self.stats.processed_images += 1
                if result.success:
                    self.stats.successful_images += 1
                    member = unique_member_name(result.download_name, set(members))
                    archive.writestr(member, result.data)
                    members.append(member)
                else:
                    self.stats.failed_images += 1

                self._log_progress(index, total)
                self._check_memory_usage()

        self.stats.total_time = time.time() - self.stats.start_time
        self._log_detailed_stats()

        success_count = self.stats.successful_images
        if success_count == 0:
            logger.error("Batch write produced no files; no archive created")
            return BulkOutcome(self._set_status(StatusState.error(MSG_ALL_FAILED)),
                               results, stats=self.stats.to_dict())

        archive_name = get_archive_name(self.archive_prefix)
        archive_data = buffer.getvalue()
        location = None
        if self.download_sink is not None:
            try:
                location = self.download_sink.save(archive_data, archive_name)
            except OSError as e:
                logger.error(f"Error saving archive {archive_name}: {str(e)}")
                return BulkOutcome(
                    self._set_status(StatusState.error(MSG_SAVE_FAILED)),
                    results,
                    archive_name=archive_name,
                    archive_data=archive_data,
                    archive_members=members,
                    stats=self.stats.to_dict(),
                )

        if success_count == total:
            status = StatusState.success(msg_all_succeeded(success_count))
        else:
            status = StatusState.error(msg_partial(total - success_count))

        return BulkOutcome(
            self._set_status(status),
            results,
            archive_name=archive_name,
            archive_data=archive_data,
            archive_members=members,
            archive_location=location,
            stats=self.stats.to_dict(),
        )

    def _log_progress(self, images_processed: int, total_images: int) -> None:
        """
        Log progress statistics.

        Args:
            images_processed: Number of images processed so far
            total_images: Total number of images to process
        """
        elapsed = time.time() - self.stats.start_time
        avg_time_per_image = elapsed / images_processed if images_processed else 0
        estimated_remaining = avg_time_per_image * (total_images - images_processed)

        logger.info(
            f"Progress: {images_processed}/{total_images} "
            f"({images_processed / total_images * 100:.1f}%), "
            f"est. remaining: {estimated_remaining:.1f}s"
        )

    def _log_detailed_stats(self) -> None:
        """Log statistics about the finished pass."""
        stats = self.stats
        success_rate = stats.successful_images / stats.total_images if stats.total_images > 0 else 0

        logger.info("=== Batch Write Statistics ===")
        logger.info(f"Total images: {stats.total_images}")
        logger.info(f"Successful: {stats.successful_images} ({success_rate:.1%})")
        logger.info(f"Failed: {stats.failed_images}")
        logger.info(f"Total time: {stats.total_time:.1f}s")

    def _check_memory_usage(self) -> None:
        """Warn when the in-memory archive pushes the process past its limit."""
        if self.config.memory_limit_mb:
            try:
                process = psutil.Process(os.getpid())
                mem_mb = process.memory_info().rss / 1024 / 1024
                logger.debug(f"Current memory usage: {mem_mb:.1f} MB")

                if mem_mb > self.config.memory_limit_mb * 0.8:
                    logger.warning(
                        f"Memory usage high ({mem_mb:.1f} MB of {self.config.memory_limit_mb} MB); "
                        f"the archive is held in memory until the pass ends"
                    )
            except psutil.Error as e:
                logger.debug(f"Error checking memory usage: {str(e)}")
