"""
Transfer of project directories to their planned destinations.

This module is responsible for:
- Moving (or, in copy-only mode, copying) a project tree to its destination
- Walking the tree level by level down to a bounded depth so progress can
  be reported per item; anything deeper moves as one bulk operation
- Removing each emptied source directory after a move
- Catching and recording per-item errors without stopping the transfer
- Skipping projects whose source vanished or whose destination exists
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Union

from .index import ProjectIndex
from .progress import NullProgressSink, ProgressSink
from .types import ProjectInstance, TransferResult, TransferStatus

logger = logging.getLogger(__name__)

# Levels walked item by item before falling back to bulk transfer
DEFAULT_PROGRESS_DEPTH = 2


class _TreeTransfer:
    """State of a single project transfer."""

    def __init__(
        self,
        copy_only: bool,
        progress: ProgressSink,
        max_depth: int,
        activity: str
    ):
        self.copy_only = copy_only
        self.progress = progress
        self.max_depth = max_depth
        self.activity = activity
        self.items_transferred = 0
        self.failures: List[str] = []

    def _transfer_item(self, src: str, dest: str, is_dir: bool) -> None:
        if self.copy_only:
            if is_dir:
                shutil.copytree(src, dest, symlinks=True)
            else:
                shutil.copy2(src, dest, follow_symlinks=False)
        else:
            shutil.move(src, dest)

    def run_level(self, src_dir: str, dest_dir: str, depth: int) -> None:
        """Transfer the contents of src_dir into dest_dir."""
        os.makedirs(dest_dir, exist_ok=True)

        with os.scandir(src_dir) as it:
            entries = sorted(it, key=lambda e: e.name)

        total = len(entries)
        for i, entry in enumerate(entries):
            target = os.path.join(dest_dir, entry.name)
            self.progress.report(self.activity, entry.path, 100.0 * i / total)

            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                if is_dir and depth < self.max_depth:
                    self.run_level(entry.path, target, depth + 1)
                else:
                    self._transfer_item(entry.path, target, is_dir)
                    self.items_transferred += 1
            except (OSError, shutil.Error) as e:
                logger.error(f"Failed to transfer {entry.path}: {e}")
                self.failures.append(f"{entry.path}: {e}")

        if total:
            self.progress.report(self.activity, src_dir, 100.0)

        if not self.copy_only:
            try:
                os.rmdir(src_dir)
            except OSError as e:
                # Left behind when a child failed to move
                logger.warning(f"Source not removed {src_dir}: {e}")
                self.failures.append(f"{src_dir}: not removed ({e})")


def transfer_directory(
    src_path: Union[str, Path],
    dest_path: Union[str, Path],
    copy_only: bool = False,
    progress: Optional[ProgressSink] = None,
    max_depth: int = DEFAULT_PROGRESS_DEPTH,
    identity_key: str = ""
) -> TransferResult:
    """
    Move or copy one directory tree to a destination path.

    Args:
        src_path: Source directory
        dest_path: Destination directory (must not exist yet)
        copy_only: Copy instead of move; the source is left in place
        progress: Sink for (activity, item, percent) events
        max_depth: Directory levels walked item by item
        identity_key: Recorded on the result for reporting

    Returns:
        TransferResult with status and details
    """
    src_str = os.path.abspath(str(src_path))
    dest_str = os.path.abspath(str(dest_path))
    progress = progress or NullProgressSink()
    verb = "Copying" if copy_only else "Moving"

    def _result(status: TransferStatus, message: str, **kwargs) -> TransferResult:
        return TransferResult(
            identity_key=identity_key,
            source_path=src_str,
            dest_path=dest_str,
            status=status,
            message=message,
            **kwargs
        )

    if not os.path.exists(src_str):
        logger.info(f"Source missing (already moved?): {src_str}")
        return _result(
            TransferStatus.SKIPPED_MISSING,
            "Source folder no longer exists (may have been moved already)"
        )

    if not os.path.isdir(src_str):
        logger.error(f"Source is not a directory: {src_str}")
        return _result(TransferStatus.ERROR, "Source path is not a directory")

    if os.path.exists(dest_str):
        logger.warning(f"Destination already exists: {dest_str}")
        return _result(TransferStatus.SKIPPED_EXISTS, "Destination already exists")

    try:
        os.makedirs(os.path.dirname(dest_str), exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create destination parent for {dest_str}: {e}")
        return _result(TransferStatus.ERROR, f"Cannot create destination directory: {e}")

    logger.info(f"{verb}: {src_str} -> {dest_str}")
    job = _TreeTransfer(copy_only, progress, max_depth, f"{verb} {os.path.basename(src_str)}")

    try:
        job.run_level(src_str, dest_str, 1)
    except OSError as e:
        logger.error(f"{verb} failed: {src_str} -> {dest_str}: {e}")
        job.failures.append(f"{src_str}: {e}")

    if not job.failures:
        return _result(
            TransferStatus.SUCCESS,
            f"{'Copied' if copy_only else 'Moved'} {job.items_transferred} item(s)",
            items_transferred=job.items_transferred
        )

    status = TransferStatus.PARTIAL if job.items_transferred else TransferStatus.ERROR
    logger.error(
        f"{verb} {src_str}: {len(job.failures)} failure(s), "
        f"{job.items_transferred} item(s) transferred"
    )
    return _result(
        status,
        f"{len(job.failures)} item(s) failed; first: {job.failures[0]}",
        items_transferred=job.items_transferred,
        failures=job.failures
    )


class Transferer:
    """
    Transfers every planned instance of an index to its destination.

    Primaries are transferred before their versions, because the versions
    land inside the primary's destination.
    """

    def __init__(
        self,
        copy_only: bool = False,
        progress: Optional[ProgressSink] = None,
        max_depth: int = DEFAULT_PROGRESS_DEPTH
    ):
        self.copy_only = copy_only
        self.progress = progress or NullProgressSink()
        self.max_depth = max_depth
        self._stats: Dict[TransferStatus, int] = {status: 0 for status in TransferStatus}

    def transfer_instance(self, instance: ProjectInstance) -> TransferResult:
        if instance.destination_path is None:
            result = TransferResult(
                identity_key=instance.identity_key,
                source_path=instance.source_path,
                dest_path=None,
                status=TransferStatus.SKIPPED_NO_DEST,
                message="No destination planned"
            )
        else:
            result = transfer_directory(
                instance.source_path,
                instance.destination_path,
                copy_only=self.copy_only,
                progress=self.progress,
                max_depth=self.max_depth,
                identity_key=instance.identity_key
            )
        self._stats[result.status] += 1
        return result

    def transfer_all(self, index: ProjectIndex) -> List[TransferResult]:
        """
        Transfer every instance in the index.

        Returns:
            One TransferResult per instance, in processing order
        """
        results: List[TransferResult] = []
        total = index.instance_count()
        logger.info(f"Transferring {total} project folders...")

        processed = 0
        for group in index:
            ordered = [m for m in group.members if m.is_primary] + group.secondaries
            for instance in ordered:
                results.append(self.transfer_instance(instance))
                processed += 1
                if processed % 100 == 0:
                    logger.info(f"Processed {processed}/{total} folders...")

        logger.info(
            f"Completed: {processed} processed, "
            f"{self._stats[TransferStatus.SUCCESS]} transferred successfully"
        )
        return results

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about transfer operations.

        Returns:
            Dictionary mapping status names to counts
        """
        return {status.value: count for status, count in self._stats.items()}
