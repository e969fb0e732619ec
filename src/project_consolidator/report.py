"""
CSV audit report of transfer operations.

One row per transfer result, preceded by PARAMETER rows that record the run
configuration. Rows are streamed to disk rather than collected in memory.
"""

import csv
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, TextIO, Union

from .types import ReportEntry, TransferResult, TransferStatus

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "timestamp",
    "identity_key",
    "status",
    "source_path",
    "dest_path",
    "message",
]

REPORT_STATUSES = {
    TransferStatus.SUCCESS: "MOVED",
    TransferStatus.PARTIAL: "PARTIAL",
    TransferStatus.ERROR: "ERROR",
    TransferStatus.SKIPPED_MISSING: "SKIPPED_MISSING",
    TransferStatus.SKIPPED_EXISTS: "SKIPPED_EXISTS",
    TransferStatus.SKIPPED_NO_DEST: "SKIPPED_NO_DEST",
}

PARAMETER_STATUS = "PARAMETER"
PARAMETERS_END = "--- END PARAMETERS ---"

# Rows written between explicit flushes
FLUSH_EVERY = 100


def report_status(result: TransferResult, copy_only: bool = False) -> str:
    """Report status for a transfer result."""
    if copy_only and result.status == TransferStatus.SUCCESS:
        return "COPIED"
    return REPORT_STATUSES[result.status]


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class ReportWriter:
    """
    Streaming CSV writer for transfer results.

    Usable as a context manager; the header row is written on open, so even
    a run with nothing to transfer leaves a valid report behind.
    """

    def __init__(self, report_path: Union[str, Path], copy_only: bool = False):
        self.report_path = Path(report_path)
        self.copy_only = copy_only

        self._file: Optional[TextIO] = None
        self._writer = None
        self._row_count = 0
        self._status_counts: Counter = Counter()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def open(self) -> None:
        if self._file is not None:
            return

        self.report_path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Writing report to {self.report_path}")
        self._file = open(self.report_path, "w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._file)
        self._writer.writerow(REPORT_COLUMNS)

    def close(self) -> None:
        if self._file is None:
            return
        self._file.close()
        self._file = None
        self._writer = None

    def _write_row(
        self,
        timestamp: str,
        status: str,
        message: str,
        identity_key: str = "",
        source_path: str = "",
        dest_path: str = ""
    ) -> None:
        if self._file is None:
            self.open()
        self._writer.writerow([timestamp, identity_key, status, source_path, dest_path, message])
        self._row_count += 1
        if self._row_count % FLUSH_EVERY == 0:
            self._file.flush()

    def write_parameters(self, params: Dict[str, str]) -> None:
        """Record non-empty run parameters, closed by a separator row."""
        timestamp = _now()
        for key, value in params.items():
            if value:
                self._write_row(timestamp, PARAMETER_STATUS, f"{key}={value}")
        self._write_row(timestamp, PARAMETER_STATUS, PARAMETERS_END)
        self._file.flush()

    def write_entry(self, entry: ReportEntry) -> None:
        self._write_row(
            entry.timestamp,
            entry.status,
            entry.message,
            identity_key=entry.identity_key,
            source_path=entry.source_path,
            dest_path=entry.dest_path,
        )
        self._status_counts[entry.status] += 1

    def write_result(self, result: TransferResult, timestamp: Optional[str] = None) -> None:
        self.write_entry(ReportEntry(
            timestamp=timestamp or _now(),
            identity_key=result.identity_key,
            status=report_status(result, self.copy_only),
            source_path=result.source_path,
            dest_path=result.dest_path or "",
            message=result.message,
        ))

    def get_stats(self) -> Dict[str, int]:
        """Count of result rows per report status (parameter rows excluded)."""
        return dict(self._status_counts)

    def get_row_count(self) -> int:
        """Rows written so far, parameter rows included."""
        return self._row_count
