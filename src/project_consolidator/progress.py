"""
Progress sinks receiving (activity, item, percent) events from transfers.
"""

import logging
from typing import Optional, Protocol

from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    def report(self, activity: str, item: str, percent: float) -> None:
        ...


class NullProgressSink:
    """Discards every event."""

    def report(self, activity: str, item: str, percent: float) -> None:
        pass


class LoggingProgressSink:
    """Writes every event to the debug log."""

    def report(self, activity: str, item: str, percent: float) -> None:
        logger.debug(f"{activity}: {item} ({percent:.0f}%)")


class TqdmProgressSink:
    """
    Console progress bar.

    The bar tracks the percentage of the current activity; a new activity
    label resets it.
    """

    def __init__(self, leave: bool = False):
        self.leave = leave
        self._bar: Optional[tqdm] = None
        self._activity: Optional[str] = None

    def report(self, activity: str, item: str, percent: float) -> None:
        if self._bar is None or activity != self._activity:
            self.close()
            self._bar = tqdm(total=100, desc=activity, unit="%", leave=self.leave)
            self._activity = activity

        self._bar.n = min(max(percent, 0.0), 100.0)
        self._bar.set_postfix_str(item, refresh=False)
        self._bar.refresh()

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
            self._activity = None
