"""
NovelWeaver - Cancellation Token
Cooperative cancellation for batch downloads

The host sets the token from any thread; the batch loop only looks at it
between chapters, so an in-flight fetch always finishes first.
"""

import threading
from typing import Optional

from core.logger import log_info


class CancellationToken:
    """One-shot cancel signal backed by a threading.Event."""

    def __init__(self, label: str = "batch"):
        self.label = label
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by user") -> None:
        """Request cancellation. Repeated calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        log_info(f"Cancellation requested for {self.label} ({reason})", prefix="🛑")

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason
