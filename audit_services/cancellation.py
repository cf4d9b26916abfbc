"""
CancellationToken -- cooperative cancellation for long audit runs.

The orchestrator checks the token between entries; a fired token aborts
the run with ``AuditCancelledError`` and the partial results are dropped.
"""

from __future__ import annotations

import threading


class CancellationToken:
    """Thread-safe one-way cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()
