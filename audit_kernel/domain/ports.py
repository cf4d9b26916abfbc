"""
Collaborator ports consumed by the audit engine.

The engine owns no persistence, transport or search of its own.  Every
boundary it crosses is one of these protocols; adapters live in
``audit_services`` and tests supply deterministic fakes.

Errors raised by an implementation propagate to the caller of the audit
operation that invoked it.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol, runtime_checkable

from audit_kernel.domain.types import (
    CorrectionSuggestion,
    Entry,
    Notification,
    Period,
    VerificationResult,
)


@runtime_checkable
class EntrySource(Protocol):
    """Retrieves the accounting entries of a client."""

    def fetch_entries(
        self,
        client_id: str,
        period: Period | None = None,
    ) -> Sequence[Entry]:
        """Return the client's entries, optionally bounded by ``period``."""
        ...


@runtime_checkable
class DuplicateLookup(Protocol):
    """Historical similarity search against previously stored entries."""

    def is_likely_duplicate(self, entry: Entry) -> bool: ...


@runtime_checkable
class CorrectionWriter(Protocol):
    """Writes an accepted automatic correction back to the system of record."""

    def apply_correction(
        self,
        entry_id: str,
        suggestion: CorrectionSuggestion,
    ) -> None: ...


@runtime_checkable
class NotificationSink(Protocol):
    """Operator-facing channel (toast, e-mail, log)."""

    def notify(self, notification: Notification) -> None: ...


@runtime_checkable
class HistoryRecorder(Protocol):
    """Append-only store of verification results."""

    def record_result(self, result: VerificationResult) -> None: ...


@runtime_checkable
class CategoryStatistics(Protocol):
    """Statistical baselines per category.

    ``average_for`` must always return a positive amount; unknown
    categories get the implementation's baseline.
    """

    def average_for(self, category: str | None) -> Decimal: ...
