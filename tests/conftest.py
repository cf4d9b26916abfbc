"""
Pytest fixtures for the audit engine test suite.

Provides:
- Deterministic clock and packaged reference data
- In-memory fakes for every collaborator port
- An in-memory SQLite session factory for history tests
- Structured log capture
"""

import json
import logging
from datetime import date, datetime, timezone
from io import StringIO
from uuid import uuid4

import pytest

from audit_config import ConfigurationStore, get_reference_data
from audit_engines.correction import CorrectionAdvisor
from audit_engines.validator import EntryValidator
from audit_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from audit_kernel.domain.clock import DeterministicClock
from audit_kernel.domain.types import Entry, EntryKind
from audit_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from audit_services.orchestrator import AuditOrchestrator
from audit_services.statistics import ReferenceTableStatistics

FIXED_NOW = datetime(2024, 3, 15, 9, 30, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture audit_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.audit_batch([...])
            logs = captured_logs()
            assert any(r["message"] == "audit_batch_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("audit_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Collaborator fakes
# =============================================================================


class InMemoryEntrySource:
    """EntrySource over a dict of client_id -> entries."""

    def __init__(self, entries_by_client=None, error=None):
        self.entries_by_client = dict(entries_by_client or {})
        self.error = error
        self.calls = []

    def fetch_entries(self, client_id, period=None):
        self.calls.append((client_id, period))
        if self.error is not None:
            raise self.error
        entries = self.entries_by_client.get(client_id, [])
        if period is None:
            return list(entries)
        return [e for e in entries if e.date is not None and period.contains(e.date)]


class SetDuplicateLookup:
    """Flags entries whose id is in ``duplicate_ids``."""

    def __init__(self, duplicate_ids=()):
        self.duplicate_ids = set(duplicate_ids)
        self.checked = []

    def is_likely_duplicate(self, entry):
        self.checked.append(entry.entry_id)
        return entry.entry_id in self.duplicate_ids


class RecordingCorrectionWriter:
    def __init__(self, error=None):
        self.error = error
        self.applied = []

    def apply_correction(self, entry_id, suggestion):
        if self.error is not None:
            raise self.error
        self.applied.append((entry_id, suggestion))


class RecordingNotificationSink:
    def __init__(self, error=None):
        self.error = error
        self.notifications = []

    def notify(self, notification):
        if self.error is not None:
            raise self.error
        self.notifications.append(notification)


class RecordingHistoryRecorder:
    def __init__(self, error=None):
        self.error = error
        self.results = []

    def record_result(self, result):
        if self.error is not None:
            raise self.error
        self.results.append(result)


# =============================================================================
# Entry builders
# =============================================================================


def make_entry(
    value="100",
    entry_date=date(2024, 3, 10),
    description="Compra de material de escritório",
    kind=EntryKind.EXPENSE,
    category=None,
    entry_id=None,
) -> Entry:
    """Build an Entry with sensible defaults; pass None to blank a field."""
    return Entry(
        entry_id=entry_id or str(uuid4()),
        date=entry_date,
        value=value,
        description=description,
        kind=kind,
        category=category,
    )


# =============================================================================
# Clock and reference data
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def reference_data():
    return get_reference_data()


@pytest.fixture
def statistics(reference_data):
    return ReferenceTableStatistics(reference_data)


@pytest.fixture
def advisor(reference_data, statistics, deterministic_clock):
    return CorrectionAdvisor(reference_data, statistics, clock=deterministic_clock)


@pytest.fixture
def duplicate_lookup():
    return SetDuplicateLookup()


@pytest.fixture
def validator(reference_data, statistics, duplicate_lookup, advisor, deterministic_clock):
    return EntryValidator(
        reference_data,
        statistics,
        duplicate_lookup=duplicate_lookup,
        advisor=advisor,
        clock=deterministic_clock,
    )


# =============================================================================
# Orchestrator fixtures
# =============================================================================


@pytest.fixture
def entry_source():
    return InMemoryEntrySource()


@pytest.fixture
def correction_writer():
    return RecordingCorrectionWriter()


@pytest.fixture
def notification_sink():
    return RecordingNotificationSink()


@pytest.fixture
def history_recorder():
    return RecordingHistoryRecorder()


@pytest.fixture
def orchestrator(
    reference_data,
    entry_source,
    duplicate_lookup,
    correction_writer,
    notification_sink,
    history_recorder,
    deterministic_clock,
):
    """A fresh orchestrator with default configuration and recording fakes."""
    orch = AuditOrchestrator(
        entry_source=entry_source,
        duplicate_lookup=duplicate_lookup,
        correction_writer=correction_writer,
        notification_sink=notification_sink,
        history_recorder=history_recorder,
        reference_data=reference_data,
        store=ConfigurationStore(),
        clock=deterministic_clock,
    )
    yield orch
    orch.stop()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory():
    """In-memory SQLite with the audit tables created."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()
