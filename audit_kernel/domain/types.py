"""
Audit domain types -- entries, problems, verification results.

Pure frozen dataclasses and enums shared by the engines (pure core) and the
services (imperative shell).  No I/O.

Invariants:
    - Every value object is immutable once constructed; results are never
      patched after the validator produces them.
    - Severity is totally ordered: low < medium < high < critical.
    - VerificationStatus is a pure function of the severities present
      (see ``derive_status``).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from audit_kernel.exceptions import InvalidPeriodError


# =============================================================================
# Enums
# =============================================================================


class EntryKind(str, Enum):
    """Direction of an accounting entry."""

    REVENUE = "revenue"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class ProblemKind(str, Enum):
    """What part of the entry a problem concerns."""

    CLASSIFICATION = "classification"
    VALUE = "value"
    DATE = "date"
    DOCUMENT = "document"
    DUPLICATE = "duplicate"
    TAX = "tax"
    OTHER = "other"


class Severity(str, Enum):
    """Ordered defect importance."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class VerificationStatus(str, Enum):
    """Overall outcome for one audited entry."""

    APPROVED = "approved"
    FLAGGED = "flagged"     # medium/high problems, no critical
    REJECTED = "rejected"   # at least one critical problem


# =============================================================================
# Entry
# =============================================================================


def _coerce_decimal(raw: Any) -> Decimal | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() else None


def _coerce_date(raw: Any) -> date | None:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            # Accept full ISO timestamps as well as plain dates
            return date.fromisoformat(raw.strip()[:10])
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class Entry:
    """A single accounting transaction (lançamento) under audit.

    ``value`` and ``date`` are Optional on purpose: a missing or unparseable
    field is reported by the validator as a critical problem, never raised.
    """

    entry_id: str
    date: date | None
    value: Decimal | None
    description: str | None
    kind: EntryKind
    category: str | None = None
    confidence: Decimal | None = None
    counterparty: str | None = None
    invoice_number: str | None = None

    def __post_init__(self) -> None:
        # value and confidence are Decimal or None, never float or NaN
        object.__setattr__(self, "value", _coerce_decimal(self.value))
        object.__setattr__(self, "confidence", _coerce_decimal(self.confidence))
        object.__setattr__(self, "date", _coerce_date(self.date))

    @property
    def normalized_description(self) -> str:
        """Lowercased, trimmed description ("" when missing)."""
        return (self.description or "").strip().lower()

    @property
    def normalized_category(self) -> str | None:
        if self.category is None or not self.category.strip():
            return None
        return self.category.strip().lower()

    @property
    def short_id(self) -> str:
        return self.entry_id[:8]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Entry:
        """Build an Entry from loosely typed input (JSON rows, API payloads).

        Unparseable values and dates become ``None`` so they surface as
        problems during validation.  An unknown ``kind`` falls back to
        ``transfer``, which is excluded from debit/credit cross-checks.
        """
        raw_kind = data.get("kind")
        try:
            kind = EntryKind(raw_kind) if raw_kind is not None else EntryKind.TRANSFER
        except ValueError:
            kind = EntryKind.TRANSFER

        description = data.get("description")
        return cls(
            entry_id=str(data["id"] if "id" in data else data["entry_id"]),
            date=_coerce_date(data.get("date")),
            value=_coerce_decimal(data.get("value")),
            description=str(description) if description is not None else None,
            kind=kind,
            category=data.get("category") or None,
            confidence=_coerce_decimal(data.get("confidence")),
            counterparty=data.get("counterparty"),
            invoice_number=data.get("invoice_number"),
        )


# =============================================================================
# Problems and results
# =============================================================================


@dataclass(frozen=True)
class Problem:
    """One detected defect."""

    kind: ProblemKind
    description: str
    severity: Severity
    violated_rule: str | None = None


@dataclass(frozen=True)
class CorrectionSuggestion:
    """Structured correction proposal, one optional field per correction kind.

    Consumers match on the populated fields; ``remove_duplicate`` carries no
    category or value change.
    """

    category: str | None = None
    value: Decimal | None = None
    date: date | None = None
    remove_duplicate: bool = False

    @property
    def is_empty(self) -> bool:
        return (
            self.category is None
            and self.value is None
            and self.date is None
            and not self.remove_duplicate
        )

    def to_dict(self) -> dict[str, Any]:
        """Populated fields only, JSON-friendly."""
        out: dict[str, Any] = {}
        if self.category is not None:
            out["category"] = self.category
        if self.value is not None:
            out["value"] = str(self.value)
        if self.date is not None:
            out["date"] = self.date.isoformat()
        if self.remove_duplicate:
            out["remove_duplicate"] = True
        return out


def derive_status(problems: tuple[Problem, ...] | list[Problem]) -> VerificationStatus:
    """Status as a pure function of the severities present."""
    severities = {p.severity for p in problems}
    if Severity.CRITICAL in severities:
        return VerificationStatus.REJECTED
    if severities & {Severity.HIGH, Severity.MEDIUM}:
        return VerificationStatus.FLAGGED
    return VerificationStatus.APPROVED


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of auditing one entry."""

    entry_id: str
    status: VerificationStatus
    confidence: Decimal
    problems: tuple[Problem, ...]
    suggested_correction: CorrectionSuggestion | None
    timestamp: datetime

    @property
    def has_critical(self) -> bool:
        return any(p.severity == Severity.CRITICAL for p in self.problems)

    def most_severe_problem(self) -> Problem | None:
        """First critical problem, else first high, else the first problem."""
        for severity in (Severity.CRITICAL, Severity.HIGH):
            for problem in self.problems:
                if problem.severity == severity:
                    return problem
        return self.problems[0] if self.problems else None


# =============================================================================
# Batch summary
# =============================================================================


@dataclass(frozen=True)
class Period:
    """Inclusive date range bounding a full-client audit."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidPeriodError(self.start.isoformat(), self.end.isoformat())

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class ProblemFrequency:
    """How often a problem kind appeared across a batch."""

    kind: ProblemKind
    count: int


@dataclass(frozen=True)
class BatchAuditSummary:
    """Aggregate output of a full-client audit run."""

    client_id: str
    total_entries: int
    approved: int
    flagged: int
    rejected: int
    most_common_problems: tuple[ProblemFrequency, ...]
    batch_problems: tuple[Problem, ...] = ()
    period: Period | None = None
    executed_at: datetime | None = None

    @property
    def counts_by_status(self) -> dict[VerificationStatus, int]:
        return {
            VerificationStatus.APPROVED: self.approved,
            VerificationStatus.FLAGGED: self.flagged,
            VerificationStatus.REJECTED: self.rejected,
        }


# =============================================================================
# Notifications
# =============================================================================


class NotificationSeverity(str, Enum):
    """Operator-facing urgency of a notification."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """Message handed to the notification sink."""

    title: str
    description: str
    severity: NotificationSeverity
    entry_id: str | None = None
    details: Mapping[str, Any] = field(default_factory=dict)
