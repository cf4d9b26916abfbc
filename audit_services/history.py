"""
SqlHistoryRecorder -- verification history on SQLAlchemy.

Appends one ``VerificationRecord`` per result, each in its own transaction,
and reads an entry's history back as domain ``VerificationResult`` values.

Failure modes:
    Database errors propagate to the caller (the orchestrator re-raises
    them to whoever started the audit).
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from audit_kernel.db.engine import session_scope
from audit_kernel.domain.types import (
    CorrectionSuggestion,
    Problem,
    ProblemKind,
    Severity,
    VerificationResult,
    VerificationStatus,
)
from audit_kernel.logging_config import LogContext, get_logger
from audit_kernel.models.verification_record import VerificationRecord

logger = get_logger("services.history")


def _as_utc(stamp: datetime) -> datetime:
    # SQLite drops the offset; stored values are always UTC
    return stamp if stamp.tzinfo is not None else stamp.replace(tzinfo=timezone.utc)


def _problem_to_dict(problem: Problem) -> dict[str, Any]:
    return {
        "kind": problem.kind.value,
        "description": problem.description,
        "severity": problem.severity.value,
        "violated_rule": problem.violated_rule,
    }


def _problem_from_dict(data: dict[str, Any]) -> Problem:
    return Problem(
        kind=ProblemKind(data["kind"]),
        description=data["description"],
        severity=Severity(data["severity"]),
        violated_rule=data.get("violated_rule"),
    )


def _suggestion_from_dict(data: dict[str, Any] | None) -> CorrectionSuggestion | None:
    if not data:
        return None
    return CorrectionSuggestion(
        category=data.get("category"),
        value=Decimal(data["value"]) if "value" in data else None,
        date=date.fromisoformat(data["date"]) if "date" in data else None,
        remove_duplicate=bool(data.get("remove_duplicate", False)),
    )


class SqlHistoryRecorder:
    """HistoryRecorder writing to the ``verification_records`` table.

    Contract:
        - ``record_result()`` appends one row; never updates.
        - ``results_for_entry()`` returns an entry's history, oldest first.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def record_result(self, result: VerificationResult) -> None:
        suggestion = result.suggested_correction
        record = VerificationRecord(
            entry_id=result.entry_id,
            client_id=LogContext.get_all().get("client_id"),
            status=result.status.value,
            confidence=result.confidence,
            problems=[_problem_to_dict(p) for p in result.problems],
            suggested_correction=suggestion.to_dict() if suggestion else None,
            audited_at=result.timestamp,
        )
        with session_scope(self._session_factory) as session:
            session.add(record)

        logger.debug(
            "verification_recorded",
            extra={"entry_id": result.entry_id, "status": result.status.value},
        )

    def results_for_entry(self, entry_id: str) -> list[VerificationResult]:
        with session_scope(self._session_factory) as session:
            records = session.execute(
                select(VerificationRecord)
                .where(VerificationRecord.entry_id == entry_id)
                .order_by(VerificationRecord.audited_at)
            ).scalars().all()

            return [
                VerificationResult(
                    entry_id=r.entry_id,
                    status=VerificationStatus(r.status),
                    confidence=Decimal(r.confidence),
                    problems=tuple(_problem_from_dict(p) for p in r.problems),
                    suggested_correction=_suggestion_from_dict(r.suggested_correction),
                    timestamp=_as_utc(r.audited_at),
                )
                for r in records
            ]
