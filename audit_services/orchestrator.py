"""
AuditOrchestrator -- continuous audit of accounting entries.

Composes the pure engines (EntryValidator, BatchCrossChecker) with the
collaborators that surround them: entry source, duplicate lookup, correction
writer, notification sink, history recorder.

Architecture: audit_services -- imperative shell.

Invariants enforced:
    - One configuration snapshot per batch; a ``configure`` call made while
      a batch runs takes effect from the next batch.
    - Entries are processed strictly in input order, so notifications and
      results are deterministic for identical input.
    - A malformed entry never aborts a batch; it yields a rejected result.
    - Collaborator failures are logged and re-raised unchanged.  No retries.
    - Cancellation is checked before every entry; a cancelled run raises
      ``AuditCancelledError`` and returns nothing.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from enum import Enum
from typing import Any, TypeVar
from uuid import uuid4

from audit_batch.scheduler import AuditScheduler
from audit_config import get_reference_data
from audit_config.schema import AuditConfiguration, AuditFrequency, ReferenceData
from audit_config.store import ConfigurationStore
from audit_engines.correction import CorrectionAdvisor
from audit_engines.cross_check import BatchCrossChecker
from audit_engines.validator import EntryValidator
from audit_kernel.domain.clock import Clock, SystemClock
from audit_kernel.domain.ports import (
    CategoryStatistics,
    CorrectionWriter,
    DuplicateLookup,
    EntrySource,
    HistoryRecorder,
    NotificationSink,
)
from audit_kernel.domain.types import (
    BatchAuditSummary,
    Entry,
    Notification,
    NotificationSeverity,
    Period,
    Problem,
    ProblemFrequency,
    VerificationResult,
    VerificationStatus,
)
from audit_kernel.exceptions import AuditCancelledError, CollaboratorNotConfiguredError
from audit_kernel.logging_config import LogContext, get_logger
from audit_services.cancellation import CancellationToken
from audit_services.statistics import ReferenceTableStatistics

logger = get_logger("services.orchestrator")

T = TypeVar("T")

TOP_PROBLEM_KINDS = 5


class MonitoringMode(str, Enum):
    """How ``start()`` arranged for audits to happen."""

    SUBSCRIPTION = "subscription"  # live updates call audit_batch
    SCHEDULED = "scheduled"        # AuditScheduler calls run_full_audit


def summarize_results(
    client_id: str,
    results: Sequence[VerificationResult],
    batch_problems: Sequence[Problem] = (),
    period: Period | None = None,
    executed_at=None,
) -> BatchAuditSummary:
    """Counts by status plus the most frequent problem kinds.

    Ties in frequency keep first-encountered order.
    """
    statuses = Counter(r.status for r in results)
    kinds: dict = {}
    for result in results:
        for problem in result.problems:
            kinds[problem.kind] = kinds.get(problem.kind, 0) + 1
    ranked = sorted(kinds.items(), key=lambda item: -item[1])[:TOP_PROBLEM_KINDS]

    return BatchAuditSummary(
        client_id=client_id,
        total_entries=len(results),
        approved=statuses[VerificationStatus.APPROVED],
        flagged=statuses[VerificationStatus.FLAGGED],
        rejected=statuses[VerificationStatus.REJECTED],
        most_common_problems=tuple(
            ProblemFrequency(kind=kind, count=count) for kind, count in ranked
        ),
        batch_problems=tuple(batch_problems),
        period=period,
        executed_at=executed_at,
    )


class AuditOrchestrator:
    """Entry point for continuous auditing.

    Contract:
        - ``configure()`` merges a partial configuration update.
        - ``start()`` / ``stop()`` arrange monitoring per ``frequency``.
        - ``audit_batch()`` audits a list of entries, one result per entry
          in input order.
        - ``run_full_audit()`` fetches a client's entries, audits them and
          returns a summary.

    Tests should build one orchestrator per test; nothing is module-global.
    """

    def __init__(
        self,
        *,
        entry_source: EntrySource | None = None,
        duplicate_lookup: DuplicateLookup | None = None,
        correction_writer: CorrectionWriter | None = None,
        notification_sink: NotificationSink | None = None,
        history_recorder: HistoryRecorder | None = None,
        statistics: CategoryStatistics | None = None,
        reference_data: ReferenceData | None = None,
        store: ConfigurationStore | None = None,
        clock: Clock | None = None,
        scheduler_tick_seconds: int = 60,
    ) -> None:
        self._reference = reference_data or get_reference_data()
        self._statistics = statistics or ReferenceTableStatistics(self._reference)
        self._clock = clock or SystemClock()
        self._store = store or ConfigurationStore()

        self._entry_source = entry_source
        self._correction_writer = correction_writer
        self._notification_sink = notification_sink
        self._history_recorder = history_recorder

        self._validator = EntryValidator(
            self._reference,
            self._statistics,
            duplicate_lookup=duplicate_lookup,
            advisor=CorrectionAdvisor(self._reference, self._statistics, clock=self._clock),
            clock=self._clock,
        )
        self._cross_checker = BatchCrossChecker()

        self._scheduler_tick_seconds = scheduler_tick_seconds
        self._scheduler: AuditScheduler | None = None
        self._mode: MonitoringMode | None = None

    # -----------------------------------------------------------------
    # Configuration
    # -----------------------------------------------------------------

    @property
    def configuration(self) -> AuditConfiguration:
        return self._store.snapshot()

    def configure(
        self,
        partial: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> AuditConfiguration:
        """Merge a partial update; returns the new effective configuration."""
        return self._store.configure(partial, **changes)

    # -----------------------------------------------------------------
    # Monitoring lifecycle
    # -----------------------------------------------------------------

    def start(self, client_ids: Sequence[str] = ()) -> MonitoringMode:
        """Begin monitoring according to the configured frequency.

        ``real-time`` only records subscription mode: the live-update
        transport belongs to the caller, which pushes batches into
        ``audit_batch``.  ``daily`` and ``weekly`` start a background
        scheduler running ``run_full_audit`` for each client.
        """
        config = self._store.snapshot()
        self.stop()

        if config.frequency == AuditFrequency.REAL_TIME:
            self._mode = MonitoringMode.SUBSCRIPTION
            logger.info("realtime_monitoring_enabled")
            return self._mode

        if self._entry_source is None:
            raise CollaboratorNotConfiguredError("entry source", "scheduled monitoring")

        self._scheduler = AuditScheduler(
            run_audit=self.run_full_audit,
            client_ids=client_ids,
            frequency=config.frequency,
            clock=self._clock,
            tick_interval_seconds=self._scheduler_tick_seconds,
        )
        self._scheduler.start()
        self._mode = MonitoringMode.SCHEDULED
        logger.info(
            "scheduled_monitoring_enabled",
            extra={"frequency": config.frequency.value, "client_count": len(client_ids)},
        )
        return self._mode

    def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.stop()
            self._scheduler = None
        self._mode = None

    @property
    def is_running(self) -> bool:
        if self._mode == MonitoringMode.SCHEDULED:
            return self._scheduler is not None and self._scheduler.is_running
        return self._mode is not None

    @property
    def monitoring_mode(self) -> MonitoringMode | None:
        return self._mode

    # -----------------------------------------------------------------
    # Auditing
    # -----------------------------------------------------------------

    def audit_batch(
        self,
        entries: Iterable[Entry | Mapping[str, Any]],
        cancel_token: CancellationToken | None = None,
    ) -> list[VerificationResult]:
        """Audit entries in order; one VerificationResult per entry.

        Raw mappings are accepted and converted with ``Entry.from_mapping``.
        """
        results, _ = self._audit(entries, cancel_token)
        return results

    def run_full_audit(
        self,
        client_id: str,
        period: Period | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> BatchAuditSummary:
        """Fetch a client's entries, audit them, and summarize."""
        if self._entry_source is None:
            raise CollaboratorNotConfiguredError("entry source", "run_full_audit")

        with LogContext.bind(client_id=client_id, correlation_id=str(uuid4())):
            logger.info(
                "full_audit_started",
                extra={
                    "period_start": period.start if period else None,
                    "period_end": period.end if period else None,
                },
            )
            entries = self._invoke(
                "entry_source",
                self._entry_source.fetch_entries,
                client_id,
                period,
            )
            results, batch_problems = self._audit(entries, cancel_token)

            summary = summarize_results(
                client_id,
                results,
                batch_problems=batch_problems,
                period=period,
                executed_at=self._clock.now(),
            )
            logger.info(
                "full_audit_completed",
                extra={
                    "total_entries": summary.total_entries,
                    "approved": summary.approved,
                    "flagged": summary.flagged,
                    "rejected": summary.rejected,
                },
            )
            return summary

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _audit(
        self,
        entries: Iterable[Entry | Mapping[str, Any]],
        cancel_token: CancellationToken | None,
    ) -> tuple[list[VerificationResult], tuple[Problem, ...]]:
        config = self._store.snapshot()
        batch = tuple(
            e if isinstance(e, Entry) else Entry.from_mapping(e) for e in entries
        )
        results: list[VerificationResult] = []

        with LogContext.bind(batch_id=str(uuid4())):
            logger.info(
                "audit_batch_started",
                extra={
                    "entry_count": len(batch),
                    "validation_level": config.validation_level.value,
                },
            )

            for index, entry in enumerate(batch):
                if cancel_token is not None and cancel_token.is_cancelled:
                    logger.warning(
                        "audit_batch_cancelled",
                        extra={"entries_processed": index, "entry_count": len(batch)},
                    )
                    raise AuditCancelledError(index, len(batch))

                with LogContext.bind(entry_id=entry.entry_id):
                    results.append(self._audit_entry(entry, config))

            batch_problems = self._cross_checker.cross_check(entries=batch)
            if batch_problems:
                logger.warning(
                    "batch_cross_check_problems",
                    extra={
                        "problem_count": len(batch_problems),
                        "problems": [p.description for p in batch_problems],
                    },
                )

            logger.info(
                "audit_batch_completed",
                extra={
                    "entry_count": len(batch),
                    "rejected": sum(
                        1 for r in results if r.status == VerificationStatus.REJECTED
                    ),
                },
            )

        return results, batch_problems

    def _audit_entry(
        self,
        entry: Entry,
        config: AuditConfiguration,
    ) -> VerificationResult:
        result = self._validator.validate(entry=entry, config=config)

        if config.persist_history and self._history_recorder is not None:
            self._invoke("history_recorder", self._history_recorder.record_result, result)

        if config.notify_on_inconsistency and result.has_critical:
            self._notify_problem(entry, result)

        if (
            config.apply_corrections_automatically
            and result.status == VerificationStatus.REJECTED
            and result.confidence > config.confidence_threshold
            and result.suggested_correction is not None
        ):
            self._apply_correction(entry, result)

        return result

    def _notify_problem(self, entry: Entry, result: VerificationResult) -> None:
        problem = result.most_severe_problem()
        if problem is None or self._notification_sink is None:
            return
        self._invoke(
            "notification_sink",
            self._notification_sink.notify,
            Notification(
                title="Problem detected during audit",
                description=f"{problem.description} (Entry {entry.short_id})",
                severity=NotificationSeverity.ERROR,
                entry_id=result.entry_id,
                details={
                    "problem_kind": problem.kind.value,
                    "problem_severity": problem.severity.value,
                },
            ),
        )

    def _apply_correction(self, entry: Entry, result: VerificationResult) -> None:
        if self._correction_writer is None:
            raise CollaboratorNotConfiguredError("correction writer", "automatic corrections")

        suggestion = result.suggested_correction
        logger.info(
            "automatic_correction_applying",
            extra={"suggestion": suggestion.to_dict(), "confidence": result.confidence},
        )
        self._invoke(
            "correction_writer",
            self._correction_writer.apply_correction,
            entry.entry_id,
            suggestion,
        )

        if self._notification_sink is not None:
            self._invoke(
                "notification_sink",
                self._notification_sink.notify,
                Notification(
                    title="Automatic correction applied",
                    description=(
                        f"Entry {entry.short_id} corrected by the audit system"
                    ),
                    severity=NotificationSeverity.INFO,
                    entry_id=entry.entry_id,
                    details={"correction": suggestion.to_dict()},
                ),
            )

    def _invoke(self, collaborator: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call a collaborator; log and re-raise anything it raises."""
        try:
            return func(*args, **kwargs)
        except Exception:
            logger.error(
                "collaborator_failed",
                extra={"collaborator": collaborator},
                exc_info=True,
            )
            raise
