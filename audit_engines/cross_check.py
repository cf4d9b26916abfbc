"""
BatchCrossChecker -- whole-batch consistency checks.

Architecture: audit_engines -- pure calculation, zero I/O.

Invariants enforced:
    Debit/credit balance: total expense value against total revenue value,
    tolerated up to 1% relative difference.  Findings are batch-scoped and
    never change any single entry's VerificationResult.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from audit_engines.tracer import traced_engine
from audit_kernel.domain.types import Entry, EntryKind, Problem, ProblemKind, Severity
from audit_kernel.logging_config import get_logger

logger = get_logger("engines.cross_check")

BALANCE_TOLERANCE = Decimal("0.01")
HIGH_IMBALANCE = Decimal("0.05")


def _total(entries: Sequence[Entry], kind: EntryKind) -> Decimal:
    return sum(
        (e.value for e in entries if e.kind == kind and e.value is not None),
        Decimal("0"),
    )


class BatchCrossChecker:
    """Runs batch-level checks over a list of entries.

    Usage:
        checker = BatchCrossChecker()
        problems = checker.cross_check(entries=entries)
    """

    @traced_engine("batch_cross_checker", "1.0")
    def cross_check(self, entries: Sequence[Entry]) -> tuple[Problem, ...]:
        problems: list[Problem] = []
        problems.extend(self.check_balance(entries))
        return tuple(problems)

    def check_balance(self, entries: Sequence[Entry]) -> tuple[Problem, ...]:
        """Expense (debit) total vs. revenue (credit) total."""
        debits = _total(entries, EntryKind.EXPENSE)
        credits = _total(entries, EntryKind.REVENUE)

        if debits <= 0 or credits <= 0:
            return ()

        difference = abs(debits - credits) / max(debits, credits)
        if difference <= BALANCE_TOLERANCE:
            return ()

        percent = (difference * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        logger.debug(
            "batch_imbalance_detected",
            extra={"debits": debits, "credits": credits, "difference_pct": percent},
        )
        return (Problem(
            kind=ProblemKind.OTHER,
            description=(
                f"Debit/credit imbalance: {percent}% difference"
            ),
            severity=Severity.HIGH if difference > HIGH_IMBALANCE else Severity.MEDIUM,
        ),)
