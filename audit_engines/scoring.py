"""
Confidence scoring for verification results.

Starts at 1 and subtracts a fixed penalty per problem by severity.
Penalties compound additively and the result is clamped to [0, 1], so two
critical problems give 0.2 and three give 0.  Decimal arithmetic keeps the
scores exact.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from audit_kernel.domain.types import Problem, Severity

SEVERITY_PENALTIES: dict[Severity, Decimal] = {
    Severity.CRITICAL: Decimal("0.4"),
    Severity.HIGH: Decimal("0.2"),
    Severity.MEDIUM: Decimal("0.1"),
    Severity.LOW: Decimal("0.05"),
}

_ZERO = Decimal("0")
_ONE = Decimal("1")


def score_confidence(problems: Iterable[Problem]) -> Decimal:
    """Confidence in [0, 1] for a list of problems."""
    confidence = _ONE
    for problem in problems:
        confidence -= SEVERITY_PENALTIES[problem.severity]
    return max(_ZERO, min(_ONE, confidence))
