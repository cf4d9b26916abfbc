"""
audit_engines.correction -- heuristic correction suggestions.

Responsibility:
    Turn the problems found on an entry into a ``CorrectionSuggestion``:
    a category from ordered description patterns, a value pulled back
    toward the category average, today's date, or a duplicate-removal flag.

Invariants enforced:
    - First match wins per field: a later problem of the same kind never
      overwrites a field already populated.
    - Kinds without a correction (document, tax, other) contribute nothing.
    - The only time source is the injected Clock.

Failure modes:
    - Returns ``None`` when no field could be populated.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from audit_config.schema import ReferenceData
from audit_engines.tracer import traced_engine
from audit_kernel.domain.clock import Clock, SystemClock
from audit_kernel.domain.ports import CategoryStatistics
from audit_kernel.domain.types import (
    CorrectionSuggestion,
    Entry,
    EntryKind,
    Problem,
    ProblemKind,
)
from audit_kernel.logging_config import get_logger

logger = get_logger("engines.correction")

ANOMALY_RATIO = Decimal("3")
CORRECTED_RATIO = Decimal("1.5")


class CorrectionAdvisor:
    """Suggests corrections for the problems found on one entry.

    Usage:
        advisor = CorrectionAdvisor(reference_data, statistics)
        suggestion = advisor.suggest(entry=entry, problems=problems)
    """

    def __init__(
        self,
        reference_data: ReferenceData,
        statistics: CategoryStatistics,
        clock: Clock | None = None,
    ) -> None:
        self._reference = reference_data
        self._statistics = statistics
        self._clock = clock or SystemClock()
        self._patterns = tuple(
            (p.compiled, p.category) for p in reference_data.suggestion_patterns
        )

    @traced_engine("correction_advisor", "1.0", fingerprint_fields=("entry", "problems"))
    def suggest(
        self,
        entry: Entry,
        problems: Sequence[Problem],
    ) -> CorrectionSuggestion | None:
        fields: dict[str, object] = {}

        for problem in problems:
            if problem.kind == ProblemKind.CLASSIFICATION and "category" not in fields:
                fields["category"] = self.suggest_category(entry)
            elif problem.kind == ProblemKind.VALUE and "value" not in fields:
                value = self.suggest_value(entry)
                if value is not None:
                    fields["value"] = value
            elif problem.kind == ProblemKind.DATE and "date" not in fields:
                fields["date"] = self._clock.today()
            elif problem.kind == ProblemKind.DUPLICATE:
                fields["remove_duplicate"] = True

        suggestion = CorrectionSuggestion(**fields)
        if suggestion.is_empty:
            return None

        logger.debug(
            "correction_suggested",
            extra={"entry_id": entry.entry_id, "suggestion": suggestion.to_dict()},
        )
        return suggestion

    def suggest_category(self, entry: Entry) -> str:
        """Category from the first matching description pattern."""
        description = entry.normalized_description
        for pattern, category in self._patterns:
            if pattern.search(description):
                return category
        if entry.kind == EntryKind.REVENUE:
            return self._reference.revenue_fallback_category
        return self._reference.fallback_category

    def suggest_value(self, entry: Entry) -> Decimal | None:
        """1.5x the category average when the value exceeds 3x it, else unchanged."""
        if entry.value is None:
            return None
        average = self._statistics.average_for(entry.category)
        if entry.value > average * ANOMALY_RATIO:
            return average * CORRECTED_RATIO
        return entry.value
