"""
ReferenceTableStatistics -- category averages from the reference data.

Stands in for a history-backed statistics service: it answers from the
``reference_average`` column of the category tables and falls back to the
baseline average for unknown or missing categories.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from audit_config.schema import ReferenceData


class ReferenceTableStatistics:
    """CategoryStatistics backed by static reference tables.

    ``overrides`` replace individual averages (case-insensitive keys), e.g.
    with figures computed offline from a client's history.
    """

    def __init__(
        self,
        reference_data: ReferenceData,
        overrides: Mapping[str, Decimal] | None = None,
    ) -> None:
        self._baseline = reference_data.baseline_average
        self._averages: dict[str, Decimal] = {
            profile.key: profile.reference_average
            for profile in reference_data.categories
            if profile.reference_average is not None
        }
        for name, average in (overrides or {}).items():
            if average <= 0:
                raise ValueError(f"Average for {name!r} must be positive: {average}")
            self._averages[name.strip().lower()] = average

    def average_for(self, category: str | None) -> Decimal:
        if category is None:
            return self._baseline
        return self._averages.get(category.strip().lower(), self._baseline)
