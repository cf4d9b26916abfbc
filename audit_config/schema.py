"""
Audit configuration and reference-data schema.

Two artifacts live here:

  AuditConfiguration = runtime switches (frequency, validation level,
                       automatic corrections, thresholds), mutated only
                       through ``ConfigurationStore.configure``.
  ReferenceData      = domain tables the rules consult (keyword sets,
                       reference averages, suggestion patterns, tax
                       deadlines), parsed from YAML by the loader.

Both are frozen; callers receive values, never shared mutable state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

# ---------------------------------------------------------------------------
# Runtime configuration
# ---------------------------------------------------------------------------


class AuditFrequency(str, Enum):
    """How monitoring is driven."""

    REAL_TIME = "real-time"  # subscription pushes batches into audit_batch
    DAILY = "daily"
    WEEKLY = "weekly"


class ValidationLevel(str, Enum):
    """Tier gating which rule families run."""

    BASIC = "basic"
    FULL = "full"
    ADVANCED = "advanced"

    @property
    def includes_statistical_checks(self) -> bool:
        return self in (ValidationLevel.FULL, ValidationLevel.ADVANCED)

    @property
    def includes_domain_checks(self) -> bool:
        return self == ValidationLevel.ADVANCED


@dataclass(frozen=True)
class AuditConfiguration:
    """Effective audit configuration."""

    frequency: AuditFrequency = AuditFrequency.REAL_TIME
    validation_level: ValidationLevel = ValidationLevel.BASIC
    apply_corrections_automatically: bool = False
    notify_on_inconsistency: bool = True
    confidence_threshold: Decimal = Decimal("0.85")
    persist_history: bool = True
    use_ai: bool = True


DEFAULT_AUDIT_CONFIGURATION = AuditConfiguration()


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryProfile:
    """Expectations for one category, keyed by its lowercased name."""

    name: str
    keywords: tuple[str, ...] = ()
    reference_average: Decimal | None = None

    @property
    def key(self) -> str:
        return self.name.strip().lower()


@dataclass(frozen=True)
class SuggestionPattern:
    """Ordered regex -> category mapping used by the correction advisor."""

    category: str
    pattern: str

    @property
    def compiled(self) -> re.Pattern[str]:
        return re.compile(self.pattern)


@dataclass(frozen=True)
class TaxDeadlineRule:
    """Payment of any of ``terms`` after ``deadline_day`` violates the rule."""

    terms: tuple[str, ...]
    deadline_day: int
    description: str
    rule: str


@dataclass(frozen=True)
class ReferenceData:
    """All tables the audit rules read."""

    categories: tuple[CategoryProfile, ...] = ()
    baseline_average: Decimal = Decimal("1000")
    default_coherence: Decimal = Decimal("0.5")
    tax_category: str = "Impostos e Tributos"
    tax_deadlines: tuple[TaxDeadlineRule, ...] = ()
    suggestion_patterns: tuple[SuggestionPattern, ...] = ()
    revenue_fallback_category: str = "Vendas"
    fallback_category: str = "Outros"
    checksum: str = field(default="", compare=False)

    def category(self, name: str | None) -> CategoryProfile | None:
        """Find a category profile by case-insensitive name."""
        if name is None:
            return None
        key = name.strip().lower()
        for profile in self.categories:
            if profile.key == key:
                return profile
        return None

    def is_tax_category(self, name: str | None) -> bool:
        return name is not None and name.strip().lower() == self.tax_category.lower()
