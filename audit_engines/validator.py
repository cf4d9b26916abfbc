"""
EntryValidator -- rule evaluation for a single accounting entry.

Rule families by validation level:

    basic     value present and positive, date present, description >= 3 chars
    full      + classification coherence, value vs. category average
    advanced  + tax-calendar deadlines, duplicate lookup

Architecture: audit_engines -- rules are pure functions of the entry, the
configuration and the reference data.  The only outward calls are the
duplicate lookup (advanced level) and the statistics port.

Invariants enforced:
    - A missing or non-positive value and a missing date are always
      critical, whatever the configuration.
    - Checks are defensive against missing fields: they degrade into
      problems (or skip) and never raise on a malformed entry.
    - Status comes from ``derive_status`` and confidence from
      ``score_confidence``; neither depends on problem order.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from audit_config.schema import AuditConfiguration, ReferenceData
from audit_engines.correction import CorrectionAdvisor
from audit_engines.scoring import score_confidence
from audit_engines.tracer import traced_engine
from audit_kernel.domain.clock import Clock, SystemClock
from audit_kernel.domain.ports import CategoryStatistics, DuplicateLookup
from audit_kernel.domain.types import (
    Entry,
    Problem,
    ProblemKind,
    Severity,
    VerificationResult,
    derive_status,
)
from audit_kernel.logging_config import get_logger

logger = get_logger("engines.validator")

MIN_DESCRIPTION_LENGTH = 3

COHERENCE_THRESHOLD = Decimal("0.7")
LOW_COHERENCE_THRESHOLD = Decimal("0.4")

ANOMALY_RATIO = Decimal("3")
HIGH_ANOMALY_RATIO = Decimal("5")


def _percent(fraction: Decimal) -> Decimal:
    return (fraction * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


class EntryValidator:
    """Audits one entry at a time.

    Usage:
        validator = EntryValidator(reference_data, statistics)
        result = validator.validate(entry=entry, config=config)
    """

    def __init__(
        self,
        reference_data: ReferenceData,
        statistics: CategoryStatistics,
        duplicate_lookup: DuplicateLookup | None = None,
        advisor: CorrectionAdvisor | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._reference = reference_data
        self._statistics = statistics
        self._duplicate_lookup = duplicate_lookup
        self._clock = clock or SystemClock()
        self._advisor = advisor or CorrectionAdvisor(
            reference_data, statistics, clock=self._clock
        )

    @traced_engine("entry_validator", "1.0", fingerprint_fields=("entry", "config"))
    def validate(
        self,
        entry: Entry,
        config: AuditConfiguration,
    ) -> VerificationResult:
        problems: list[Problem] = []

        problems.extend(self.check_value(entry))
        problems.extend(self.check_date(entry))
        problems.extend(self.check_description(entry))

        level = config.validation_level
        if level.includes_statistical_checks:
            problems.extend(self.check_classification_coherence(entry))
            problems.extend(self.check_value_pattern(entry))

            if level.includes_domain_checks:
                problems.extend(self.check_tax_calendar(entry))
                problems.extend(self.check_duplicate(entry))

        found = tuple(problems)
        suggestion = None
        if found and config.use_ai:
            suggestion = self._advisor.suggest(entry=entry, problems=found)

        result = VerificationResult(
            entry_id=entry.entry_id,
            status=derive_status(found),
            confidence=score_confidence(found),
            problems=found,
            suggested_correction=suggestion,
            timestamp=self._clock.now(),
        )

        logger.debug(
            "entry_validated",
            extra={
                "entry_id": entry.entry_id,
                "status": result.status.value,
                "confidence": result.confidence,
                "problem_count": len(found),
                "validation_level": level.value,
            },
        )
        return result

    # -----------------------------------------------------------------
    # Always-run checks
    # -----------------------------------------------------------------

    def check_value(self, entry: Entry) -> tuple[Problem, ...]:
        if entry.value is None or entry.value <= 0:
            return (Problem(
                kind=ProblemKind.VALUE,
                description="Invalid or non-positive value",
                severity=Severity.CRITICAL,
            ),)
        return ()

    def check_date(self, entry: Entry) -> tuple[Problem, ...]:
        if entry.date is None:
            return (Problem(
                kind=ProblemKind.DATE,
                description="Missing date",
                severity=Severity.CRITICAL,
            ),)
        return ()

    def check_description(self, entry: Entry) -> tuple[Problem, ...]:
        if len((entry.description or "").strip()) < MIN_DESCRIPTION_LENGTH:
            return (Problem(
                kind=ProblemKind.CLASSIFICATION,
                description="Missing or too-short description",
                severity=Severity.HIGH,
            ),)
        return ()

    # -----------------------------------------------------------------
    # full / advanced
    # -----------------------------------------------------------------

    def coherence_score(self, entry: Entry) -> Decimal:
        """Fraction of the category's keywords present in the description.

        Categories without a keyword set score the neutral default.
        """
        profile = self._reference.category(entry.category)
        if profile is None or not profile.keywords:
            return self._reference.default_coherence

        description = entry.normalized_description
        matches = sum(1 for keyword in profile.keywords if keyword in description)
        return Decimal(matches) / Decimal(len(profile.keywords))

    def check_classification_coherence(self, entry: Entry) -> tuple[Problem, ...]:
        if entry.normalized_category is None:
            return ()

        coherence = self.coherence_score(entry)
        if coherence >= COHERENCE_THRESHOLD:
            return ()

        severity = (
            Severity.HIGH if coherence < LOW_COHERENCE_THRESHOLD else Severity.MEDIUM
        )
        return (Problem(
            kind=ProblemKind.CLASSIFICATION,
            description=(
                f"Classification possibly incorrect "
                f"({_percent(coherence)}% coherence)"
            ),
            severity=severity,
        ),)

    def check_value_pattern(self, entry: Entry) -> tuple[Problem, ...]:
        if entry.value is None or entry.value <= 0:
            return ()  # already reported by check_value

        average = self._statistics.average_for(entry.category)
        ratio = entry.value / average
        if ratio <= ANOMALY_RATIO:
            return ()

        shown = ratio.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return (Problem(
            kind=ProblemKind.VALUE,
            description=f"Value outside historical pattern ({shown}x the average)",
            severity=Severity.HIGH if ratio > HIGH_ANOMALY_RATIO else Severity.MEDIUM,
        ),)

    def check_tax_calendar(self, entry: Entry) -> tuple[Problem, ...]:
        if entry.date is None or not self._reference.is_tax_category(entry.category):
            return ()

        description = entry.normalized_description
        day = entry.date.day
        problems: list[Problem] = []
        for rule in self._reference.tax_deadlines:
            if day > rule.deadline_day and any(t in description for t in rule.terms):
                problems.append(Problem(
                    kind=ProblemKind.TAX,
                    description=rule.description,
                    severity=Severity.HIGH,
                    violated_rule=rule.rule,
                ))
        return tuple(problems)

    def check_duplicate(self, entry: Entry) -> tuple[Problem, ...]:
        if self._duplicate_lookup is None:
            return ()
        if self._duplicate_lookup.is_likely_duplicate(entry):
            return (Problem(
                kind=ProblemKind.DUPLICATE,
                description="Possible duplicate entry",
                severity=Severity.HIGH,
            ),)
        return ()
