"""
Configuration Loader (``audit_config.loader``).

Responsibility
--------------
Loads YAML documents and parses them into typed ``audit_config.schema``
instances: the reference tables the rules consult, and optional audit
configuration override files.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Amounts are parsed as ``Decimal`` from their string form; floats never
  enter the rule tables.
* ``compute_checksum`` produces a deterministic SHA-256 hash so a run can be
  traced back to the exact reference data that governed it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys or bad values  -> ``ReferenceDataError``.
"""

from __future__ import annotations

import hashlib
import json
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from audit_config.schema import (
    CategoryProfile,
    ReferenceData,
    SuggestionPattern,
    TaxDeadlineRule,
)
from audit_kernel.exceptions import ReferenceDataError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_amount(value: Any, source: str, field: str) -> Decimal:
    """Parse a strictly positive amount from YAML (string or number)."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ReferenceDataError(source, f"{field} is not a number: {value!r}")
    if not amount.is_finite() or amount <= 0:
        raise ReferenceDataError(source, f"{field} must be positive: {value!r}")
    return amount


def parse_category(data: dict[str, Any], source: str) -> CategoryProfile:
    """Parse a CategoryProfile from a dict."""
    if "name" not in data:
        raise ReferenceDataError(source, "category without 'name'")
    average = data.get("reference_average")
    return CategoryProfile(
        name=str(data["name"]),
        keywords=tuple(str(k).lower() for k in data.get("keywords", ())),
        reference_average=(
            parse_amount(average, source, f"{data['name']}.reference_average")
            if average is not None
            else None
        ),
    )


def parse_tax_deadline(data: dict[str, Any], source: str) -> TaxDeadlineRule:
    """Parse a TaxDeadlineRule; the deadline must be a day of month."""
    try:
        terms = tuple(str(t).lower() for t in data["terms"])
        day = int(data["deadline_day"])
        rule = TaxDeadlineRule(
            terms=terms,
            deadline_day=day,
            description=str(data["description"]),
            rule=str(data["rule"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ReferenceDataError(source, f"bad tax deadline {data!r}: {exc}")
    if not terms:
        raise ReferenceDataError(source, f"tax deadline '{rule.rule}' has no terms")
    if not 1 <= day <= 31:
        raise ReferenceDataError(source, f"deadline_day out of range: {day}")
    return rule


def parse_suggestion_pattern(data: dict[str, Any], source: str) -> SuggestionPattern:
    """Parse a SuggestionPattern, validating that the regex compiles."""
    try:
        pattern = SuggestionPattern(
            category=str(data["category"]),
            pattern=str(data["pattern"]),
        )
        re.compile(pattern.pattern)
    except KeyError as exc:
        raise ReferenceDataError(source, f"suggestion pattern missing {exc}")
    except re.error as exc:
        raise ReferenceDataError(source, f"bad pattern {data.get('pattern')!r}: {exc}")
    return pattern


def parse_reference_data(data: dict[str, Any], source: str = "<memory>") -> ReferenceData:
    """
    Parse a ``ReferenceData`` from a dict.

    Keys absent from ``data`` keep the schema defaults.
    """
    kwargs: dict[str, Any] = {
        "categories": tuple(
            parse_category(c, source) for c in data.get("categories", ())
        ),
        "tax_deadlines": tuple(
            parse_tax_deadline(t, source) for t in data.get("tax_deadlines", ())
        ),
        "suggestion_patterns": tuple(
            parse_suggestion_pattern(p, source)
            for p in data.get("suggestion_patterns", ())
        ),
        "checksum": compute_checksum(data),
    }
    if "baseline_average" in data:
        kwargs["baseline_average"] = parse_amount(
            data["baseline_average"], source, "baseline_average"
        )
    if "default_coherence" in data:
        try:
            coherence = Decimal(str(data["default_coherence"]))
        except InvalidOperation:
            raise ReferenceDataError(source, "default_coherence is not a number")
        if not Decimal("0") <= coherence <= Decimal("1"):
            raise ReferenceDataError(source, "default_coherence outside [0, 1]")
        kwargs["default_coherence"] = coherence
    for key in ("tax_category", "revenue_fallback_category", "fallback_category"):
        if key in data:
            kwargs[key] = str(data[key])

    return ReferenceData(**kwargs)


def load_reference_data(path: Path) -> ReferenceData:
    """Load and parse a reference-data YAML file."""
    return parse_reference_data(load_yaml_file(path), source=str(path))


def load_configuration_overrides(path: Path) -> dict[str, Any]:
    """
    Load a YAML mapping of audit configuration overrides.

    The file may hold the mapping at top level or under an ``audit`` key.
    Values are passed through unvalidated; ``ConfigurationStore.configure``
    owns validation.
    """
    data = load_yaml_file(path)
    overrides = data.get("audit", data)
    if not isinstance(overrides, dict):
        raise ReferenceDataError(str(path), "configuration overrides must be a mapping")
    return dict(overrides)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
