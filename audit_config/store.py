"""
ConfigurationStore -- the single mutable holder of the audit configuration.

Lifecycle:
    Created with the documented defaults, updated only through
    ``configure`` (partial merge), read through ``snapshot``.  Each update
    swaps in a new frozen ``AuditConfiguration`` under a lock, so a reader
    holding a snapshot never observes a half-applied change.

Failure modes:
    ``InvalidConfigurationError`` for unknown keys, unparseable enum or
    boolean values, and thresholds outside [0, 1].  On failure the store
    keeps its previous value.
"""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from audit_config.schema import (
    DEFAULT_AUDIT_CONFIGURATION,
    AuditConfiguration,
    AuditFrequency,
    ValidationLevel,
)
from audit_kernel.exceptions import InvalidConfigurationError
from audit_kernel.logging_config import get_logger

logger = get_logger("config.store")

_ENUM_FIELDS: dict[str, type[Enum]] = {
    "frequency": AuditFrequency,
    "validation_level": ValidationLevel,
}

_BOOL_FIELDS = frozenset({
    "apply_corrections_automatically",
    "notify_on_inconsistency",
    "persist_history",
    "use_ai",
})

_KNOWN_FIELDS = frozenset(f.name for f in dataclasses.fields(AuditConfiguration))


def _coerce_field(name: str, value: Any) -> Any:
    if name not in _KNOWN_FIELDS:
        raise InvalidConfigurationError(name, value, "unknown configuration key")

    if name in _ENUM_FIELDS:
        enum_type = _ENUM_FIELDS[name]
        try:
            return enum_type(value)
        except ValueError:
            allowed = ", ".join(m.value for m in enum_type)
            raise InvalidConfigurationError(name, value, f"expected one of {allowed}")

    if name in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise InvalidConfigurationError(name, value, "expected a boolean")
        return value

    # confidence_threshold
    if isinstance(value, bool):
        raise InvalidConfigurationError(name, value, "expected a number")
    try:
        threshold = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidConfigurationError(name, value, "expected a number")
    if not threshold.is_finite() or not Decimal("0") <= threshold <= Decimal("1"):
        raise InvalidConfigurationError(name, value, "must lie within [0, 1]")
    return threshold


class ConfigurationStore:
    """Holds the current AuditConfiguration.

    Contract:
        - ``configure()`` merges a partial update and returns the new value.
        - ``snapshot()`` returns the current value; it is frozen, so callers
          cannot mutate the store through it.
        - ``reset()`` restores the defaults.
    """

    def __init__(self, initial: AuditConfiguration | None = None) -> None:
        self._lock = threading.Lock()
        self._current = initial or DEFAULT_AUDIT_CONFIGURATION

    def snapshot(self) -> AuditConfiguration:
        with self._lock:
            return self._current

    def configure(
        self,
        partial: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> AuditConfiguration:
        """Merge ``partial`` and keyword ``changes`` into the configuration.

        Raises:
            InvalidConfigurationError: if any key or value is invalid.  No
                change is applied in that case.
        """
        merged: dict[str, Any] = dict(partial or {})
        merged.update(changes)
        coerced = {name: _coerce_field(name, value) for name, value in merged.items()}

        with self._lock:
            self._current = dataclasses.replace(self._current, **coerced)
            current = self._current

        logger.info(
            "audit_configured",
            extra={
                "changed_fields": sorted(coerced),
                "configuration": dataclasses.asdict(current),
            },
        )
        return current

    def reset(self) -> AuditConfiguration:
        with self._lock:
            self._current = DEFAULT_AUDIT_CONFIGURATION
        logger.info("audit_configuration_reset")
        return DEFAULT_AUDIT_CONFIGURATION
