"""
audit_config -- audit configuration and rule reference data.

Responsibility:
    ``ConfigurationStore`` holds the mutable runtime switches;
    ``get_reference_data()`` is the entrypoint for the rule tables (keyword
    sets, reference averages, tax deadlines, suggestion patterns).  The
    packaged defaults live in ``defaults/reference_data.yaml``.

Audit relevance:
    Every reference-data load emits an ``AUDIT_CONFIG_TRACE`` log entry with
    the source path and checksum, tying each audit run to the tables that
    governed it.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from audit_config.loader import load_configuration_overrides, load_reference_data
from audit_config.schema import (
    DEFAULT_AUDIT_CONFIGURATION,
    AuditConfiguration,
    AuditFrequency,
    ReferenceData,
    ValidationLevel,
)
from audit_config.store import ConfigurationStore

_logger = logging.getLogger("audit_kernel.config")

DEFAULT_REFERENCE_DATA_PATH = Path(__file__).parent / "defaults" / "reference_data.yaml"

__all__ = [
    "DEFAULT_AUDIT_CONFIGURATION",
    "DEFAULT_REFERENCE_DATA_PATH",
    "AuditConfiguration",
    "AuditFrequency",
    "ConfigurationStore",
    "ReferenceData",
    "ValidationLevel",
    "get_reference_data",
    "load_audit_configuration",
]


@lru_cache(maxsize=8)
def _load_cached(path: Path) -> ReferenceData:
    data = load_reference_data(path)
    _logger.info(
        "AUDIT_CONFIG_TRACE",
        extra={
            "trace_type": "AUDIT_CONFIG_TRACE",
            "source": str(path),
            "checksum": data.checksum,
            "category_count": len(data.categories),
            "tax_rule_count": len(data.tax_deadlines),
        },
    )
    return data


def get_reference_data(path: Path | None = None) -> ReferenceData:
    """Load (once per path) and return the rule reference data."""
    return _load_cached(Path(path or DEFAULT_REFERENCE_DATA_PATH).resolve())


def load_audit_configuration(
    path: Path,
    store: ConfigurationStore,
) -> AuditConfiguration:
    """Apply a YAML file of configuration overrides to ``store``."""
    return store.configure(load_configuration_overrides(Path(path)))
