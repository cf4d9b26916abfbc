"""
audit_engines.tracer -- AUDIT_ENGINE_TRACE records for engine calls.

``@traced_engine`` wraps an engine method and, after it returns, logs one
DEBUG record naming the engine and version, a fingerprint of the selected
keyword inputs, and the elapsed time.  Two calls with equal inputs share a
fingerprint, which lets an auditor match a result to the exact entry and
configuration that produced it.

Fingerprints only see keyword arguments: engines are called as
``validate(entry=..., config=...)``.  A field missing from the call is
fingerprinted as ``null``.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

_logger = logging.getLogger("audit_kernel.engines.tracer")

FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, str):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return f"{type(value).__name__}{_canonicalize(fields)}"
    if isinstance(value, Mapping):
        body = ",".join(
            f"{k}:{_canonicalize(v)}" for k, v in sorted(value.items(), key=lambda i: str(i[0]))
        )
        return "{" + body + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """Truncated SHA-256 over ``field=value`` pairs, in field order."""
    canonical = "|".join(
        f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return digest[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator emitting AUDIT_ENGINE_TRACE for each successful call."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

            if _logger.isEnabledFor(logging.DEBUG):
                _logger.debug(
                    "AUDIT_ENGINE_TRACE",
                    extra={
                        "trace_type": "AUDIT_ENGINE_TRACE",
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": (
                            compute_input_fingerprint(fingerprint_fields, kwargs)
                            if fingerprint_fields
                            else ""
                        ),
                        "duration_ms": elapsed_ms,
                        "function": func.__qualname__,
                    },
                )
            return result

        return wrapper

    return decorator
