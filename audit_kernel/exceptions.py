"""
Typed exception hierarchy for the audit engine.

Every error has a typed class, a machine-readable ``code`` class attribute,
and carries its context as attributes rather than only inside the message.

Malformed entries are NOT exceptions: a missing value, date or description
becomes a Problem inside the VerificationResult so a single bad entry never
aborts a batch.  Exceptions are reserved for misuse (configuration, periods),
missing reference data, and run-level conditions (cancellation).

Collaborator failures (entry source, duplicate lookup, correction writer,
notification sink, history recorder) propagate as whatever the collaborator
raised; the engine does not wrap or retry them.

    AuditKernelError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidConfigurationError
    |   +-- ReferenceDataError
    |
    +-- AuditRunError
    |   +-- AuditCancelledError
    |   +-- CollaboratorNotConfiguredError
    |
    +-- InvalidPeriodError

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_CONFIGURATION       | configure() got an unknown key or bad value
                | REFERENCE_DATA_INVALID      | Reference-data YAML missing keys / bad values
----------------|-----------------------------|-----------------------------------------
Run             | AUDIT_CANCELLED             | Cancellation token fired mid-run
                | COLLABORATOR_NOT_CONFIGURED | Operation needs a missing collaborator
----------------|-----------------------------|-----------------------------------------
Period          | INVALID_PERIOD              | Period start after end
"""

from typing import Any


class AuditKernelError(Exception):
    """
    Base exception for all audit engine errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "AUDIT_KERNEL_ERROR"


# Configuration


class ConfigurationError(AuditKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidConfigurationError(ConfigurationError):
    """A configure() call carried an unknown key or an out-of-range value.

    The store is left unchanged when this is raised.
    """

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(
            f"Invalid configuration for '{field}' ({value!r}): {reason}"
        )


class ReferenceDataError(ConfigurationError):
    """Reference-data document is missing required keys or has bad values."""

    code: str = "REFERENCE_DATA_INVALID"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid reference data in {source}: {reason}")


# Run-level


class AuditRunError(AuditKernelError):
    """Base exception for audit-run errors."""

    code: str = "AUDIT_RUN_ERROR"


class AuditCancelledError(AuditRunError):
    """A cancellation token fired before the run finished.

    Partial results are discarded; ``entries_processed`` is informational.
    """

    code: str = "AUDIT_CANCELLED"

    def __init__(self, entries_processed: int, total_entries: int):
        self.entries_processed = entries_processed
        self.total_entries = total_entries
        super().__init__(
            f"Audit cancelled after {entries_processed} of "
            f"{total_entries} entries"
        )


class CollaboratorNotConfiguredError(AuditRunError):
    """An operation needs a collaborator the orchestrator was built without."""

    code: str = "COLLABORATOR_NOT_CONFIGURED"

    def __init__(self, collaborator: str, operation: str):
        self.collaborator = collaborator
        self.operation = operation
        super().__init__(
            f"{operation} requires a {collaborator}, but none was configured"
        )


# Period


class InvalidPeriodError(AuditKernelError):
    """Audit period start date is after its end date."""

    code: str = "INVALID_PERIOD"

    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"Period start {start} is after end {end}")
