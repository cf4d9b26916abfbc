"""ORM models for the audit engine."""

from audit_kernel.models.verification_record import VerificationRecord

__all__ = ["VerificationRecord"]
