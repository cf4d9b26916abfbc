"""
Module: audit_kernel.models.verification_record
Responsibility: ORM persistence for verification history.  One row per
    audited entry per audit run; rows are appended, never updated.
Architecture position: Kernel > Models.  May import from db/base.py only.

Audit relevance:
    The history lets an auditor see how an entry's status evolved across
    runs and which correction was proposed each time.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from audit_kernel.db.base import Base


class VerificationRecord(Base):
    """
    Persisted VerificationResult.

    ``problems`` holds a list of ``{kind, description, severity,
    violated_rule}`` dicts in the order the validator found them;
    ``suggested_correction`` holds only the populated suggestion fields.
    """

    __tablename__ = "verification_records"

    __table_args__ = (
        Index("idx_verification_entry", "entry_id"),
        Index("idx_verification_status", "status"),
        Index("idx_verification_audited_at", "audited_at"),
    )

    entry_id: Mapped[str] = mapped_column(String(100), nullable=False)
    client_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    confidence: Mapped[Decimal] = mapped_column(nullable=False)
    problems: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    suggested_correction: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    audited_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<VerificationRecord {self.entry_id} {self.status} "
            f"confidence={self.confidence}>"
        )
