"""AuditRun ORM: one persisted integrity snapshot (append-only history).

Invariants:
    - pass_count + warn_count + fail_count == total_checks
    - results stores the per-check detail as serialized by CheckResult.to_dict()

Design Decisions:
    - JSON column for results: the check list evolves without migrations
    - History trimmed to the newest N rows after each insert
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from studio_sales.db.base import Base


class AuditRun(Base):
    __tablename__ = "audit_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    run_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    total_checks: Mapped[int] = mapped_column(Integer, nullable=False)
    pass_count: Mapped[int] = mapped_column(Integer, nullable=False)
    warn_count: Mapped[int] = mapped_column(Integer, nullable=False)
    fail_count: Mapped[int] = mapped_column(Integer, nullable=False)
    results: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
