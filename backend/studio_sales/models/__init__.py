"""ORM Models: SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Rows are soft-mutable; nothing here is hard-deleted outside an admin purge

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
      or an alembic autogenerate runs
"""

from studio_sales.models.booking import Booking  # noqa: F401
from studio_sales.models.intro_run import IntroRun  # noqa: F401
from studio_sales.models.outside_sale import OutsideSale  # noqa: F401
from studio_sales.models.follow_up_item import FollowUpQueueItem  # noqa: F401
from studio_sales.models.ledger_entry import MonthlyCountEntry  # noqa: F401
from studio_sales.models.referral import Referral  # noqa: F401
from studio_sales.models.audit_run import AuditRun  # noqa: F401
from studio_sales.models.outcome_event import OutcomeEvent  # noqa: F401
