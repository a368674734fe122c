"""ORM Models — SQLAlchemy declarative models for all ledger entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Group is the aggregate root; every ledger entity is scoped by group_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs (ADR: standard SQLAlchemy pattern)
"""

from app.models.user import User  # noqa: F401
from app.models.group import Group  # noqa: F401
from app.models.member import Member  # noqa: F401
from app.models.expense import Expense  # noqa: F401
from app.models.split import Split  # noqa: F401
from app.models.settlement import Settlement  # noqa: F401
from app.models.invitation import Invitation  # noqa: F401
from app.models.notification import Notification  # noqa: F401
