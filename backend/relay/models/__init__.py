"""ORM Models — SQLAlchemy declarative models read by the relay.

Invariants:
    - All models inherit from Base (db/base.py)

Design Decisions:
    - All models imported here so Base.metadata is complete before create_all
      or alembic autogenerate runs
"""

from relay.models.account import Account  # noqa: F401
