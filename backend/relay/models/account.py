"""Account ORM — identity name and role, owned by the identity service.

Invariants:
    - username is unique; lookups are case-insensitive
    - role holds a Role value ("ordinary" | "privileged"); legacy labels are
      tolerated on read via Role parsing

Design Decisions:
    - No credential columns here: password hashes and reset codes live with the
      identity service, the relay only needs name → role
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from relay.db.base import Base


class Account(Base):
    """One participant known to the identity system."""
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    username: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="ordinary",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
