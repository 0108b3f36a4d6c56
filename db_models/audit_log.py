# db_models/audit_log.py
from datetime import datetime

from sqlalchemy import String, Text, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db_base import Base
from db_models.user import User


class AuditLog(Base):
    """Append-only record of a security or business relevant action. Never updated or deleted."""
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    action: Mapped[str] = mapped_column(
        String(100),
        index=True,
        nullable=False,
    )
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Actor
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Affected record
    table_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    record_id: Mapped[int | None] = mapped_column(nullable=True)
    old_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        index=True,
        nullable=False,
        server_default=func.now(),
    )

    user: Mapped[User | None] = relationship("User", lazy="joined")

    @property
    def username(self) -> str | None:
        return self.user.username if self.user is not None else None
