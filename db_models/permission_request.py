# db_models/permission_request.py
from datetime import datetime
from enum import Enum

from sqlalchemy import String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db_base import Base
from db_models.user import User


class RequestStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    DENIED = "Denied"


class PermissionRequest(Base):
    __tablename__ = "permission_requests"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    requester_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    target_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
    )

    requested_permission: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        default=RequestStatus.PENDING.value,
        server_default=RequestStatus.PENDING.value,
    )

    # Review (set exactly once)
    reviewed_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    review_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )

    requester: Mapped[User] = relationship(
        "User",
        foreign_keys=[requester_id],
        lazy="joined",
    )
    target_user: Mapped[User | None] = relationship(
        "User",
        foreign_keys=[target_user_id],
        lazy="joined",
    )

    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    @property
    def requester_username(self) -> str | None:
        return self.requester.username if self.requester is not None else None

    @property
    def target_username(self) -> str | None:
        return self.target_user.username if self.target_user is not None else None
