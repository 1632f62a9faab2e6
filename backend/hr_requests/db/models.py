from __future__ import annotations

from datetime import datetime, date
from sqlalchemy import (
    String,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from hr_requests.core.time import utcnow


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


# --- Request aggregate ---
class Request(Base):
    """
    Employee-submitted request (leave, financial advance, administrative).

    `status` and `version` only change through the transition path of the
    request store; the child collections are append-only.
    """
    __tablename__ = "requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    employee_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    request_type: Mapped[str] = mapped_column(String, index=True, nullable=False)
    priority: Mapped[str] = mapped_column(String(16), default="medium", nullable=False)  # low|medium|high
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    amount: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(String(32), index=True, default="pending", nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    submission_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True, nullable=False
    )

    attachments: Mapped[list["RequestAttachment"]] = relationship(
        "RequestAttachment",
        order_by="RequestAttachment.position",
        lazy="selectin",
        passive_deletes=True,
    )
    comments: Mapped[list["RequestComment"]] = relationship(
        "RequestComment",
        order_by="RequestComment.position",
        lazy="selectin",
        passive_deletes=True,
    )
    history: Mapped[list["RequestHistoryEntry"]] = relationship(
        "RequestHistoryEntry",
        order_by="RequestHistoryEntry.position",
        lazy="selectin",
        passive_deletes=True,
    )


class RequestAttachment(Base):
    """
    Metadata for an uploaded file; the bytes live in external file storage.
    """
    __tablename__ = "request_attachments"
    __table_args__ = (UniqueConstraint("request_id", "position", name="uq_request_attachments_position"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    request_id: Mapped[str] = mapped_column(ForeignKey("requests.id", ondelete="CASCADE"), index=True, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    file_name: Mapped[str] = mapped_column(String, nullable=False)
    file_path: Mapped[str] = mapped_column(String, nullable=False)
    file_type: Mapped[str | None] = mapped_column(String, nullable=True)


class RequestComment(Base):
    """
    Threaded comment on a request.
    """
    __tablename__ = "request_comments"
    __table_args__ = (UniqueConstraint("request_id", "position", name="uq_request_comments_position"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    request_id: Mapped[str] = mapped_column(ForeignKey("requests.id", ondelete="CASCADE"), index=True, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    author: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RequestHistoryEntry(Base):
    """
    Audit trail entry; one per submission and one per accepted transition.
    """
    __tablename__ = "request_history"
    __table_args__ = (UniqueConstraint("request_id", "position", name="uq_request_history_position"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    request_id: Mapped[str] = mapped_column(ForeignKey("requests.id", ondelete="CASCADE"), index=True, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    action: Mapped[str] = mapped_column(String, nullable=False)
    author: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# --- Notifications ---
class Notification(Base):
    """
    One-way informational record. Refers to requests only through its text.
    """
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    recipient_user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)

    title: Mapped[str] = mapped_column(String, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String, default="default", nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
