"""ORM models for the ledger tables.

These map to the tables created by the ``001_initial_schema`` Alembic
revision. Timestamps are naive UTC.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from viewerledger.db.base import Base

NANOS_PER_SECOND = 1_000_000_000


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A chat participant and their watch-time / currency ledger."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("channel_id <> ''", name="ck_users_channel_id_not_empty"),
        CheckConstraint("hours_seconds >= 0", name="ck_users_hours_seconds_non_negative"),
        CheckConstraint(
            f"hours_nanos >= 0 AND hours_nanos < {NANOS_PER_SECOND}",
            name="ck_users_hours_nanos_range",
        ),
        CheckConstraint("money >= 0", name="ck_users_money_non_negative"),
        CheckConstraint("last_seen_at >= first_seen_at", name="ck_users_seen_order"),
    )

    channel_id: Mapped[str] = mapped_column(Text, primary_key=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    hours_seconds: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    hours_nanos: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    money: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return (
            f"User(channel_id={self.channel_id!r}, display_name={self.display_name!r}, "
            f"hours_seconds={self.hours_seconds}, hours_nanos={self.hours_nanos}, money={self.money})"
        )


# ---------------------------------------------------------------------------
# Groups and permissions
# ---------------------------------------------------------------------------


class Group(Base):
    """A named set of users sharing a set of permissions."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)


class GroupUser(Base):
    """Membership link between a user and a group."""

    __tablename__ = "group_users"

    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True
    )
    channel_id: Mapped[str] = mapped_column(
        Text, ForeignKey("users.channel_id", ondelete="CASCADE"), primary_key=True
    )


class GroupPermission(Base):
    """Permission granted to every member of a group."""

    __tablename__ = "group_permissions"

    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True
    )
    permission: Mapped[str] = mapped_column(String(128), primary_key=True)


class UserPermission(Base):
    """Permission granted directly to a single user."""

    __tablename__ = "user_permissions"

    channel_id: Mapped[str] = mapped_column(
        Text, ForeignKey("users.channel_id", ondelete="CASCADE"), primary_key=True
    )
    permission: Mapped[str] = mapped_column(String(128), primary_key=True)
