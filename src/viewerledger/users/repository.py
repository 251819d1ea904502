"""Load/save primitives for users and the composable user query."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Select, select
from sqlalchemy import exists as sql_exists

from viewerledger.db.models import Group, GroupPermission, GroupUser, User, UserPermission
from viewerledger.users.schemas import GroupMember, GroupView, SortingField, UserFilter, UserView

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

# Fields a save may overwrite on an existing row; first_seen_at is immutable.
_MUTABLE_FIELDS = ("display_name", "hours_seconds", "hours_nanos", "money", "last_seen_at")

_ORDERINGS = {
    SortingField.HOURS_ASC: User.hours_seconds.asc(),
    SortingField.HOURS_DESC: User.hours_seconds.desc(),
    SortingField.MONEY_ASC: User.money.asc(),
    SortingField.MONEY_DESC: User.money.desc(),
}


async def exists(db: AsyncSession, channel_id: str) -> bool:
    result = await db.execute(select(sql_exists().where(User.channel_id == channel_id)))
    return bool(result.scalar())


async def load(db: AsyncSession, channel_id: str) -> User | None:
    """Return the persisted user, or None."""
    return await db.get(User, channel_id)


def create(
    channel_id: str,
    display_name: str,
    *,
    first_seen_at: datetime,
    last_seen_at: datetime,
    hours_seconds: int = 0,
    hours_nanos: int = 0,
    money: int = 0,
) -> User:
    """Build a new user in memory. Nothing is written until ``save``."""
    return User(
        channel_id=channel_id,
        display_name=display_name,
        hours_seconds=hours_seconds,
        hours_nanos=hours_nanos,
        money=money,
        first_seen_at=first_seen_at,
        last_seen_at=last_seen_at,
    )


async def save(db: AsyncSession, user: User) -> User:
    """Insert the user, or update every mutable field of the existing row.

    Saving the same value twice leaves the row unchanged. Returns the
    session-bound instance.
    """
    existing = await db.get(User, user.channel_id)
    if existing is None:
        db.add(user)
        await db.flush()
        return user

    if existing is not user:
        for field in _MUTABLE_FIELDS:
            setattr(existing, field, getattr(user, field))
    await db.flush()
    return existing


async def effective_permissions(db: AsyncSession, channel_id: str) -> set[str]:
    """Direct permissions of the user united with those of all its groups."""
    direct = select(UserPermission.permission).where(UserPermission.channel_id == channel_id)
    via_groups = (
        select(GroupPermission.permission)
        .join(GroupUser, GroupUser.group_id == GroupPermission.group_id)
        .where(GroupUser.channel_id == channel_id)
    )
    result = await db.execute(direct.union(via_groups))
    return set(result.scalars().all())


async def to_view(db: AsyncSession, user: User) -> UserView:
    """Project a user into its external shape, with groups and permissions.

    Issues one read per dimension: the user's groups, their members, their
    permissions and the user's effective permissions.
    """
    groups = (
        await db.execute(
            select(Group)
            .join(GroupUser, GroupUser.group_id == Group.id)
            .where(GroupUser.channel_id == user.channel_id)
            .order_by(Group.id)
        )
    ).scalars().all()
    group_ids = [group.id for group in groups]

    members: dict[int, list[GroupMember]] = defaultdict(list)
    group_permissions: dict[int, list[str]] = defaultdict(list)
    if group_ids:
        member_rows = await db.execute(
            select(GroupUser.group_id, User.channel_id, User.display_name)
            .join(User, User.channel_id == GroupUser.channel_id)
            .where(GroupUser.group_id.in_(group_ids))
            .order_by(GroupUser.group_id, User.channel_id)
        )
        for group_id, member_id, member_name in member_rows:
            members[group_id].append(GroupMember(channel_id=member_id, display_name=member_name))

        permission_rows = await db.execute(
            select(GroupPermission.group_id, GroupPermission.permission)
            .where(GroupPermission.group_id.in_(group_ids))
            .order_by(GroupPermission.group_id, GroupPermission.permission)
        )
        for group_id, permission in permission_rows:
            group_permissions[group_id].append(permission)

    return UserView(
        channel_id=user.channel_id,
        display_name=user.display_name,
        hours_seconds=user.hours_seconds,
        hours_nanos=user.hours_nanos,
        money=user.money,
        first_seen_at=user.first_seen_at,
        last_seen_at=user.last_seen_at,
        groups=[
            GroupView(
                id=group.id,
                name=group.name,
                permissions=group_permissions[group.id],
                users=members[group.id],
            )
            for group in groups
        ],
        permissions=sorted(await effective_permissions(db, user.channel_id)),
    )


class UserQuery:
    """Builder for a filtered, optionally sorted read over all users.

    Predicates accumulate and are AND-combined. At most one sort order
    applies; a later ``order_by`` replaces an earlier one.
    """

    def __init__(self) -> None:
        self._conditions: list = []
        self._sorting = SortingField.DEFAULT

    def where_channel_id(self, channel_id: str) -> UserQuery:
        self._conditions.append(User.channel_id == channel_id)
        return self

    def where_display_name(self, display_name: str) -> UserQuery:
        self._conditions.append(User.display_name == display_name)
        return self

    def where_hours_seconds(self, hours_seconds: int) -> UserQuery:
        self._conditions.append(User.hours_seconds == hours_seconds)
        return self

    def where_money(self, money: int) -> UserQuery:
        self._conditions.append(User.money == money)
        return self

    def where(self, user_filter: UserFilter) -> UserQuery:
        """Add the predicate carried by a request filter."""
        if user_filter.channel_id is not None:
            return self.where_channel_id(user_filter.channel_id)
        if user_filter.display_name is not None:
            return self.where_display_name(user_filter.display_name)
        if user_filter.hours_seconds is not None:
            return self.where_hours_seconds(user_filter.hours_seconds)
        if user_filter.money is not None:
            return self.where_money(user_filter.money)
        msg = "Empty user filter"
        raise ValueError(msg)

    def order_by(self, sorting: SortingField) -> UserQuery:
        self._sorting = sorting
        return self

    def statement(self) -> Select[tuple[User]]:
        stmt = select(User)
        if self._conditions:
            stmt = stmt.where(*self._conditions)
        ordering = _ORDERINGS.get(self._sorting)
        if ordering is not None:
            stmt = stmt.order_by(ordering)
        return stmt

    async def all(self, db: AsyncSession) -> list[User]:
        result = await db.execute(self.statement())
        return list(result.scalars().all())
