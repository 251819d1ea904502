"""User service: all /userservice.UserService/* operations.

Only the read operations have defined behaviour. Every administrative
operation over users, groups and ranks answers ``unimplemented`` without
reading its request or touching the store.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog
from fastapi import APIRouter, Depends

from viewerledger.api.dependencies import get_store
from viewerledger.database import Store
from viewerledger.errors import Internal, NotFound, StoreError, Unimplemented
from viewerledger.users import repository
from viewerledger.users.repository import UserQuery
from viewerledger.users.schemas import UserById, UserFilters, UsersResponse, UserView

logger = structlog.get_logger()

router = APIRouter(prefix="/userservice.UserService", tags=["UserService"])

UNIMPLEMENTED_OPERATIONS = (
    "CreateUser",
    "UpdateUser",
    "UpdateUsers",
    "DeleteUser",
    "DeleteUsers",
    "UserHasPermission",
    "GetGroups",
    "CreateGroup",
    "UpdateGroup",
    "UpdateGroups",
    "DeleteGroup",
    "DeleteGroups",
    "GetRanks",
    "CreateRank",
    "UpdateRank",
    "UpdateRanks",
    "DeleteRank",
    "DeleteRanks",
)


@router.post("/GetUserById", response_model=UserView)
async def get_user_by_id(
    body: UserById,
    store: Store = Depends(get_store),  # noqa: B008
) -> UserView:
    """Look a user up by channel id."""
    try:
        async with store.acquire() as db:
            user = await repository.load(db, body.channel_id)
            view = await repository.to_view(db, user) if user is not None else None
    except StoreError as exc:
        logger.error("get_user_failed", channel_id=body.channel_id, error=str(exc))
        raise Internal("Failed to load user") from exc

    if view is None:
        raise NotFound("User not found")
    return view


@router.post("/FilterUsers", response_model=UsersResponse)
async def filter_users(
    body: UserFilters,
    store: Store = Depends(get_store),  # noqa: B008
) -> UsersResponse:
    """List users matching every filter, in the requested order."""
    query = UserQuery().order_by(body.sorting)
    for user_filter in body.filters:
        query.where(user_filter)

    try:
        async with store.acquire() as db:
            users = await query.all(db)
            views = [await repository.to_view(db, user) for user in users]
    except StoreError as exc:
        logger.error("filter_users_failed", filters=len(body.filters), sorting=body.sorting.value, error=str(exc))
        raise Internal("Failed to load users") from exc

    return UsersResponse(users=views, count=len(views))


def _unimplemented(operation: str) -> Callable[[], Awaitable[None]]:
    async def endpoint() -> None:
        raise Unimplemented(f"{operation} is not implemented")

    endpoint.__name__ = f"unimplemented_{operation}"
    return endpoint


for _operation in UNIMPLEMENTED_OPERATIONS:
    router.add_api_route(
        f"/{_operation}",
        _unimplemented(_operation),
        methods=["POST"],
        name=_operation,
        status_code=501,
    )
