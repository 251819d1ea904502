"""Request/response schemas for the user service."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, Field, model_validator


class SortingField(str, Enum):
    DEFAULT = "default"
    HOURS_ASC = "hours_asc"
    HOURS_DESC = "hours_desc"
    MONEY_ASC = "money_asc"
    MONEY_DESC = "money_desc"


class GroupMember(BaseModel):
    """Shallow view of a user listed as a group member."""

    channel_id: str
    display_name: str


class GroupView(BaseModel):
    id: int
    name: str
    permissions: list[str] = Field(default_factory=list)
    users: list[GroupMember] = Field(default_factory=list)


class UserView(BaseModel):
    """Externally visible projection of a user."""

    channel_id: str
    display_name: str
    hours_seconds: int
    hours_nanos: int
    money: int
    first_seen_at: datetime
    last_seen_at: datetime
    groups: list[GroupView] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)


class UserById(BaseModel):
    channel_id: str


class UserFilter(BaseModel):
    """A single equality filter. Exactly one field must be set."""

    channel_id: str | None = None
    display_name: str | None = Field(default=None, validation_alias=AliasChoices("display_name", "name"))
    hours_seconds: int | None = Field(default=None, validation_alias=AliasChoices("hours_seconds", "hours"))
    money: int | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> UserFilter:
        provided = [name for name, value in self.model_dump().items() if value is not None]
        if len(provided) != 1:
            msg = f"A filter must set exactly one of channel_id, display_name, hours_seconds, money (got {provided})"
            raise ValueError(msg)
        return self


class UserFilters(BaseModel):
    filters: list[UserFilter] = Field(default_factory=list)
    sorting: SortingField = SortingField.DEFAULT


class UsersResponse(BaseModel):
    users: list[UserView]
    count: int
