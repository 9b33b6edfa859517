"""Data models for the records pulled from VRChat and Discord.

The models are implemented using :mod:`pydantic` so that API payloads are
validated on the way in.  VRChat responds with camelCase keys which the
shared alias generator maps onto the snake_case attributes; Discord records
are flattened by small ``from_api`` constructors since their payloads nest
the interesting fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import discord
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

VRC_GROUP_OWNER = "*"
VRC_GROUP_MODERATOR = "group-instance-moderate"


class _VrcModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VrcUser(_VrcModel):
    """A VRChat user as returned by ``/users/{id}`` or ``/auth/user``."""

    id: str
    display_name: str


class VrcGroupMyMember(_VrcModel):
    """The logged in user's own membership of a group."""

    user_id: str = ""
    role_ids: list[str] = Field(default_factory=list)


class VrcGroup(_VrcModel):
    id: str
    name: str
    member_count: int = 0
    my_member: VrcGroupMyMember | None = None


class VrcGroupMember(_VrcModel):
    """Represents one entry of a group's member listing.

    Attributes
    ----------
    user:
        The member's id and display name.
    role_ids:
        Identifiers of the group roles the member holds.

    """

    user: VrcUser
    role_ids: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.user.display_name


class VrcGroupRole(_VrcModel):
    id: str
    name: str
    permissions: list[str] = Field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return VRC_GROUP_OWNER in self.permissions

    @property
    def is_moderator(self) -> bool:
        return self.is_admin or VRC_GROUP_MODERATOR in self.permissions


class VrcWorld(_VrcModel):
    id: str
    name: str
    visits: int = 0
    favorites: int = 0
    occupants: int = 0


class ChatGuild(BaseModel):
    """A Discord server."""

    id: str
    name: str


class ChatRole(BaseModel):
    """A Discord role with its raw permission bitfield."""

    id: str
    name: str
    permissions: int = 0

    @property
    def is_admin(self) -> bool:
        return discord.Permissions(self.permissions).administrator

    @property
    def is_moderator(self) -> bool:
        return self.is_admin or discord.Permissions(self.permissions).moderate_members


class ChatMember(BaseModel):
    id: str
    role_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any], guild_id: str) -> ChatMember:
        """Build a member from a guild member payload.

        The guild id is prepended to the role ids since every member holds
        the ``@everyone`` role, which Discord does not list explicitly.
        """
        roles = [guild_id, *(str(r) for r in data.get("roles", []))]
        return cls(id=str(data["user"]["id"]), role_ids=roles)


class ChatMessage(BaseModel):
    id: str = Field(pattern=r"^\d+$")  # snowflake, orders messages by send time
    author_id: str
    content: str = ""
    timestamp: datetime

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ChatMessage:
        return cls(
            id=str(data["id"]),
            author_id=str(data["author"]["id"]),
            content=data.get("content") or "",
            timestamp=data["timestamp"],
        )
