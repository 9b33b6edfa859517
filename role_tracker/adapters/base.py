"""Base adapter interfaces for the two upstream platforms."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from ..core.models import (
    ChatGuild,
    ChatMember,
    ChatMessage,
    ChatRole,
    VrcGroup,
    VrcGroupMember,
    VrcGroupRole,
    VrcUser,
    VrcWorld,
)
from ..errors import UpstreamError


@contextmanager
def payload_errors(source: str) -> Iterator[None]:
    """Report a response body that does not have the expected shape.

    Undecodable JSON and pydantic validation failures are both
    :class:`ValueError`; missing keys and wrong container types surface as
    the other three.
    """
    try:
        yield
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise UpstreamError(f"{source} returned an unexpected payload: {exc}") from exc


class ChatAdapter(ABC):
    """Abstract adapter for the chat platform holding identity links."""

    @abstractmethod
    async def get_guild(self, guild_id: str) -> ChatGuild:
        """Return the server ``guild_id``."""

    @abstractmethod
    async def list_roles(self, guild_id: str) -> list[ChatRole]:
        """Return every role defined on the server."""

    @abstractmethod
    async def list_members(self, guild_id: str) -> list[ChatMember]:
        """Return every member of the server with their role ids."""

    @abstractmethod
    async def list_messages(self, channel_id: str) -> list[ChatMessage]:
        """Return the message history of ``channel_id``."""

    async def close(self) -> None:
        """Release any held connections."""


class VrcAdapter(ABC):
    """Abstract adapter for the VR platform directory."""

    @abstractmethod
    async def login(self, username: str, password: str, totp_key: str) -> VrcUser:
        """Authenticate and return the logged in user."""

    @abstractmethod
    async def get_group(self, group_id: str) -> VrcGroup:
        """Return group details including the caller's own membership."""

    @abstractmethod
    async def list_group_members(
        self, group_id: str, offset: int, count: int
    ) -> list[VrcGroupMember]:
        """Return one page of group members."""

    @abstractmethod
    async def list_group_roles(self, group_id: str) -> list[VrcGroupRole]:
        """Return the role definitions of a group."""

    @abstractmethod
    async def get_user(self, user_id: str) -> VrcUser:
        """Look up a user by id."""

    @abstractmethod
    async def get_world(self, world_id: str) -> VrcWorld:
        """Look up a world by id."""

    async def close(self) -> None:
        """Release any held connections."""
