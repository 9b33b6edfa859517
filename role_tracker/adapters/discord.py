"""Discord adapter implementing :class:`~role_tracker.adapters.base.ChatAdapter`.

The adapter only reads guild, role, member and message data.  It uses
:mod:`httpx` to talk to Discord's HTTP API directly since a one-shot run has
no use for a gateway connection.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..core.models import ChatGuild, ChatMember, ChatMessage, ChatRole
from ..errors import UpstreamError
from .base import ChatAdapter, payload_errors

MEMBER_PAGE_SIZE = 1000
MESSAGE_PAGE_SIZE = 100
DEFAULT_MAX_MESSAGES = 100_000


class DiscordAdapter(ChatAdapter):
    """Adapter that sends requests directly to the Discord HTTP API."""

    api_base = "https://discord.com/api/v10"

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient | None = None,
        max_messages: int = DEFAULT_MAX_MESSAGES,
    ) -> None:
        """Store authentication ``token`` and optional HTTP ``client``."""
        self.token = token
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self.max_messages = max_messages

    # ------------------------------------------------------------------
    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.api_base}{path}"
        headers = {"Authorization": f"Bot {self.token}"}
        try:
            response = await self.client.get(url, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                f"Discord request {path} failed", exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Discord request {path} failed: {exc}") from exc
        with payload_errors(f"Discord request {path}"):
            return response.json()

    # ------------------------------------------------------------------
    async def get_guild(self, guild_id: str) -> ChatGuild:
        path = f"/guilds/{guild_id}"
        data = await self._get(path)
        with payload_errors(f"Discord request {path}"):
            return ChatGuild(id=str(data["id"]), name=data["name"])

    async def list_roles(self, guild_id: str) -> list[ChatRole]:
        path = f"/guilds/{guild_id}/roles"
        data = await self._get(path)
        with payload_errors(f"Discord request {path}"):
            return [ChatRole.model_validate(role) for role in data]

    async def list_members(self, guild_id: str) -> list[ChatMember]:
        """Return all guild members, following ``after`` pagination.

        Requires the bot to have the server members intent enabled.
        """
        path = f"/guilds/{guild_id}/members"
        members: list[ChatMember] = []
        after = "0"
        while True:
            page = await self._get(path, params={"limit": MEMBER_PAGE_SIZE, "after": after})
            with payload_errors(f"Discord request {path}"):
                members.extend(ChatMember.from_api(m, guild_id) for m in page)
                if len(page) < MEMBER_PAGE_SIZE:
                    return members
                after = str(page[-1]["user"]["id"])

    async def list_messages(self, channel_id: str) -> list[ChatMessage]:
        """Return up to ``max_messages`` messages, newest first.

        Parameters
        ----------
        channel_id:
            Identifier of the Discord channel.

        """
        path = f"/channels/{channel_id}/messages"
        messages: list[ChatMessage] = []
        before: str | None = None
        while len(messages) < self.max_messages:
            limit = min(MESSAGE_PAGE_SIZE, self.max_messages - len(messages))
            params: dict[str, Any] = {"limit": limit}
            if before is not None:
                params["before"] = before
            page = await self._get(path, params=params)
            with payload_errors(f"Discord request {path}"):
                messages.extend(ChatMessage.from_api(m) for m in page)
                if len(page) < limit:
                    break
                before = str(page[-1]["id"])
        return messages

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
