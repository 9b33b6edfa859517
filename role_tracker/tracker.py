"""Sequential collection run that produces one :class:`TrackedData` snapshot.

Every upstream call is awaited one at a time and followed by a fixed pacing
delay.  A stop request is honoured between servers, groups, users and
worlds, never in the middle of a call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from .adapters.base import ChatAdapter, VrcAdapter
from .config import Settings
from .core.directory import Membership, RoleContext, aggregate
from .core.models import (
    ChatGuild,
    ChatMessage,
    ChatRole,
    VrcGroupMember,
    VrcUser,
    VrcWorld,
)
from .core.reconcile import reconcile_messages
from .core.snapshot import TrackedData, assemble_snapshot
from .errors import ConfigError, Interrupted, MembershipError, UpstreamError
from .utils import wait_seconds

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class LinkedServer:
    """A Discord server with its reconciled VRChat id to role id map."""

    guild: ChatGuild
    roles: dict[str, ChatRole]
    links: dict[str, frozenset[str]] = field(default_factory=dict)


class RoleTracker:
    """Collect both directories and assemble the snapshot."""

    def __init__(
        self,
        settings: Settings,
        vrc: VrcAdapter,
        chat: ChatAdapter | None = None,
        sleep: Sleep = wait_seconds,
        stop: asyncio.Event | None = None,
    ) -> None:
        if settings.use_discord and chat is None:
            raise ConfigError("Discord servers are configured but no chat adapter given")
        self.settings = settings
        self.vrc = vrc
        self.chat = chat
        self.sleep = sleep
        self.stop = stop or asyncio.Event()

    def _check_stop(self) -> None:
        if self.stop.is_set():
            raise Interrupted("Stop requested, no snapshot written")

    async def run(self) -> TrackedData:
        servers = await self.collect_chat_servers()

        log.info("Logging in...")
        me = await self.vrc.login(
            self.settings.username, self.settings.password, self.settings.totp_key
        )
        log.info("Logged in as %s", me.display_name)

        groups = await self.collect_groups(me)
        server_contexts = await self.resolve_chat_servers(servers)
        worlds = await self.collect_worlds()

        directory, projected_groups, projected_servers = aggregate(
            groups, server_contexts
        )
        log.info("Tracked display names: %d", len(directory))
        return assemble_snapshot(directory, projected_groups, projected_servers, worlds)

    # ------------------------------------------------------------------
    # Discord
    # ------------------------------------------------------------------
    async def collect_chat_servers(self) -> list[LinkedServer]:
        if not self.settings.use_discord or self.chat is None:
            log.info("Skipping Discord Integration...")
            return []

        servers: list[LinkedServer] = []
        pace = self.settings.chat_pace_seconds
        for server_id, channel_id in self.settings.server_channels():
            self._check_stop()
            log.info("Getting Discord Users from server %s...", server_id)
            guild = await self.chat.get_guild(server_id)
            await self.sleep(pace)
            roles = await self.chat.list_roles(server_id)
            await self.sleep(pace)
            members = await self.chat.list_members(server_id)
            await self.sleep(pace)
            log.info("Got Discord Users: %d", len(members))

            log.info(
                "Getting VRC-Discord connections from server %s channel %s...",
                server_id,
                channel_id,
            )
            messages = await self.fetch_messages(channel_id)
            roster = {m.id: m.role_ids for m in members}
            links = reconcile_messages(messages, roster)
            log.info("Got VRC-Discord connections: %d", len(links))

            servers.append(
                LinkedServer(guild=guild, roles={r.id: r for r in roles}, links=links)
            )
        return servers

    async def fetch_messages(self, channel_id: str) -> list[ChatMessage]:
        """List a channel's messages, retrying the whole listing on failure."""
        assert self.chat is not None
        attempts = self.settings.message_attempts
        for attempt in range(1, attempts + 1):
            try:
                messages = await self.chat.list_messages(channel_id)
            except UpstreamError as exc:
                log.warning(
                    "Getting messages failed (%s), retrying (%d/%d)...",
                    exc,
                    attempt,
                    attempts,
                )
                if attempt < attempts:
                    await self.sleep(self.settings.message_retry_seconds)
                continue
            await self.sleep(self.settings.chat_pace_seconds)
            return messages
        raise UpstreamError(
            f"Getting messages from channel {channel_id} failed after {attempts} attempts"
        )

    async def resolve_chat_servers(
        self, servers: list[LinkedServer]
    ) -> list[RoleContext]:
        """Look up the display name behind every linked VRChat id."""
        if servers:
            log.info("Getting Discord Users...")
        contexts: list[RoleContext] = []
        for server in servers:
            members: list[Membership] = []
            observed: dict[str, ChatRole] = {}
            for vrc_id, role_ids in server.links.items():
                self._check_stop()
                user = await self.vrc.get_user(vrc_id)
                await self.sleep(self.settings.vrc_pace_seconds)
                members.append(Membership(user.display_name, role_ids))
                for role_id in sorted(role_ids):
                    role = server.roles.get(role_id)
                    if role is None:
                        log.debug(
                            "Unknown role %s on server %s", role_id, server.guild.id
                        )
                        continue
                    observed.setdefault(role_id, role)
            contexts.append(
                RoleContext(
                    context_id=server.guild.id,
                    name=server.guild.name,
                    roles=list(observed.values()),
                    members=members,
                )
            )
        return contexts

    # ------------------------------------------------------------------
    # VRChat
    # ------------------------------------------------------------------
    async def collect_groups(self, me: VrcUser) -> list[RoleContext]:
        contexts: list[RoleContext] = []
        pace = self.settings.vrc_pace_seconds
        for group_id in self.settings.group_ids:
            self._check_stop()
            group = await self.vrc.get_group(group_id)
            await self.sleep(pace)
            log.info("Got Group %s, Members: %d", group.name, group.member_count)
            if group.my_member is None:
                raise MembershipError(
                    f"User must be a member of the group {group.name} ({group_id})!"
                )

            log.info("Getting Group Members...")
            members: list[VrcGroupMember] = []
            # The listing leaves out the logged in user, who is added below.
            while len(members) < group.member_count - 1:
                self._check_stop()
                page = await self.vrc.list_group_members(
                    group_id, offset=len(members), count=self.settings.group_page_size
                )
                await self.sleep(pace)
                if not page:
                    break
                members.extend(page)
                log.debug("%d", len(members))

            log.info("Getting Self...")
            members.append(VrcGroupMember(user=me, role_ids=group.my_member.role_ids))
            log.info("Got Group Members: %d", len(members))

            log.info("Getting Group Roles...")
            roles = await self.vrc.list_group_roles(group_id)
            await self.sleep(pace)
            log.info("Got Group Roles: %d", len(roles))

            contexts.append(
                RoleContext(
                    context_id=group.id,
                    name=group.name,
                    roles=roles,
                    members=[
                        Membership(m.display_name, frozenset(m.role_ids)) for m in members
                    ],
                )
            )
        return contexts

    async def collect_worlds(self) -> list[VrcWorld]:
        worlds: list[VrcWorld] = []
        for world_id in self.settings.world_ids:
            self._check_stop()
            world = await self.vrc.get_world(world_id)
            await self.sleep(self.settings.vrc_pace_seconds)
            log.info("Got World %s, Visits: %d", world.name, world.visits)
            worlds.append(world)
        return worlds
