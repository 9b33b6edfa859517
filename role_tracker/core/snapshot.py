"""The persisted snapshot document.

Property names are camelCase and any field still holding its default value
is left out of the JSON, which keeps the file small for large groups.
Dictionary entries are always written, so an empty role still shows up
under its id.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .directory import Directory, ProjectedContext
from .models import VrcWorld


class _Tracked(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class TrackedRole(_Tracked):
    name: str = ""
    is_admin: bool = False
    is_moderator: bool = False
    vrc_users: list[int] = []


class TrackedGroup(_Tracked):
    name: str = ""
    vrc_users: list[int] = []
    roles: dict[str, TrackedRole] = {}


class TrackedServer(_Tracked):
    name: str = ""
    vrc_users: list[int] = []
    roles: dict[str, TrackedRole] = {}


class TrackedWorld(_Tracked):
    name: str = ""
    visits: int = 0
    favorites: int = 0
    occupants: int = 0


class TrackedData(_Tracked):
    vrc_user_display_names: list[str] = []
    vrc_groups_by_id: dict[str, TrackedGroup] = {}
    discord_servers_by_id: dict[str, TrackedServer] = {}
    vrc_worlds_by_id: dict[str, TrackedWorld] = {}

    def display_names(self, indices: Iterable[int]) -> list[str]:
        """Translate canonical indices back into display names."""
        return [self.vrc_user_display_names[i] for i in indices]


def _roles(context: ProjectedContext) -> dict[str, TrackedRole]:
    return {
        role_id: TrackedRole(
            name=role.name,
            is_admin=role.is_admin,
            is_moderator=role.is_moderator,
            vrc_users=role.users,
        )
        for role_id, role in context.roles.items()
    }


def assemble_snapshot(
    directory: Directory,
    groups: Iterable[ProjectedContext],
    servers: Iterable[ProjectedContext],
    worlds: Iterable[VrcWorld] = (),
) -> TrackedData:
    """Shape the aggregated directory into the persisted document."""
    return TrackedData(
        vrc_user_display_names=list(directory.names),
        vrc_groups_by_id={
            g.context_id: TrackedGroup(name=g.name, vrc_users=g.users, roles=_roles(g))
            for g in groups
        },
        discord_servers_by_id={
            s.context_id: TrackedServer(name=s.name, vrc_users=s.users, roles=_roles(s))
            for s in servers
        },
        vrc_worlds_by_id={
            w.id: TrackedWorld(
                name=w.name,
                visits=w.visits,
                favorites=w.favorites,
                occupants=w.occupants,
            )
            for w in worlds
        },
    )


def serialize_snapshot(data: TrackedData, indent: int | None = None) -> str:
    return data.model_dump_json(by_alias=True, exclude_defaults=True, indent=indent)


def parse_snapshot(text: str) -> TrackedData:
    return TrackedData.model_validate_json(text)
