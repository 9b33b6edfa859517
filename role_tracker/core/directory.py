"""Canonical user directory shared by every group and server.

Display names are the only key both platforms agree on, so every group and
server membership is expressed as a list of positions in one sorted,
deduplicated list of names.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

NOT_FOUND = -1


class RoleDefinition(Protocol):
    id: str
    name: str

    @property
    def is_admin(self) -> bool: ...

    @property
    def is_moderator(self) -> bool: ...


@dataclass(frozen=True)
class Membership:
    display_name: str
    role_ids: frozenset[str] = frozenset()


@dataclass
class RoleContext:
    """A VRChat group or Discord server whose roles are tracked."""

    context_id: str
    name: str
    roles: Sequence[RoleDefinition] = ()
    members: Sequence[Membership] = ()


@dataclass
class ProjectedRole:
    name: str
    is_admin: bool
    is_moderator: bool
    users: list[int] = field(default_factory=list)


@dataclass
class ProjectedContext:
    context_id: str
    name: str
    users: list[int] = field(default_factory=list)
    roles: dict[str, ProjectedRole] = field(default_factory=dict)


class Directory:
    """Sorted, deduplicated display names and their canonical indices."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names: tuple[str, ...] = tuple(sorted(set(names)))
        self._positions = {name: index for index, name in enumerate(self.names)}

    @classmethod
    def build(cls, contexts: Iterable[RoleContext]) -> Directory:
        """Collect the member names of every context."""
        return cls(m.display_name for c in contexts for m in c.members)

    def __len__(self) -> int:
        return len(self.names)

    def index_of(self, name: str) -> int:
        return self._positions.get(name, NOT_FOUND)

    def indices(self, names: Iterable[str]) -> list[int]:
        """Canonical indices of ``names`` in first-seen order.

        Unknown names are skipped and repeated names appear once.
        """
        seen: set[int] = set()
        result: list[int] = []
        for name in names:
            index = self.index_of(name)
            if index == NOT_FOUND or index in seen:
                continue
            seen.add(index)
            result.append(index)
        return result

    def project(self, context: RoleContext) -> ProjectedContext:
        """Express ``context`` memberships as canonical indices."""
        projected = ProjectedContext(
            context_id=context.context_id,
            name=context.name,
            users=self.indices(m.display_name for m in context.members),
        )
        for role in context.roles:
            holders = (m.display_name for m in context.members if role.id in m.role_ids)
            projected.roles[role.id] = ProjectedRole(
                name=role.name,
                is_admin=role.is_admin,
                is_moderator=role.is_moderator,
                users=self.indices(holders),
            )
        return projected


def aggregate(
    groups: Sequence[RoleContext],
    servers: Sequence[RoleContext],
) -> tuple[Directory, list[ProjectedContext], list[ProjectedContext]]:
    """Build one directory for all contexts and project each onto it."""
    directory = Directory.build([*groups, *servers])
    return (
        directory,
        [directory.project(g) for g in groups],
        [directory.project(s) for s in servers],
    )
