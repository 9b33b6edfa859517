"""Turn a channel's message history into VRChat id to Discord role maps.

People link their accounts by posting their VRChat user id in a dedicated
channel.  Two rules keep those claims honest:

* an author may change their linked id, so their **newest** claim wins;
* an id already claimed by someone cannot be taken over, so among several
  authors claiming the same id the **oldest** claim wins.

The rules are deliberately asymmetric and each lives in its own pass below
so the policy can be checked on its own.  Ties on equal timestamps are
broken by the message snowflake, which grows with send time whatever order
the history was listed in: for the newest claim the larger snowflake wins,
for the oldest claim the smaller one does.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from .identity import extract_vrc_id

log = logging.getLogger(__name__)


class MessageLike(Protocol):
    id: str
    author_id: str
    content: str
    timestamp: datetime


@dataclass(frozen=True)
class IdentityLink:
    vrc_id: str
    author_id: str
    timestamp: datetime
    message_id: int

    @property
    def order_key(self) -> tuple[datetime, int]:
        return (self.timestamp, self.message_id)


def extract_links(messages: Iterable[MessageLike]) -> list[IdentityLink]:
    """Return one link per message that carries a valid VRChat id."""
    links: list[IdentityLink] = []
    for message in messages:
        vrc_id = extract_vrc_id(message.content)
        if vrc_id is None:
            continue
        links.append(
            IdentityLink(
                vrc_id=vrc_id,
                author_id=message.author_id,
                timestamp=message.timestamp,
                message_id=int(message.id),
            )
        )
    return links


def newest_claim_per_author(links: Iterable[IdentityLink]) -> dict[str, IdentityLink]:
    """Keep the most recent link of every author."""
    claims: dict[str, IdentityLink] = {}
    for link in links:
        current = claims.get(link.author_id)
        if current is None or link.order_key > current.order_key:
            claims[link.author_id] = link
    return claims


def oldest_claim_per_id(claims: Iterable[IdentityLink]) -> dict[str, IdentityLink]:
    """Keep the earliest claim of every VRChat id."""
    winners: dict[str, IdentityLink] = {}
    for link in claims:
        current = winners.get(link.vrc_id)
        if current is None:
            winners[link.vrc_id] = link
            continue
        if link.order_key < current.order_key:
            keep, drop = link, current
        else:
            keep, drop = current, link
        log.debug(
            "Claim on %s by %s loses to %s", drop.vrc_id, drop.author_id, keep.author_id
        )
        winners[link.vrc_id] = keep
    return winners


def reconcile_messages(
    messages: Sequence[MessageLike],
    roster: Mapping[str, Iterable[str]],
) -> dict[str, frozenset[str]]:
    """Map every surviving VRChat id to the role ids of its Discord author.

    ``roster`` maps Discord user ids to the role ids they hold.  Claims made
    by authors missing from the roster (for example, people who left the
    server) are dropped.
    """
    claims = newest_claim_per_author(extract_links(messages))
    winners = oldest_claim_per_id(claims.values())

    result: dict[str, frozenset[str]] = {}
    for link in sorted(winners.values(), key=lambda l: l.order_key):
        roles = roster.get(link.author_id)
        if roles is None:
            log.debug("Author %s is no longer in the roster", link.author_id)
            continue
        result[link.vrc_id] = frozenset(roles)
    return result
