from datetime import UTC, datetime

from role_tracker.core.models import ChatMessage
from role_tracker.core.reconcile import (
    IdentityLink,
    extract_links,
    newest_claim_per_author,
    oldest_claim_per_id,
    reconcile_messages,
)

USR_X = "usr_11111111-1111-1111-1111-111111111111"
USR_Y = "usr_22222222-2222-2222-2222-222222222222"


def ts(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=UTC)


def msg(author: str, content: str, t: int, mid: str = "0") -> ChatMessage:
    return ChatMessage(id=mid, author_id=author, content=content, timestamp=ts(t))


def link(vrc_id: str, author: str, t: int, mid: int) -> IdentityLink:
    return IdentityLink(vrc_id=vrc_id, author_id=author, timestamp=ts(t), message_id=mid)


def test_single_claim_maps_to_roles():
    roster = {"alice": ["roleA"]}
    result = reconcile_messages([msg("alice", f"me: {USR_X}", 1)], roster)
    assert result == {USR_X: frozenset({"roleA"})}


def test_oldest_claim_on_same_id_wins():
    roster = {"alice": ["roleA"], "bob": ["roleB"]}
    messages = [msg("bob", USR_X, 2), msg("alice", USR_X, 1)]
    assert reconcile_messages(messages, roster) == {USR_X: frozenset({"roleA"})}


def test_newest_claim_per_author_wins():
    roster = {"alice": ["roleA"]}
    messages = [msg("alice", USR_X, 1), msg("alice", USR_Y, 2)]
    assert reconcile_messages(messages, roster) == {USR_Y: frozenset({"roleA"})}


def test_messages_without_ids_are_ignored():
    roster = {"alice": ["roleA"]}
    messages = [msg("alice", USR_X, 1), msg("alice", "no id here, just chatting", 5)]
    assert reconcile_messages(messages, roster) == {USR_X: frozenset({"roleA"})}


def test_author_missing_from_roster_is_dropped():
    roster = {"alice": ["roleA"]}
    messages = [msg("alice", USR_X, 1), msg("ghost", USR_Y, 1)]
    assert reconcile_messages(messages, roster) == {USR_X: frozenset({"roleA"})}


def test_dropped_winner_does_not_hand_id_to_later_claimant():
    # alice claimed first but left the server; bob may not take the id over.
    roster = {"bob": ["roleB"]}
    messages = [msg("alice", USR_X, 1), msg("bob", USR_X, 2)]
    assert reconcile_messages(messages, roster) == {}


def test_equal_timestamps_break_ties_by_snowflake():
    links = [link(USR_Y, "alice", 5, 11), link(USR_X, "alice", 5, 10)]
    assert newest_claim_per_author(links)["alice"].vrc_id == USR_Y

    claims = [link(USR_X, "bob", 5, 11), link(USR_X, "alice", 5, 10)]
    assert oldest_claim_per_id(claims)[USR_X].author_id == "alice"
    assert oldest_claim_per_id(list(reversed(claims)))[USR_X].author_id == "alice"


def test_newest_first_history_with_equal_timestamps():
    # Discord lists history newest first; the later message still wins.
    roster = {"alice": ["roleA"]}
    messages = [msg("alice", USR_Y, 5, mid="11"), msg("alice", USR_X, 5, mid="10")]
    assert reconcile_messages(messages, roster) == {USR_Y: frozenset({"roleA"})}

    roster = {"alice": ["roleA"], "bob": ["roleB"]}
    messages = [msg("bob", USR_X, 5, mid="11"), msg("alice", USR_X, 5, mid="10")]
    assert reconcile_messages(messages, roster) == {USR_X: frozenset({"roleA"})}


def test_extract_links_records_snowflakes():
    messages = [
        msg("a", "hi", 1, mid="7"),
        msg("b", USR_X, 2, mid="8"),
        msg("c", USR_Y.upper(), 3, mid="9"),
    ]
    links = extract_links(messages)
    assert [(l.author_id, l.message_id) for l in links] == [("b", 8)]


def test_result_is_ordered_by_claim_time():
    roster = {"alice": ["r"], "bob": ["r"]}
    messages = [msg("bob", USR_Y, 9), msg("alice", USR_X, 3)]
    assert list(reconcile_messages(messages, roster)) == [USR_X, USR_Y]
