"""End-to-end tests for :func:`role_tracker.main.main` with stubbed adapters."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from role_tracker import main as main_mod
from role_tracker.adapters.base import VrcAdapter
from role_tracker.adapters.vrchat import VRChatAdapter
from role_tracker.core.models import VrcGroup, VrcGroupMyMember, VrcGroupRole, VrcUser
from role_tracker.errors import UpstreamError


class StubVrc(VrcAdapter):
    closed = False

    def __init__(self, *args, fail: bool = False, **kwargs) -> None:
        self.fail = fail

    async def login(self, username, password, totp_key):
        if self.fail:
            raise UpstreamError("VRChat request /auth/user failed", 503)
        return VrcUser(id="usr_me", display_name="Me")

    async def get_group(self, group_id):
        return VrcGroup(
            id=group_id,
            name="Alpha",
            member_count=1,
            my_member=VrcGroupMyMember(role_ids=["grol_owner"]),
        )

    async def list_group_members(self, group_id, offset, count):
        return []

    async def list_group_roles(self, group_id):
        return [VrcGroupRole(id="grol_owner", name="Owner", permissions=["*"])]

    async def get_user(self, user_id):
        raise AssertionError("no discord configured")

    async def get_world(self, world_id):
        raise AssertionError("no worlds configured")

    async def close(self) -> None:
        StubVrc.closed = True


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture(autouse=True)
def fast(monkeypatch):
    monkeypatch.setattr(main_mod, "wait_seconds", no_sleep)
    for name in (
        "GITHUB_WORKSPACE",
        "VRC_USERNAME",
        "VRC_PASSWORD",
        "VRC_TOTP_KEY",
        "DISCORD_BOT_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
    StubVrc.closed = False


def argv(workspace: Path) -> list[str]:
    return ["-w", str(workspace), "-o", "out", "-u", "me", "-p", "pw", "-k", "KEY", "-g", "grp_1"]


def test_success_writes_snapshot(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(main_mod, "VRChatAdapter", StubVrc)

    assert main_mod.main(argv(tmp_path)) == 0

    doc = json.loads((tmp_path / "out" / "data.json").read_text())
    assert doc["vrcUserDisplayNames"] == ["Me"]
    assert doc["vrcGroupsById"]["grp_1"]["roles"]["grol_owner"]["vrcUsers"] == [0]
    assert StubVrc.closed


def test_upstream_failure_exits_2_without_snapshot(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(
        main_mod, "VRChatAdapter", lambda *a, **kw: StubVrc(fail=True)
    )

    assert main_mod.main(argv(tmp_path)) == 2
    assert not (tmp_path / "out" / "data.json").exists()
    assert StubVrc.closed


def test_config_error_exits_2(tmp_path) -> None:
    args = argv(tmp_path) + ["-b", "TOKEN", "-d", "1,2", "-c", "3"]
    assert main_mod.main(args) == 2


def vrchat_answering(handler):
    """Factory standing in for ``VRChatAdapter`` with a mocked transport."""

    def factory(*args, **kwargs) -> VRChatAdapter:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return VRChatAdapter(client=client, sleep=no_sleep)

    return factory


def test_non_json_response_exits_2(tmp_path, monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    monkeypatch.setattr(main_mod, "VRChatAdapter", vrchat_answering(handler))

    assert main_mod.main(argv(tmp_path)) == 2
    assert not (tmp_path / "out" / "data.json").exists()


def test_payload_missing_fields_exits_2(tmp_path, monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/auth/user"):
            return httpx.Response(200, json={"id": "usr_me", "displayName": "Me"})
        return httpx.Response(200, json={"id": "grp_1"})

    monkeypatch.setattr(main_mod, "VRChatAdapter", vrchat_answering(handler))

    assert main_mod.main(argv(tmp_path)) == 2
    assert not (tmp_path / "out" / "data.json").exists()


def test_unwritable_output_exits_2(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(main_mod, "VRChatAdapter", StubVrc)
    (tmp_path / "out").write_text("in the way")

    assert main_mod.main(argv(tmp_path)) == 2
    assert (tmp_path / "out").read_text() == "in the way"
    assert StubVrc.closed
