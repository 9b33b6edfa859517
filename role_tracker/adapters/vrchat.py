"""VRChat adapter implementing :class:`~role_tracker.adapters.base.VrcAdapter`.

VRChat authenticates with HTTP basic auth on ``/auth/user`` and then keeps
the session in an ``auth`` cookie, which :class:`httpx.AsyncClient` carries
across requests.  Accounts with two-factor enabled get a
``requiresTwoFactorAuth`` response instead of the user, which is answered
with a TOTP code generated from the account's shared secret.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

import httpx
import pyotp

from ..core.models import VrcGroup, VrcGroupMember, VrcGroupRole, VrcUser, VrcWorld
from ..errors import AuthError, UpstreamError
from ..utils import wait_seconds
from .base import VrcAdapter, payload_errors

log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "role-tracker/0.1.0"
# Codes about to expire are not worth sending.
MIN_TOTP_SECONDS = 5


class VRChatAdapter(VrcAdapter):
    """Adapter for the VRChat web API."""

    api_base = "https://api.vrchat.cloud/api/1"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        sleep: Callable[[float], Awaitable[None]] = wait_seconds,
    ) -> None:
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self.user_agent = user_agent
        self.sleep = sleep

    # ------------------------------------------------------------------
    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.api_base}{path}"
        headers = {"User-Agent": self.user_agent}
        try:
            response = await self.client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                f"VRChat request {path} failed: {_error_message(exc.response)}",
                exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"VRChat request {path} failed: {exc}") from exc
        with payload_errors(f"VRChat request {path}"):
            return response.json()

    # ------------------------------------------------------------------
    async def login(self, username: str, password: str, totp_key: str) -> VrcUser:
        """Log in, answering a two-factor challenge when one is issued."""
        # VRChat expects the credentials URL-encoded inside the basic auth pair.
        auth = httpx.BasicAuth(quote(username, safe=""), quote(password, safe=""))
        try:
            data = await self._request("GET", "/auth/user", auth=auth)
        except UpstreamError as exc:
            if exc.status_code in (401, 403):
                raise AuthError(f"Login rejected: {exc}") from exc
            raise

        with payload_errors("VRChat request /auth/user"):
            needs_totp = "displayName" not in data
        if needs_totp:
            log.info("2FA needed...")
            await self._verify_totp(totp_key)
            data = await self._request("GET", "/auth/user")
        with payload_errors("VRChat request /auth/user"):
            if "displayName" not in data:
                raise AuthError("Failed to validate 2FA!")
            return VrcUser.model_validate(data)

    async def _verify_totp(self, totp_key: str) -> None:
        totp = pyotp.TOTP(totp_key.replace(" ", ""))
        remaining = totp.interval - int(time.time()) % totp.interval
        if remaining < MIN_TOTP_SECONDS:
            log.info("Waiting for new token...")
            await self.sleep(remaining + 1)

        try:
            code = totp.now()
        except ValueError as exc:
            raise AuthError(f"TOTP key is not valid base32: {exc}") from exc

        log.info("Using 2FA code...")
        path = "/auth/twofactorauth/totp/verify"
        try:
            result = await self._request("POST", path, json={"code": code})
        except UpstreamError as exc:
            raise AuthError(f"Failed to validate 2FA: {exc}") from exc
        with payload_errors(f"VRChat request {path}"):
            verified = bool(result.get("verified", False))
        if not verified:
            raise AuthError("Failed to validate 2FA!")

    async def get_group(self, group_id: str) -> VrcGroup:
        path = f"/groups/{group_id}"
        data = await self._request("GET", path)
        with payload_errors(f"VRChat request {path}"):
            return VrcGroup.model_validate(data)

    async def list_group_members(
        self, group_id: str, offset: int, count: int
    ) -> list[VrcGroupMember]:
        """Return one page of members.

        The listing never includes the logged in user.
        """
        path = f"/groups/{group_id}/members"
        data = await self._request("GET", path, params={"n": count, "offset": offset})
        with payload_errors(f"VRChat request {path}"):
            return [VrcGroupMember.model_validate(m) for m in data]

    async def list_group_roles(self, group_id: str) -> list[VrcGroupRole]:
        path = f"/groups/{group_id}/roles"
        data = await self._request("GET", path)
        with payload_errors(f"VRChat request {path}"):
            return [VrcGroupRole.model_validate(r) for r in data]

    async def get_user(self, user_id: str) -> VrcUser:
        path = f"/users/{user_id}"
        data = await self._request("GET", path)
        with payload_errors(f"VRChat request {path}"):
            return VrcUser.model_validate(data)

    async def get_world(self, world_id: str) -> VrcWorld:
        path = f"/worlds/{world_id}"
        data = await self._request("GET", path)
        with payload_errors(f"VRChat request {path}"):
            return VrcWorld.model_validate(data)

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Pull the message out of a VRChat error body, if it has one."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", response.reason_phrase))
    return response.reason_phrase
