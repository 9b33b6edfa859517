from __future__ import annotations

import argparse
import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .adapters.discord import DEFAULT_MAX_MESSAGES
from .adapters.vrchat import DEFAULT_USER_AGENT
from .errors import ConfigError
from .utils import split_ids


@dataclass(frozen=True)
class Settings:
    workspace: Path
    output: str
    username: str
    password: str
    totp_key: str
    group_ids: tuple[str, ...] = ()
    world_ids: tuple[str, ...] = ()
    bot_token: str = ""
    server_ids: tuple[str, ...] = ()
    channel_ids: tuple[str, ...] = ()
    verbose: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    # Pacing between upstream calls, in seconds
    chat_pace_seconds: float = 5.0
    vrc_pace_seconds: float = 1.0
    message_attempts: int = 5
    message_retry_seconds: float = 30.0
    max_messages: int = DEFAULT_MAX_MESSAGES
    group_page_size: int = 100

    @property
    def use_discord(self) -> bool:
        return bool(self.bot_token and self.server_ids and self.channel_ids)

    @property
    def output_dir(self) -> Path:
        return self.workspace / self.output

    def server_channels(self) -> list[tuple[str, str]]:
        if not self.use_discord:
            return []
        return list(zip(self.server_ids, self.channel_ids))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="role-tracker",
        description="Snapshot VRChat group and Discord server roles to JSON.",
    )
    env = os.environ.get
    parser.add_argument("-w", "--workspace", default=env("GITHUB_WORKSPACE"))
    parser.add_argument("-o", "--output", help="Output directory inside the workspace.")
    parser.add_argument("-u", "--username", default=env("VRC_USERNAME"))
    parser.add_argument("-p", "--password", default=env("VRC_PASSWORD"))
    parser.add_argument(
        "-k", "--key", default=env("VRC_TOTP_KEY"), help="Base32 TOTP secret."
    )
    parser.add_argument("-g", "--groups", help="Comma-separated VRChat group ids.")
    parser.add_argument("-W", "--worlds", help="Comma-separated VRChat world ids.")
    parser.add_argument("-b", "--bot", default=env("DISCORD_BOT_TOKEN"))
    parser.add_argument("-d", "--discords", help="Comma-separated Discord server ids.")
    parser.add_argument(
        "-c", "--channels", help="Comma-separated Discord channel ids, one per server."
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _snowflakes(value: str | None, label: str) -> tuple[str, ...]:
    ids = split_ids(value)
    bad = [i for i in ids if not i.isdigit()]
    if bad:
        raise ConfigError(f"Invalid Discord {label} id(s): {', '.join(bad)}")
    return ids


def load_settings(argv: Sequence[str] | None = None) -> Settings:
    """Parse ``argv`` into :class:`Settings`.

    Raises :class:`ConfigError` before any network access when the inputs
    are incomplete or inconsistent.
    """
    args = build_parser().parse_args(argv)

    missing = [
        flag
        for flag, value in (
            ("--workspace", args.workspace),
            ("--output", args.output),
            ("--username", args.username),
            ("--password", args.password),
            ("--key", args.key),
        )
        if not value
    ]
    if missing:
        raise ConfigError(f"Missing required option(s): {', '.join(missing)}")

    bot_token = (args.bot or "").strip()
    server_ids: tuple[str, ...] = ()
    channel_ids: tuple[str, ...] = ()
    if bot_token and args.discords and args.channels:
        server_ids = _snowflakes(args.discords, "server")
        channel_ids = _snowflakes(args.channels, "channel")
    if len(server_ids) != len(channel_ids):
        raise ConfigError(
            "Discord Servers Array and Channels Array must have the same Length!"
        )

    return Settings(
        workspace=Path(args.workspace),
        output=args.output,
        username=args.username,
        password=args.password,
        totp_key=args.key,
        group_ids=split_ids(args.groups),
        world_ids=split_ids(args.worlds),
        bot_token=bot_token,
        server_ids=server_ids,
        channel_ids=channel_ids,
        verbose=args.verbose,
    )
