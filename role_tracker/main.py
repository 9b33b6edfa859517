from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import Sequence

from .adapters.discord import DiscordAdapter
from .adapters.vrchat import VRChatAdapter
from .config import Settings, load_settings
from .core.snapshot import serialize_snapshot
from .core.storage import SnapshotStorage
from .errors import TrackerError, UpstreamError
from .logging_config import setup_logging
from .tracker import RoleTracker
from .utils import wait_seconds


async def run(settings: Settings, log: logging.Logger) -> int:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    # Not every platform supports signal handlers on the loop.
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, stop.set)

    vrc = VRChatAdapter(user_agent=settings.user_agent, sleep=wait_seconds)
    chat = (
        DiscordAdapter(settings.bot_token, max_messages=settings.max_messages)
        if settings.use_discord
        else None
    )
    try:
        tracker = RoleTracker(settings, vrc, chat, sleep=wait_seconds, stop=stop)
        data = await tracker.run()
        log.debug(serialize_snapshot(data))
        path = SnapshotStorage.in_directory(settings.output_dir).save(data)
    except UpstreamError as exc:
        log.error("Exception when calling API: %s", exc)
        log.error("Status Code: %s", exc.status_code)
        return exc.exit_code
    except TrackerError as exc:
        log.error("%s", exc)
        return exc.exit_code
    finally:
        await vrc.close()
        if chat is not None:
            await chat.close()
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)

    log.info("Wrote %s", path)
    log.info("Done!")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    log = setup_logging()
    try:
        settings = load_settings(argv)
    except TrackerError as exc:
        log.error("%s", exc)
        return exc.exit_code
    if settings.verbose:
        log.setLevel(logging.DEBUG)
    return asyncio.run(run(settings, log))


if __name__ == "__main__":
    raise SystemExit(main())
