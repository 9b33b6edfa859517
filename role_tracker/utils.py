from __future__ import annotations

import asyncio


async def wait_seconds(seconds: float) -> None:
    """Pause the run for ``seconds`` to stay under upstream rate limits."""
    await asyncio.sleep(seconds)


def split_ids(value: str | None) -> tuple[str, ...]:
    """
    Split a comma-delimited id list.
    Blank entries and surrounding whitespace are dropped.
    """

    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())
