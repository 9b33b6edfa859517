"""Recover VRChat user ids that people post in Discord messages."""

from __future__ import annotations

import uuid

USR_PREFIX = "usr_"
USR_LENGTH = 40


def extract_vrc_id(text: str | None) -> str | None:
    """Return the VRChat user id embedded in ``text``.

    Only the last ``usr_`` occurrence is considered, so a message that
    mentions several ids resolves to the final one.  The 36 characters after
    the prefix must form a canonical hyphenated UUID.  The returned id keeps
    its prefix and is lowercased; ``None`` means the text carries no usable
    id.
    """
    if not text:
        return None
    start = text.rfind(USR_PREFIX)
    if start == -1:
        return None
    candidate = text[start : start + USR_LENGTH]
    if len(candidate) < USR_LENGTH:
        return None
    body = candidate[len(USR_PREFIX) :]
    try:
        parsed = uuid.UUID(body)
    except ValueError:
        return None
    # uuid.UUID tolerates misplaced hyphens; only the canonical layout counts.
    if str(parsed) != body.lower():
        return None
    return candidate.lower()
