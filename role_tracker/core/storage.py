"""JSON file storage for tracked snapshots."""

from __future__ import annotations

import contextlib
import os
from pathlib import Path

from ..errors import SnapshotError
from .snapshot import TrackedData, parse_snapshot, serialize_snapshot

SNAPSHOT_FILENAME = "data.json"


class SnapshotStorage:
    """Persist a :class:`TrackedData` snapshot to a single JSON file.

    The file is replaced atomically so a reader never observes a half
    written snapshot, and a failed run leaves the previous file untouched.
    """

    def __init__(self, path: Path) -> None:
        """Initialise storage using JSON file at ``path``."""
        self.path = path

    @classmethod
    def in_directory(cls, directory: Path) -> SnapshotStorage:
        """Storage for the standard snapshot file inside ``directory``."""
        return cls(directory / SNAPSHOT_FILENAME)

    def save(self, data: TrackedData) -> Path:
        """Write ``data`` and return the path written to."""
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(serialize_snapshot(data), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise SnapshotError(f"Could not write snapshot to {self.path}: {exc}") from exc
        return self.path

    def load(self) -> TrackedData:
        """Read the stored snapshot back."""
        return parse_snapshot(self.path.read_text(encoding="utf-8"))
