"""Event journal for colony runs."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path


class EventLogger:
    """Append-only event journal with UTC ISO timestamps.

    Each line holds the timestamp, an event name and optional ``key=value``
    details, e.g. ``2024-01-01T00:00:00+00:00 mutate net=3 applied=1``.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self._path.open("a", encoding="utf-8")

    def __enter__(self) -> EventLogger:
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()

    def log(self, event: str, **details: object) -> None:
        """Append a timestamped event line to the log."""
        timestamp = datetime.now(timezone.utc).isoformat()
        line = " ".join(
            [timestamp, event, *(f"{key}={value}" for key, value in details.items())]
        )
        self._handle.write(f"{line}\n")
        self._handle.flush()

    def close(self) -> None:
        """Close the underlying file handle."""
        if not self._handle.closed:
            self._handle.close()

    @property
    def path(self) -> Path:
        """Return the backing log path."""
        return self._path


__all__ = ["EventLogger"]
