"""Utilities for recording colony structure statistics to disk."""

from __future__ import annotations

import csv
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, IO


@dataclass(frozen=True, slots=True)
class MetricsRow:
    """Structural statistics of the colony after one generation."""

    generation: int
    population_size: int
    mean_layers: float
    mean_hidden_nodes: float
    mean_edges: float
    enabled_edge_ratio: float
    tick_time_s: float


class MetricsWriter:
    """CSV-backed writer that appends metrics rows incrementally."""

    _fieldnames = [item.name for item in fields(MetricsRow)]

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        exists = self._path.exists() and self._path.stat().st_size > 0
        self._handle: IO[str] = self._path.open("a", encoding="utf-8", newline="")
        self._writer = csv.DictWriter(self._handle, fieldnames=self._fieldnames)
        if not exists:
            self._writer.writeheader()
            self._handle.flush()

    def __enter__(self) -> MetricsWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    def append(self, row: MetricsRow) -> None:
        """Append a metrics row and flush to disk."""
        self._writer.writerow(asdict(row))
        self._handle.flush()

    def close(self) -> None:
        """Release the underlying file handle if still open."""
        if not self._handle.closed:
            self._handle.close()

    @property
    def path(self) -> Path:
        """Return the destination path for the CSV file."""
        return self._path


__all__ = ["MetricsRow", "MetricsWriter"]
