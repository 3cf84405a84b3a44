"""Identity tracking for neurons created by splitting edges."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, SupportsInt, cast

from .nodes import Identity

SplitKey = tuple[str, Identity, Identity]
SplitRecord = tuple[str, str, int, str, int, int]


@dataclass(frozen=True, slots=True)
class IdentitySnapshot:
    """Serializable snapshot of neuron id assignments.

    Attributes:
        next_id: The next neuron id that will be assigned.
        splits: Tuple of (kind, source_kind, source_id, target_kind,
            target_id, neuron_id) records sorted by neuron id.
    """

    next_id: int
    splits: tuple[SplitRecord, ...]

    def to_mapping(self) -> dict[SplitKey, int]:
        """Convert snapshot records back to a dictionary of id assignments."""
        return {
            (kind, (source_kind, source_id), (target_kind, target_id)): neuron_id
            for kind, source_kind, source_id, target_kind, target_id, neuron_id in self.splits
        }


@dataclass(slots=True)
class NeuronIdTracker:
    """Hands out neuron ids so that the same split yields the same identity."""

    next_id: int = 0
    _mapping: dict[SplitKey, int] = field(
        default_factory=dict,
        init=False,
        repr=False,
    )

    def __post_init__(self) -> None:
        if self.next_id < 0:
            msg = "next_id must be non-negative."
            raise ValueError(msg)

    def __len__(self) -> int:
        """Return the number of registered splits."""
        return len(self._mapping)

    def __contains__(self, key: object) -> bool:
        """Indicate whether a split already has a neuron id."""
        return key in self._mapping

    def register(self, kind: str, source: Identity, target: Identity) -> int:
        """Register a split and return the id of the neuron it creates.

        Args:
            kind: Kind tag of the inserted neuron.
            source: Identity of the split edge's source node.
            target: Identity of the split edge's destination node.

        Returns:
            The stable neuron id for that split.
        """
        key = self._normalize_key((kind, source, target))
        existing = self._mapping.get(key)
        if existing is not None:
            return existing

        neuron_id = self.next_id
        self._mapping[key] = neuron_id
        self.next_id += 1
        return neuron_id

    def peek(self, kind: str, source: Identity, target: Identity) -> int | None:
        """Return the id for a split if it was already registered."""
        return self._mapping.get((kind, source, target))

    def reserve(self, neuron_id: int) -> None:
        """Make sure future ids are larger than ``neuron_id``."""
        self._ensure_non_negative(neuron_id, label="neuron id")
        if neuron_id >= self.next_id:
            self.next_id = neuron_id + 1

    def items(self) -> Iterator[tuple[SplitKey, int]]:
        """Iterate over registered splits."""
        return iter(self._mapping.items())

    def to_snapshot(self) -> IdentitySnapshot:
        """Produce a snapshot suitable for persistence."""
        splits = tuple(
            sorted(
                (
                    (kind, source[0], source[1], target[0], target[1], neuron_id)
                    for (kind, source, target), neuron_id in self._mapping.items()
                ),
                key=lambda record: record[5],
            )
        )
        return IdentitySnapshot(next_id=self.next_id, splits=splits)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: IdentitySnapshot | Mapping[str, object],
    ) -> NeuronIdTracker:
        """Restore a tracker from a snapshot or snapshot-like mapping."""
        if isinstance(snapshot, IdentitySnapshot):
            next_id = snapshot.next_id
            splits = snapshot.splits
        else:
            try:
                next_candidate = snapshot["next_id"]
                raw_splits = snapshot["splits"]
            except KeyError as error:
                msg = f"Snapshot is missing required key: {error.args[0]}"
                raise ValueError(msg) from error
            next_id = cls._coerce_int(next_candidate, label="next_id")

            records: list[SplitRecord] = []
            for raw in cast(Iterable[Iterable[Any]], raw_splits):
                parts = list(raw)
                if len(parts) != 6:
                    msg = "Snapshot splits must contain exactly six elements."
                    raise ValueError(msg)
                records.append(
                    (
                        str(parts[0]),
                        str(parts[1]),
                        cls._coerce_int(parts[2], label="source id"),
                        str(parts[3]),
                        cls._coerce_int(parts[4], label="target id"),
                        cls._coerce_int(parts[5], label="neuron id"),
                    )
                )
            splits = tuple(records)

        tracker = cls(next_id=next_id)
        tracker._restore(IdentitySnapshot(next_id=next_id, splits=splits).to_mapping())
        return tracker

    def _restore(self, mapping: Mapping[SplitKey, int]) -> None:
        """Restore the internal mapping ensuring invariants hold."""
        normalized = {
            self._normalize_key(key): self._validate_id(value)
            for key, value in mapping.items()
        }
        if len(normalized) != len(set(normalized.values())):
            msg = "Duplicate neuron ids detected in snapshot."
            raise ValueError(msg)

        self._mapping = dict(normalized)
        if self._mapping:
            self.reserve(max(self._mapping.values()))

    @staticmethod
    def _normalize_key(key: SplitKey) -> SplitKey:
        kind, source, target = key
        if not kind:
            msg = "kind must be a non-empty string."
            raise ValueError(msg)
        NeuronIdTracker._ensure_non_negative(source[1], label="source id")
        NeuronIdTracker._ensure_non_negative(target[1], label="target id")
        return kind, (source[0], source[1]), (target[0], target[1])

    @staticmethod
    def _validate_id(value: int) -> int:
        NeuronIdTracker._ensure_non_negative(value, label="neuron id")
        return value

    @staticmethod
    def _ensure_non_negative(value: int, *, label: str) -> None:
        if value < 0:
            msg = f"{label} must be non-negative."
            raise ValueError(msg)

    @staticmethod
    def _coerce_int(value: object, *, label: str) -> int:
        if isinstance(value, int):
            return value
        if isinstance(value, (str, bytes, bytearray)):
            try:
                return int(value)
            except ValueError as error:
                msg = f"{label} must be convertible to int."
                raise ValueError(msg) from error
        if hasattr(value, "__int__"):
            try:
                return int(cast(SupportsInt, value))
            except (TypeError, ValueError) as error:
                msg = f"{label} must be convertible to int."
                raise ValueError(msg) from error
        msg = f"{label} must be convertible to int."
        raise ValueError(msg)


__all__ = ["IdentitySnapshot", "NeuronIdTracker", "SplitKey"]
