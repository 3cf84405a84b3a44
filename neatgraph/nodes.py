"""Node model: edge values, neuron roles and the neuron kind registry."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass, replace
from enum import Enum
from random import Random
from typing import Any, ClassVar, TypeVar

Identity = tuple[str, int]


class NodeRole(str, Enum):
    """Role a graph node plays in propagation."""

    NONE = "none"
    INPUT = "input"
    OUTPUT = "output"
    NEURON = "neuron"


class UnknownNeuronKind(LookupError):
    """Raised when a serialized neuron names a kind nobody registered."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unknown neuron kind {kind!r}")
        self.kind = kind


@dataclass(slots=True)
class Edge:
    """Weight and enabled flag of a connection."""

    weight: float = 0.0
    enabled: bool = False

    def __post_init__(self) -> None:
        try:
            weight = float(self.weight)
        except (TypeError, ValueError) as error:
            msg = f"weight must be convertible to float, got {self.weight!r}"
            raise ValueError(msg) from error
        if not math.isfinite(weight):
            msg = "weight must be a finite number."
            raise ValueError(msg)
        self.weight = weight
        self.enabled = bool(self.enabled)

    @classmethod
    def random(cls, rng: Random) -> Edge:
        """Return an edge with a weight in [0, 1) and a coin-flip enabled flag."""
        return cls(weight=rng.random(), enabled=rng.random() < 0.5)

    def copy(
        self,
        *,
        weight: float | None = None,
        enabled: bool | None = None,
    ) -> Edge:
        return Edge(
            weight=self.weight if weight is None else weight,
            enabled=self.enabled if enabled is None else enabled,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"weight": self.weight, "enabled": self.enabled}


class NeuronBase(ABC):
    """Common identity contract of every concrete neuron kind.

    Concrete kinds are dataclasses with an ``id`` field and a ``kind`` class
    constant. The pair ``(kind, id)`` recognises the same gene across graphs
    independently of where it is stored.
    """

    __slots__ = ()

    kind: ClassVar[str] = ""
    role: ClassVar[NodeRole] = NodeRole.NONE
    id: int

    def __post_init__(self) -> None:
        if self.id < 0:
            msg = "Neuron id must be non-negative."
            raise ValueError(msg)

    @property
    def identity(self) -> Identity:
        return (self.kind, self.id)

    def copy(self: NeuronT, *, neuron_id: int | None = None) -> NeuronT:
        """Return a copy, optionally carrying a different id."""
        if neuron_id is None:
            return replace(self)
        return replace(self, id=neuron_id)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind}
        for item in fields(self):
            payload[item.name] = getattr(self, item.name)
        return payload

    @classmethod
    def from_dict(cls: type[NeuronT], data: Mapping[str, Any]) -> NeuronT:
        known = {item.name for item in fields(cls)}
        unexpected = set(data) - known
        if unexpected:
            msg = f"Unexpected fields for {cls.kind}: {sorted(unexpected)}"
            raise ValueError(msg)
        return cls(**dict(data))


NeuronT = TypeVar("NeuronT", bound=NeuronBase)


class InputNeuron(NeuronBase):
    """Sensor node living in the input layer."""

    __slots__ = ()

    role: ClassVar[NodeRole] = NodeRole.INPUT

    @abstractmethod
    def as_standard(self) -> float:
        """Return the value fed into outgoing edges."""

    @abstractmethod
    def set_value(self, value: float) -> None:
        """Store a new sensor reading."""


class OutputNeuron(NeuronBase):
    """Terminal node living in the output layer."""

    __slots__ = ()

    role: ClassVar[NodeRole] = NodeRole.OUTPUT

    @abstractmethod
    def step(self, edge: Edge, input: float) -> float:
        """Return the contribution of one incoming edge."""

    @abstractmethod
    def finish_and_save(self, partial: float) -> float:
        """Finalize the summed contributions and store the result."""

    @abstractmethod
    def value(self) -> float:
        """Return the last stored result."""


class Neuron(NeuronBase):
    """Hidden unit; computes a value and forwards it."""

    __slots__ = ()

    role: ClassVar[NodeRole] = NodeRole.NEURON

    @abstractmethod
    def step(self, edge: Edge, input: float) -> float:
        """Return the contribution of one incoming edge."""

    @abstractmethod
    def finish(self, partial: float) -> float:
        """Turn the summed contributions into the emitted value."""


NodeValue = InputNeuron | OutputNeuron | Neuron | None

NEURON_KINDS: dict[str, type[NeuronBase]] = {}

KindT = TypeVar("KindT", bound=type[NeuronBase])


def register_kind(cls: KindT) -> KindT:
    """Class decorator adding a concrete neuron kind to the registry."""
    if not issubclass(cls, (InputNeuron, OutputNeuron, Neuron)):
        msg = f"{cls.__name__} must subclass InputNeuron, OutputNeuron or Neuron."
        raise TypeError(msg)
    if not is_dataclass(cls):
        msg = f"{cls.__name__} must be a dataclass."
        raise TypeError(msg)
    if not isinstance(cls.kind, str) or not cls.kind.strip():
        msg = f"{cls.__name__} must define a non-empty kind."
        raise ValueError(msg)
    existing = NEURON_KINDS.get(cls.kind)
    if existing is not None and existing.__qualname__ != cls.__qualname__:
        msg = f"Neuron kind {cls.kind!r} already registered by {existing.__name__}."
        raise ValueError(msg)
    NEURON_KINDS[cls.kind] = cls
    return cls


def neuron_from_dict(data: Mapping[str, Any]) -> NeuronBase:
    """Rebuild a neuron from its serialized form, resolving the kind tag."""
    try:
        kind = data["kind"]
    except KeyError as error:
        msg = "Serialized neuron is missing its 'kind' tag."
        raise ValueError(msg) from error
    cls = NEURON_KINDS.get(kind)
    if cls is None:
        raise UnknownNeuronKind(kind)
    payload = {key: value for key, value in data.items() if key != "kind"}
    return cls.from_dict(payload)


def node_role(value: NodeValue) -> NodeRole:
    """Return the role of a node value; ``None`` is the placeholder."""
    if value is None:
        return NodeRole.NONE
    return value.role


__all__ = [
    "Edge",
    "Identity",
    "InputNeuron",
    "NEURON_KINDS",
    "Neuron",
    "NeuronBase",
    "NodeRole",
    "NodeValue",
    "OutputNeuron",
    "UnknownNeuronKind",
    "neuron_from_dict",
    "node_role",
    "register_kind",
]
