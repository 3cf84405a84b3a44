"""Concrete neuron kinds shipped with the engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from .activations import normalize_activation_name, resolve_activation, sigmoid
from .nodes import (
    Edge,
    InputNeuron,
    Neuron,
    NeuronBase,
    OutputNeuron,
    register_kind,
)


@register_kind
@dataclass(slots=True)
class ValueInput(InputNeuron):
    """Input holding a plain scalar set by the embedding application."""

    kind: ClassVar[str] = "ValueInput"

    id: int
    value: float = 0.0

    def as_standard(self) -> float:
        return self.value

    def set_value(self, value: float) -> None:
        self.value = float(value)


@register_kind
@dataclass(slots=True)
class BasicNeuron(Neuron):
    """Weighted sum plus bias."""

    kind: ClassVar[str] = "BasicNeuron"

    id: int = 0
    bias: float = 0.0

    def step(self, edge: Edge, input: float) -> float:
        return edge.weight * input

    def finish(self, partial: float) -> float:
        return partial + self.bias


@register_kind
@dataclass(slots=True)
class ActivationNeuron(Neuron):
    """Weighted sum plus bias passed through a named activation."""

    kind: ClassVar[str] = "ActivationNeuron"

    id: int = 0
    bias: float = 0.0
    activation: str = "tanh"

    def __post_init__(self) -> None:
        NeuronBase.__post_init__(self)
        self.activation = normalize_activation_name(self.activation)
        resolve_activation(self.activation)

    def step(self, edge: Edge, input: float) -> float:
        return edge.weight * input

    def finish(self, partial: float) -> float:
        return resolve_activation(self.activation)(partial + self.bias)


@register_kind
@dataclass(slots=True)
class SigmoidOutput(OutputNeuron):
    """Logistic output; ``label`` names the actuator it drives."""

    kind: ClassVar[str] = "SigmoidOutput"

    id: int
    stored: float = 0.0
    label: str = ""

    def step(self, edge: Edge, input: float) -> float:
        return edge.weight * input

    def finish_and_save(self, partial: float) -> float:
        self.stored = sigmoid(partial)
        return self.stored

    def value(self) -> float:
        return self.stored


@register_kind
@dataclass(slots=True)
class LinearOutput(OutputNeuron):
    kind: ClassVar[str] = "LinearOutput"

    id: int
    stored: float = 0.0
    label: str = ""

    def step(self, edge: Edge, input: float) -> float:
        return edge.weight * input

    def finish_and_save(self, partial: float) -> float:
        self.stored = partial
        return partial

    def value(self) -> float:
        return self.stored


__all__ = [
    "ActivationNeuron",
    "BasicNeuron",
    "LinearOutput",
    "SigmoidOutput",
    "ValueInput",
]
