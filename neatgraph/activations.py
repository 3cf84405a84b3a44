"""Scalar transfer functions shared by neuron kinds."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping

ActivationFunction = Callable[[float], float]
ActivationMap = Mapping[str, ActivationFunction]


def sigmoid(x: float) -> float:
    if x >= 0:
        z = math.exp(-x)
        return 1.0 / (1.0 + z)
    z = math.exp(x)
    return z / (1.0 + z)


DEFAULT_ACTIVATIONS: dict[str, ActivationFunction] = {
    "identity": lambda x: x,
    "sigmoid": sigmoid,
    "tanh": math.tanh,
    "relu": lambda x: x if x > 0.0 else 0.0,
}


def normalize_activation_name(name: str) -> str:
    return name.strip().lower()


def resolve_activation(
    name: str,
    activation_functions: ActivationMap | None = None,
) -> ActivationFunction:
    """Look up an activation function by (case-insensitive) name."""
    lookup = DEFAULT_ACTIVATIONS if activation_functions is None else activation_functions
    function = lookup.get(normalize_activation_name(name))
    if function is None:
        msg = f"Unknown activation function: {name!r}"
        raise ValueError(msg)
    return function


__all__ = [
    "ActivationFunction",
    "ActivationMap",
    "DEFAULT_ACTIVATIONS",
    "normalize_activation_name",
    "resolve_activation",
    "sigmoid",
]
