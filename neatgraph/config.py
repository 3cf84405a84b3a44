"""Configuration loading for graph synthesis and mutation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True, slots=True)
class GenConfig:
    """Bounds used by randomized net synthesis."""

    max_hidden_layers: int = 5
    max_nodes_per_layer: int = 10
    connections_per_layer: int = 4

    def __post_init__(self) -> None:
        for label, value in (
            ("max_hidden_layers", self.max_hidden_layers),
            ("max_nodes_per_layer", self.max_nodes_per_layer),
            ("connections_per_layer", self.connections_per_layer),
        ):
            if value <= 0:
                msg = f"{label} must be positive."
                raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class MutationConfig:
    """Relative operator rates and knobs for one mutation pass."""

    add_edge_rate: float = 1.0
    remove_edge_rate: float = 0.5
    add_neuron_rate: float = 0.3
    remove_neuron_rate: float = 0.1
    perturb_weight_rate: float = 1.0
    mutations_per_pass: int = 1
    split_edge_enabled: bool = False
    perturb_sd: float = 0.5
    reset_rate: float = 0.1

    def __post_init__(self) -> None:
        rates = self.link_rates() + self.neuron_rates()
        if any(rate < 0.0 for rate in rates):
            msg = "mutation rates must be >= 0."
            raise ValueError(msg)
        if sum(rates) <= 0.0:
            msg = "at least one mutation rate must be positive."
            raise ValueError(msg)
        if self.mutations_per_pass <= 0:
            msg = "mutations_per_pass must be positive."
            raise ValueError(msg)
        if self.perturb_sd <= 0.0:
            msg = "perturb_sd must be positive."
            raise ValueError(msg)
        if not 0.0 <= self.reset_rate <= 1.0:
            msg = "reset_rate must be in [0, 1]."
            raise ValueError(msg)

    def link_rates(self) -> tuple[float, float, float]:
        """Rates for AddEdge, RemoveEdge and PerturbWeight, in that order."""
        return (self.add_edge_rate, self.remove_edge_rate, self.perturb_weight_rate)

    def neuron_rates(self) -> tuple[float, float]:
        """Rates for AddNeuron and RemoveNeuron, in that order."""
        return (self.add_neuron_rate, self.remove_neuron_rate)


@dataclass(frozen=True, slots=True)
class EngineConfig:
    population_size: int = 10
    seed: int | None = None
    gen: GenConfig = field(default_factory=GenConfig)
    mutation: MutationConfig = field(default_factory=MutationConfig)

    def __post_init__(self) -> None:
        if self.population_size <= 0:
            msg = "population_size must be positive."
            raise ValueError(msg)

    def gen_config(self) -> GenConfig:
        return self.gen

    def mutation_config(self) -> MutationConfig:
        return self.mutation


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        msg = f"Expected mapping in YAML file: {path}"
        raise ValueError(msg)
    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        msg = f"Section {name!r} must be a mapping."
        raise ValueError(msg)
    return section


def parse_engine_config(data: Mapping[str, Any]) -> EngineConfig:
    gen = _section(data, "gen")
    mutation = _section(data, "mutation")
    return EngineConfig(
        population_size=int(data.get("population_size", data.get("pop_size", 10))),
        seed=(int(data["seed"]) if data.get("seed") is not None else None),
        gen=GenConfig(
            max_hidden_layers=int(gen.get("max_hidden_layers", 5)),
            max_nodes_per_layer=int(gen.get("max_nodes_per_layer", 10)),
            connections_per_layer=int(gen.get("connections_per_layer", 4)),
        ),
        mutation=MutationConfig(
            add_edge_rate=float(mutation.get("add_edge_rate", 1.0)),
            remove_edge_rate=float(mutation.get("remove_edge_rate", 0.5)),
            add_neuron_rate=float(mutation.get("add_neuron_rate", 0.3)),
            remove_neuron_rate=float(mutation.get("remove_neuron_rate", 0.1)),
            perturb_weight_rate=float(mutation.get("perturb_weight_rate", 1.0)),
            mutations_per_pass=int(mutation.get("mutations_per_pass", 1)),
            split_edge_enabled=bool(mutation.get("split_edge_enabled", False)),
            perturb_sd=float(mutation.get("perturb_sd", 0.5)),
            reset_rate=float(mutation.get("reset_rate", 0.1)),
        ),
    )


def load_engine_config(path: Path) -> EngineConfig:
    return parse_engine_config(_load_yaml(Path(path)))


__all__ = [
    "EngineConfig",
    "GenConfig",
    "MutationConfig",
    "load_engine_config",
    "parse_engine_config",
]
