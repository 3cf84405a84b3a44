from __future__ import annotations

from dataclasses import dataclass
from random import Random

import pytest
from neatgraph.activations import DEFAULT_ACTIVATIONS, resolve_activation, sigmoid
from neatgraph.neurons import ActivationNeuron, BasicNeuron, SigmoidOutput, ValueInput
from neatgraph.nodes import (
    Edge,
    Neuron,
    NodeRole,
    UnknownNeuronKind,
    neuron_from_dict,
    node_role,
    register_kind,
)


def test_edge_defaults_to_disabled_zero_weight() -> None:
    edge = Edge()
    assert edge.weight == 0.0
    assert edge.enabled is False


def test_edge_rejects_non_finite_weight() -> None:
    with pytest.raises(ValueError):
        Edge(weight=float("nan"))
    with pytest.raises(ValueError):
        Edge(weight=float("inf"))


def test_random_edge_weight_range() -> None:
    rng = Random(4)
    edges = [Edge.random(rng) for _ in range(200)]
    assert all(0.0 <= edge.weight < 1.0 for edge in edges)
    # Both enabled states show up.
    assert {edge.enabled for edge in edges} == {True, False}


def test_neuron_dict_roundtrip_resolves_kind() -> None:
    neuron = BasicNeuron(id=5, bias=0.25)
    payload = neuron.to_dict()

    assert payload == {"kind": "BasicNeuron", "id": 5, "bias": 0.25}
    assert neuron_from_dict(payload) == neuron


def test_unknown_kind_is_reported() -> None:
    with pytest.raises(UnknownNeuronKind) as info:
        neuron_from_dict({"kind": "Nope", "id": 1})
    assert info.value.kind == "Nope"


def test_missing_kind_tag_is_value_error() -> None:
    with pytest.raises(ValueError):
        neuron_from_dict({"id": 1})


def test_unexpected_fields_are_rejected() -> None:
    with pytest.raises(ValueError):
        neuron_from_dict({"kind": "BasicNeuron", "id": 1, "colour": "red"})


def test_identity_and_copy_with_new_id() -> None:
    neuron = ActivationNeuron(id=3, bias=0.5, activation="relu")
    clone = neuron.copy(neuron_id=9)

    assert neuron.identity == ("ActivationNeuron", 3)
    assert clone.identity == ("ActivationNeuron", 9)
    assert clone.bias == 0.5
    assert neuron.copy() == neuron
    assert neuron.copy() is not neuron


def test_negative_id_is_rejected() -> None:
    with pytest.raises(ValueError):
        BasicNeuron(id=-1)
    with pytest.raises(ValueError):
        ActivationNeuron(id=-2)


def test_activation_neuron_validates_name() -> None:
    assert ActivationNeuron(id=1, activation=" TANH ").activation == "tanh"
    with pytest.raises(ValueError):
        ActivationNeuron(id=1, activation="bogus")


def test_activation_neuron_finish() -> None:
    neuron = ActivationNeuron(id=1, bias=0.5, activation="relu")
    assert neuron.finish(-1.0) == 0.0
    assert neuron.finish(1.0) == pytest.approx(1.5)


def test_roles() -> None:
    assert node_role(None) is NodeRole.NONE
    assert node_role(ValueInput(0)) is NodeRole.INPUT
    assert node_role(SigmoidOutput(1)) is NodeRole.OUTPUT
    assert node_role(BasicNeuron(2)) is NodeRole.NEURON


def test_register_kind_requires_dataclass() -> None:
    class Loose(Neuron):
        kind = "Loose"

        def step(self, edge: Edge, input: float) -> float:
            return input

        def finish(self, partial: float) -> float:
            return partial

    with pytest.raises(TypeError):
        register_kind(Loose)


def test_register_kind_rejects_duplicate_tag() -> None:
    @dataclass
    class Impostor(Neuron):
        kind = "BasicNeuron"

        id: int = 0

        def step(self, edge: Edge, input: float) -> float:
            return input

        def finish(self, partial: float) -> float:
            return partial

    with pytest.raises(ValueError):
        register_kind(Impostor)


def test_resolve_activation() -> None:
    assert resolve_activation("Identity")(-2.0) == -2.0
    assert resolve_activation("sigmoid")(0.0) == pytest.approx(0.5)
    assert sigmoid(-1000.0) == pytest.approx(0.0)
    assert set(DEFAULT_ACTIVATIONS) == {"identity", "sigmoid", "tanh", "relu"}
    with pytest.raises(ValueError):
        resolve_activation("softsign")
