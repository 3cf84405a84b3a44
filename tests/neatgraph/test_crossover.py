from __future__ import annotations

from collections.abc import Iterable, Sequence
from random import Random

import pytest
from neatgraph.alignment import AlignedEdge, AlignedNode, EdgeDirection, intersection
from neatgraph.graph import GraphLocation, GraphNode, NeuralGraph
from neatgraph.net import Net
from neatgraph.neurons import (
    ActivationNeuron,
    BasicNeuron,
    LinearOutput,
    SigmoidOutput,
    ValueInput,
)
from neatgraph.nodes import Edge, NeuronBase
from neatgraph.persistence import net_to_yaml
from neatgraph.reproduction import Crossover, DefaultIterator

EdgeSpec = tuple[tuple[int, int], tuple[int, int], float]


def loc(layer: int, node: int) -> GraphLocation:
    return GraphLocation(layer, node)


def build_net(layers: Sequence[Sequence[NeuronBase]], edges: Iterable[EdgeSpec]) -> Net:
    graph = NeuralGraph()
    for values in layers:
        index = graph.add_layer_to_end()
        for value in values:
            graph.add_node(index, GraphNode(value))
    for source, target, weight in edges:
        graph.add_edge(loc(*source), loc(*target), Edge(weight, True))
    return Net(graph=graph, input_layer=0, output_layer=len(layers) - 1)


def io_layers() -> tuple[list[NeuronBase], list[NeuronBase]]:
    return (
        [ValueInput(0), ValueInput(1), ValueInput(2)],
        [SigmoidOutput(3), SigmoidOutput(4)],
    )


def parent_a() -> Net:
    inputs, outputs = io_layers()
    return build_net(
        [inputs, [BasicNeuron(5, bias=0.1), BasicNeuron(6, bias=0.2)], outputs],
        [
            ((0, 0), (1, 0), 0.11),
            ((0, 1), (1, 0), 0.12),
            ((1, 0), (2, 0), 0.13),
            ((0, 2), (1, 1), 0.14),
            ((1, 1), (2, 1), 0.15),
            ((0, 0), (2, 1), 0.16),
        ],
    )


def parent_b() -> Net:
    inputs, outputs = io_layers()
    return build_net(
        [inputs, [BasicNeuron(5, bias=0.9), ActivationNeuron(6)], outputs],
        [
            ((0, 0), (1, 0), 0.21),
            ((0, 2), (1, 0), 0.22),
            ((1, 0), (2, 0), 0.23),
            ((1, 0), (2, 1), 0.24),
            ((0, 1), (1, 1), 0.25),
            ((1, 1), (2, 0), 0.26),
        ],
    )


def expected_child(bias: float, in_weight: float, out_weight: float) -> Net:
    inputs, outputs = io_layers()
    return build_net(
        [inputs, [BasicNeuron(5, bias=bias)], outputs],
        [((0, 0), (1, 0), in_weight), ((1, 0), (2, 0), out_weight)],
    )


def breed(a: Net, b: Net, choose, copies: int = 1) -> Net:
    reproducers = [Crossover(choose=choose) for _ in range(copies)]
    return Net.reproduce(a, b, reproducers, DefaultIterator(), Random(0))


def test_intersection_reports_shared_neuron_and_edges() -> None:
    items = intersection(parent_a(), parent_b())

    assert items == [
        AlignedNode(("BasicNeuron", 5), loc(1, 0), loc(1, 0)),
        AlignedEdge(EdgeDirection.INCOMING, loc(0, 0), loc(1, 0), loc(0, 0), loc(1, 0)),
        AlignedEdge(EdgeDirection.OUTGOING, loc(1, 0), loc(2, 0), loc(1, 0), loc(2, 0)),
    ]


def test_intersection_without_hidden_layers_is_empty() -> None:
    a = parent_a()
    assert intersection(a, Net.from_preserving_basic(a)) == []


def test_crossover_keeps_only_shared_genes_from_a() -> None:
    child = breed(parent_a(), parent_b(), lambda rng: True)

    assert net_to_yaml(child) == net_to_yaml(expected_child(0.1, 0.11, 0.13))
    child.validate()


def test_crossover_keeps_only_shared_genes_from_b() -> None:
    child = breed(parent_a(), parent_b(), lambda rng: False)

    assert net_to_yaml(child) == net_to_yaml(expected_child(0.9, 0.21, 0.23))


def test_crossover_with_fair_coin_has_shared_structure() -> None:
    for seed in range(10):
        child = Net.reproduce(
            parent_a(), parent_b(), [Crossover()], DefaultIterator(), Random(seed)
        )
        child.validate()
        assert len(child.graph.layers) == 3
        assert child.graph.find_identity(("BasicNeuron", 5)) == loc(1, 0)
        assert child.graph.find_identity(("BasicNeuron", 6)) is None
        assert child.graph.find_identity(("ActivationNeuron", 6)) is None
        assert child.graph.edge_count() == 2
        incoming = child.graph.get_edge(loc(0, 0), loc(1, 0))
        outgoing = child.graph.get_edge(loc(1, 0), loc(2, 0))
        assert incoming is not None and outgoing is not None
        assert incoming.value.weight in (pytest.approx(0.11), pytest.approx(0.21))
        assert outgoing.value.weight in (pytest.approx(0.13), pytest.approx(0.23))


def test_repeated_crossover_reuses_placed_genes() -> None:
    once = breed(parent_a(), parent_b(), lambda rng: True)
    twice = breed(parent_a(), parent_b(), lambda rng: True, copies=2)

    assert net_to_yaml(twice) == net_to_yaml(once)


def test_crossover_raises_node_to_keep_edges_forward() -> None:
    source = ValueInput(0)
    sink = LinearOutput(1)
    a = build_net(
        [[source], [BasicNeuron(8)], [BasicNeuron(5)], [BasicNeuron(7)], [sink]],
        [
            ((0, 0), (1, 0), 0.5),
            ((0, 0), (2, 0), 0.1),
            ((2, 0), (3, 0), 0.2),
            ((3, 0), (4, 0), 0.3),
        ],
    )
    b = build_net(
        [[source], [BasicNeuron(5)], [BasicNeuron(7)], [sink]],
        [
            ((0, 0), (1, 0), 0.4),
            ((1, 0), (2, 0), 0.5),
            ((2, 0), (3, 0), 0.6),
        ],
    )
    # Neuron 5 comes from a (layer 2), neuron 7 from b (also layer 2).
    choices = iter([True, False] + [True] * 10)

    child = breed(a, b, lambda rng: next(choices))

    child.validate()
    five = child.graph.find_identity(("BasicNeuron", 5))
    seven = child.graph.find_identity(("BasicNeuron", 7))
    assert five is not None and seven is not None
    assert seven.layer > five.layer
    assert child.graph.find_identity(("BasicNeuron", 8)) is None
    assert child.graph.edge_count() == 3
    assert child.graph.get_edge(five, seven) is not None
