from __future__ import annotations

from random import Random

import pytest
from neatgraph.graph import (
    ConnectionExists,
    EdgeDirectionError,
    GraphEdge,
    GraphLocation,
    GraphNode,
    InvariantViolation,
    LayerNotFound,
    NeuralGraph,
    NodeNotFound,
)
from neatgraph.neurons import BasicNeuron, LinearOutput, ValueInput
from neatgraph.nodes import Edge


def build_graph(*hidden_sizes: int) -> NeuralGraph:
    graph = NeuralGraph()
    inputs = graph.add_layer_to_end()
    graph.add_node(inputs, GraphNode(ValueInput(0)))
    graph.add_node(inputs, GraphNode(ValueInput(1)))
    next_id = 10
    for size in hidden_sizes:
        layer = graph.add_layer_to_end()
        for _ in range(size):
            graph.add_node(layer, GraphNode(BasicNeuron(next_id)))
            next_id += 1
    outputs = graph.add_layer_to_end()
    graph.add_node(outputs, GraphNode(LinearOutput(2)))
    return graph


def loc(layer: int, node: int) -> GraphLocation:
    return GraphLocation(layer, node)


def test_location_bounds_and_text() -> None:
    assert str(loc(2, 3)) == "L2N3"
    with pytest.raises(ValueError):
        GraphLocation(-1, 0)
    with pytest.raises(ValueError):
        GraphLocation(0, 1 << 16)


def test_add_node_rejects_layer_past_end() -> None:
    graph = build_graph()
    with pytest.raises(LayerNotFound):
        graph.add_node(len(graph.layers), GraphNode(BasicNeuron(1)))


def test_add_edge_checks() -> None:
    graph = build_graph(1)
    graph.add_edge(loc(0, 0), loc(1, 0), Edge(0.5, True))

    with pytest.raises(ConnectionExists):
        graph.add_edge(loc(0, 0), loc(1, 0))
    with pytest.raises(EdgeDirectionError):
        graph.add_edge(loc(1, 0), loc(0, 1))
    with pytest.raises(EdgeDirectionError):
        graph.add_edge(loc(0, 0), loc(0, 1))
    with pytest.raises(NodeNotFound):
        graph.add_edge(loc(0, 0), loc(1, 5))

    edge = graph.get_edge(loc(0, 0), loc(1, 0))
    assert edge is not None
    assert edge.value == Edge(0.5, True)


def test_add_edge_defaults_to_disabled() -> None:
    graph = build_graph()
    edge = graph.add_edge(loc(0, 0), loc(1, 0))
    assert edge.value.enabled is False
    assert edge.value.weight == 0.0


def test_remove_edge_reports_removal() -> None:
    graph = build_graph()
    graph.add_edge(loc(0, 0), loc(1, 0))

    assert graph.remove_edge(loc(0, 0), loc(1, 0)) is True
    assert graph.remove_edge(loc(0, 0), loc(1, 0)) is False
    assert graph.edge_count() == 0


def test_insert_layer_before_renumbers_edges() -> None:
    graph = build_graph(1)
    graph.add_edge(loc(0, 0), loc(1, 0))
    graph.add_edge(loc(1, 0), loc(2, 0))

    graph.insert_layer_before(1)

    assert len(graph.layers) == 4
    assert graph.layers[1] == []
    assert graph.get_edge(loc(0, 0), loc(2, 0)) is not None
    assert graph.get_edge(loc(2, 0), loc(3, 0)) is not None
    with pytest.raises(LayerNotFound):
        graph.insert_layer_before(0)


def test_insert_layer_only_adds_what_is_missing() -> None:
    graph = build_graph()
    graph.add_edge(loc(0, 0), loc(1, 0))

    assert graph.insert_layer(1) == 1
    assert len(graph.layers) == 3
    assert graph.insert_layer(1) == 0
    assert graph.insert_layer(3) == 2
    assert len(graph.layers) == 5
    # The output layer stays last and its incoming edge follows it.
    assert graph.get_edge(loc(0, 0), loc(4, 0)) is not None


def test_create_node_at_pads_and_prune_collapses() -> None:
    graph = build_graph()
    placed = graph.create_node_at(loc(1, 2), BasicNeuron(7))
    graph.add_edge(loc(0, 0), placed, Edge(1.0, True))
    graph.add_edge(placed, loc(2, 0), Edge(2.0, True))

    assert [node.is_placeholder for node in graph.layers[1]] == [True, True, False]
    assert graph.prune() == 2

    assert len(graph.layers[1]) == 1
    assert graph.get_edge(loc(0, 0), loc(1, 0)) is not None
    assert graph.get_edge(loc(1, 0), loc(2, 0)) is not None
    graph.validate()


def test_create_node_at_occupied_slot_shifts_existing_node() -> None:
    graph = build_graph(1)
    graph.add_edge(loc(0, 0), loc(1, 0))

    graph.create_node_at(loc(1, 0), BasicNeuron(99))

    assert graph.layers[1][0].value == BasicNeuron(99)
    assert graph.layers[1][1].value == BasicNeuron(10)
    assert graph.get_edge(loc(0, 0), loc(1, 1)) is not None
    assert graph.get_edge(loc(0, 0), loc(1, 0)) is None


def test_prune_drops_edges_into_placeholders() -> None:
    graph = build_graph()
    graph.insert_layer(1)
    graph.layers[1].append(GraphNode.blank())
    graph.layers[1].append(GraphNode(BasicNeuron(4)))
    graph.add_edge(loc(0, 0), loc(1, 0))
    graph.add_edge(loc(0, 0), loc(1, 1), Edge(0.3, True))

    graph.prune()

    connections = graph.layers[0][0].connections
    assert len(connections) == 1
    assert connections[0].to == loc(1, 0)
    assert connections[0].value.weight == pytest.approx(0.3)


def test_remove_node_forgets_incoming_edges() -> None:
    graph = build_graph(2)
    graph.add_edge(loc(0, 0), loc(1, 0))
    graph.add_edge(loc(0, 0), loc(1, 1))
    graph.add_edge(loc(1, 1), loc(2, 0))

    removed = graph.remove_node(loc(1, 0))

    assert removed.value == BasicNeuron(10)
    assert [edge.to for edge in graph.layers[0][0].connections] == [loc(1, 0)]
    assert graph.layers[1][0].value == BasicNeuron(11)
    assert graph.get_edge(loc(1, 0), loc(2, 0)) is not None
    with pytest.raises(NodeNotFound):
        graph.remove_node(loc(1, 5))


def test_has_cycle_detects_back_edge() -> None:
    graph = build_graph(1)
    graph.add_edge(loc(0, 0), loc(1, 0))
    graph.add_edge(loc(1, 0), loc(2, 0))
    assert graph.has_cycle(loc(0, 0)) is False

    # add_edge refuses backward edges, so wire one in by hand.
    graph.layers[2][0].connections.append(GraphEdge(to=loc(1, 0)))
    assert graph.has_cycle(loc(0, 0)) is True


def test_has_cycle_ignores_diamonds() -> None:
    graph = build_graph(2)
    graph.add_edge(loc(0, 0), loc(1, 0))
    graph.add_edge(loc(0, 0), loc(1, 1))
    graph.add_edge(loc(1, 0), loc(2, 0))
    graph.add_edge(loc(1, 1), loc(2, 0))
    graph.add_edge(loc(0, 0), loc(2, 0))

    assert graph.has_cycle() is False
    assert not any(graph.has_cycle(location) for location, _ in graph.iter_nodes())


def test_random_sampling_skips_placeholders() -> None:
    graph = build_graph()
    graph.insert_layer(1)
    graph.layers[1].append(GraphNode.blank())
    graph.layers[1].append(GraphNode(BasicNeuron(4)))

    for seed in range(20):
        rng = Random(seed)
        assert graph.random_hidden(rng) == loc(1, 1)
        picked = graph.random_output_or_hidden(rng, after_layer=0)
        assert picked in {loc(1, 1), loc(2, 0)}
        source = graph.random_input_or_hidden(rng)
        assert source in {loc(0, 0), loc(0, 1), loc(1, 1)}


def test_random_edge_on_empty_graph() -> None:
    graph = build_graph(1)
    assert graph.random_edge(Random(0)) is None
    assert graph.random_hidden(Random(0)) == loc(1, 0)
    assert build_graph().random_hidden(Random(0)) is None


def test_validate_rejects_misplaced_roles() -> None:
    graph = build_graph(1)
    graph.validate()

    graph.layers[1].append(GraphNode.blank())
    with pytest.raises(InvariantViolation):
        graph.validate()

    graph = build_graph()
    graph.layers[1].append(GraphNode(ValueInput(7)))
    with pytest.raises(InvariantViolation):
        graph.validate()


def test_counts_and_identity_lookup() -> None:
    graph = build_graph(2)
    graph.add_edge(loc(0, 0), loc(1, 0), Edge(0.1, True))
    graph.add_edge(loc(0, 1), loc(1, 1))

    assert graph.node_count() == 5
    assert graph.edge_count() == 2
    assert graph.edge_count(enabled_only=True) == 1
    assert graph.hidden_layer_count() == 1
    assert graph.find_identity(("BasicNeuron", 11)) == loc(1, 1)
    assert graph.find_identity(("BasicNeuron", 404)) is None
    assert [source for source, _ in graph.incoming(loc(1, 1))] == [loc(0, 1)]


def test_dict_form_rebuilds_same_graph() -> None:
    graph = build_graph(1)
    graph.add_edge(loc(0, 1), loc(1, 0), Edge(0.75, True))
    graph.add_edge(loc(1, 0), loc(2, 0), Edge(-0.5, False))

    rebuilt = NeuralGraph.from_dict(graph.to_dict())

    assert rebuilt == graph
    assert rebuilt.layers[1][0].value is not graph.layers[1][0].value


def test_copy_is_deep() -> None:
    graph = build_graph(1)
    graph.add_edge(loc(0, 0), loc(1, 0), Edge(0.5, True))
    clone = graph.copy()

    clone.layers[0][0].connections[0].value.weight = 9.0
    assert graph.layers[0][0].connections[0].value.weight == 0.5
