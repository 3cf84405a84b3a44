"""Layer-staged forward propagation over a neural graph."""

from __future__ import annotations

from collections import defaultdict

from .graph import GraphEdge, GraphLocation, InvariantViolation, NeuralGraph
from .nodes import InputNeuron, Neuron, OutputNeuron

PendingWork = dict[int, list[tuple[GraphEdge, float]]]


def _enqueue(
    pending: PendingWork,
    source: GraphLocation,
    edges: list[GraphEdge],
    value: float,
) -> None:
    for edge in edges:
        if not edge.value.enabled:
            continue
        if edge.to.layer <= source.layer:
            msg = f"Edge {source} -> {edge.to} does not point forward."
            raise InvariantViolation(msg)
        pending[edge.to.layer].append((edge, value))


def propagate(graph: NeuralGraph) -> int:
    """Run one tick from the current input values.

    Work is bucketed by destination layer and always drained from the lowest
    pending layer, so every node has received all of its contributions before
    it is finished. Outputs store their result; hidden neurons push theirs
    along enabled outgoing edges.

    Returns:
        The number of nodes finished during the pass.
    """
    pending: PendingWork = defaultdict(list)
    if not graph.layers:
        return 0

    for node_index, node in enumerate(graph.layers[0]):
        if not isinstance(node.value, InputNeuron):
            continue
        _enqueue(
            pending,
            GraphLocation(0, node_index),
            node.connections,
            node.value.as_standard(),
        )

    finished = 0
    while pending:
        layer_index = min(pending)
        partials: dict[GraphLocation, float] = {}
        for edge, value in pending[layer_index]:
            target = graph.get_node(edge.to)
            if target is None or not isinstance(target.value, (OutputNeuron, Neuron)):
                msg = f"Edge points at {edge.to}, which cannot receive input."
                raise InvariantViolation(msg)
            contribution = target.value.step(edge.value, value)
            partials[edge.to] = partials.get(edge.to, 0.0) + contribution

        for location, partial in partials.items():
            node = graph.layers[location.layer][location.node]
            if isinstance(node.value, OutputNeuron):
                node.value.finish_and_save(partial)
            elif isinstance(node.value, Neuron):
                emitted = node.value.finish(partial)
                _enqueue(pending, location, node.connections, emitted)
            finished += 1

        del pending[layer_index]
    return finished


__all__ = ["propagate"]
