"""Layered graph storage addressed by (layer, node) index pairs."""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from random import Random
from typing import Any, TypeVar

from .nodes import Edge, Identity, NodeRole, NodeValue, neuron_from_dict, node_role

GRAPH_SIZE_LIMIT = 1 << 16

_T = TypeVar("_T")


class NeuralGraphError(Exception):
    """Base class for structural graph errors."""


class LayerNotFound(NeuralGraphError):
    def __init__(self, layer_count: int) -> None:
        super().__init__(f"Invalid layer number, graph has {layer_count} layers")
        self.layer_count = layer_count


class NodeNotFound(NeuralGraphError):
    def __init__(self, location: GraphLocation) -> None:
        super().__init__(f"Node not found at {location}")
        self.location = location


class ConnectionExists(NeuralGraphError):
    def __init__(self, source: GraphLocation, target: GraphLocation) -> None:
        super().__init__(f"Connection already exists from {source} to {target}")
        self.source = source
        self.target = target


class EdgeDirectionError(NeuralGraphError):
    def __init__(self, source: GraphLocation, target: GraphLocation) -> None:
        super().__init__(
            f"Edge from {source} to {target} does not point to a later layer"
        )
        self.source = source
        self.target = target


class InvariantViolation(NeuralGraphError):
    """A finalized graph breaks the layering rules."""


@dataclass(frozen=True, slots=True, order=True)
class GraphLocation:
    """Position of a node: layer index, then index within the layer."""

    layer: int
    node: int

    def __post_init__(self) -> None:
        for label, value in (("layer", self.layer), ("node", self.node)):
            if not 0 <= value < GRAPH_SIZE_LIMIT:
                msg = f"{label} must be in [0, {GRAPH_SIZE_LIMIT})."
                raise ValueError(msg)

    def __str__(self) -> str:
        return f"L{self.layer}N{self.node}"

    def shifted(self, *, layer: int = 0, node: int = 0) -> GraphLocation:
        return GraphLocation(self.layer + layer, self.node + node)

    def to_list(self) -> list[int]:
        return [self.layer, self.node]

    @classmethod
    def from_sequence(cls, data: Sequence[int]) -> GraphLocation:
        if len(data) != 2:
            msg = "Graph locations must contain exactly two elements."
            raise ValueError(msg)
        return cls(int(data[0]), int(data[1]))


@dataclass(slots=True)
class GraphEdge:
    """Outgoing edge stored on its source node."""

    to: GraphLocation
    value: Edge = field(default_factory=Edge)

    def copy(self) -> GraphEdge:
        return GraphEdge(to=self.to, value=self.value.copy())


@dataclass(slots=True)
class GraphNode:
    value: NodeValue = None
    connections: list[GraphEdge] = field(default_factory=list)

    @classmethod
    def blank(cls) -> GraphNode:
        """Return a placeholder node."""
        return cls()

    @property
    def role(self) -> NodeRole:
        return node_role(self.value)

    @property
    def is_placeholder(self) -> bool:
        return self.value is None

    def edge_to(self, target: GraphLocation) -> GraphEdge | None:
        for edge in self.connections:
            if edge.to == target:
                return edge
        return None


def _choice(rng: Random, items: Sequence[_T]) -> _T | None:
    if not items:
        return None
    return rng.choice(items)


@dataclass(slots=True)
class NeuralGraph:
    """Ordered layers of nodes; edges only run from lower to higher layers."""

    layers: list[list[GraphNode]] = field(default_factory=list)

    def add_layer_to_end(self) -> int:
        self.layers.append([])
        return len(self.layers) - 1

    def add_node(self, layer: int, node: GraphNode) -> GraphLocation:
        if not 0 <= layer < len(self.layers):
            raise LayerNotFound(len(self.layers))
        target = self.layers[layer]
        target.append(node)
        return GraphLocation(layer, len(target) - 1)

    def get_node(self, location: GraphLocation) -> GraphNode | None:
        if location.layer >= len(self.layers):
            return None
        layer = self.layers[location.layer]
        if location.node >= len(layer):
            return None
        return layer[location.node]

    def get_edge(
        self,
        source: GraphLocation,
        target: GraphLocation,
    ) -> GraphEdge | None:
        node = self.get_node(source)
        if node is None:
            return None
        return node.edge_to(target)

    def add_edge(
        self,
        source: GraphLocation,
        target: GraphLocation,
        value: Edge | None = None,
    ) -> GraphEdge:
        """Append an edge to ``source``'s outgoing list."""
        if self.get_node(target) is None:
            raise NodeNotFound(target)
        source_node = self.get_node(source)
        if source_node is None:
            raise NodeNotFound(source)
        if target.layer <= source.layer:
            raise EdgeDirectionError(source, target)
        if source_node.edge_to(target) is not None:
            raise ConnectionExists(source, target)
        edge = GraphEdge(to=target, value=Edge() if value is None else value)
        source_node.connections.append(edge)
        return edge

    def remove_edge(self, source: GraphLocation, target: GraphLocation) -> bool:
        """Remove the edge between two nodes; return whether one was removed."""
        node = self.get_node(source)
        if node is None:
            return False
        before = len(node.connections)
        node.connections = [edge for edge in node.connections if edge.to != target]
        return len(node.connections) != before

    def insert_layer_before(self, at: int) -> None:
        """Insert one empty layer at ``at``, shifting that layer and later ones."""
        if not 1 <= at <= len(self.layers) - 1:
            raise LayerNotFound(len(self.layers))
        self.layers.insert(at, [])
        for _, edge in self.iter_edges():
            if edge.to.layer >= at:
                edge.to = edge.to.shifted(layer=1)

    def insert_layer(self, at: int) -> int:
        """Make ``at`` a valid non-output layer index.

        Empty layers are inserted right before the output layer until ``at``
        no longer points at (or past) it. Returns the number of layers added.
        """
        if len(self.layers) < 2:
            raise LayerNotFound(len(self.layers))
        inserted = 0
        while at >= len(self.layers) - 1:
            self.insert_layer_before(len(self.layers) - 1)
            inserted += 1
        return inserted

    def push_node_at(self, layer: int, value: NodeValue) -> GraphLocation:
        return self.add_node(layer, GraphNode(value))

    def create_node_at(
        self,
        location: GraphLocation,
        value: NodeValue,
    ) -> GraphLocation:
        """Place ``value`` at exactly ``location``, padding with placeholders."""
        self.insert_layer(location.layer)
        layer = self.layers[location.layer]
        while len(layer) < location.node:
            layer.append(GraphNode.blank())
        if location.node == len(layer):
            layer.append(GraphNode(value))
        elif layer[location.node].is_placeholder:
            layer[location.node] = GraphNode(value)
        else:
            layer.insert(location.node, GraphNode(value))
            self._shift_targets(location.layer, start=location.node, delta=1)
        return location

    def prune(self) -> int:
        """Remove every placeholder node and repair edge targets."""
        removed = 0
        for layer_index, layer in enumerate(self.layers):
            for node_index in range(len(layer) - 1, -1, -1):
                if not layer[node_index].is_placeholder:
                    continue
                del layer[node_index]
                self._forget(GraphLocation(layer_index, node_index))
                removed += 1
        return removed

    def remove_node(self, location: GraphLocation) -> GraphNode:
        """Delete a node together with every edge that targeted it."""
        if self.get_node(location) is None:
            raise NodeNotFound(location)
        node = self.layers[location.layer].pop(location.node)
        self._forget(location)
        return node

    def _forget(self, removed: GraphLocation) -> None:
        # Drop edges into the removed slot and close the gap it left.
        for _, node in self.iter_nodes(include_placeholders=True):
            kept: list[GraphEdge] = []
            for edge in node.connections:
                if edge.to == removed:
                    continue
                if edge.to.layer == removed.layer and edge.to.node > removed.node:
                    edge.to = edge.to.shifted(node=-1)
                kept.append(edge)
            node.connections = kept

    def _shift_targets(self, layer: int, *, start: int, delta: int) -> None:
        for _, edge in self.iter_edges():
            if edge.to.layer == layer and edge.to.node >= start:
                edge.to = edge.to.shifted(node=delta)

    def _locations(self, layers: range) -> list[GraphLocation]:
        return [
            GraphLocation(layer_index, node_index)
            for layer_index in layers
            for node_index, node in enumerate(self.layers[layer_index])
            if not node.is_placeholder
        ]

    def random_input_or_hidden(self, rng: Random) -> GraphLocation | None:
        return _choice(rng, self._locations(range(0, len(self.layers) - 1)))

    def random_output_or_hidden(
        self,
        rng: Random,
        after_layer: int | None = None,
    ) -> GraphLocation | None:
        """Pick a node from a layer strictly after ``after_layer`` (default 0)."""
        start = (0 if after_layer is None else after_layer) + 1
        return _choice(rng, self._locations(range(start, len(self.layers))))

    def random_hidden(self, rng: Random) -> GraphLocation | None:
        return _choice(rng, self._locations(range(1, len(self.layers) - 1)))

    def random_edge(self, rng: Random) -> tuple[GraphLocation, GraphEdge] | None:
        return _choice(rng, list(self.iter_edges()))

    def has_cycle(self, start: GraphLocation | None = None) -> bool:
        """Depth-first walk from ``start`` looking for a path back onto itself.

        Paths that reconverge on a node (diamonds) are not cycles; only a
        return to a node still on the current path is.
        """
        if not self.layers:
            return False
        origin = GraphLocation(0, 0) if start is None else start
        if self.get_node(origin) is None:
            return False

        on_path: set[GraphLocation] = set()
        finished: set[GraphLocation] = set()
        stack: list[tuple[GraphLocation, bool]] = [(origin, False)]
        while stack:
            location, leaving = stack.pop()
            if leaving:
                on_path.discard(location)
                finished.add(location)
                continue
            if location in on_path:
                return True
            if location in finished:
                continue
            node = self.get_node(location)
            if node is None:
                continue
            on_path.add(location)
            stack.append((location, True))
            for edge in node.connections:
                if edge.to in on_path:
                    return True
                if edge.to not in finished:
                    stack.append((edge.to, False))
        return False

    def iter_nodes(
        self,
        *,
        include_placeholders: bool = False,
    ) -> Iterator[tuple[GraphLocation, GraphNode]]:
        for layer_index, layer in enumerate(self.layers):
            for node_index, node in enumerate(layer):
                if node.is_placeholder and not include_placeholders:
                    continue
                yield GraphLocation(layer_index, node_index), node

    def iter_edges(self) -> Iterator[tuple[GraphLocation, GraphEdge]]:
        for location, node in self.iter_nodes(include_placeholders=True):
            for edge in node.connections:
                yield location, edge

    def incoming(self, location: GraphLocation) -> list[tuple[GraphLocation, GraphEdge]]:
        """Return ``(source, edge)`` pairs targeting ``location``."""
        found: list[tuple[GraphLocation, GraphEdge]] = []
        for layer_index in range(min(location.layer, len(self.layers))):
            for node_index, node in enumerate(self.layers[layer_index]):
                edge = node.edge_to(location)
                if edge is not None:
                    found.append((GraphLocation(layer_index, node_index), edge))
        return found

    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def edge_count(self, *, enabled_only: bool = False) -> int:
        return sum(
            1 for _, edge in self.iter_edges() if edge.value.enabled or not enabled_only
        )

    def hidden_layer_count(self) -> int:
        return max(len(self.layers) - 2, 0)

    def find_identity(self, identity: Identity) -> GraphLocation | None:
        for location, node in self.iter_nodes():
            if node.value is not None and node.value.identity == identity:
                return location
        return None

    def validate(self) -> None:
        """Raise ``InvariantViolation`` if the graph is not in finalized shape."""
        if len(self.layers) < 2:
            msg = "A graph needs at least an input and an output layer."
            raise InvariantViolation(msg)
        last = len(self.layers) - 1
        for location, node in self.iter_nodes(include_placeholders=True):
            if location.layer == 0:
                expected = NodeRole.INPUT
            elif location.layer == last:
                expected = NodeRole.OUTPUT
            else:
                expected = NodeRole.NEURON
            if node.role is not expected:
                msg = f"{location} holds a {node.role.value} node, expected {expected.value}."
                raise InvariantViolation(msg)
            seen: set[GraphLocation] = set()
            for edge in node.connections:
                if edge.to.layer <= location.layer:
                    msg = f"Edge {location} -> {edge.to} does not point forward."
                    raise InvariantViolation(msg)
                if self.get_node(edge.to) is None:
                    msg = f"Edge {location} -> {edge.to} targets a missing node."
                    raise InvariantViolation(msg)
                if edge.to in seen:
                    msg = f"Duplicate edge {location} -> {edge.to}."
                    raise InvariantViolation(msg)
                seen.add(edge.to)

    def copy(self) -> NeuralGraph:
        return copy.deepcopy(self)

    def describe(self) -> list[str]:
        """Return a human-readable dump of every layer, node and edge."""
        lines: list[str] = []
        for layer_index, layer in enumerate(self.layers):
            lines.append(f"Layer {layer_index}:")
            for node_index, node in enumerate(layer):
                lines.append(f"  Node {node_index} {node.value!r}")
                for edge in node.connections:
                    state = "on" if edge.value.enabled else "off"
                    lines.append(
                        f"    -> {edge.to} weight={edge.value.weight:.4f} {state}"
                    )
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "layers": [
                [
                    {
                        "value": None if node.value is None else node.value.to_dict(),
                        "connections": [
                            {"to": edge.to.to_list(), **edge.value.to_dict()}
                            for edge in node.connections
                        ],
                    }
                    for node in layer
                ]
                for layer in self.layers
            ]
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NeuralGraph:
        try:
            raw_layers = data["layers"]
        except KeyError as error:
            msg = "Serialized graph is missing required key: layers"
            raise ValueError(msg) from error
        graph = cls()
        for raw_layer in raw_layers:
            layer: list[GraphNode] = []
            for raw_node in raw_layer:
                raw_value = raw_node.get("value")
                value = None if raw_value is None else neuron_from_dict(raw_value)
                connections = [
                    GraphEdge(
                        to=GraphLocation.from_sequence(raw_edge["to"]),
                        value=Edge(
                            weight=raw_edge.get("weight", 0.0),
                            enabled=raw_edge.get("enabled", False),
                        ),
                    )
                    for raw_edge in raw_node.get("connections", ())
                ]
                layer.append(GraphNode(value=value, connections=connections))
            graph.layers.append(layer)
        return graph


__all__ = [
    "ConnectionExists",
    "EdgeDirectionError",
    "GRAPH_SIZE_LIMIT",
    "GraphEdge",
    "GraphLocation",
    "GraphNode",
    "InvariantViolation",
    "LayerNotFound",
    "NeuralGraph",
    "NeuralGraphError",
    "NodeNotFound",
]
