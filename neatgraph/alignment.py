"""Gene alignment between two nets by neuron identity."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .graph import GraphLocation, NeuralGraph
from .nodes import Identity

if TYPE_CHECKING:
    from .net import Net


class EdgeDirection(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


@dataclass(frozen=True, slots=True)
class AlignedNode:
    """A hidden neuron present in both parents."""

    identity: Identity
    a: GraphLocation
    b: GraphLocation


@dataclass(frozen=True, slots=True)
class AlignedEdge:
    """An edge whose endpoints carry the same identities in both parents."""

    direction: EdgeDirection
    a_from: GraphLocation
    a_to: GraphLocation
    b_from: GraphLocation
    b_to: GraphLocation


AlignedItem = AlignedNode | AlignedEdge


def _hidden_occurrences(graph: NeuralGraph) -> dict[Identity, list[GraphLocation]]:
    found: dict[Identity, list[GraphLocation]] = {}
    for location, node in graph.iter_nodes():
        if location.layer == 0 or location.layer == len(graph.layers) - 1:
            continue
        if node.value is None:
            continue
        found.setdefault(node.value.identity, []).append(location)
    return found


def _incoming(graph: NeuralGraph, location: GraphLocation) -> dict[Identity, GraphLocation]:
    found: dict[Identity, GraphLocation] = {}
    for source, _ in graph.incoming(location):
        node = graph.get_node(source)
        if node is not None and node.value is not None:
            found.setdefault(node.value.identity, source)
    return found


def _outgoing(graph: NeuralGraph, location: GraphLocation) -> dict[Identity, GraphLocation]:
    found: dict[Identity, GraphLocation] = {}
    node = graph.get_node(location)
    if node is None:
        return found
    for edge in node.connections:
        target = graph.get_node(edge.to)
        if target is not None and target.value is not None:
            found.setdefault(target.value.identity, edge.to)
    return found


def intersection(a: Net, b: Net) -> list[AlignedItem]:
    """Return the genes shared by two nets.

    Hidden neurons are matched by identity across all hidden layers; the k-th
    occurrence in ``a`` pairs with the k-th in ``b``. An edge is shared when
    the neuron on its far end has the same identity in both parents. A neuron
    is reported only when at least one of its edges is shared, and its edges
    follow it directly. Items appear in ``a``'s layer order, so every shared
    edge's source neuron is reported before its destination neuron.
    """
    items: list[AlignedItem] = []
    if len(a.graph.layers) <= 2 or len(b.graph.layers) <= 2:
        return items

    b_hidden = _hidden_occurrences(b.graph)
    for identity, a_locations in _hidden_occurrences(a.graph).items():
        b_locations = b_hidden.get(identity)
        if not b_locations:
            continue
        for a_location, b_location in zip(a_locations, b_locations):
            a_in = _incoming(a.graph, a_location)
            b_in = _incoming(b.graph, b_location)
            a_out = _outgoing(a.graph, a_location)
            b_out = _outgoing(b.graph, b_location)
            shared_in = [other for other in a_in if other in b_in]
            shared_out = [other for other in a_out if other in b_out]
            if not shared_in and not shared_out:
                continue

            items.append(AlignedNode(identity, a_location, b_location))
            for other in shared_in:
                items.append(
                    AlignedEdge(
                        EdgeDirection.INCOMING,
                        a_in[other],
                        a_location,
                        b_in[other],
                        b_location,
                    )
                )
            for other in shared_out:
                items.append(
                    AlignedEdge(
                        EdgeDirection.OUTGOING,
                        a_location,
                        a_out[other],
                        b_location,
                        b_out[other],
                    )
                )
    return items


__all__ = [
    "AlignedEdge",
    "AlignedItem",
    "AlignedNode",
    "EdgeDirection",
    "intersection",
]
