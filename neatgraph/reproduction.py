"""Two-parent crossover over identity-aligned genes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from random import Random
from typing import TYPE_CHECKING

from .alignment import AlignedEdge, AlignedNode, intersection
from .graph import GraphLocation, NeuralGraph, NeuralGraphError, NodeNotFound

if TYPE_CHECKING:
    from .net import Net

ParentChooser = Callable[[Random], bool]
RemapKey = tuple[str, GraphLocation]


def fair_coin(rng: Random) -> bool:
    """Return ``True`` (take parent ``a``) half of the time."""
    return rng.random() < 0.5


class ReproduceError(Exception):
    """Base class for reproduction failures."""


class ChildNetError(ReproduceError):
    """The child graph could not be assembled."""


class ReproductionGeneratorError(ReproduceError):
    """A reproduction generator produced an unusable instruction."""


class Reproducer(ABC):
    __slots__ = ()

    @abstractmethod
    def reproduce(self, a: Net, b: Net, output: Net, rng: Random) -> None:
        """Write genes derived from ``a`` and ``b`` into ``output``."""


class Generator(ABC):
    """Decides which reproducer runs next while building a child."""

    __slots__ = ()

    @abstractmethod
    def generate(
        self,
        a: Net,
        b: Net,
        reproducers: Sequence[Reproducer],
    ) -> tuple[int, bool]:
        """Return ``(index, done)``."""


@dataclass(slots=True)
class DefaultIterator(Generator):
    """Runs every reproducer once, in order."""

    position: int = 0

    def generate(
        self,
        a: Net,
        b: Net,
        reproducers: Sequence[Reproducer],
    ) -> tuple[int, bool]:
        index = self.position
        self.position += 1
        return index, self.position >= len(reproducers)


def _parent_tag(use_a: bool) -> str:
    return "a" if use_a else "b"


@dataclass(frozen=True, slots=True)
class Crossover(Reproducer):
    """Keep only genes both parents share, taking each one from a chosen parent.

    ``choose`` is called once per shared neuron and once per shared edge;
    ``True`` selects parent ``a``.
    """

    choose: ParentChooser = fair_coin

    def reproduce(self, a: Net, b: Net, output: Net, rng: Random) -> None:
        aligned = intersection(a, b)
        nodes = [item for item in aligned if isinstance(item, AlignedNode)]
        edges = [item for item in aligned if isinstance(item, AlignedEdge)]
        try:
            remap = self._place_nodes(a, b, output, nodes, edges, rng)
            self._place_edges(a, b, output, edges, remap, rng)
        except NeuralGraphError as error:
            msg = "Child net could not be assembled from aligned genes."
            raise ChildNetError(msg) from error
        output.graph.prune()
        output.refresh_layers()

    def _place_nodes(
        self,
        a: Net,
        b: Net,
        output: Net,
        nodes: Sequence[AlignedNode],
        edges: Sequence[AlignedEdge],
        rng: Random,
    ) -> dict[RemapKey, GraphLocation]:
        graph = output.graph
        remap: dict[RemapKey, GraphLocation] = {}
        for item in nodes:
            use_a = self.choose(rng)
            parent, chosen = (a, item.a) if use_a else (b, item.b)

            existing = graph.find_identity(item.identity)
            if existing is not None:
                remap[("a", item.a)] = existing
                remap[("b", item.b)] = existing
                continue

            # Hidden predecessors are placed first since items follow a's layer order.
            earliest = 1
            for edge in edges:
                if edge.a_to != item.a:
                    continue
                placed = remap.get(("a", edge.a_from))
                if placed is not None:
                    earliest = max(earliest, placed.layer + 1)

            layer = max(chosen.layer, earliest)
            graph.insert_layer(layer)
            row = graph.layers[layer]
            target = GraphLocation(layer, chosen.node)
            if layer != chosen.layer or (
                target.node < len(row) and not row[target.node].is_placeholder
            ):
                target = GraphLocation(layer, len(row))

            value = parent.graph.layers[chosen.layer][chosen.node].value
            if value is None:
                raise NodeNotFound(chosen)
            location = graph.create_node_at(target, value.copy())
            remap[("a", item.a)] = location
            remap[("b", item.b)] = location
        return remap

    def _place_edges(
        self,
        a: Net,
        b: Net,
        output: Net,
        edges: Sequence[AlignedEdge],
        remap: dict[RemapKey, GraphLocation],
        rng: Random,
    ) -> None:
        graph = output.graph
        seen: set[tuple[GraphLocation, GraphLocation]] = set()
        for item in edges:
            if (item.a_from, item.a_to) in seen:
                continue
            seen.add((item.a_from, item.a_to))

            use_a = self.choose(rng)
            parent, source, target = (
                (a, item.a_from, item.a_to) if use_a else (b, item.b_from, item.b_to)
            )
            parent_edge = parent.graph.get_edge(source, target)
            if parent_edge is None:
                raise NodeNotFound(target)

            tag = _parent_tag(use_a)
            child_source = _resolve(graph, parent.graph, remap, tag, source)
            child_target = _resolve(graph, parent.graph, remap, tag, target)
            if child_target.layer <= child_source.layer:
                continue
            if graph.get_edge(child_source, child_target) is not None:
                continue
            graph.add_edge(child_source, child_target, parent_edge.value.copy())


def _resolve(
    child: NeuralGraph,
    parent: NeuralGraph,
    remap: dict[RemapKey, GraphLocation],
    tag: str,
    location: GraphLocation,
) -> GraphLocation:
    placed = remap.get((tag, location))
    if placed is not None:
        return placed
    node = parent.get_node(location)
    if node is None or node.value is None:
        raise NodeNotFound(location)
    found = child.find_identity(node.value.identity)
    if found is None:
        raise NodeNotFound(location)
    return found


__all__ = [
    "ChildNetError",
    "Crossover",
    "DefaultIterator",
    "Generator",
    "ParentChooser",
    "ReproduceError",
    "Reproducer",
    "ReproductionGeneratorError",
    "fair_coin",
]
