"""Structural and weight mutation operators and the generators that drive them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from random import Random
from typing import TYPE_CHECKING

from .config import MutationConfig
from .graph import GraphEdge, GraphLocation, NeuralGraph, NeuralGraphError, NodeNotFound
from .innovations import NeuronIdTracker
from .nodes import Edge, Neuron

if TYPE_CHECKING:
    from .net import Net

MutationSelector = Callable[[int], int]
WeightInitializer = Callable[[Random], float]
EdgeFactory = Callable[[Random], Edge]


def _default_weight_init(rng: Random) -> float:
    return rng.uniform(-1.0, 1.0)


class MutateError(Exception):
    """Base class for mutation failures."""


class AddLinkError(MutateError):
    pass


class RemoveLinkError(MutateError):
    pass


class AddNeuronError(MutateError):
    pass


class RemoveNeuronError(MutateError):
    pass


class NeuronSelectorOutOfRange(MutateError):
    """The neuron selector returned an index outside the candidate pool."""

    def __init__(self, size: int, index: int) -> None:
        super().__init__(
            f"Neuron selector returned {index} for a pool of size {size}"
        )
        self.size = size
        self.index = index


class MutationGeneratorError(MutateError):
    """A mutation generator produced an unusable instruction."""


class LinkMutator(ABC):
    __slots__ = ()

    @abstractmethod
    def mutate(self, net: Net, rng: Random) -> bool:
        """Apply the operator; return whether the graph changed."""


class NeuronMutator(ABC):
    __slots__ = ()

    @abstractmethod
    def mutate(
        self,
        net: Net,
        neurons: Sequence[Neuron],
        selector: MutationSelector,
        rng: Random,
    ) -> bool:
        """Apply the operator; return whether the graph changed."""


@dataclass(frozen=True, slots=True)
class AddEdge(LinkMutator):
    """Connect a random input/hidden node to a random later node."""

    edge_factory: EdgeFactory = Edge.random

    def mutate(self, net: Net, rng: Random) -> bool:
        graph = net.graph
        source = graph.random_input_or_hidden(rng)
        if source is None:
            return False
        target = graph.random_output_or_hidden(rng, after_layer=source.layer)
        if target is None:
            return False

        existing = graph.get_edge(source, target)
        if existing is not None:
            if existing.value.enabled:
                return False
            existing.value.enabled = True
            return True

        try:
            graph.add_edge(source, target, self.edge_factory(rng))
        except NeuralGraphError as error:
            msg = f"Could not add edge {source} -> {target}"
            raise AddLinkError(msg) from error
        if graph.has_cycle(source):
            graph.remove_edge(source, target)
            return False
        return True


@dataclass(frozen=True, slots=True)
class RemoveEdge(LinkMutator):
    def mutate(self, net: Net, rng: Random) -> bool:
        picked = net.graph.random_edge(rng)
        if picked is None:
            return False
        source, edge = picked
        target = edge.to
        if not net.graph.remove_edge(source, target):
            msg = f"Sampled edge {source} -> {target} vanished before removal"
            raise RemoveLinkError(msg)
        return True


@dataclass(frozen=True, slots=True)
class PerturbWeight(LinkMutator):
    """Nudge a random edge's weight, or occasionally reset it."""

    perturb_sd: float = 0.5
    reset_rate: float = 0.1
    weight_init: WeightInitializer = _default_weight_init

    def __post_init__(self) -> None:
        if self.perturb_sd <= 0.0:
            msg = "perturb_sd must be positive."
            raise ValueError(msg)
        if not 0.0 <= self.reset_rate <= 1.0:
            msg = "reset_rate must be in [0, 1]."
            raise ValueError(msg)

    def mutate(self, net: Net, rng: Random) -> bool:
        picked = net.graph.random_edge(rng)
        if picked is None:
            return False
        _, edge = picked
        if rng.random() < self.reset_rate:
            edge.value.weight = float(self.weight_init(rng))
        else:
            edge.value.weight += rng.gauss(0.0, self.perturb_sd)
        return True


@dataclass(slots=True)
class AddNeuron(NeuronMutator):
    """Split a random edge with a neuron picked from the candidate pool.

    ``split_edge_enabled`` sets the enabled flag of the new ``neuron -> to``
    edge, which always starts with weight zero. When a tracker is supplied,
    the inserted neuron takes the id the tracker assigns to this split.
    """

    split_edge_enabled: bool = False
    tracker: NeuronIdTracker | None = None

    def mutate(
        self,
        net: Net,
        neurons: Sequence[Neuron],
        selector: MutationSelector,
        rng: Random,
    ) -> bool:
        picked = net.graph.random_edge(rng)
        if picked is None:
            return False
        source, edge = picked

        index = selector(len(neurons))
        if not 0 <= index < len(neurons):
            raise NeuronSelectorOutOfRange(len(neurons), index)

        self.split(net, source, edge.copy(), neurons[index])
        return True

    def split(
        self,
        net: Net,
        source: GraphLocation,
        edge: GraphEdge,
        neuron: Neuron,
    ) -> GraphLocation:
        """Replace ``source -> edge.to`` with ``source -> new -> edge.to``."""
        graph = net.graph
        try:
            inserted = self._materialize(graph, source, edge.to, neuron)
            graph.remove_edge(source, edge.to)

            new_layer = source.layer + 1
            target_layer = edge.to.layer
            if target_layer == new_layer:
                graph.insert_layer_before(new_layer)
                target_layer += 1

            location = graph.push_node_at(new_layer, inserted)
            graph.add_edge(source, location, edge.value.copy())
            graph.add_edge(
                location,
                GraphLocation(target_layer, edge.to.node),
                Edge(weight=0.0, enabled=self.split_edge_enabled),
            )
        except NeuralGraphError as error:
            msg = f"Could not split edge {source} -> {edge.to}"
            raise AddNeuronError(msg) from error
        net.refresh_layers()
        return location

    def _materialize(
        self,
        graph: NeuralGraph,
        source: GraphLocation,
        target: GraphLocation,
        neuron: Neuron,
    ) -> Neuron:
        source_node = graph.get_node(source)
        if source_node is None:
            raise NodeNotFound(source)
        target_node = graph.get_node(target)
        if target_node is None:
            raise NodeNotFound(target)
        if (
            self.tracker is None
            or source_node.value is None
            or target_node.value is None
        ):
            return neuron.copy()
        neuron_id = self.tracker.register(
            neuron.kind,
            source_node.value.identity,
            target_node.value.identity,
        )
        return neuron.copy(neuron_id=neuron_id)


@dataclass(frozen=True, slots=True)
class RemoveNeuron(NeuronMutator):
    def mutate(
        self,
        net: Net,
        neurons: Sequence[Neuron],
        selector: MutationSelector,
        rng: Random,
    ) -> bool:
        graph = net.graph
        if len(graph.layers) <= 2:
            return False
        location = graph.random_hidden(rng)
        if location is None:
            return False
        try:
            graph.remove_node(location)
        except NeuralGraphError as error:
            msg = f"Could not remove neuron at {location}"
            raise RemoveNeuronError(msg) from error
        return True


class Generator(ABC):
    """Decides which operator runs next during a mutation pass."""

    __slots__ = ()

    @abstractmethod
    def generate(
        self,
        graph: NeuralGraph,
        link_mutators: Sequence[LinkMutator],
        neuron_mutators: Sequence[NeuronMutator],
    ) -> tuple[bool, int, bool]:
        """Return ``(is_link, index, done)``."""


@dataclass(slots=True)
class SequenceGenerator(Generator):
    """Replays a fixed script of ``(is_link, index)`` steps."""

    steps: Sequence[tuple[bool, int]]
    _position: int = field(default=0, init=False, repr=False)

    def generate(
        self,
        graph: NeuralGraph,
        link_mutators: Sequence[LinkMutator],
        neuron_mutators: Sequence[NeuronMutator],
    ) -> tuple[bool, int, bool]:
        if self._position >= len(self.steps):
            msg = "SequenceGenerator has no steps left."
            raise MutationGeneratorError(msg)
        is_link, index = self.steps[self._position]
        self._position += 1
        return is_link, index, self._position >= len(self.steps)


@dataclass(slots=True)
class WeightedGenerator(Generator):
    """Draws ``count`` operators with probability proportional to their weight."""

    link_weights: Sequence[float]
    neuron_weights: Sequence[float]
    count: int
    rng: Random
    _issued: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.count <= 0:
            msg = "count must be positive."
            raise ValueError(msg)

    def generate(
        self,
        graph: NeuralGraph,
        link_mutators: Sequence[LinkMutator],
        neuron_mutators: Sequence[NeuronMutator],
    ) -> tuple[bool, int, bool]:
        if len(self.link_weights) != len(link_mutators) or len(
            self.neuron_weights
        ) != len(neuron_mutators):
            msg = "One weight per mutator is required."
            raise MutationGeneratorError(msg)
        options = [(True, index) for index in range(len(link_mutators))]
        options += [(False, index) for index in range(len(neuron_mutators))]
        weights = [*self.link_weights, *self.neuron_weights]
        if not options or sum(weights) <= 0.0:
            msg = "No mutator has a positive weight."
            raise MutationGeneratorError(msg)

        is_link, index = self.rng.choices(options, weights=weights, k=1)[0]
        self._issued += 1
        return is_link, index, self._issued >= self.count


def build_mutators(
    config: MutationConfig,
    tracker: NeuronIdTracker | None = None,
) -> tuple[list[LinkMutator], list[NeuronMutator]]:
    """Build operators in the order used by ``MutationConfig`` rates."""
    link_mutators: list[LinkMutator] = [
        AddEdge(),
        RemoveEdge(),
        PerturbWeight(perturb_sd=config.perturb_sd, reset_rate=config.reset_rate),
    ]
    neuron_mutators: list[NeuronMutator] = [
        AddNeuron(split_edge_enabled=config.split_edge_enabled, tracker=tracker),
        RemoveNeuron(),
    ]
    return link_mutators, neuron_mutators


__all__ = [
    "AddEdge",
    "AddLinkError",
    "AddNeuron",
    "AddNeuronError",
    "EdgeFactory",
    "Generator",
    "LinkMutator",
    "MutateError",
    "MutationGeneratorError",
    "MutationSelector",
    "NeuronMutator",
    "NeuronSelectorOutOfRange",
    "PerturbWeight",
    "RemoveEdge",
    "RemoveLinkError",
    "RemoveNeuron",
    "RemoveNeuronError",
    "SequenceGenerator",
    "WeightedGenerator",
    "build_mutators",
]
