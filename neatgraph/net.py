"""A runnable network: a neural graph plus its input and output layer indices."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from random import Random
from typing import TYPE_CHECKING, Any

from .config import GenConfig
from .graph import (
    GraphLocation,
    GraphNode,
    InvariantViolation,
    LayerNotFound,
    NeuralGraph,
    NeuralGraphError,
)
from .mutation import (
    LinkMutator,
    MutationGeneratorError,
    MutationSelector,
    NeuronMutator,
)
from .mutation import Generator as MutationGenerator
from .network import propagate
from .neurons import BasicNeuron
from .nodes import Edge, InputNeuron, Neuron, OutputNeuron
from .reproduction import ChildNetError, ReproductionGeneratorError

if TYPE_CHECKING:
    from .reproduction import Generator as ReproductionGenerator
    from .reproduction import Reproducer

NeuronFactory = Callable[[Random, int], Neuron]


def _basic_neuron(rng: Random, neuron_id: int) -> Neuron:
    return BasicNeuron(id=neuron_id, bias=rng.random())


def _forward_pairs(graph: NeuralGraph) -> int:
    sizes = [len(layer) for layer in graph.layers]
    return sum(
        size * later
        for index, size in enumerate(sizes)
        for later in sizes[index + 1 :]
    )


@dataclass(slots=True)
class Net:
    """Neural graph with the indices of its input and output layers."""

    graph: NeuralGraph = field(default_factory=NeuralGraph)
    input_layer: int = 0
    output_layer: int = 1

    @classmethod
    def gen(
        cls,
        input_nodes: Sequence[InputNeuron],
        output_nodes: Sequence[OutputNeuron],
        rng: Random,
        config: GenConfig | None = None,
        neuron_factory: NeuronFactory | None = None,
    ) -> Net:
        """Synthesize a random net around copies of the given input/output nodes.

        Hidden neurons are numbered from one past the largest input/output id.
        Layers whose node count draw comes out as zero are skipped, and the
        number of connections never exceeds the number of forward node pairs.
        """
        config = config or GenConfig()
        factory = neuron_factory or _basic_neuron
        graph = NeuralGraph()

        input_layer = graph.add_layer_to_end()
        for value in input_nodes:
            graph.add_node(input_layer, GraphNode(value.copy()))

        next_id = max(
            (value.id for value in (*input_nodes, *output_nodes)), default=-1
        ) + 1
        for _ in range(rng.randrange(config.max_hidden_layers)):
            count = rng.randrange(config.max_nodes_per_layer)
            if count == 0:
                continue
            layer = graph.add_layer_to_end()
            for _ in range(count):
                graph.add_node(layer, GraphNode(factory(rng, next_id)))
                next_id += 1

        output_layer = graph.add_layer_to_end()
        for value in output_nodes:
            graph.add_node(output_layer, GraphNode(value.copy()))

        wanted = rng.randrange(config.connections_per_layer * output_layer)
        wanted = min(wanted, _forward_pairs(graph))
        added = 0
        while added < wanted:
            from_layer = rng.randrange(len(graph.layers))
            to_layer = rng.randrange(len(graph.layers))
            if from_layer >= to_layer:
                continue
            if not graph.layers[from_layer] or not graph.layers[to_layer]:
                continue
            source = GraphLocation(from_layer, rng.randrange(len(graph.layers[from_layer])))
            target = GraphLocation(to_layer, rng.randrange(len(graph.layers[to_layer])))
            if graph.get_edge(source, target) is not None:
                continue
            graph.add_edge(source, target, Edge.random(rng))
            added += 1

        return cls(graph=graph, input_layer=input_layer, output_layer=output_layer)

    @classmethod
    def from_preserving_basic(cls, parent: Net) -> Net:
        """Return a net holding copies of ``parent``'s input and output nodes only."""
        if len(parent.graph.layers) < 2:
            raise LayerNotFound(len(parent.graph.layers))
        graph = NeuralGraph()
        for source_layer in (parent.input_layer, parent.output_layer):
            layer = graph.add_layer_to_end()
            for node in parent.graph.layers[source_layer]:
                value = None if node.value is None else node.value.copy()
                graph.add_node(layer, GraphNode(value))
        return cls(graph=graph, input_layer=0, output_layer=1)

    def refresh_layers(self) -> None:
        """Re-derive the layer indices after the layer count changed."""
        self.input_layer = 0
        self.output_layer = max(len(self.graph.layers) - 1, 0)

    def tick(self) -> int:
        return propagate(self.graph)

    def input_node(self, index: int) -> InputNeuron:
        value = self.graph.layers[self.input_layer][index].value
        if not isinstance(value, InputNeuron):
            msg = f"Input slot {index} does not hold an input neuron."
            raise InvariantViolation(msg)
        return value

    def output_node(self, index: int) -> OutputNeuron:
        value = self.graph.layers[self.output_layer][index].value
        if not isinstance(value, OutputNeuron):
            msg = f"Output slot {index} does not hold an output neuron."
            raise InvariantViolation(msg)
        return value

    def set_inputs(self, values: Sequence[float]) -> None:
        layer = self.graph.layers[self.input_layer]
        if len(values) != len(layer):
            msg = f"Expected {len(layer)} inputs, got {len(values)}"
            raise ValueError(msg)
        for index, value in enumerate(values):
            self.input_node(index).set_value(value)

    def output_values(self) -> list[float]:
        return [
            self.output_node(index).value()
            for index in range(len(self.graph.layers[self.output_layer]))
        ]

    def activate(self, values: Sequence[float]) -> list[float]:
        """Set the inputs, run one tick and return the stored outputs."""
        self.set_inputs(values)
        self.tick()
        return self.output_values()

    def mutate(
        self,
        link_mutators: Sequence[LinkMutator],
        neuron_mutators: Sequence[NeuronMutator],
        neurons: Sequence[Neuron],
        selector: MutationSelector,
        generator: MutationGenerator,
        rng: Random,
    ) -> int:
        """Run operators chosen by ``generator`` until it reports it is done.

        The graph is pruned once the pass finishes. Returns the number of
        operators that changed the graph.
        """
        applied = 0
        while True:
            is_link, index, done = generator.generate(
                self.graph, link_mutators, neuron_mutators
            )
            pool: Sequence[Any] = link_mutators if is_link else neuron_mutators
            if not 0 <= index < len(pool):
                kind = "link" if is_link else "neuron"
                msg = f"Generator chose {kind} mutator {index} of {len(pool)}"
                raise MutationGeneratorError(msg)
            if is_link:
                changed = link_mutators[index].mutate(self, rng)
            else:
                changed = neuron_mutators[index].mutate(self, neurons, selector, rng)
            applied += int(changed)
            if done:
                break
        self.graph.prune()
        self.refresh_layers()
        return applied

    @staticmethod
    def reproduce(
        a: Net,
        b: Net,
        reproducers: Sequence[Reproducer],
        generator: ReproductionGenerator,
        rng: Random,
    ) -> Net:
        """Build a child from two parents by running the chosen reproducers."""
        try:
            child = Net.from_preserving_basic(a)
        except NeuralGraphError as error:
            msg = "Parent net has no input/output layers to copy."
            raise ChildNetError(msg) from error
        if not reproducers:
            return child
        while True:
            index, done = generator.generate(a, b, reproducers)
            if not 0 <= index < len(reproducers):
                msg = f"Generator chose reproducer {index} of {len(reproducers)}"
                raise ReproductionGeneratorError(msg)
            reproducers[index].reproduce(a, b, child, rng)
            if done:
                break
        child.refresh_layers()
        return child

    def copy(self) -> Net:
        return Net(
            graph=self.graph.copy(),
            input_layer=self.input_layer,
            output_layer=self.output_layer,
        )

    def validate(self) -> None:
        self.graph.validate()
        if self.input_layer != 0 or self.output_layer != len(self.graph.layers) - 1:
            msg = (
                f"Layer indices ({self.input_layer}, {self.output_layer}) do not "
                f"match a graph with {len(self.graph.layers)} layers."
            )
            raise InvariantViolation(msg)

    def describe(self) -> str:
        return "\n".join(self.graph.describe())

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_layer": self.input_layer,
            "output_layer": self.output_layer,
            "graph": self.graph.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Net:
        try:
            raw_graph = data["graph"]
        except KeyError as error:
            msg = "Serialized net is missing required key: graph"
            raise ValueError(msg) from error
        graph = NeuralGraph.from_dict(raw_graph)
        net = cls(graph=graph)
        net.refresh_layers()
        for label, expected in (
            ("input_layer", net.input_layer),
            ("output_layer", net.output_layer),
        ):
            if label in data and int(data[label]) != expected:
                msg = (
                    f"{label} is {data[label]!r} but a graph with "
                    f"{len(graph.layers)} layers needs {expected}."
                )
                raise ValueError(msg)
        return net


__all__ = ["Net", "NeuronFactory"]
