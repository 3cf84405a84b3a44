"""A colony of nets driven through the mutation and crossover engines."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from random import Random

from .config import EngineConfig
from .innovations import NeuronIdTracker
from .metrics import MetricsRow
from .mutation import WeightedGenerator, build_mutators
from .net import Net
from .nodes import InputNeuron, Neuron, OutputNeuron
from .reporters import EventLogger
from .reproduction import Crossover, DefaultIterator


@dataclass(slots=True)
class Colony:
    """Mutable set of nets keyed by id, sharing one rng and one id tracker."""

    config: EngineConfig
    rng: Random
    neuron_pool: list[Neuron] = field(default_factory=list)
    nets: dict[int, Net] = field(default_factory=dict)
    tracker: NeuronIdTracker = field(default_factory=NeuronIdTracker)
    logger: EventLogger | None = None
    generation: int = 0
    _next_net_id: int = field(default=0, init=False, repr=False)

    @classmethod
    def create(
        cls,
        config: EngineConfig,
        inputs: Sequence[InputNeuron],
        outputs: Sequence[OutputNeuron],
        neuron_pool: Sequence[Neuron],
        logger: EventLogger | None = None,
    ) -> Colony:
        """Generate ``config.population_size`` random nets."""
        if not neuron_pool and config.mutation.add_neuron_rate > 0.0:
            msg = "neuron_pool must not be empty while add_neuron_rate > 0."
            raise ValueError(msg)

        seed_rng = Random(config.seed)
        colony = cls(
            config=config,
            rng=Random(seed_rng.getrandbits(32)),
            neuron_pool=list(neuron_pool),
            logger=logger,
        )
        for value in (*inputs, *outputs, *neuron_pool):
            colony.tracker.reserve(value.id)
        for _ in range(config.population_size):
            colony.add(Net.gen(inputs, outputs, seed_rng, config.gen_config()))
        colony._log("create", nets=len(colony.nets), seed=config.seed)
        return colony

    def __len__(self) -> int:
        return len(self.nets)

    def add(self, net: Net) -> int:
        net_id = self._next_net_id
        self._next_net_id += 1
        self.nets[net_id] = net
        for _, node in net.graph.iter_nodes():
            if node.value is not None:
                self.tracker.reserve(node.value.id)
        return net_id

    def remove(self, net_id: int) -> Net:
        try:
            net = self.nets.pop(net_id)
        except KeyError as error:
            msg = f"Unknown net id {net_id}"
            raise KeyError(msg) from error
        self._log("remove", net=net_id)
        return net

    def tick(self) -> int:
        """Tick every net once; return the total number of finished nodes."""
        return sum(net.tick() for net in self.nets.values())

    def mutate(self, net_id: int) -> int:
        """Run one mutation pass on a member; return how many operators applied."""
        net = self._get(net_id)
        mutation = self.config.mutation_config()
        link_mutators, neuron_mutators = build_mutators(mutation, self.tracker)
        generator = WeightedGenerator(
            link_weights=mutation.link_rates(),
            neuron_weights=mutation.neuron_rates(),
            count=mutation.mutations_per_pass,
            rng=self.rng,
        )
        applied = net.mutate(
            link_mutators,
            neuron_mutators,
            self.neuron_pool,
            self._select_neuron,
            generator,
            self.rng,
        )
        self._log("mutate", net=net_id, applied=applied)
        return applied

    def breed(self, a_id: int, b_id: int) -> int:
        """Cross two members over and add the child; return the child's id."""
        child = Net.reproduce(
            self._get(a_id),
            self._get(b_id),
            [Crossover()],
            DefaultIterator(),
            self.rng,
        )
        child_id = self.add(child)
        self._log("breed", a=a_id, b=b_id, child=child_id)
        return child_id

    def metrics(self, tick_time_s: float = 0.0) -> MetricsRow:
        nets = list(self.nets.values())
        count = len(nets)
        edges = sum(net.graph.edge_count() for net in nets)
        enabled = sum(net.graph.edge_count(enabled_only=True) for net in nets)
        hidden = sum(
            sum(len(layer) for layer in net.graph.layers[1:-1]) for net in nets
        )
        return MetricsRow(
            generation=self.generation,
            population_size=count,
            mean_layers=(sum(len(net.graph.layers) for net in nets) / count) if count else 0.0,
            mean_hidden_nodes=(hidden / count) if count else 0.0,
            mean_edges=(edges / count) if count else 0.0,
            enabled_edge_ratio=(enabled / edges) if edges else 0.0,
            tick_time_s=tick_time_s,
        )

    def advance_generation(self) -> int:
        self.generation += 1
        self._log("generation", generation=self.generation)
        return self.generation

    def _get(self, net_id: int) -> Net:
        try:
            return self.nets[net_id]
        except KeyError as error:
            msg = f"Unknown net id {net_id}"
            raise KeyError(msg) from error

    def _select_neuron(self, size: int) -> int:
        if size <= 0:
            return 0
        return self.rng.randrange(size)

    def _log(self, event: str, **details: object) -> None:
        if self.logger is not None:
            self.logger.log(event, **details)


__all__ = ["Colony"]
