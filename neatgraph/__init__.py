"""Layered neural graphs with structural mutation and identity-aligned crossover."""

from __future__ import annotations

from .activations import DEFAULT_ACTIVATIONS, resolve_activation, sigmoid
from .alignment import AlignedEdge, AlignedNode, EdgeDirection, intersection
from .config import (
    EngineConfig,
    GenConfig,
    MutationConfig,
    load_engine_config,
    parse_engine_config,
)
from .graph import (
    ConnectionExists,
    EdgeDirectionError,
    GraphEdge,
    GraphLocation,
    GraphNode,
    InvariantViolation,
    LayerNotFound,
    NeuralGraph,
    NeuralGraphError,
    NodeNotFound,
)
from .innovations import IdentitySnapshot, NeuronIdTracker
from .metrics import MetricsRow, MetricsWriter
from .mutation import (
    AddEdge,
    AddLinkError,
    AddNeuron,
    AddNeuronError,
    LinkMutator,
    MutateError,
    MutationGeneratorError,
    NeuronMutator,
    NeuronSelectorOutOfRange,
    PerturbWeight,
    RemoveEdge,
    RemoveLinkError,
    RemoveNeuron,
    RemoveNeuronError,
    SequenceGenerator,
    WeightedGenerator,
    build_mutators,
)
from .net import Net
from .network import propagate
from .neurons import (
    ActivationNeuron,
    BasicNeuron,
    LinearOutput,
    SigmoidOutput,
    ValueInput,
)
from .nodes import (
    Edge,
    InputNeuron,
    Neuron,
    NeuronBase,
    NodeRole,
    OutputNeuron,
    UnknownNeuronKind,
    neuron_from_dict,
    register_kind,
)
from .persistence import load_net, net_from_yaml, net_to_yaml, save_net
from .population import Colony
from .reporters import EventLogger
from .reproduction import (
    ChildNetError,
    Crossover,
    DefaultIterator,
    ReproduceError,
    Reproducer,
    ReproductionGeneratorError,
)

__all__ = [
    "Edge",
    "NodeRole",
    "NeuronBase",
    "InputNeuron",
    "OutputNeuron",
    "Neuron",
    "UnknownNeuronKind",
    "register_kind",
    "neuron_from_dict",
    "ValueInput",
    "BasicNeuron",
    "ActivationNeuron",
    "SigmoidOutput",
    "LinearOutput",
    "DEFAULT_ACTIVATIONS",
    "resolve_activation",
    "sigmoid",
    "GraphLocation",
    "GraphEdge",
    "GraphNode",
    "NeuralGraph",
    "NeuralGraphError",
    "LayerNotFound",
    "NodeNotFound",
    "ConnectionExists",
    "EdgeDirectionError",
    "InvariantViolation",
    "propagate",
    "Net",
    "MutateError",
    "AddLinkError",
    "RemoveLinkError",
    "AddNeuronError",
    "RemoveNeuronError",
    "NeuronSelectorOutOfRange",
    "MutationGeneratorError",
    "LinkMutator",
    "NeuronMutator",
    "AddEdge",
    "RemoveEdge",
    "AddNeuron",
    "RemoveNeuron",
    "PerturbWeight",
    "SequenceGenerator",
    "WeightedGenerator",
    "build_mutators",
    "IdentitySnapshot",
    "NeuronIdTracker",
    "AlignedNode",
    "AlignedEdge",
    "EdgeDirection",
    "intersection",
    "Crossover",
    "DefaultIterator",
    "Reproducer",
    "ReproduceError",
    "ChildNetError",
    "ReproductionGeneratorError",
    "EngineConfig",
    "GenConfig",
    "MutationConfig",
    "load_engine_config",
    "parse_engine_config",
    "net_to_yaml",
    "net_from_yaml",
    "save_net",
    "load_net",
    "Colony",
    "MetricsRow",
    "MetricsWriter",
    "EventLogger",
]
