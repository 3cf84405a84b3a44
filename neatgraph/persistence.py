"""YAML serialization of nets."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .graph import InvariantViolation
from .net import Net
from .nodes import UnknownNeuronKind


def net_to_yaml(net: Net) -> str:
    """Render a net as a YAML document."""
    return yaml.safe_dump(net.to_dict(), sort_keys=True)


def net_from_yaml(text: str) -> Net:
    """Parse a net previously produced by :func:`net_to_yaml`."""
    try:
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as error:
        msg = "Net payload is not valid YAML."
        raise ValueError(msg) from error
    if not isinstance(data, Mapping):
        msg = "Net payload must be a mapping."
        raise ValueError(msg)
    try:
        net = Net.from_dict(data)
        net.validate()
    except (
        AttributeError,
        KeyError,
        TypeError,
        UnknownNeuronKind,
        InvariantViolation,
    ) as error:
        msg = f"Malformed net payload: {error}"
        raise ValueError(msg) from error
    return net


def save_net(path: Path, net: Net) -> None:
    """Write a net to ``path`` as YAML."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        handle.write(net_to_yaml(net))


def load_net(path: Path) -> Net:
    source = Path(path)
    with source.open("r", encoding="utf-8") as handle:
        text = handle.read()
    try:
        return net_from_yaml(text)
    except ValueError as error:
        msg = f"Invalid net payload in {source}"
        raise ValueError(msg) from error


__all__ = ["load_net", "net_from_yaml", "net_to_yaml", "save_net"]
