"""Core numerical primitives for scratchnet."""

from . import activations, errors, init, store, topology, types
from .activations import Activation
from .errors import GradientModeError, NetworkError, SizeMismatchError, TopologyError
from .network import Network
from .topology import Topology

__all__ = [
    "Activation",
    "GradientModeError",
    "Network",
    "NetworkError",
    "SizeMismatchError",
    "Topology",
    "TopologyError",
    "activations",
    "errors",
    "init",
    "store",
    "topology",
    "types",
]
