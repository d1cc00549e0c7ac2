"""scratchnet public API."""

from .core import activations, init, types  # noqa: F401
from .core.activations import Activation
from .core.errors import GradientModeError, NetworkError, SizeMismatchError, TopologyError
from .core.network import Network
from .core.topology import Topology
from .data import get_dataset, pack_examples
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer, TrainingWorker

__all__ = [
    "Activation",
    "GradientModeError",
    "Network",
    "NetworkError",
    "SizeMismatchError",
    "Topology",
    "TopologyError",
    "Trainer",
    "TrainingWorker",
    "activations",
    "get_dataset",
    "init",
    "load_preset",
    "pack_examples",
    "presets",
    "run_pipeline",
    "types",
]
