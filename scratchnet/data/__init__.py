"""Dataset registry and example helpers."""

# Ensure built-in datasets register themselves when the package is imported.
from . import synthetic as _synthetic  # noqa: F401
from .registry import DatasetSpec, DataSpec, available_datasets, get_dataset, register_dataset
from .utils import pack_examples, sample_batch, split_examples

__all__ = [
    "DataSpec",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "pack_examples",
    "register_dataset",
    "sample_batch",
    "split_examples",
]
