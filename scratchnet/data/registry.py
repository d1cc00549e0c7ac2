"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

import numpy as np

from ..core.types import Array

TASK_TYPES = ("regression", "multiclass")


@dataclass(frozen=True)
class DataSpec:
    """Structural information about a dataset.

    Attributes
    ----------
    d_in:
        Width of the network input.
    d_out:
        Width of the expected output.
    task_type:
        One of ``{"regression", "multiclass"}``.
    num_classes:
        Number of classes for ``"multiclass"`` datasets (one-hot targets).
    """

    d_in: int
    d_out: int
    task_type: str
    num_classes: int | None = None

    @property
    def example_size(self) -> int:
        return self.d_in + self.d_out


@dataclass(frozen=True)
class DatasetSpec:
    """A registered dataset: packed ``input ++ expected`` rows per split."""

    name: str
    data_spec: DataSpec
    splits: Dict[str, Array]
    provenance: Dict[str, Any] = field(default_factory=dict)

    def rows(self, split: str) -> Array:
        try:
            return self.splits[split]
        except KeyError as exc:
            available = ", ".join(sorted(self.splits))
            raise KeyError(f"Unknown split {split!r}. Available splits: {available}") from exc

    @property
    def sizes(self) -> Dict[str, int]:
        return {name: int(rows.shape[0]) for name, rows in self.splits.items()}


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("step")
        def make_step(**kwargs):
            ...

    or directly::

        register_dataset("step", make_step)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Build the :class:`DatasetSpec` registered under ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown dataset {dataset!r}. Available datasets: {available}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    data_spec = spec.data_spec
    if data_spec.task_type not in TASK_TYPES:
        raise ValueError(f"Invalid task type: {data_spec.task_type}")
    if data_spec.task_type == "multiclass" and data_spec.num_classes is None:
        raise ValueError("Multiclass datasets must define num_classes")
    if "train" not in spec.splits:
        raise ValueError(f"Dataset {spec.name!r} has no train split")
    for split, rows in spec.splits.items():
        rows = np.asarray(rows)
        if rows.ndim != 2 or rows.shape[1] != data_spec.example_size:
            raise ValueError(
                f"Split {split!r} rows must have width {data_spec.example_size}, got shape {rows.shape}"
            )


__all__ = [
    "DataSpec",
    "DatasetSpec",
    "TASK_TYPES",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
