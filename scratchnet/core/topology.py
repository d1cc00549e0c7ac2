"""Immutable network topology: layer sizes plus one activation per layer."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from .activations import Activation, ActivationFn
from .errors import TopologyError

ActivationLike = Union[Activation, ActivationFn, str]


def _as_layer_size(value: object) -> int:
    if isinstance(value, bool):
        raise TopologyError(f"Layer sizes must be integers, got {value!r}")
    try:
        size = operator.index(value)  # type: ignore[arg-type]
    except TypeError as exc:
        raise TopologyError(f"Layer sizes must be integers, got {value!r}") from exc
    if size < 1:
        raise TopologyError("A layer must contain at least 1 node")
    return size


def _as_activation(value: ActivationLike) -> ActivationFn:
    if isinstance(value, str):
        try:
            return Activation.parse(value)
        except KeyError as exc:
            raise TopologyError(str(exc)) from exc
    if not isinstance(value, ActivationFn):
        raise TopologyError(
            f"Activations must provide apply() and derivative(), got {type(value).__name__}"
        )
    return value


@dataclass(frozen=True)
class Topology:
    """Layer sizes ``L[0..n-1]`` and the activations of layers ``1..n-1``.

    ``activations[i - 1]`` belongs to layer ``i``; the input layer has none.
    """

    layer_sizes: Tuple[int, ...]
    activations: Tuple[ActivationFn, ...]

    def __init__(
        self,
        layer_sizes: Sequence[int],
        activations: Sequence[ActivationLike],
    ) -> None:
        sizes = tuple(_as_layer_size(size) for size in layer_sizes)
        if len(sizes) < 2:
            raise TopologyError(
                "There should be at least 2 layers to represent an input and an output layer"
            )
        acts = tuple(_as_activation(act) for act in activations)
        if len(acts) != len(sizes) - 1:
            raise TopologyError(
                f"Expected {len(sizes) - 1} activations for {len(sizes)} layers, got {len(acts)}"
            )
        object.__setattr__(self, "layer_sizes", sizes)
        object.__setattr__(self, "activations", acts)

    @classmethod
    def uniform(
        cls,
        layer_sizes: Sequence[int],
        *,
        hidden: ActivationLike = Activation.LEAKY_RELU,
        output: ActivationLike | None = None,
    ) -> "Topology":
        """Build a topology with one activation for hidden layers and one for the output."""

        n_layers = len(layer_sizes)
        acts: list[ActivationLike] = [hidden] * max(0, n_layers - 2)
        acts.append(hidden if output is None else output)
        return cls(layer_sizes, acts)

    @property
    def num_layers(self) -> int:
        return len(self.layer_sizes)

    @property
    def input_size(self) -> int:
        return self.layer_sizes[0]

    @property
    def output_size(self) -> int:
        return self.layer_sizes[-1]

    @property
    def example_size(self) -> int:
        """Width of one ``input ++ expected`` training row."""

        return self.input_size + self.output_size

    def activation(self, layer_idx: int) -> ActivationFn:
        if not 1 <= layer_idx < self.num_layers:
            raise IndexError(f"Layer {layer_idx} has no activation (valid: 1..{self.num_layers - 1})")
        return self.activations[layer_idx - 1]

    def parameter_count(self) -> int:
        """Number of weights plus biases."""

        sizes = self.layer_sizes
        return sum(sizes[i] * (sizes[i - 1] + 1) for i in range(1, len(sizes)))

    def describe(self) -> dict:
        return {
            "layers": list(self.layer_sizes),
            "activations": [getattr(act, "value", type(act).__name__) for act in self.activations],
        }


__all__ = ["ActivationLike", "Topology"]
