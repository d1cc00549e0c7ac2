"""Dense feed-forward network: forward pass, backpropagation and SGD step."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np

from .activations import Activation
from .errors import GradientModeError, SizeMismatchError
from .store import ParameterStore
from .topology import ActivationLike, Topology
from .types import DTYPE, Array


class Network:
    """A fully connected network backed by a single :class:`ParameterStore`.

    The network is not thread-safe: every method mutates the store in place, so
    exactly one caller may use an instance at a time.
    """

    def __init__(self, topology: Topology, *, track_gradients: bool = True) -> None:
        self.topology = topology
        self.store = ParameterStore(topology.layer_sizes, track_gradients=track_gradients)

    @classmethod
    def from_layers(
        cls,
        layer_sizes: Sequence[int],
        *,
        hidden: ActivationLike = Activation.LEAKY_RELU,
        output: ActivationLike | None = None,
        track_gradients: bool = True,
    ) -> "Network":
        topology = Topology.uniform(layer_sizes, hidden=hidden, output=output)
        return cls(topology, track_gradients=track_gradients)

    def __repr__(self) -> str:
        return (
            f"Network(layers={list(self.layer_sizes)}, "
            f"track_gradients={self.tracks_gradients})"
        )

    # ------------------------------------------------------------------
    # Shape information

    @property
    def layer_sizes(self) -> tuple[int, ...]:
        return self.topology.layer_sizes

    @property
    def num_layers(self) -> int:
        return self.topology.num_layers

    @property
    def input_size(self) -> int:
        return self.topology.input_size

    @property
    def output_size(self) -> int:
        return self.topology.output_size

    @property
    def tracks_gradients(self) -> bool:
        return self.store.tracks_gradients

    # ------------------------------------------------------------------
    # Store accessors

    def activations(self, layer_idx: int) -> Array:
        return self.store.activations(layer_idx)

    def pre_activations(self, layer_idx: int) -> Array:
        return self.store.pre_activations(layer_idx)

    def biases(self, layer_idx: int) -> Array:
        return self.store.biases(layer_idx)

    def weights(self, layer_idx: int, node_idx: int) -> Array:
        return self.store.weights(layer_idx, node_idx)

    def weight_matrix(self, layer_idx: int) -> Array:
        return self.store.weight_matrix(layer_idx)

    def bias_gradients(self, layer_idx: int) -> Array:
        return self.store.bias_gradients(layer_idx)

    def weight_gradients(self, layer_idx: int, node_idx: int) -> Array:
        return self.store.weight_gradients(layer_idx, node_idx)

    def weight_gradient_matrix(self, layer_idx: int) -> Array:
        return self.store.weight_gradient_matrix(layer_idx)

    def input_values(self) -> Array:
        return self.store.activations(0)

    def output_values(self) -> Array:
        return self.store.activations(self.num_layers - 1)

    def zero_gradients(self) -> None:
        self.store.zero_gradients()

    # ------------------------------------------------------------------
    # Engine

    def forward_pass(self) -> None:
        """Evaluate every layer after the input from the current input values."""

        values = self.store.values
        layers = self.store.layout.layers
        for layer_idx in range(1, len(layers)):
            layer = layers[layer_idx]
            prev = values[layers[layer_idx - 1].activations]
            weights = values[layer.weights].reshape(layer.size, layer.fan_in)
            z = weights @ prev + values[layer.biases]
            if layer.pre_activations is not None:
                values[layer.pre_activations] = z
            values[layer.activations] = self.topology.activations[layer_idx - 1].apply(z)

    def backward_pass(
        self,
        inputs: Sequence[float] | Array,
        expected: Sequence[float] | Array,
        *,
        accumulate: bool = False,
    ) -> None:
        """Compute d(cost)/d(parameter) for one example by reverse-mode chain rule.

        With ``accumulate=False`` the gradient slots are overwritten; with
        ``accumulate=True`` the new gradients are added onto them (the caller
        zeroes them first when summing over a batch).
        """

        grads = self.store.gradients
        if grads is None:
            raise GradientModeError("backward_pass requires a network built with track_gradients=True")
        x = self._vector(inputs, self.input_size, "input")
        y = self._vector(expected, self.output_size, "expected output")

        values = self.store.values
        layers = self.store.layout.layers
        values[layers[0].activations] = x
        self.forward_pass()

        # d(cost)/d(activation) of the output layer for squared error
        d_act = 2.0 * (values[layers[-1].activations] - y)
        for layer_idx in range(len(layers) - 1, 0, -1):
            layer = layers[layer_idx]
            activation = self.topology.activations[layer_idx - 1]
            d_z = d_act * activation.derivative(values[layer.pre_activations])
            prev = values[layers[layer_idx - 1].activations]
            d_w = np.outer(d_z, prev).ravel()
            if accumulate:
                grads[layer.bias_gradients] += d_z
                grads[layer.weight_gradients] += d_w
            else:
                grads[layer.bias_gradients] = d_z
                grads[layer.weight_gradients] = d_w
            if layer_idx > 1:
                weights = values[layer.weights].reshape(layer.size, layer.fan_in)
                d_act = weights.T @ d_z

    def train(self, batch: Iterable[Sequence[float]] | Array, learning_rate: float) -> None:
        """One mini-batch gradient-descent step over ``batch``.

        Each row of ``batch`` is ``input ++ expected``. Gradients are summed
        over the batch and the parameters move by ``learning_rate`` times the
        mean gradient.
        """

        if not self.tracks_gradients:
            raise GradientModeError("train requires a network built with track_gradients=True")
        rate = float(learning_rate)
        if not math.isfinite(rate) or rate < 0:
            raise ValueError(f"learning_rate must be a finite non-negative number, got {learning_rate!r}")
        rows = self._examples(batch)

        self.zero_gradients()
        split = self.input_size
        for row in rows:
            self.backward_pass(row[:split], row[split:], accumulate=True)

        scale = rate / rows.shape[0]
        values = self.store.values
        grads = self.store.gradients
        for layer in self.store.layout.layers[1:]:
            values[layer.biases] -= scale * grads[layer.bias_gradients]
            values[layer.weights] -= scale * grads[layer.weight_gradients]

    def cost(self, inputs: Sequence[float] | Array, expected: Sequence[float] | Array) -> float:
        """Squared-error cost of one example; overwrites the activations."""

        x = self._vector(inputs, self.input_size, "input")
        y = self._vector(expected, self.output_size, "expected output")
        self.input_values()[:] = x
        self.forward_pass()
        diff = self.output_values() - y
        return float(np.dot(diff, diff))

    def average_cost(self, examples: Iterable[Sequence[float]] | Array) -> float:
        rows = self._examples(examples)
        split = self.input_size
        total = 0.0
        for row in rows:
            total += self.cost(row[:split], row[split:])
        return total / rows.shape[0]

    def predict(self, inputs: Sequence[float] | Array) -> Array:
        """Run a forward pass on ``inputs`` and return a copy of the output layer."""

        self.input_values()[:] = self._vector(inputs, self.input_size, "input")
        self.forward_pass()
        return self.output_values().copy()

    # ------------------------------------------------------------------
    # Validation helpers

    @staticmethod
    def _vector(value: Sequence[float] | Array, size: int, what: str) -> Array:
        arr = np.asarray(value, dtype=DTYPE)
        if arr.ndim != 1 or arr.shape[0] != size:
            raise SizeMismatchError(f"Expected {what} of length {size}, got shape {arr.shape}")
        return arr

    def _examples(self, examples: Iterable[Sequence[float]] | Array) -> Array:
        width = self.topology.example_size
        if isinstance(examples, np.ndarray):
            rows = examples.reshape(1, -1) if examples.ndim == 1 else examples
            if rows.ndim != 2 or rows.shape[1] != width:
                raise SizeMismatchError(
                    f"Examples must have {width} values each "
                    f"({self.input_size} input + {self.output_size} expected), got shape {examples.shape}"
                )
            rows = rows.astype(DTYPE, copy=False)
        else:
            examples = list(examples)
            # a flat sequence of scalars is one example
            if examples and np.ndim(examples[0]) == 0:
                examples = [examples]
            collected = []
            for idx, example in enumerate(examples):
                row = np.asarray(example, dtype=DTYPE)
                if row.ndim != 1 or row.shape[0] != width:
                    raise SizeMismatchError(
                        f"Example {idx} has shape {row.shape}, expected ({width},)"
                    )
                collected.append(row)
            rows = np.stack(collected) if collected else np.empty((0, width), dtype=DTYPE)
        if rows.shape[0] == 0:
            raise SizeMismatchError("At least one example is required")
        return rows


__all__ = ["Network"]
