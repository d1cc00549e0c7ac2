"""Packed parameter/activation storage derived from layer sizes.

The store keeps two flat buffers:

``values``
    per layer ``i >= 1``: activations, pre-activations (gradient mode only),
    biases, then one weight vector of length ``L[i-1]`` per node. Layer 0 only
    holds its activations (the network input).
``gradients``
    gradient mode only, parallel to the parameter part of ``values``: per
    layer ``i >= 1`` the bias gradients then the weight gradients.

Every offset is a closed-form function of the layer sizes, computed by
:func:`compute_layout`; accessors hand out numpy views into the buffers.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import GradientModeError
from .types import DTYPE, Array


@dataclass(frozen=True)
class LayerLayout:
    """Segment boundaries of one layer inside the two buffers."""

    size: int
    fan_in: int
    activations: slice
    pre_activations: Optional[slice] = None
    biases: Optional[slice] = None
    weights: Optional[slice] = None
    bias_gradients: Optional[slice] = None
    weight_gradients: Optional[slice] = None


@dataclass(frozen=True)
class Layout:
    layers: Tuple[LayerLayout, ...]
    value_size: int
    gradient_size: int

    @property
    def total_size(self) -> int:
        return self.value_size + self.gradient_size


@lru_cache(maxsize=64)
def compute_layout(layer_sizes: Tuple[int, ...], track_gradients: bool) -> Layout:
    """Walk ``layer_sizes`` and return the segment slices for every layer."""

    value_idx = layer_sizes[0]
    grad_idx = 0
    layers = [LayerLayout(size=layer_sizes[0], fan_in=0, activations=slice(0, value_idx))]
    for prev_size, size in zip(layer_sizes[:-1], layer_sizes[1:]):
        n_weights = size * prev_size
        activations = slice(value_idx, value_idx + size)
        value_idx += size
        pre_activations = None
        if track_gradients:
            pre_activations = slice(value_idx, value_idx + size)
            value_idx += size
        biases = slice(value_idx, value_idx + size)
        value_idx += size
        weights = slice(value_idx, value_idx + n_weights)
        value_idx += n_weights

        bias_gradients = weight_gradients = None
        if track_gradients:
            bias_gradients = slice(grad_idx, grad_idx + size)
            grad_idx += size
            weight_gradients = slice(grad_idx, grad_idx + n_weights)
            grad_idx += n_weights

        layers.append(
            LayerLayout(
                size=size,
                fan_in=prev_size,
                activations=activations,
                pre_activations=pre_activations,
                biases=biases,
                weights=weights,
                bias_gradients=bias_gradients,
                weight_gradients=weight_gradients,
            )
        )
    return Layout(layers=tuple(layers), value_size=value_idx, gradient_size=grad_idx)


def expected_size(layer_sizes: Sequence[int], track_gradients: bool) -> int:
    """Closed-form number of numeric slots the store allocates."""

    sizes = list(layer_sizes)
    factor = 2 if track_gradients else 1
    total = sizes[0]
    for prev_size, size in zip(sizes[:-1], sizes[1:]):
        total += size  # activations
        if track_gradients:
            total += size  # pre-activations
        total += factor * (size + size * prev_size)  # biases and weights
    return total


class ParameterStore:
    """Flat numeric storage for activations, biases, weights and gradients."""

    def __init__(
        self,
        layer_sizes: Sequence[int],
        *,
        track_gradients: bool = True,
        dtype: np.dtype = DTYPE,
    ) -> None:
        self.layer_sizes = tuple(int(size) for size in layer_sizes)
        self.layout = compute_layout(self.layer_sizes, bool(track_gradients))
        self.values = np.zeros(self.layout.value_size, dtype=dtype)
        self.gradients: Array | None = (
            np.zeros(self.layout.gradient_size, dtype=dtype) if track_gradients else None
        )

    @property
    def tracks_gradients(self) -> bool:
        return self.gradients is not None

    @property
    def size(self) -> int:
        """Total number of slots over both buffers."""

        grads = 0 if self.gradients is None else int(self.gradients.size)
        return int(self.values.size) + grads

    @property
    def num_layers(self) -> int:
        return len(self.layer_sizes)

    # ------------------------------------------------------------------
    # Index validation

    def _layer(self, layer_idx: int, *, first: int = 0) -> LayerLayout:
        if isinstance(layer_idx, bool) or not isinstance(layer_idx, (int, np.integer)):
            raise IndexError(f"Layer index must be an integer, got {layer_idx!r}")
        if not first <= layer_idx < self.num_layers:
            raise IndexError(
                f"Invalid layer index {layer_idx} (valid: {first}..{self.num_layers - 1})"
            )
        return self.layout.layers[int(layer_idx)]

    def _node(self, layer: LayerLayout, node_idx: int) -> int:
        if isinstance(node_idx, bool) or not isinstance(node_idx, (int, np.integer)):
            raise IndexError(f"Node index must be an integer, got {node_idx!r}")
        if not 0 <= node_idx < layer.size:
            raise IndexError(f"Invalid node index {node_idx} (valid: 0..{layer.size - 1})")
        return int(node_idx)

    def _require_gradients(self) -> Array:
        if self.gradients is None:
            raise GradientModeError("Gradient tracking was not enabled for this network")
        return self.gradients

    # ------------------------------------------------------------------
    # Value buffer

    def activations(self, layer_idx: int) -> Array:
        """Node values of ``layer_idx`` (layer 0 is the input)."""

        return self.values[self._layer(layer_idx).activations]

    def pre_activations(self, layer_idx: int) -> Array:
        """Weighted sums of ``layer_idx`` before the activation was applied."""

        self._require_gradients()
        layer = self._layer(layer_idx, first=1)
        return self.values[layer.pre_activations]

    def biases(self, layer_idx: int) -> Array:
        return self.values[self._layer(layer_idx, first=1).biases]

    def weights(self, layer_idx: int, node_idx: int) -> Array:
        """Incoming weights of one node, one per node of the previous layer."""

        layer = self._layer(layer_idx, first=1)
        node = self._node(layer, node_idx)
        start = layer.weights.start + node * layer.fan_in
        return self.values[start : start + layer.fan_in]

    def weight_matrix(self, layer_idx: int) -> Array:
        """All weights of ``layer_idx`` as a ``(L[i], L[i-1])`` view."""

        layer = self._layer(layer_idx, first=1)
        return self.values[layer.weights].reshape(layer.size, layer.fan_in)

    # ------------------------------------------------------------------
    # Gradient buffer

    def bias_gradients(self, layer_idx: int) -> Array:
        grads = self._require_gradients()
        return grads[self._layer(layer_idx, first=1).bias_gradients]

    def weight_gradients(self, layer_idx: int, node_idx: int) -> Array:
        grads = self._require_gradients()
        layer = self._layer(layer_idx, first=1)
        node = self._node(layer, node_idx)
        start = layer.weight_gradients.start + node * layer.fan_in
        return grads[start : start + layer.fan_in]

    def weight_gradient_matrix(self, layer_idx: int) -> Array:
        grads = self._require_gradients()
        layer = self._layer(layer_idx, first=1)
        return grads[layer.weight_gradients].reshape(layer.size, layer.fan_in)

    def zero_gradients(self) -> None:
        self._require_gradients().fill(0.0)


__all__ = ["LayerLayout", "Layout", "ParameterStore", "compute_layout", "expected_size"]
