"""Weight and bias initialisation strategies.

Every strategy takes a caller-owned :class:`numpy.random.Generator`, overwrites
all weights and biases, and leaves gradient slots alone.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, Protocol, Sequence, Tuple

import numpy as np

from .types import Array

Range = Tuple[float, float]

DEFAULT_BIAS_RANGE: Range = (-0.01, 0.01)


class _Parameters(Protocol):
    layer_sizes: Sequence[int]

    def biases(self, layer_idx: int) -> Array: ...

    def weight_matrix(self, layer_idx: int) -> Array: ...


def _check_range(name: str, bounds: Sequence[float]) -> Range:
    low, high = (float(v) for v in bounds)
    if not (math.isfinite(low) and math.isfinite(high)) or low > high:
        raise ValueError(f"{name} must be a finite (low, high) pair with low <= high, got {bounds!r}")
    return low, high


def _fan(net: _Parameters, layer_idx: int, per_layer: bool) -> tuple[int, int]:
    sizes = net.layer_sizes
    if per_layer:
        return sizes[layer_idx - 1], sizes[layer_idx]
    return sizes[0], sizes[-1]


def _fill(
    net: _Parameters,
    rng: np.random.Generator,
    bias_range: Range,
    draw_weights: Callable[[int, tuple[int, int]], Array],
) -> None:
    bias_low, bias_high = bias_range
    for layer_idx in range(1, len(net.layer_sizes)):
        biases = net.biases(layer_idx)
        biases[:] = rng.uniform(bias_low, bias_high, size=biases.shape)
        weights = net.weight_matrix(layer_idx)
        weights[:] = draw_weights(layer_idx, weights.shape)


def randomize_uniform(
    net: _Parameters,
    rng: np.random.Generator,
    weight_range: Sequence[float] = (-1.0, 1.0),
    bias_range: Sequence[float] = DEFAULT_BIAS_RANGE,
) -> None:
    """Draw weights and biases from independent uniform ranges."""

    w_low, w_high = _check_range("weight_range", weight_range)
    _fill(
        net,
        rng,
        _check_range("bias_range", bias_range),
        lambda _layer, shape: rng.uniform(w_low, w_high, size=shape),
    )


def randomize_xavier_uniform(
    net: _Parameters,
    rng: np.random.Generator,
    bias_range: Sequence[float] = DEFAULT_BIAS_RANGE,
    *,
    per_layer: bool = False,
) -> None:
    """Uniform Xavier: weights in ``±sqrt(6 / (fan_in + fan_out))``.

    By default ``fan_in``/``fan_out`` are the network's input and output widths
    for every layer; ``per_layer=True`` uses each layer's own fan values.
    """

    def draw(layer_idx: int, shape: tuple[int, int]) -> Array:
        fan_in, fan_out = _fan(net, layer_idx, per_layer)
        limit = math.sqrt(6.0 / (fan_in + fan_out))
        return rng.uniform(-limit, limit, size=shape)

    _fill(net, rng, _check_range("bias_range", bias_range), draw)


def randomize_xavier_normal(
    net: _Parameters,
    rng: np.random.Generator,
    bias_range: Sequence[float] = DEFAULT_BIAS_RANGE,
    *,
    per_layer: bool = False,
) -> None:
    """Normal Xavier: zero-mean weights with std ``sqrt(2 / (fan_in + fan_out))``."""

    def draw(layer_idx: int, shape: tuple[int, int]) -> Array:
        fan_in, fan_out = _fan(net, layer_idx, per_layer)
        std = math.sqrt(2.0 / (fan_in + fan_out))
        return rng.normal(0.0, std, size=shape)

    _fill(net, rng, _check_range("bias_range", bias_range), draw)


INITIALIZERS: Dict[str, Callable[..., None]] = {
    "uniform": randomize_uniform,
    "xavier_uniform": randomize_xavier_uniform,
    "xavier_normal": randomize_xavier_normal,
}


def initialize(
    net: _Parameters,
    name: str,
    rng: np.random.Generator,
    *,
    bias_range: Sequence[float] = DEFAULT_BIAS_RANGE,
    weight_range: Sequence[float] | None = None,
    per_layer: bool = False,
) -> None:
    """Dispatch to the strategy registered under ``name``."""

    key = name.strip().lower().replace("-", "_")
    if key not in INITIALIZERS:
        available = ", ".join(sorted(INITIALIZERS))
        raise KeyError(f"Unknown initializer {name!r}. Available initializers: {available}")
    if key == "uniform":
        randomize_uniform(net, rng, weight_range or (-1.0, 1.0), bias_range)
    else:
        INITIALIZERS[key](net, rng, bias_range, per_layer=per_layer)


__all__ = [
    "DEFAULT_BIAS_RANGE",
    "INITIALIZERS",
    "initialize",
    "randomize_uniform",
    "randomize_xavier_normal",
    "randomize_xavier_uniform",
]
