"""Activation functions and their derivatives."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

import numpy as np

from .types import Array

LEAKY_SLOPE = 0.01


@runtime_checkable
class ActivationFn(Protocol):
    """Anything usable as a layer nonlinearity."""

    def apply(self, x: Array) -> Array:
        """Return the activation of the pre-activation values ``x``."""

    def derivative(self, x: Array) -> Array:
        """Return d(activation)/dx evaluated at the pre-activation values ``x``."""


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def relu_deriv(x: Array) -> Array:
    return np.where(x < 0.0, 0.0, 1.0)


def leaky_relu(x: Array, slope: float = LEAKY_SLOPE) -> Array:
    return np.where(x < 0.0, slope * x, x)


def leaky_relu_deriv(x: Array, slope: float = LEAKY_SLOPE) -> Array:
    return np.where(x < 0.0, slope, 1.0)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def tanh_deriv(x: Array) -> Array:
    th = np.tanh(x)
    return 1.0 - th * th


def logistic(x: Array) -> Array:
    # tanh form avoids overflow in exp for large |x|
    return 0.5 * (1.0 + np.tanh(0.5 * np.asarray(x)))


def logistic_deriv(x: Array) -> Array:
    s = logistic(x)
    return s * (1.0 - s)


def identity(x: Array) -> Array:
    return np.asarray(x) * 1.0


def identity_deriv(x: Array) -> Array:
    return np.ones_like(np.asarray(x, dtype=np.float64))


class Activation(Enum):
    """Closed set of layer activations.

    Each member dispatches to a vectorised function/derivative pair, so a
    topology stores plain enum members instead of raw callables.
    """

    RELU = "relu"
    LEAKY_RELU = "leaky_relu"
    TANH = "tanh"
    LOGISTIC = "logistic"
    IDENTITY = "identity"

    def apply(self, x: Array) -> Array:
        return _FUNCTIONS[self][0](x)

    def derivative(self, x: Array) -> Array:
        return _FUNCTIONS[self][1](x)

    @classmethod
    def parse(cls, value: "str | Activation") -> "Activation":
        """Return the member named by ``value`` (case-insensitive)."""

        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        aliases = {"leakyrelu": "leaky_relu", "sigmoid": "logistic", "linear": "identity"}
        key = aliases.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            available = ", ".join(member.value for member in cls)
            raise KeyError(f"Unknown activation {value!r}. Available activations: {available}") from exc


_FUNCTIONS = {
    Activation.RELU: (relu, relu_deriv),
    Activation.LEAKY_RELU: (leaky_relu, leaky_relu_deriv),
    Activation.TANH: (tanh, tanh_deriv),
    Activation.LOGISTIC: (logistic, logistic_deriv),
    Activation.IDENTITY: (identity, identity_deriv),
}


__all__ = [
    "Activation",
    "ActivationFn",
    "LEAKY_SLOPE",
    "identity",
    "identity_deriv",
    "leaky_relu",
    "leaky_relu_deriv",
    "logistic",
    "logistic_deriv",
    "relu",
    "relu_deriv",
    "tanh",
    "tanh_deriv",
]
