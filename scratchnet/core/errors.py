"""Error taxonomy for the network engine."""

from __future__ import annotations


class NetworkError(Exception):
    """Base class for errors raised by :mod:`scratchnet.core`."""


class TopologyError(NetworkError, ValueError):
    """Invalid layer count, layer size or activation list."""


class SizeMismatchError(NetworkError, ValueError):
    """An input, expected output or example row has the wrong width."""


class GradientModeError(NetworkError, RuntimeError):
    """A gradient operation was requested on a network without gradient slots."""


__all__ = ["NetworkError", "TopologyError", "SizeMismatchError", "GradientModeError"]
