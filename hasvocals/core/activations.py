"""Activation functions applied to whole layer output vectors."""

from __future__ import annotations

from typing import Callable, Dict, Protocol

import numpy as np

from .types import Array
from .vector import vmax


class ActivationFunction(Protocol):
    """Protocol implemented by layer activations.

    Activations see the full pre-activation vector so that joint
    functions such as softmax can be expressed.  ``dydk`` returns the
    derivative of output ``k`` with respect to every pre-activation index,
    evaluated from already activated ``outputs``.
    """

    name: str

    def y(self, outputs: Array) -> Array:
        """Activate the whole vector."""

    def y_at(self, outputs: Array, i: int) -> float:
        """Return component ``i`` of :meth:`y`."""

    def dydk(self, k: int, outputs: Array) -> Array:
        """Derivative vector of output ``k``."""

    def dydk_at(self, k: int, outputs: Array, i: int) -> float:
        """Component ``i`` of :meth:`dydk`."""


class StandardLogistic:
    """Overflow-safe logistic function ``0.5 * (1 + tanh(alpha * x / 2))``."""

    name = "logistic"

    def __init__(self, alpha: float = 1.0) -> None:
        self.alpha = float(alpha)

    def y(self, outputs: Array) -> Array:
        return 0.5 * (1.0 + np.tanh(self.alpha * 0.5 * np.asarray(outputs, dtype=np.float64)))

    def y_at(self, outputs: Array, i: int) -> float:
        return float(self.y(outputs)[i])

    def dydk(self, k: int, outputs: Array) -> Array:
        return (1.0 - outputs) * outputs[k]

    def dydk_at(self, k: int, outputs: Array, i: int) -> float:
        return float((1.0 - outputs[i]) * outputs[k])

    def __repr__(self) -> str:
        return f"StandardLogistic(alpha={self.alpha})"


class SoftMax:
    """Softmax without overflow; a single output devolves to the logistic."""

    name = "softmax"

    def __init__(self, alpha: float = 1.0) -> None:
        self.alpha = float(alpha)
        self._logistic = StandardLogistic(alpha)

    def y(self, outputs: Array) -> Array:
        outputs = np.asarray(outputs, dtype=np.float64)
        if outputs.size == 1:
            return self._logistic.y(outputs)
        a = vmax(outputs)
        e = np.exp(self.alpha * (outputs - a))
        return e / e.sum()

    def y_at(self, outputs: Array, i: int) -> float:
        return float(self.y(outputs)[i])

    def dydk(self, k: int, outputs: Array) -> Array:
        if outputs.size == 1:
            return self._logistic.dydk(k, outputs)
        kron = np.zeros_like(outputs)
        kron[k] = 1.0
        return (kron - outputs) * outputs[k]

    def dydk_at(self, k: int, outputs: Array, i: int) -> float:
        if outputs.size == 1:
            return self._logistic.dydk_at(k, outputs, i)
        kron = 1.0 if i == k else 0.0
        return float((kron - outputs[i]) * outputs[k])

    def __repr__(self) -> str:
        return f"SoftMax(alpha={self.alpha})"


_REGISTRY: Dict[str, Callable[[float], ActivationFunction]] = {
    StandardLogistic.name: StandardLogistic,
    SoftMax.name: SoftMax,
}


def get_activation(name: str, alpha: float = 1.0) -> ActivationFunction:
    try:
        factory = _REGISTRY[name]
    except KeyError as exc:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown activation {name!r}. Available: {available}") from exc
    return factory(alpha)


__all__ = ["ActivationFunction", "StandardLogistic", "SoftMax", "get_activation"]
