"""Core numerical primitives for hasvocals."""

from . import activations, errors, mlp, types, vector

__all__ = ["activations", "errors", "mlp", "types", "vector"]
