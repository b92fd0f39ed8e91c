"""pyfemint.fem.coefficients
Scalar, vector and matrix coefficients evaluated at the current point of a
transformation.

``eval(trans, ip)`` sets ``ip`` as the current point of ``trans`` and returns
a float, a ``(vdim,)`` array or a ``(vdim, vdim)`` array.  Coefficients are
pure functions of the queried point.
"""
from typing import Callable, Sequence

import numpy as np


class Coefficient:
    """Scalar coefficient."""

    def eval(self, trans, ip) -> float:
        raise NotImplementedError


class ConstantCoefficient(Coefficient):
    def __init__(self, constant: float = 1.0):
        self.constant = float(constant)

    def eval(self, trans, ip) -> float:
        return self.constant


class PWConstCoefficient(Coefficient):
    """Piecewise constant by element attribute (attributes start at 1)."""

    def __init__(self, values: Sequence[float]):
        self.values = np.asarray(values, dtype=float)

    def eval(self, trans, ip) -> float:
        attr = trans.attribute
        if not 1 <= attr <= len(self.values):
            raise IndexError(f"No value for element attribute {attr}.")
        return float(self.values[attr - 1])


class FunctionCoefficient(Coefficient):
    """``f(x)`` of the physical point ``x`` (an array of length sdim)."""

    def __init__(self, f: Callable):
        self.f = f

    def eval(self, trans, ip) -> float:
        trans.set_int_point(ip)
        return float(self.f(trans.transform(ip)))


# -----------------------------------------------------------------------------
class VectorCoefficient:
    def __init__(self, vdim: int):
        self.vdim = int(vdim)

    def eval(self, trans, ip) -> np.ndarray:
        raise NotImplementedError

    def eval_rule(self, trans, ir) -> np.ndarray:
        """Values at every point of ``ir``, ``(vdim, len(ir))``."""
        out = np.empty((self.vdim, len(ir)))
        for i, ip in enumerate(ir):
            trans.set_int_point(ip)
            out[:, i] = self.eval(trans, ip)
        return out


class VectorConstantCoefficient(VectorCoefficient):
    def __init__(self, vector):
        self.vector = np.array(vector, dtype=float).ravel()
        super().__init__(self.vector.size)

    def eval(self, trans, ip) -> np.ndarray:
        return self.vector.copy()


class VectorFunctionCoefficient(VectorCoefficient):
    def __init__(self, vdim: int, f: Callable):
        super().__init__(vdim)
        self.f = f

    def eval(self, trans, ip) -> np.ndarray:
        trans.set_int_point(ip)
        val = np.asarray(self.f(trans.transform(ip)), dtype=float).ravel()
        if val.size != self.vdim:
            raise ValueError(f"Vector coefficient returned {val.size} values, "
                             f"expected {self.vdim}.")
        return val


# -----------------------------------------------------------------------------
class MatrixCoefficient:
    def __init__(self, vdim: int):
        self.vdim = int(vdim)

    def eval(self, trans, ip) -> np.ndarray:
        raise NotImplementedError


class MatrixConstantCoefficient(MatrixCoefficient):
    def __init__(self, matrix):
        self.matrix = np.array(matrix, dtype=float)
        if self.matrix.ndim != 2 or self.matrix.shape[0] != self.matrix.shape[1]:
            raise ValueError(f"Matrix coefficient must be square, got {self.matrix.shape}.")
        super().__init__(self.matrix.shape[0])

    def eval(self, trans, ip) -> np.ndarray:
        return self.matrix.copy()


class MatrixFunctionCoefficient(MatrixCoefficient):
    def __init__(self, vdim: int, f: Callable):
        super().__init__(vdim)
        self.f = f

    def eval(self, trans, ip) -> np.ndarray:
        trans.set_int_point(ip)
        val = np.asarray(self.f(trans.transform(ip)), dtype=float)
        return val.reshape(self.vdim, self.vdim)
