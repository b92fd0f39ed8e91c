"""pyfemint.assembly.base
Integrator interface and composite wrappers.

A concrete integrator implements the subset of the operations below that
its weak form supports; the others raise :class:`UnsupportedOperationError`.

* ``assemble_element_matrix(el, trans, elmat=None)``
* ``assemble_element_matrix2(trial_fe, test_fe, trans, elmat=None)``
  (result ``test_dof x trial_dof``)
* ``assemble_face_matrix(el1, el2, ftrans, elmat=None)``
* ``assemble_trace_face_matrix(trial_face_fe, test_fe1, test_fe2, ftrans, elmat=None)``
* ``assemble_element_vector(el, trans, elfun, elvect=None)``

Output arrays passed by the caller must already have the result shape; they
are zeroed, filled in place and returned.
"""
import logging

import numpy as np

from pyfemint.core.config import SCRATCH
from pyfemint.core.errors import InvalidConfigurationError, UnsupportedOperationError
from pyfemint.fem.coefficients import Coefficient, MatrixCoefficient, VectorCoefficient
from pyfemint.fem.elements import FunctionSpace
from pyfemint.integration.quadrature import INT_RULES, REFINED_INT_RULES
from pyfemint.utils.dense import lump

logger = logging.getLogger(__name__)


def split_coefficient(q):
    """Sort a coefficient into its ``(scalar, vector, matrix)`` slot."""
    if q is None:
        return None, None, None
    if isinstance(q, MatrixCoefficient):
        return None, None, q
    if isinstance(q, VectorCoefficient):
        return None, q, None
    if isinstance(q, Coefficient):
        return q, None, None
    raise TypeError(f"Unsupported coefficient type {type(q).__name__}.")


class BilinearFormIntegrator:

    def __init__(self, *, int_rule=None, int_rules=None, reuse_buffers: bool = None):
        self.int_rule = int_rule
        self.int_rules = int_rules
        self._reuse_buffers = SCRATCH.resolve(reuse_buffers)
        self._scratch = {}

    # ---------- scratch buffers ----------
    @property
    def reuse_buffers(self) -> bool:
        return self._reuse_buffers

    @reuse_buffers.setter
    def reuse_buffers(self, value: bool):
        self._reuse_buffers = bool(value)
        if not self._reuse_buffers:
            self._scratch.clear()

    def _work(self, name: str, shape) -> np.ndarray:
        """Zeroed work array; kept on the instance when buffers are reused."""
        shape = tuple(shape)
        if not self._reuse_buffers:
            return np.zeros(shape)
        buf = self._scratch.get(name)
        if buf is None or buf.shape != shape:
            buf = np.zeros(shape)
            self._scratch[name] = buf
        else:
            buf.fill(0.0)
        return buf

    def release(self):
        """Drop the scratch buffers."""
        self._scratch.clear()

    # ---------- rules and outputs ----------
    def _rule(self, geom, order: int, space: FunctionSpace = None):
        if self.int_rule is not None:
            return self.int_rule
        if self.int_rules is not None:
            rules = self.int_rules
        elif space is FunctionSpace.rQk:
            rules = REFINED_INT_RULES
        else:
            rules = INT_RULES
        ir = rules.get(geom, order)
        logger.debug(f"{type(self).__name__}: {geom.value} order {order} -> "
                     f"{len(ir)} points")
        return ir

    @staticmethod
    def _output(out, shape, name: str = "elmat") -> np.ndarray:
        shape = tuple(shape)
        if out is None:
            return np.zeros(shape)
        if out.shape != shape:
            raise InvalidConfigurationError(f"{name} has shape {out.shape}, "
                                            f"expected {shape}.")
        out[...] = 0.0
        return out

    # ---------- operations ----------
    def assemble_element_matrix(self, el, trans, elmat=None):
        raise UnsupportedOperationError(self, "assemble_element_matrix")

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        raise UnsupportedOperationError(self, "assemble_element_matrix2")

    def assemble_face_matrix(self, el1, el2, ftrans, elmat=None):
        raise UnsupportedOperationError(self, "assemble_face_matrix")

    def assemble_trace_face_matrix(self, trial_face_fe, test_fe1, test_fe2, ftrans,
                                   elmat=None):
        raise UnsupportedOperationError(self, "assemble_trace_face_matrix")

    def assemble_element_vector(self, el, trans, elfun, elvect=None):
        raise UnsupportedOperationError(self, "assemble_element_vector")


# -----------------------------------------------------------------------------
# Composites
# -----------------------------------------------------------------------------
class _WrappingIntegrator(BilinearFormIntegrator):
    """Delegates to one child and forwards the buffer policy to it."""

    def __init__(self, bfi: BilinearFormIntegrator, own_bfi: bool = True, *,
                 reuse_buffers: bool = None):
        super().__init__(reuse_buffers=reuse_buffers)
        self.bfi = bfi
        self.own_bfi = own_bfi
        bfi.reuse_buffers = self._reuse_buffers

    @BilinearFormIntegrator.reuse_buffers.setter
    def reuse_buffers(self, value: bool):
        BilinearFormIntegrator.reuse_buffers.fset(self, value)
        self.bfi.reuse_buffers = self._reuse_buffers

    def release(self):
        super().release()
        if self.own_bfi:
            self.bfi.release()


class TransposeIntegrator(_WrappingIntegrator):
    """Transposed element, mixed and face matrices of the child."""

    def assemble_element_matrix(self, el, trans, elmat=None):
        m = self.bfi.assemble_element_matrix(el, trans)
        out = self._output(elmat, m.shape[::-1])
        out[...] = m.T
        return out

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        m = self.bfi.assemble_element_matrix2(test_fe, trial_fe, trans)
        out = self._output(elmat, m.shape[::-1])
        out[...] = m.T
        return out

    def assemble_face_matrix(self, el1, el2, ftrans, elmat=None):
        m = self.bfi.assemble_face_matrix(el1, el2, ftrans)
        out = self._output(elmat, m.shape[::-1])
        out[...] = m.T
        return out


class LumpedIntegrator(_WrappingIntegrator):
    """Row sums of the child's element matrix on the diagonal."""

    def assemble_element_matrix(self, el, trans, elmat=None):
        m = self.bfi.assemble_element_matrix(el, trans)
        out = self._output(elmat, m.shape)
        out[...] = m
        return lump(out)


class InverseIntegrator(_WrappingIntegrator):
    """Inverse of the child's element matrix.  A singular matrix raises
    ``numpy.linalg.LinAlgError``."""

    def assemble_element_matrix(self, el, trans, elmat=None):
        m = self.bfi.assemble_element_matrix(el, trans)
        if m.ndim != 2 or m.shape[0] != m.shape[1]:
            raise InvalidConfigurationError(f"InverseIntegrator needs a square matrix, "
                                            f"got {m.shape}.")
        out = self._output(elmat, m.shape)
        out[...] = np.linalg.inv(m)
        return out


class SumIntegrator(BilinearFormIntegrator):
    """
    Sum of an ordered list of integrators.

    With ``own_integrators=True`` the sum is responsible for releasing its
    children; :meth:`release` (also called on leaving a ``with`` block) does
    that exactly once.  A non-owning sum only forgets its references.
    """

    def __init__(self, integrators=(), own_integrators: bool = False, *,
                 reuse_buffers: bool = None):
        super().__init__(reuse_buffers=reuse_buffers)
        self.integrators = []
        self.own_integrators = own_integrators
        self._released = False
        for bfi in integrators:
            self.add_integrator(bfi)

    @BilinearFormIntegrator.reuse_buffers.setter
    def reuse_buffers(self, value: bool):
        BilinearFormIntegrator.reuse_buffers.fset(self, value)
        for bfi in self.integrators:
            bfi.reuse_buffers = self._reuse_buffers

    def add_integrator(self, bfi: BilinearFormIntegrator):
        if self._released:
            raise InvalidConfigurationError("SumIntegrator has already been released.")
        bfi.reuse_buffers = self._reuse_buffers
        self.integrators.append(bfi)

    def _children(self):
        if not self.integrators:
            raise InvalidConfigurationError("SumIntegrator has no integrators.")
        return self.integrators

    def _accumulate(self, method, args, elmat):
        first, *rest = self._children()
        m = getattr(first, method)(*args)
        out = self._output(elmat, m.shape)
        out += m
        for bfi in rest:
            out += getattr(bfi, method)(*args)
        return out

    def assemble_element_matrix(self, el, trans, elmat=None):
        return self._accumulate("assemble_element_matrix", (el, trans), elmat)

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        return self._accumulate("assemble_element_matrix2", (trial_fe, test_fe, trans), elmat)

    def assemble_face_matrix(self, el1, el2, ftrans, elmat=None):
        return self._accumulate("assemble_face_matrix", (el1, el2, ftrans), elmat)

    def release(self):
        if self._released:
            return
        super().release()
        if self.own_integrators:
            for bfi in self.integrators:
                bfi.release()
            logger.debug(f"SumIntegrator released {len(self.integrators)} integrators")
        self.integrators = []
        self._released = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
