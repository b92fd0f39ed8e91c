# pyfemint.fem.reference
"""
Order-agnostic reference-element factory.

Every table module returns ``(nodes, shape_fn, deriv_fns)`` where ``nodes``
are the reference coordinates of the Lagrange nodes, ``shape_fn(*xi)`` gives
all shape values and ``deriv_fns[alpha](*xi)`` the mixed derivative with
multi-index ``alpha``.
"""
from functools import lru_cache
from importlib import import_module

import numpy as np

from pyfemint.core.geometry import Geometry

# bound on the point evaluations cached per table method
POINT_CACHE_SIZE = 4096


def _frozen(a):
    a.setflags(write=False)
    return a


class Ref:
    def __init__(self, dim, nodes, shape_lambda, deriv_lambdas):
        self.dim = dim
        nodes = np.asarray(nodes, dtype=float)
        self.nodes = nodes[:, None] if nodes.ndim == 1 else nodes
        self.shape_lambda = shape_lambda
        self.deriv_lambdas = deriv_lambdas

    @property
    def n_basis(self) -> int:
        return self.nodes.shape[0]

    @lru_cache(maxsize=POINT_CACHE_SIZE)
    def shape(self, *xi):
        vals = np.asarray(self.shape_lambda(*xi), dtype=float).ravel()
        return _frozen(np.broadcast_to(vals, (self.n_basis,)).copy())

    @lru_cache(maxsize=POINT_CACHE_SIZE)
    def derivative(self, xi, alpha):
        if alpha not in self.deriv_lambdas:
            raise ValueError(f"Derivative order {alpha} not computed. "
                             f"Adjust max_deriv_order >= {sum(alpha)}.")
        vals = np.asarray(self.deriv_lambdas[alpha](*xi), dtype=float).ravel()
        # lambdified constants come back as scalars
        return _frozen(np.broadcast_to(vals, (self.n_basis,)).copy())

    @lru_cache(maxsize=POINT_CACHE_SIZE)
    def grad(self, *xi):
        """(n_basis, dim) reference gradients."""
        cols = []
        for d in range(self.dim):
            alpha = tuple(1 if k == d else 0 for k in range(self.dim))
            cols.append(self.derivative(xi, alpha))
        if not cols:
            return _frozen(np.zeros((self.n_basis, 0)))
        return _frozen(np.column_stack(cols))


_TABLES = {
    Geometry.SEGMENT: ("pyfemint.fem.reference.seg_pn", "seg_pn"),
    Geometry.TRIANGLE: ("pyfemint.fem.reference.tri_pn", "tri_pn"),
    Geometry.SQUARE: ("pyfemint.fem.reference.quad_qn", "quad_qn"),
    Geometry.CUBE: ("pyfemint.fem.reference.hex_qn", "hex_qn"),
    Geometry.TETRAHEDRON: ("pyfemint.fem.reference.tri_pn", "tet_pn"),
}


@lru_cache(maxsize=None)
def get_reference(geom: Geometry, poly_order: int = 1, max_deriv_order: int = 1):
    geom = Geometry(geom)
    if geom is Geometry.POINT:
        return Ref(0, np.zeros((1, 0)), lambda *xi: np.ones(1), {(): lambda *xi: np.ones(1)})
    if geom not in _TABLES:
        raise KeyError(geom)
    module, func = _TABLES[geom]
    nodes, shape_l, deriv_lambdas = getattr(import_module(module), func)(poly_order, max_deriv_order)
    return Ref(geom.dim, nodes, shape_l, deriv_lambdas)
