"""pyfemint.fem.elements
Finite elements seen by the integrators: degree-of-freedom count, order,
geometry and point-wise basis evaluation.

* :class:`LagrangeElement` -- node based (H1) on every reference geometry.
* :class:`NedelecElement` -- lowest-order edge based (H(curl)) on triangles
  and tetrahedra.
* :class:`RaviartThomasElement` -- lowest-order face based (H(div)) on
  triangles and tetrahedra.

Reference (``calc_*``) evaluations take an :class:`IntegrationPoint`;
``calc_vshape`` takes a transformation whose current point is already set
and returns the Piola-mapped physical values.
"""
from enum import Enum
from functools import lru_cache
from itertools import combinations

import numpy as np

from pyfemint.core.geometry import Geometry
from pyfemint.fem.reference import get_reference
from pyfemint.integration.quadrature import IntegrationRule


class FunctionSpace(Enum):
    Pk = "Pk"     # polynomials of total degree <= k
    Qk = "Qk"     # tensor-product polynomials
    rQk = "rQk"   # refined tensor-product polynomials


class MapType(Enum):
    VALUE = "value"          # shape values are unchanged by the mapping
    INTEGRAL = "integral"    # shape values scale with 1/det(J)
    H_CURL = "h_curl"        # covariant Piola
    H_DIV = "h_div"          # contravariant Piola


class FiniteElement:
    """Common attributes; evaluations not provided by a family raise."""

    def __init__(self, geom: Geometry, dof: int, order: int, space: FunctionSpace,
                 map_type: MapType):
        self.geom_type = Geometry(geom)
        self.dim = self.geom_type.dim
        self.dof = int(dof)
        self.order = int(order)
        self.space = FunctionSpace(space)
        self.map_type = MapType(map_type)

    def _missing(self, what):
        raise NotImplementedError(f"{type(self).__name__} on {self.geom_type.value} "
                                  f"does not provide {what}.")

    @property
    def nodes(self) -> IntegrationRule:
        return self._missing("nodes")

    def calc_shape(self, ip) -> np.ndarray:
        return self._missing("calc_shape")

    def calc_dshape(self, ip) -> np.ndarray:
        return self._missing("calc_dshape")

    def calc_ref_vshape(self, ip) -> np.ndarray:
        return self._missing("calc_ref_vshape")

    def calc_vshape(self, trans) -> np.ndarray:
        return self._missing("calc_vshape")

    def calc_curl_shape(self, ip) -> np.ndarray:
        return self._missing("calc_curl_shape")

    def calc_div_shape(self, ip) -> np.ndarray:
        return self._missing("calc_div_shape")

    def __repr__(self):
        return (f"<{type(self).__name__} {self.geom_type.value} order={self.order} "
                f"dof={self.dof}>")


# -----------------------------------------------------------------------------
#  Lagrange (H1)
# -----------------------------------------------------------------------------
class LagrangeElement(FiniteElement):
    """Nodal P_k (simplices, segments, points) or Q_k (squares, cubes)
    element built on the sympy reference tables."""

    def __init__(self, geom: Geometry, order: int = 1, *, space: FunctionSpace = None,
                 map_type: MapType = MapType.VALUE):
        geom = Geometry(geom)
        if geom is Geometry.POINT:
            order = 0
        if space is None:
            space = FunctionSpace.Qk if geom in (Geometry.SQUARE, Geometry.CUBE) else FunctionSpace.Pk
        self._ref = get_reference(geom, int(order))
        super().__init__(geom, self._ref.n_basis, order, space, map_type)
        self._nodes = IntegrationRule(self._ref.nodes, np.zeros(self._ref.n_basis))

    @property
    def nodes(self) -> IntegrationRule:
        return self._nodes

    def calc_shape(self, ip) -> np.ndarray:
        return self._ref.shape(*ip.coords(self.dim))

    def calc_dshape(self, ip) -> np.ndarray:
        return self._ref.grad(*ip.coords(self.dim))


# -----------------------------------------------------------------------------
#  Whitney forms on simplices
# -----------------------------------------------------------------------------
@lru_cache(maxsize=None)
def _barycentric_grads(geom: Geometry) -> np.ndarray:
    """Constant gradients of the barycentric coordinates, (dim+1, dim)."""
    dim = geom.dim
    g = np.zeros((dim + 1, dim))
    g[0, :] = -1.0
    g[1:, :] = np.eye(dim)
    return g


def _barycentric(geom: Geometry, ip) -> np.ndarray:
    x = np.array(ip.coords(geom.dim))
    return np.concatenate(([1.0 - x.sum()], x))


def _check_simplex(geom: Geometry, family: str):
    if geom not in (Geometry.TRIANGLE, Geometry.TETRAHEDRON):
        raise ValueError(f"{family} elements are only available on triangles "
                         f"and tetrahedra, not {geom.value!r}.")


class NedelecElement(FiniteElement):
    """Lowest-order edge element, ``w_ij = l_i grad l_j - l_j grad l_i`` for
    each edge ``(i, j)`` with ``i < j``."""

    def __init__(self, geom: Geometry = Geometry.TRIANGLE):
        geom = Geometry(geom)
        _check_simplex(geom, "Nedelec")
        self.edges = tuple(combinations(range(geom.dim + 1), 2))
        super().__init__(geom, len(self.edges), 1, FunctionSpace.Pk, MapType.H_CURL)

    def calc_ref_vshape(self, ip) -> np.ndarray:
        lam = _barycentric(self.geom_type, ip)
        g = _barycentric_grads(self.geom_type)
        return np.array([lam[i] * g[j] - lam[j] * g[i] for i, j in self.edges])

    def calc_vshape(self, trans) -> np.ndarray:
        # covariant Piola: rows mapped by J^{-T}
        return self.calc_ref_vshape(trans.int_point) @ trans.inverse_jacobian()

    def calc_curl_shape(self, ip) -> np.ndarray:
        """(dof, 1) scalar curls in 2D, (dof, 3) in 3D."""
        g = _barycentric_grads(self.geom_type)
        if self.dim == 2:
            return np.array([[2.0 * (g[i, 0] * g[j, 1] - g[i, 1] * g[j, 0])]
                             for i, j in self.edges])
        return np.array([2.0 * np.cross(g[i], g[j]) for i, j in self.edges])


class RaviartThomasElement(FiniteElement):
    """Lowest-order face element, ``phi_k = x - v_k`` for the facet opposite
    vertex ``v_k`` (outward flux, reference divergence ``dim``)."""

    def __init__(self, geom: Geometry = Geometry.TRIANGLE):
        geom = Geometry(geom)
        _check_simplex(geom, "Raviart-Thomas")
        super().__init__(geom, geom.dim + 1, 1, FunctionSpace.Pk, MapType.H_DIV)

    def calc_ref_vshape(self, ip) -> np.ndarray:
        x = np.array(ip.coords(self.dim))
        return x[None, :] - self.geom_type.vertices

    def calc_vshape(self, trans) -> np.ndarray:
        # contravariant Piola: J phi / det(J)
        return (self.calc_ref_vshape(trans.int_point) @ trans.jacobian().T) / trans.weight()

    def calc_div_shape(self, ip) -> np.ndarray:
        return np.full(self.dof, float(self.dim))
