"""pyfemint.integration.quadrature
Unified quadrature provider for points, segments, triangles, squares,
tetrahedra and cubes (any polynomial order >= 0).

Rules are keyed by ``(geometry, order)`` where ``order`` is the polynomial
degree that must be integrated exactly.
"""
import logging
from functools import lru_cache
from typing import Iterator, NamedTuple

import numpy as np
from numpy.polynomial.legendre import leggauss

from pyfemint.core.geometry import Geometry

logger = logging.getLogger(__name__)


class IntegrationPoint(NamedTuple):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    weight: float = 0.0

    def coords(self, dim: int) -> tuple:
        return (self.x, self.y, self.z)[:dim]


class IntegrationRule:
    """Ordered, immutable sequence of integration points."""

    def __init__(self, points, weights):
        pts = np.array(points, dtype=float)
        if pts.ndim == 1:
            pts = pts[:, None]
        self.points = pts
        self.weights = np.array(weights, dtype=float).ravel()
        if self.points.shape[0] != self.weights.shape[0]:
            raise ValueError(f"{self.points.shape[0]} points but "
                             f"{self.weights.shape[0]} weights.")
        self.points.setflags(write=False)
        self.weights.setflags(write=False)
        padded = np.zeros((len(self.weights), 3))
        padded[:, :self.points.shape[1]] = self.points
        self._ips = tuple(IntegrationPoint(*xyz, w)
                          for xyz, w in zip(padded.tolist(), self.weights.tolist()))

    @property
    def dim(self) -> int:
        return self.points.shape[1]

    def __len__(self) -> int:
        return len(self._ips)

    def __iter__(self) -> Iterator[IntegrationPoint]:
        return iter(self._ips)

    def __getitem__(self, i: int) -> IntegrationPoint:
        return self._ips[i]

    def __repr__(self):
        return f"<IntegrationRule dim={self.dim} points={len(self)}>"


# -------------------------------------------------------------------------
# 1-D Gauss-Legendre
# -------------------------------------------------------------------------
def gauss_legendre(n_points: int):
    if n_points < 1:
        raise ValueError(n_points)
    return leggauss(n_points)  # (points, weights) on [-1,1]


def _gl01(n_points: int):
    """Gauss-Legendre nodes and weights mapped to [0,1]."""
    xi, w = gauss_legendre(int(n_points))
    return 0.5 * (xi + 1.0), 0.5 * w


def _check_order(order: int) -> int:
    order = int(order)
    if order < 0:
        # several default orders (e.g. 2p-2 for p=0) come out negative
        return 0
    return order


# -------------------------------------------------------------------------
# Reference-cell rules, points in reference coordinates
# -------------------------------------------------------------------------
def segment_rule(order: int):
    lam, w = _gl01(_check_order(order) // 2 + 1)
    return lam[:, None], w


def square_rule(order: int):
    lam, w = _gl01(_check_order(order) // 2 + 1)
    pts = np.array([[x, y] for y in lam for x in lam])
    wts = np.array([wx * wy for wy in w for wx in w])
    return pts, wts


def cube_rule(order: int):
    lam, w = _gl01(_check_order(order) // 2 + 1)
    pts = np.array([[x, y, z] for z in lam for y in lam for x in lam])
    wts = np.array([wx * wy * wz for wz in w for wy in w for wx in w])
    return pts, wts


def tri_rule(order: int):
    """Degree-exact rule built from square -> reference triangle mapping."""
    # the collapsed map adds one polynomial degree in the first direction
    u, w_u = _gl01((_check_order(order) + 3) // 2)
    pts = []
    wts = []
    for i, ui in enumerate(u):
        for j, vj in enumerate(u):
            r = ui
            s = vj * (1.0 - ui)
            weight = w_u[i] * w_u[j] * (1.0 - ui)
            pts.append([r, s])
            wts.append(weight)
    return np.array(pts), np.array(wts)


def tet_rule(order: int):
    """Collapsed (Stroud conical) rule on the reference tetrahedron."""
    u, w_u = _gl01((_check_order(order) + 4) // 2)
    pts = []
    wts = []
    for i, ui in enumerate(u):
        for j, vj in enumerate(u):
            for k, tk in enumerate(u):
                r = ui
                s = vj * (1.0 - ui)
                t = tk * (1.0 - ui) * (1.0 - vj)
                weight = w_u[i] * w_u[j] * w_u[k] * (1.0 - ui) ** 2 * (1.0 - vj)
                pts.append([r, s, t])
                wts.append(weight)
    return np.array(pts), np.array(wts)


def point_rule(order: int = 0):
    return np.zeros((1, 0)), np.ones(1)


_BUILDERS = {
    Geometry.POINT: point_rule,
    Geometry.SEGMENT: segment_rule,
    Geometry.TRIANGLE: tri_rule,
    Geometry.SQUARE: square_rule,
    Geometry.TETRAHEDRON: tet_rule,
    Geometry.CUBE: cube_rule,
}


def volume(geom: Geometry, order: int = 2):
    """Return ``(points, weights)`` of the plain rule on ``geom``."""
    try:
        builder = _BUILDERS[Geometry(geom)]
    except (KeyError, ValueError):
        raise KeyError(geom)
    return builder(order)


# -------------------------------------------------------------------------
# Composite (refined) rules
# -------------------------------------------------------------------------
def _sub_cells(geom: Geometry, n_ref: int):
    """Affine maps ``x -> A x + b`` of the sub-cells of a uniformly refined
    reference cell (``n_ref`` subdivisions per edge)."""
    h = 1.0 / n_ref
    dim = geom.dim
    if geom in (Geometry.SEGMENT, Geometry.SQUARE, Geometry.CUBE):
        A = h * np.eye(dim)
        for idx in np.ndindex(*([n_ref] * dim)):
            yield A, h * np.array(idx[::-1], dtype=float)
        return
    if geom is Geometry.TRIANGLE:
        for j in range(n_ref):
            for i in range(n_ref - j):
                b = h * np.array([i, j], dtype=float)
                yield h * np.eye(2), b
                if i + j < n_ref - 1:
                    # downward triangle b+h(1,1), b+h(1,0), b+h(0,1)
                    yield (h * np.array([[0.0, -1.0], [-1.0, 0.0]]),
                           b + h * np.array([1.0, 1.0]))
        return
    raise KeyError(f"No refined rule for geometry {geom.value!r}.")


def refined_volume(geom: Geometry, order: int = 2, n_ref: int = 2):
    pts0, wts0 = volume(geom, order)
    if geom is Geometry.POINT:
        return pts0, wts0
    pts, wts = [], []
    for A, b in _sub_cells(geom, n_ref):
        pts.append(pts0 @ A.T + b)
        wts.append(wts0 * abs(np.linalg.det(A)))
    return np.vstack(pts), np.concatenate(wts)


# -------------------------------------------------------------------------
# Public provider
# -------------------------------------------------------------------------
class IntegrationRules:
    """Rule provider: ``get(geom, order) -> IntegrationRule``.

    Rules are built once per ``(geometry, order)`` and shared afterwards.
    """

    def __init__(self, refinement: int = 0):
        self.refinement = int(refinement)
        self._get = lru_cache(maxsize=None)(self._build)

    def get(self, geom: Geometry, order: int) -> IntegrationRule:
        return self._get(Geometry(geom), _check_order(order))

    def _build(self, geom: Geometry, order: int) -> IntegrationRule:
        if self.refinement:
            pts, wts = refined_volume(geom, order, n_ref=self.refinement + 1)
        else:
            pts, wts = volume(geom, order)
        logger.debug(f"Built {'refined ' if self.refinement else ''}rule on "
                     f"{geom.value} for order {order}: {len(wts)} points.")
        return IntegrationRule(pts, wts)


INT_RULES = IntegrationRules()
REFINED_INT_RULES = IntegrationRules(refinement=1)
