"""pyfemint.fem.transform
Reference -> physical mappings for elements and faces.

An :class:`ElementTransformation` is isoparametric: a geometric Lagrange
element plus the physical coordinates of its nodes.  The physical dimension
may exceed the reference one (manifold elements); the Jacobian is then
``(sdim, dim)`` and the weight is ``sqrt(det(J^T J))``.
"""
import numpy as np

from pyfemint.core.geometry import Geometry
from pyfemint.fem.elements import FunctionSpace
from pyfemint.integration.quadrature import IntegrationPoint
from pyfemint.utils.dense import calc_adjugate, calc_inverse, jacobian_weight


def make_int_point(coords, weight: float = 0.0) -> IntegrationPoint:
    xyz = [0.0, 0.0, 0.0]
    for i, c in enumerate(np.asarray(coords, dtype=float).ravel()):
        xyz[i] = float(c)
    return IntegrationPoint(*xyz, weight)


class ElementTransformation:

    def __init__(self, fe, nodes, *, attribute: int = 1, element_no: int = 0):
        nodes = np.asarray(nodes, dtype=float)
        if nodes.ndim == 1:
            nodes = nodes[:, None]
        if nodes.shape[0] != fe.dof:
            raise ValueError(f"Geometric element has {fe.dof} nodes, got "
                             f"coordinates for {nodes.shape[0]}.")
        self.fe = fe
        self.nodes = nodes
        self.attribute = attribute
        self.element_no = element_no
        self._ip = None
        self._cache = {}

    @property
    def geom_type(self) -> Geometry:
        return self.fe.geom_type

    @property
    def dim(self) -> int:
        return self.fe.dim

    @property
    def space_dim(self) -> int:
        return self.nodes.shape[1]

    # ---------- current point ----------
    def set_int_point(self, ip):
        self._ip = ip
        self._cache = {}

    @property
    def int_point(self):
        if self._ip is None:
            raise RuntimeError("No integration point set on the transformation.")
        return self._ip

    def _cached(self, key, fn):
        if key not in self._cache:
            self._cache[key] = fn()
        return self._cache[key]

    def jacobian(self) -> np.ndarray:
        """(sdim, dim) Jacobian at the current point."""
        return self._cached("J", lambda: self.nodes.T @ self.fe.calc_dshape(self.int_point))

    def weight(self) -> float:
        return self._cached("w", lambda: jacobian_weight(self.jacobian()))

    def adjugate(self) -> np.ndarray:
        return self._cached("adj", lambda: calc_adjugate(self.jacobian()))

    def inverse_jacobian(self) -> np.ndarray:
        return self._cached("invJ", lambda: calc_inverse(self.jacobian()))

    def transform(self, ip=None) -> np.ndarray:
        """Physical coordinates of ``ip`` (default: the current point)."""
        ip = self.int_point if ip is None else ip
        return self.fe.calc_shape(ip) @ self.nodes

    # ---------- polynomial orders of the map ----------
    def _geom_order(self):
        k, space = self.fe.order, self.fe.space
        if space not in (FunctionSpace.Pk, FunctionSpace.Qk):
            raise ValueError(f"Unsupported geometric space {space.value!r}.")
        return k, space

    def order(self) -> int:
        return self.fe.order

    def order_j(self) -> int:
        k, space = self._geom_order()
        return k - 1 if space is FunctionSpace.Pk else k

    def order_w(self) -> int:
        k, space = self._geom_order()
        d = self.dim
        return (k - 1) * d if space is FunctionSpace.Pk else k * d - 1

    def order_grad(self, fe) -> int:
        """Order of ``adj(J) grad(phi)`` for a basis ``fe`` of the same space."""
        k, space = self._geom_order()
        if fe.space is not space:
            raise ValueError(f"order_grad: element space {fe.space.value!r} differs "
                             f"from geometry space {space.value!r}.")
        d, l = self.dim, fe.order
        if space is FunctionSpace.Pk:
            return (k - 1) * (d - 1) + (l - 1)
        return k * (d - 1) + l


def inverse_mapping(trans: ElementTransformation, x, tol=1e-12, maxiter=50):
    """Newton solve for the reference point mapped to ``x``."""
    x = np.asarray(x, dtype=float)
    xi = trans.geom_type.vertices.mean(axis=0)
    for it in range(maxiter):
        ip = make_int_point(xi)
        trans.set_int_point(ip)
        X = trans.transform(ip)
        try:
            delta = trans.inverse_jacobian() @ (x - X)
        except np.linalg.LinAlgError:
            raise ValueError(f"Jacobian singular at iteration {it} for elem "
                             f"{trans.element_no}, x={x}")
        xi = xi + delta
        if np.linalg.norm(delta) < tol:
            break
    else:
        raise ValueError(f"Inverse mapping did not converge after {maxiter} iterations "
                         f"for elem {trans.element_no}, x={x}, residual={np.linalg.norm(x - X)}")
    return xi


# -----------------------------------------------------------------------------
# Faces
# -----------------------------------------------------------------------------
class IntegrationPointTransformation:
    """Affine map from face reference coordinates into an element's
    reference coordinates, given the images of the face vertices in the
    vertex order of the face geometry ``geom``."""

    def __init__(self, vertices, geom: Geometry):
        self.vertices = np.atleast_2d(np.asarray(vertices, dtype=float))
        self.geom_type = Geometry(geom)
        # images of the vertices at the unit reference directions
        ref = self.geom_type.vertices
        axes = [int(np.flatnonzero(np.all(ref == e, axis=1))[0])
                for e in np.eye(self.geom_type.dim)]
        self.jacobian = (self.vertices[axes] - self.vertices[0]).T   # (dim, fdim)

    def transform(self, ip) -> IntegrationPoint:
        fdim = self.jacobian.shape[1]
        x = self.vertices[0] + self.jacobian @ np.array(ip.coords(fdim), dtype=float)
        return make_int_point(x, ip.weight)


class FaceTransformation:
    """Face reference -> physical map, the restriction of element 1's map."""

    def __init__(self, elem: ElementTransformation, loc: IntegrationPointTransformation,
                 geom: Geometry):
        # private copy so that face queries never move element 1's current point
        self._elem = ElementTransformation(elem.fe, elem.nodes, attribute=elem.attribute,
                                           element_no=elem.element_no)
        self.loc = loc
        self.geom_type = Geometry(geom)
        self._ip = None
        self._cache = {}

    @property
    def dim(self) -> int:
        return self.geom_type.dim

    @property
    def space_dim(self) -> int:
        return self._elem.space_dim

    def set_int_point(self, ip):
        self._ip = ip
        self._cache = {}
        self._elem.set_int_point(self.loc.transform(ip))

    @property
    def int_point(self):
        if self._ip is None:
            raise RuntimeError("No integration point set on the face transformation.")
        return self._ip

    def jacobian(self) -> np.ndarray:
        """(sdim, fdim) tangent Jacobian at the current point."""
        if "J" not in self._cache:
            self.int_point
            self._cache["J"] = self._elem.jacobian() @ self.loc.jacobian
        return self._cache["J"]

    def weight(self) -> float:
        return jacobian_weight(self.jacobian())

    def transform(self, ip=None) -> np.ndarray:
        ip = self.int_point if ip is None else ip
        return self._elem.transform(self.loc.transform(ip))

    def order_w(self) -> int:
        fdim = self.dim
        if fdim == 0:
            return 0
        # the face map is the restriction of element 1's map: a P_k simplex
        # face of a P_k cell, a Q_k face of a Q_k cell
        k, space = self._elem._geom_order()
        if space is FunctionSpace.Pk:
            return (k - 1) * fdim
        return k * fdim - 1


class FaceElementTransformations:
    """Everything an integrator needs on one face: the face map, the
    adjoining element maps and the face -> element reference maps.
    ``elem2_no is None`` marks a boundary (one-sided) face."""

    def __init__(self, face: FaceTransformation, elem1: ElementTransformation,
                 loc1: IntegrationPointTransformation, elem2: ElementTransformation = None,
                 loc2: IntegrationPointTransformation = None):
        if (elem2 is None) != (loc2 is None):
            raise ValueError("elem2 and loc2 must be given together.")
        self.face = face
        self.elem1 = elem1
        self.loc1 = loc1
        self.elem2 = elem2
        self.loc2 = loc2

    @property
    def face_geom(self) -> Geometry:
        return self.face.geom_type

    @property
    def elem1_no(self) -> int:
        return self.elem1.element_no

    @property
    def elem2_no(self):
        return None if self.elem2 is None else self.elem2.element_no


def make_face_transformations(trans1: ElementTransformation, face1: int,
                              trans2: ElementTransformation = None, face2: int = None,
                              tol: float = 1e-10) -> FaceElementTransformations:
    """
    Build the face data for local face ``face1`` of element 1 and, for an
    interior face, the adjoining element 2.

    With ``face2`` given, element 2's face vertices are matched to element
    1's by physical position; otherwise they are found by inverse-mapping
    the physical face vertices into element 2.  The relative orientation of
    the face never has to be known by the caller.
    """
    geom = trans1.geom_type
    verts1 = geom.face_vertices(face1)
    fgeom = geom.face_geometry
    loc1 = IntegrationPointTransformation(verts1, fgeom)
    face = FaceTransformation(trans1, loc1, fgeom)
    if trans2 is None:
        return FaceElementTransformations(face, trans1, loc1)

    phys = [trans1.transform(make_int_point(v)) for v in verts1]
    if face2 is not None:
        cand = trans2.geom_type.face_vertices(face2)
        cand_phys = np.array([trans2.transform(make_int_point(v)) for v in cand])
        verts2 = []
        for x in phys:
            dist = np.linalg.norm(cand_phys - x, axis=1)
            k = int(np.argmin(dist))
            if dist[k] > tol:
                raise ValueError(f"Face {face1} of element {trans1.element_no} does not "
                                 f"match face {face2} of element {trans2.element_no}.")
            verts2.append(cand[k])
        verts2 = np.array(verts2)
    else:
        verts2 = np.array([inverse_mapping(trans2, x) for x in phys])
        ref = trans2.geom_type.vertices
        lo, hi = ref.min(axis=0) - tol, ref.max(axis=0) + tol
        if np.any(verts2 < lo) or np.any(verts2 > hi):
            raise ValueError(f"Face {face1} of element {trans1.element_no} is not a face "
                             f"of element {trans2.element_no}.")
    return FaceElementTransformations(face, trans1, loc1, trans2,
                                      IntegrationPointTransformation(verts2, fgeom))
