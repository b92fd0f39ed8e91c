# conftest.py
import numpy as np
import pytest

from pyfemint.core.config import SCRATCH
from pyfemint.core.geometry import Geometry
from pyfemint.fem.elements import LagrangeElement
from pyfemint.fem.transform import ElementTransformation
from pyfemint.integration.quadrature import INT_RULES


def make_trans(geom, nodes, order=1, **kwargs):
    """Isoparametric transformation from physical node coordinates given in
    the local node order of the Lagrange element of ``order``."""
    return ElementTransformation(LagrangeElement(geom, order), np.asarray(nodes, float), **kwargs)


class RecordingRules:
    """Rule provider that remembers the requested orders."""

    def __init__(self):
        self.calls = []

    def get(self, geom, order):
        self.calls.append((geom, order))
        return INT_RULES.get(geom, order)


# the unit tetrahedron and the one with apex (1,1,1) across x + y + z = 1;
# local face 0 of each is the shared face
TET_PAIR = (
    [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
    [[1.0, 1.0, 1.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [0.0, 1.0, 0.0]],
)


def two_tets(order=1):
    ref = LagrangeElement(Geometry.TETRAHEDRON, order).nodes.points
    trans = []
    for e, verts in enumerate(TET_PAIR):
        verts = np.asarray(verts)
        nodes = verts[0] + ref @ (verts[1:] - verts[0])
        trans.append(make_trans(Geometry.TETRAHEDRON, nodes, order, element_no=e))
    return trans


def two_cubes(order=1):
    """[0,1]^3 and [1,2]x[0,1]^2: face 2 of element 0 is face 4 of element 1."""
    ref = LagrangeElement(Geometry.CUBE, order).nodes.points
    return [make_trans(Geometry.CUBE, ref + [float(e), 0.0, 0.0], order, element_no=e)
            for e in range(2)]


@pytest.fixture
def tri_trans():
    # det(J) = 2.75, not axis aligned
    return make_trans(Geometry.TRIANGLE, [[0.0, 0.0], [2.0, 0.5], [0.5, 1.5]])


@pytest.fixture
def quad_trans():
    # nodes in lexicographic order: (0,0) (1,0) (0,1) (1,1) of the reference square
    return make_trans(Geometry.SQUARE, [[0.0, 0.0], [2.0, 0.0], [0.2, 1.0], [2.3, 1.4]])


@pytest.fixture
def tet_trans():
    return make_trans(Geometry.TETRAHEDRON,
                      [[0.0, 0.0, 0.0], [1.0, 0.1, 0.0], [0.2, 1.2, 0.0], [0.1, 0.3, 0.9]])


@pytest.fixture(autouse=True)
def restore_scratch_policy():
    """Tests may edit the global scratch policy; put it back afterwards."""
    saved = SCRATCH.reuse_buffers
    yield
    SCRATCH.reuse_buffers = saved
