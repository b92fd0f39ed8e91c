import numpy as np
import pytest

from pyfemint.core.geometry import Geometry
from pyfemint.fem.elements import (FunctionSpace, LagrangeElement, MapType, NedelecElement,
                                   RaviartThomasElement)
from pyfemint.fem.reference import POINT_CACHE_SIZE, Ref
from pyfemint.fem.transform import make_int_point
from pyfemint.integration.quadrature import INT_RULES

LAGRANGE_CASES = [
    (Geometry.SEGMENT, 1, 2), (Geometry.SEGMENT, 3, 4),
    (Geometry.TRIANGLE, 1, 3), (Geometry.TRIANGLE, 2, 6), (Geometry.TRIANGLE, 3, 10),
    (Geometry.SQUARE, 1, 4), (Geometry.SQUARE, 2, 9),
    (Geometry.TETRAHEDRON, 1, 4), (Geometry.TETRAHEDRON, 2, 10),
    (Geometry.CUBE, 1, 8),
]


@pytest.mark.parametrize("geom,order,ndof", LAGRANGE_CASES)
def test_dof_count_and_space(geom, order, ndof):
    el = LagrangeElement(geom, order)
    assert el.dof == ndof
    assert el.dim == geom.dim
    expected = FunctionSpace.Qk if geom in (Geometry.SQUARE, Geometry.CUBE) else FunctionSpace.Pk
    assert el.space is expected
    assert el.map_type is MapType.VALUE


@pytest.mark.parametrize("geom,order,ndof", LAGRANGE_CASES)
def test_nodal_kronecker(geom, order, ndof):
    el = LagrangeElement(geom, order)
    vals = np.array([el.calc_shape(ip) for ip in el.nodes])
    np.testing.assert_allclose(vals, np.eye(ndof), atol=1e-12)


@pytest.mark.parametrize("geom,order,ndof", LAGRANGE_CASES)
def test_partition_of_unity(geom, order, ndof):
    el = LagrangeElement(geom, order)
    for ip in INT_RULES.get(geom, 3):
        assert np.isclose(el.calc_shape(ip).sum(), 1.0, atol=1e-12)
        np.testing.assert_allclose(el.calc_dshape(ip).sum(axis=0), 0.0, atol=1e-10)


def test_shapes_are_read_only():
    el = LagrangeElement(Geometry.TRIANGLE, 2)
    shape = el.calc_shape(make_int_point([0.2, 0.3]))
    with pytest.raises(ValueError):
        shape[0] = 1.0


def test_p0_element():
    el = LagrangeElement(Geometry.TRIANGLE, 0)
    assert el.dof == 1
    np.testing.assert_allclose(el.nodes[0].coords(2), (1 / 3, 1 / 3))
    assert el.calc_shape(make_int_point([0.7, 0.1]))[0] == pytest.approx(1.0)
    np.testing.assert_allclose(el.calc_dshape(make_int_point([0.7, 0.1])), 0.0)


def test_refined_space_keeps_tensor_basis():
    el = LagrangeElement(Geometry.SQUARE, 1, space=FunctionSpace.rQk)
    ref = LagrangeElement(Geometry.SQUARE, 1)
    ip = make_int_point([0.3, 0.6])
    assert el.space is FunctionSpace.rQk
    np.testing.assert_allclose(el.calc_shape(ip), ref.calc_shape(ip))


def test_nedelec_unit_tangential_moment():
    el = NedelecElement(Geometry.TRIANGLE)
    verts = Geometry.TRIANGLE.vertices
    for e, (i, j) in enumerate(el.edges):
        t = verts[j] - verts[i]
        for s in (0.25, 0.5, 0.8):
            ip = make_int_point((1 - s) * verts[i] + s * verts[j])
            tang = el.calc_ref_vshape(ip) @ t
            expected = np.zeros(el.dof)
            expected[e] = 1.0
            np.testing.assert_allclose(tang, expected, atol=1e-12)


def test_nedelec_curls():
    el = NedelecElement(Geometry.TRIANGLE)
    curl = el.calc_curl_shape(make_int_point([0.2, 0.2]))
    assert curl.shape == (3, 1)
    np.testing.assert_allclose(curl[:, 0], [2.0, -2.0, 2.0])
    el3 = NedelecElement(Geometry.TETRAHEDRON)
    assert el3.dof == 6
    assert el3.calc_curl_shape(make_int_point([0.1, 0.1, 0.1])).shape == (6, 3)


@pytest.mark.parametrize("geom", [Geometry.TRIANGLE, Geometry.TETRAHEDRON])
def test_raviart_thomas(geom):
    el = RaviartThomasElement(geom)
    assert el.dof == geom.dim + 1
    assert el.map_type is MapType.H_DIV
    ip = make_int_point(np.full(geom.dim, 0.2))
    np.testing.assert_allclose(el.calc_div_shape(ip), geom.dim)
    # phi_k vanishes at its own vertex
    for k, v in enumerate(geom.vertices):
        np.testing.assert_allclose(el.calc_ref_vshape(make_int_point(v))[k], 0.0)


def test_whitney_forms_only_on_simplices():
    with pytest.raises(ValueError):
        NedelecElement(Geometry.SQUARE)
    with pytest.raises(ValueError):
        RaviartThomasElement(Geometry.CUBE)


def test_missing_evaluation_raises():
    el = LagrangeElement(Geometry.TRIANGLE, 1)
    with pytest.raises(NotImplementedError):
        el.calc_curl_shape(make_int_point([0.1, 0.1]))


def test_point_caches_stay_bounded():
    el = LagrangeElement(Geometry.TRIANGLE, 1)
    for x in np.linspace(0.0, 1.0, POINT_CACHE_SIZE + 200):
        ip = make_int_point([x, 0.5 * (1.0 - x)])
        np.testing.assert_allclose(el.calc_shape(ip).sum(), 1.0)
        el.calc_dshape(ip)
    for method in (Ref.shape, Ref.grad, Ref.derivative):
        info = method.cache_info()
        assert info.maxsize == POINT_CACHE_SIZE
        assert info.currsize <= POINT_CACHE_SIZE
