import numpy as np
import pytest

from conftest import RecordingRules, make_trans
from pyfemint.assembly import (CurlCurlIntegrator, DiffusionIntegrator, DivDivIntegrator,
                               ElasticityIntegrator, MassIntegrator, VectorCurlCurlIntegrator,
                               VectorDiffusionIntegrator, VectorDivergenceIntegrator,
                               VectorFECurlIntegrator, VectorFEDivergenceIntegrator,
                               VectorFEMassIntegrator, VectorMassIntegrator)
from pyfemint.core.errors import InvalidConfigurationError
from pyfemint.core.geometry import Geometry
from pyfemint.fem.coefficients import (ConstantCoefficient, FunctionCoefficient,
                                       MatrixConstantCoefficient, VectorConstantCoefficient)
from pyfemint.fem.elements import LagrangeElement, NedelecElement, RaviartThomasElement
from pyfemint.integration.quadrature import INT_RULES

P0 = LagrangeElement(Geometry.TRIANGLE, 0)
P1 = LagrangeElement(Geometry.TRIANGLE, 1)
P2 = LagrangeElement(Geometry.TRIANGLE, 2)
Q1 = LagrangeElement(Geometry.SQUARE, 1)
TET1 = LagrangeElement(Geometry.TETRAHEDRON, 1)
ND_TRI = NedelecElement(Geometry.TRIANGLE)
ND_TET = NedelecElement(Geometry.TETRAHEDRON)
RT_TRI = RaviartThomasElement(Geometry.TRIANGLE)
RT_TET = RaviartThomasElement(Geometry.TETRAHEDRON)
AREA = 2.75 / 2


def vector_field(el, trans, f):
    """Component-major dofs of the H1 vector field ``f``."""
    vals = np.array([f(trans.transform(ip)) for ip in el.nodes])    # (dof, dim)
    return vals.T.ravel()


def edge_dofs_of_gradient(el, u_vertices):
    """Nedelec dofs of ``grad u`` for a P1 function with vertex values ``u``."""
    return np.array([u_vertices[j] - u_vertices[i] for i, j in el.edges])


def assert_symmetric_psd(K, n_zero=None):
    np.testing.assert_allclose(K, K.T, atol=1e-12)
    eig = np.linalg.eigvalsh(K)
    assert eig.min() > -1e-10 * max(1.0, eig.max())
    if n_zero is not None:
        assert np.sum(np.abs(eig) < 1e-10 * eig.max()) == n_zero


# -----------------------------------------------------------------------------
#  H1 vector fields
# -----------------------------------------------------------------------------
@pytest.mark.parametrize("el,fixture", [(P1, "tri_trans"), (P2, "tri_trans"),
                                        (Q1, "quad_trans")])
def test_elasticity_rigid_motions(el, fixture, request):
    trans = request.getfixturevalue(fixture)
    K = ElasticityIntegrator(ConstantCoefficient(2.0),
                             ConstantCoefficient(3.0)).assemble_element_matrix(el, trans)
    assert_symmetric_psd(K, n_zero=3)
    for motion in (lambda x: (1.0, 0.0), lambda x: (0.0, 1.0), lambda x: (-x[1], x[0])):
        np.testing.assert_allclose(K @ vector_field(el, trans, motion), 0.0, atol=1e-10)


def test_elasticity_uniform_stretch(tri_trans):
    lam, mu = 2.0, 3.0
    K = ElasticityIntegrator(ConstantCoefficient(lam),
                             ConstantCoefficient(mu)).assemble_element_matrix(P1, tri_trans)
    u = vector_field(P1, tri_trans, lambda x: (x[0], 0.0))
    assert np.isclose(u @ K @ u, (lam + 2 * mu) * AREA)


def test_elasticity_single_coefficient_form(quad_trans):
    two = ElasticityIntegrator(ConstantCoefficient(2.0), ConstantCoefficient(3.0))
    one = ElasticityIntegrator(m=ConstantCoefficient(1.5), q_lambda=4.0 / 3.0, q_mu=2.0)
    np.testing.assert_allclose(one.assemble_element_matrix(Q1, quad_trans),
                               two.assemble_element_matrix(Q1, quad_trans), atol=1e-12)


def test_elasticity_zero_lambda_skips_divergence_term(tri_trans):
    K = ElasticityIntegrator(ConstantCoefficient(0.0),
                             ConstantCoefficient(1.0)).assemble_element_matrix(P1, tri_trans)
    u = vector_field(P1, tri_trans, lambda x: (x[0], x[1]))
    # |sym grad u|^2 * 2 mu with div u = 2 not counted
    assert np.isclose(u @ K @ u, 4.0 * AREA)


def test_elasticity_configuration_errors():
    c = ConstantCoefficient(1.0)
    with pytest.raises(InvalidConfigurationError):
        ElasticityIntegrator(c)
    with pytest.raises(InvalidConfigurationError):
        ElasticityIntegrator(c, c, m=c, q_lambda=1.0, q_mu=1.0)
    with pytest.raises(InvalidConfigurationError):
        ElasticityIntegrator(m=c, q_lambda=1.0)


def test_vector_diffusion_is_block_diagonal(tri_trans):
    q = FunctionCoefficient(lambda x: 1.0 + x[0])
    K = VectorDiffusionIntegrator(q).assemble_element_matrix(P2, tri_trans)
    D = DiffusionIntegrator(q).assemble_element_matrix(P2, tri_trans)
    n = P2.dof
    np.testing.assert_allclose(K[:n, :n], D, atol=1e-12)
    np.testing.assert_allclose(K[n:, n:], D, atol=1e-12)
    np.testing.assert_allclose(K[:n, n:], 0.0)


def test_vector_mass_coefficient_kinds(tri_trans):
    M = MassIntegrator().assemble_element_matrix(P1, tri_trans)
    n = P1.dof
    K = VectorMassIntegrator().assemble_element_matrix(P1, tri_trans)
    np.testing.assert_allclose(K, np.kron(np.eye(2), M), atol=1e-14)

    K = VectorMassIntegrator(VectorConstantCoefficient([1.0, 2.0])).assemble_element_matrix(
        P1, tri_trans)
    np.testing.assert_allclose(K, np.kron(np.diag([1.0, 2.0]), M), atol=1e-14)

    m = np.array([[1.0, 2.0], [3.0, 4.0]])
    K = VectorMassIntegrator(MatrixConstantCoefficient(m)).assemble_element_matrix(P1, tri_trans)
    np.testing.assert_allclose(K, np.kron(m, M), atol=1e-14)
    assert K.shape == (2 * n, 2 * n)


def test_vector_mass_vdim_follows_coefficient(tri_trans):
    K = VectorMassIntegrator(VectorConstantCoefficient([1.0, 1.0, 1.0])).assemble_element_matrix(
        P1, tri_trans)
    assert K.shape == (9, 9)


def test_vector_mass_mixed_and_order(tri_trans):
    integ = VectorMassIntegrator(ConstantCoefficient(2.0))
    np.testing.assert_allclose(integ.assemble_element_matrix2(P1, P1, tri_trans),
                               integ.assemble_element_matrix(P1, tri_trans), atol=1e-14)
    assert integ.assemble_element_matrix2(P1, P2, tri_trans).shape == (12, 6)
    assert VectorMassIntegrator(q_order=2).default_order(P1, tri_trans) == 4


def test_vector_divergence(tri_trans):
    integ = VectorDivergenceIntegrator()
    K = integ.assemble_element_matrix2(P1, P0, tri_trans)
    assert K.shape == (1, 6)
    u = vector_field(P1, tri_trans, lambda x: (x[0], x[1]))
    assert np.isclose((K @ u)[0], 2.0 * AREA)
    rot = vector_field(P1, tri_trans, lambda x: (-x[1], x[0]))
    assert np.isclose((K @ rot)[0], 0.0, atol=1e-12)


def test_vector_curl_curl_2d(tri_trans):
    integ = VectorCurlCurlIntegrator()
    K = integ.assemble_element_matrix(P1, tri_trans)
    assert_symmetric_psd(K)
    grad = vector_field(P1, tri_trans, lambda x: (x[0], x[1]))
    np.testing.assert_allclose(K @ grad, 0.0, atol=1e-12)
    rot = vector_field(P1, tri_trans, lambda x: (-x[1], x[0]))
    assert np.isclose(rot @ K @ rot, 4.0 * AREA)


@pytest.mark.parametrize("el,fixture", [(P2, "tri_trans"), (Q1, "quad_trans"),
                                        (TET1, "tet_trans")])
def test_vector_curl_curl_energy(el, fixture, request):
    trans = request.getfixturevalue(fixture)
    integ = VectorCurlCurlIntegrator(ConstantCoefficient(1.7))
    K = integ.assemble_element_matrix(el, trans)
    u = np.sin(np.arange(el.dim * el.dof) + 0.3)
    assert np.isclose(integ.get_element_energy(el, trans, u), 0.5 * u @ K @ u)


def test_vector_curl_curl_3d_gradient_kernel(tet_trans):
    K = VectorCurlCurlIntegrator().assemble_element_matrix(TET1, tet_trans)
    assert K.shape == (12, 12)
    grad = vector_field(TET1, tet_trans, lambda x: (x[0], 2.0 * x[1], -x[2]))
    np.testing.assert_allclose(K @ grad, 0.0, atol=1e-12)


# -----------------------------------------------------------------------------
#  Edge and face elements
# -----------------------------------------------------------------------------
def test_nedelec_mass_coefficient_kinds(tri_trans):
    base = VectorFEMassIntegrator().assemble_element_matrix(ND_TRI, tri_trans)
    assert_symmetric_psd(base, n_zero=0)
    vec = VectorFEMassIntegrator(VectorConstantCoefficient([1.0, 1.0]))
    mat = VectorFEMassIntegrator(MatrixConstantCoefficient(np.eye(2)))
    np.testing.assert_allclose(vec.assemble_element_matrix(ND_TRI, tri_trans), base, atol=1e-14)
    np.testing.assert_allclose(mat.assemble_element_matrix(ND_TRI, tri_trans), base, atol=1e-14)


def test_raviart_thomas_mass(tet_trans):
    M = VectorFEMassIntegrator(ConstantCoefficient(2.0)).assemble_element_matrix(
        RT_TET, tet_trans)
    assert M.shape == (4, 4)
    assert_symmetric_psd(M, n_zero=0)


def test_nedelec_mixed_mass_reproduces_gradient(tri_trans):
    u = tri_trans.nodes[:, 0]                     # u = x at the vertices
    d = edge_dofs_of_gradient(ND_TRI, u)
    K = VectorFEMassIntegrator().assemble_element_matrix2(ND_TRI, P1, tri_trans)
    assert K.shape == (6, 3)
    M = MassIntegrator().assemble_element_matrix(P1, tri_trans)
    # (grad x, (phi, 0)) and (grad x, (0, phi))
    np.testing.assert_allclose(K @ d, np.concatenate([M @ np.ones(3), np.zeros(3)]), atol=1e-12)


def test_mixed_vector_fe_mass_needs_scalar_coefficient(tri_trans):
    integ = VectorFEMassIntegrator(VectorConstantCoefficient([1.0, 1.0]))
    with pytest.raises(InvalidConfigurationError):
        integ.assemble_element_matrix2(ND_TRI, P1, tri_trans)
    integ = VectorFEMassIntegrator(MatrixConstantCoefficient(np.eye(2)))
    with pytest.raises(InvalidConfigurationError):
        integ.assemble_element_matrix2(ND_TRI, P1, tri_trans)


def test_curl_curl_2d_rank_one(tri_trans):
    K = CurlCurlIntegrator().assemble_element_matrix(ND_TRI, tri_trans)
    c = np.array([2.0, -2.0, 2.0])
    np.testing.assert_allclose(K, 0.5 / 2.75 * np.outer(c, c), atol=1e-14)
    d = edge_dofs_of_gradient(ND_TRI, np.array([0.3, -1.0, 2.0]))
    np.testing.assert_allclose(K @ d, 0.0, atol=1e-12)


def test_curl_curl_3d(tet_trans):
    K = CurlCurlIntegrator(ConstantCoefficient(2.0)).assemble_element_matrix(ND_TET, tet_trans)
    # three independent curls of the lowest-order space
    assert_symmetric_psd(K, n_zero=3)
    d = edge_dofs_of_gradient(ND_TET, np.array([0.3, -1.0, 2.0, 0.5]))
    np.testing.assert_allclose(K @ d, 0.0, atol=1e-12)
    mat = CurlCurlIntegrator(MatrixConstantCoefficient(2.0 * np.eye(3)))
    np.testing.assert_allclose(mat.assemble_element_matrix(ND_TET, tet_trans), K, atol=1e-12)


def test_curl_curl_rejects_vector_coefficient():
    with pytest.raises(InvalidConfigurationError):
        CurlCurlIntegrator(VectorConstantCoefficient([1.0, 1.0]))


def test_vector_fe_curl_2d(tri_trans):
    K = VectorFECurlIntegrator().assemble_element_matrix2(ND_TRI, P0, tri_trans)
    np.testing.assert_allclose(K, [[1.0, -1.0, 1.0]], atol=1e-14)


def test_vector_fe_curl_3d_gradient_kernel(tet_trans):
    K = VectorFECurlIntegrator().assemble_element_matrix2(ND_TET, ND_TET, tet_trans)
    assert K.shape == (6, 6)
    d = edge_dofs_of_gradient(ND_TET, np.array([1.0, 0.2, -0.7, 0.4]))
    np.testing.assert_allclose(K @ d, 0.0, atol=1e-12)
    assert np.abs(K).max() > 0.0


@pytest.mark.parametrize("rt,p0,fixture,value", [
    (RT_TRI, P0, "tri_trans", 1.0),
    (RT_TET, LagrangeElement(Geometry.TETRAHEDRON, 0), "tet_trans", 0.5),
])
def test_vector_fe_divergence(rt, p0, fixture, value, request):
    trans = request.getfixturevalue(fixture)
    K = VectorFEDivergenceIntegrator().assemble_element_matrix2(rt, p0, trans)
    np.testing.assert_allclose(K, value * np.ones((1, rt.dof)), atol=1e-14)
    K = VectorFEDivergenceIntegrator(ConstantCoefficient(3.0)).assemble_element_matrix2(
        rt, p0, trans)
    np.testing.assert_allclose(K, 3.0 * value * np.ones((1, rt.dof)), atol=1e-14)


def test_div_div(tri_trans, tet_trans):
    K = DivDivIntegrator().assemble_element_matrix(RT_TRI, tri_trans)
    np.testing.assert_allclose(K, 2.0 / 2.75 * np.ones((3, 3)), atol=1e-14)
    K = DivDivIntegrator().assemble_element_matrix(RT_TET, tet_trans)
    tet_trans.set_int_point(INT_RULES.get(Geometry.TETRAHEDRON, 0)[0])
    np.testing.assert_allclose(K, 1.5 / tet_trans.weight() * np.ones((4, 4)), atol=1e-13)


# -----------------------------------------------------------------------------
#  Quadrature orders
# -----------------------------------------------------------------------------
@pytest.fixture
def p2_tri_trans():
    # same triangle as tri_trans, described by a P2 geometry
    ref = P2.nodes.points
    return make_trans(Geometry.TRIANGLE, ref @ np.array([[2.0, 0.5], [0.5, 1.5]]), order=2)


Q2 = LagrangeElement(Geometry.SQUARE, 2)
ONE = ConstantCoefficient(1.0)

ORDER_CASES = [
    ("tri_trans", lambda r, t: CurlCurlIntegrator(int_rules=r).assemble_element_matrix(ND_TRI, t), 0),
    ("tet_trans", lambda r, t: CurlCurlIntegrator(int_rules=r).assemble_element_matrix(ND_TET, t), 0),
    ("tri_trans", lambda r, t: DivDivIntegrator(int_rules=r).assemble_element_matrix(RT_TRI, t), 0),
    ("tri_trans", lambda r, t: VectorFEMassIntegrator(int_rules=r).assemble_element_matrix(
        ND_TRI, t), 2),
    ("p2_tri_trans", lambda r, t: VectorFEMassIntegrator(int_rules=r).assemble_element_matrix(
        RT_TRI, t), 4),
    ("tri_trans", lambda r, t: VectorFEMassIntegrator(int_rules=r).assemble_element_matrix2(
        ND_TRI, P2, t), 3),
    ("tri_trans", lambda r, t: VectorFEDivergenceIntegrator(int_rules=r).assemble_element_matrix2(
        RT_TRI, P0, t), 0),
    ("tri_trans", lambda r, t: VectorFEDivergenceIntegrator(int_rules=r).assemble_element_matrix2(
        RT_TRI, P1, t), 1),
    ("tri_trans", lambda r, t: VectorFECurlIntegrator(int_rules=r).assemble_element_matrix2(
        ND_TRI, P0, t), 0),
    ("tet_trans", lambda r, t: VectorFECurlIntegrator(int_rules=r).assemble_element_matrix2(
        ND_TET, ND_TET, t), 1),
    ("tri_trans", lambda r, t: VectorDivergenceIntegrator(int_rules=r).assemble_element_matrix2(
        P2, P1, t), 2),
    ("p2_tri_trans", lambda r, t: VectorDivergenceIntegrator(int_rules=r).assemble_element_matrix2(
        P2, P0, t), 2),
    ("tri_trans", lambda r, t: VectorDiffusionIntegrator(int_rules=r).assemble_element_matrix(
        P2, t), 2),
    ("quad_trans", lambda r, t: VectorDiffusionIntegrator(int_rules=r).assemble_element_matrix(
        Q1, t), 4),
    ("tri_trans", lambda r, t: ElasticityIntegrator(ONE, ONE, int_rules=r).assemble_element_matrix(
        P2, t), 2),
    ("quad_trans", lambda r, t: ElasticityIntegrator(ONE, ONE, int_rules=r).assemble_element_matrix(
        Q1, t), 4),
    ("tri_trans", lambda r, t: VectorCurlCurlIntegrator(int_rules=r).assemble_element_matrix(
        P2, t), 2),
    ("quad_trans", lambda r, t: VectorCurlCurlIntegrator(int_rules=r).assemble_element_matrix(
        Q1, t), 4),
]


@pytest.mark.parametrize("fixture,assemble,order", ORDER_CASES)
def test_default_quadrature_order(fixture, assemble, order, request):
    trans = request.getfixturevalue(fixture)
    rules = RecordingRules()
    assemble(rules, trans)
    assert rules.calls == [(trans.geom_type, order)]


def test_curl_curl_and_div_div_order_formulas():
    assert CurlCurlIntegrator.default_order(ND_TRI) == 0
    assert CurlCurlIntegrator.default_order(Q2) == 4         # not P_k: 2k
    assert DivDivIntegrator.default_order(RT_TET) == 0
    assert DivDivIntegrator.default_order(Q2) == 2
    assert VectorFEDivergenceIntegrator.default_order2(RT_TET, P1) == 1
    assert VectorFECurlIntegrator.default_order2(ND_TET, P1) == 1
