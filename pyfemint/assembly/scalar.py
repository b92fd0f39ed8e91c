"""pyfemint.assembly.scalar
Integrators for scalar H1 forms: diffusion, mass, convection, group
convection and a single partial derivative.
"""
import numpy as np

from pyfemint.assembly.base import BilinearFormIntegrator, split_coefficient
from pyfemint.fem.elements import FunctionSpace
from pyfemint.utils.dense import (add_group_convection, add_mult_a_aat, add_mult_a_vvt,
                                  add_mult_abt, add_mult_adat, add_mult_vwt,
                                  calc_inverse)


# -----------------------------------------------------------------------------
#  (Q grad u, grad v)
# -----------------------------------------------------------------------------
class DiffusionIntegrator(BilinearFormIntegrator):
    """
    ``(Q grad u, grad v)`` with ``Q`` a scalar, vector (diagonal) or matrix
    coefficient.

    Supports the element matrix, the mixed matrix, the element vector
    ``K(elfun) elfun`` and the flux helpers used by error estimators.
    Physical gradients are obtained from ``dshape @ adj(J)`` and the weight
    ``ip.weight / det(J)`` (``/ det(J)^3`` for manifold elements, where
    ``adj`` is ``adj(J^T J) J^T``).
    """

    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q, self.VQ, self.MQ = split_coefficient(q)

    @staticmethod
    def default_order(el) -> int:
        if el.space is FunctionSpace.Pk:
            return 2 * el.order - 2
        return 2 * el.order + el.dim - 1

    @staticmethod
    def default_order2(trial_fe, test_fe) -> int:
        if trial_fe.space is FunctionSpace.Pk:
            return trial_fe.order + test_fe.order - 2
        return trial_fe.order + test_fe.order + trial_fe.dim - 1

    @staticmethod
    def _point_weight(trans, ip, square: bool) -> float:
        w = trans.weight()
        return ip.weight / (w if square else w * w * w)

    def _coef_matrix(self, trans, ip, w):
        """Scaled coefficient as a matrix, a diagonal or a scalar."""
        if self.MQ is not None:
            return "matrix", w * self.MQ.eval(trans, ip)
        if self.VQ is not None:
            return "vector", w * self.VQ.eval(trans, ip)
        if self.Q is not None:
            w *= self.Q.eval(trans, ip)
        return "scalar", w

    def assemble_element_matrix(self, el, trans, elmat=None):
        nd, sdim = el.dof, trans.space_dim
        square = el.dim == sdim
        elmat = self._output(elmat, (nd, nd))
        dshapedxt = self._work("dshapedxt", (nd, sdim))

        ir = self._rule(el.geom_type, self.default_order(el), el.space)
        for ip in ir:
            dshape = el.calc_dshape(ip)
            trans.set_int_point(ip)
            w = self._point_weight(trans, ip, square)
            np.matmul(dshape, trans.adjugate(), out=dshapedxt)
            kind, c = self._coef_matrix(trans, ip, w)
            if kind == "matrix":
                add_mult_abt(dshapedxt @ c, dshapedxt, elmat)
            elif kind == "vector":
                add_mult_adat(dshapedxt, c, elmat)
            else:
                add_mult_a_aat(c, dshapedxt, elmat)
        return elmat

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        tr_nd, te_nd, sdim = trial_fe.dof, test_fe.dof, trans.space_dim
        square = trial_fe.dim == sdim
        elmat = self._output(elmat, (te_nd, tr_nd))
        dshapedxt = self._work("dshapedxt", (tr_nd, sdim))
        te_dshapedxt = self._work("te_dshapedxt", (te_nd, sdim))

        ir = self._rule(trial_fe.geom_type, self.default_order2(trial_fe, test_fe),
                        trial_fe.space)
        for ip in ir:
            trans.set_int_point(ip)
            adj = trans.adjugate()
            w = self._point_weight(trans, ip, square)
            np.matmul(trial_fe.calc_dshape(ip), adj, out=dshapedxt)
            np.matmul(test_fe.calc_dshape(ip), adj, out=te_dshapedxt)
            kind, c = self._coef_matrix(trans, ip, w)
            if kind == "matrix":
                add_mult_abt(te_dshapedxt @ c, dshapedxt, elmat)
            elif kind == "vector":
                add_mult_abt(te_dshapedxt * c, dshapedxt, elmat)
            else:
                add_mult_abt(c * te_dshapedxt, dshapedxt, elmat)
        return elmat

    def assemble_element_vector(self, el, trans, elfun, elvect=None):
        nd, sdim = el.dof, trans.space_dim
        square = el.dim == sdim
        elfun = np.asarray(elfun, dtype=float)
        elvect = self._output(elvect, (nd,), "elvect")

        ir = self._rule(el.geom_type, self.default_order(el), el.space)
        for ip in ir:
            dshape = el.calc_dshape(ip)
            trans.set_int_point(ip)
            adj = trans.adjugate()
            w = self._point_weight(trans, ip, square)
            vec = adj.T @ (dshape.T @ elfun)          # physical gradient, sdim
            kind, c = self._coef_matrix(trans, ip, w)
            if kind == "matrix":
                pointflux = c @ vec
            else:
                pointflux = c * vec
            elvect += dshape @ (adj @ pointflux)
        return elvect

    # ---------- flux recovery ----------
    def compute_element_flux(self, el, trans, u, flux_fe, with_coef: bool = True):
        """
        Gradient of ``u`` (optionally multiplied by the coefficient) at the
        nodes of ``flux_fe``, laid out component-major:
        ``flux[j * fnd + i]`` is component ``j`` at flux node ``i``.
        """
        u = np.asarray(u, dtype=float)
        sdim = trans.space_dim
        nodes = flux_fe.nodes
        fnd = len(nodes)
        flux = np.zeros(fnd * sdim)
        for i, ip in enumerate(nodes):
            vec = el.calc_dshape(ip).T @ u
            trans.set_int_point(ip)
            pointflux = calc_inverse(trans.jacobian()).T @ vec
            if with_coef:
                kind, c = self._coef_matrix(trans, ip, 1.0)
                pointflux = c @ pointflux if kind == "matrix" else c * pointflux
            flux[i::fnd] = pointflux
        return flux

    def compute_flux_energy(self, flux_fe, trans, flux) -> float:
        """Integral of ``flux . (Q flux)`` over the element."""
        nd = flux_fe.dof
        flux_mat = np.asarray(flux, dtype=float).reshape(-1, nd).T    # (nd, sdim)
        ir = self._rule(flux_fe.geom_type, 2 * flux_fe.order)
        energy = 0.0
        for ip in ir:
            pointflux = flux_fe.calc_shape(ip) @ flux_mat
            trans.set_int_point(ip)
            kind, c = self._coef_matrix(trans, ip, trans.weight() * ip.weight)
            if kind == "matrix":
                energy += pointflux @ c @ pointflux
            else:
                energy += np.sum(c * pointflux * pointflux)
        return float(energy)


# -----------------------------------------------------------------------------
#  (Q u, v)
# -----------------------------------------------------------------------------
class MassIntegrator(BilinearFormIntegrator):
    """``(Q u, v)``: element, mixed (``test x trial``) and element vector."""

    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q = q

    @staticmethod
    def default_order(el, trans) -> int:
        return 2 * el.order + trans.order_w()

    @staticmethod
    def default_order2(trial_fe, test_fe, trans) -> int:
        return trial_fe.order + test_fe.order + trans.order_w()

    def _weight(self, trans, ip):
        w = trans.weight() * ip.weight
        if self.Q is not None:
            w *= self.Q.eval(trans, ip)
        return w

    def assemble_element_matrix(self, el, trans, elmat=None):
        nd = el.dof
        elmat = self._output(elmat, (nd, nd))
        ir = self._rule(el.geom_type, self.default_order(el, trans), el.space)
        for ip in ir:
            shape = el.calc_shape(ip)
            trans.set_int_point(ip)
            add_mult_a_vvt(self._weight(trans, ip), shape, elmat)
        return elmat

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        elmat = self._output(elmat, (test_fe.dof, trial_fe.dof))
        ir = self._rule(trial_fe.geom_type, self.default_order2(trial_fe, test_fe, trans))
        for ip in ir:
            shape = trial_fe.calc_shape(ip)
            te_shape = test_fe.calc_shape(ip)
            trans.set_int_point(ip)
            add_mult_vwt(self._weight(trans, ip) * te_shape, shape, elmat)
        return elmat

    def assemble_element_vector(self, el, trans, elfun, elvect=None):
        elfun = np.asarray(elfun, dtype=float)
        elvect = self._output(elvect, (el.dof,), "elvect")
        ir = self._rule(el.geom_type, self.default_order(el, trans), el.space)
        for ip in ir:
            shape = el.calc_shape(ip)
            trans.set_int_point(ip)
            elvect += (self._weight(trans, ip) * (shape @ elfun)) * shape
        return elvect


# -----------------------------------------------------------------------------
#  alpha (Q . grad u, v)
# -----------------------------------------------------------------------------
class ConvectionIntegrator(BilinearFormIntegrator):
    """``alpha (Q . grad u, v)`` for a vector coefficient ``Q``."""

    def __init__(self, q, alpha: float = 1.0, **kwargs):
        super().__init__(**kwargs)
        self.Q = q
        self.alpha = float(alpha)

    @staticmethod
    def default_order(el, trans) -> int:
        return trans.order_grad(el) + trans.order() + el.order

    def assemble_element_matrix(self, el, trans, elmat=None):
        nd = el.dof
        elmat = self._output(elmat, (nd, nd))
        ir = self._rule(el.geom_type, self.default_order(el, trans))
        Q_ir = self.Q.eval_rule(trans, ir)
        for i, ip in enumerate(ir):
            dshape = el.calc_dshape(ip)
            shape = el.calc_shape(ip)
            trans.set_int_point(ip)
            vec1 = Q_ir[:, i] * (self.alpha * ip.weight)
            add_mult_vwt(shape, dshape @ (trans.adjugate() @ vec1), elmat)
        return elmat


class GroupConvectionIntegrator(BilinearFormIntegrator):
    """Convection with the velocity interpolated at the element nodes:
    ``alpha sum_k (Q_k . grad u) phi_k v``."""

    def __init__(self, q, alpha: float = 1.0, **kwargs):
        super().__init__(**kwargs)
        self.Q = q
        self.alpha = float(alpha)

    @staticmethod
    def default_order(el, trans) -> int:
        return trans.order_grad(el) + el.order

    def assemble_element_matrix(self, el, trans, elmat=None):
        nd, sdim = el.dof, trans.space_dim
        elmat = self._output(elmat, (nd, nd))
        grad = self._work("grad", (nd, sdim))
        ir = self._rule(el.geom_type, self.default_order(el, trans))
        Q_nodal = self.Q.eval_rule(trans, el.nodes)
        for ip in ir:
            dshape = el.calc_dshape(ip)
            shape = el.calc_shape(ip)
            trans.set_int_point(ip)
            np.matmul(dshape, trans.adjugate(), out=grad)
            add_group_convection(elmat, self.alpha * ip.weight, shape, Q_nodal, grad)
        return elmat


# -----------------------------------------------------------------------------
#  (Q du/dx_xi, v)
# -----------------------------------------------------------------------------
class DerivativeIntegrator(BilinearFormIntegrator):
    """``(Q d u / d x_xi, v)``; the element matrix is the mixed one with
    equal trial and test spaces."""

    def __init__(self, q, xi: int, **kwargs):
        super().__init__(**kwargs)
        self.Q = q
        self.xi = int(xi)

    @staticmethod
    def default_order2(trial_fe, test_fe) -> int:
        if trial_fe.space is FunctionSpace.Pk:
            return trial_fe.order + test_fe.order - 1
        return trial_fe.order + test_fe.order + trial_fe.dim

    def assemble_element_matrix(self, el, trans, elmat=None):
        return self.assemble_element_matrix2(el, el, trans, elmat)

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        elmat = self._output(elmat, (test_fe.dof, trial_fe.dof))
        ir = self._rule(trial_fe.geom_type, self.default_order2(trial_fe, test_fe),
                        trial_fe.space)
        for ip in ir:
            dshape = trial_fe.calc_dshape(ip)
            trans.set_int_point(ip)
            det = trans.weight()
            dshapedxi = (dshape @ trans.inverse_jacobian())[:, self.xi]
            shape = test_fe.calc_shape(ip) * (self.Q.eval(trans, ip) * det * ip.weight)
            add_mult_vwt(shape, dshapedxi, elmat)
        return elmat
