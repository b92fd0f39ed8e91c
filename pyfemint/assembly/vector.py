"""pyfemint.assembly.vector
Integrators for vector-valued forms.

H1 vector fields use ``dim`` copies of a scalar Lagrange basis, ordered
component-major (all dofs of component 0 first).  Edge (H(curl)) and face
(H(div)) bases come from elements whose ``calc_vshape`` already applies the
Piola map.
"""
import numpy as np

from pyfemint.assembly.base import BilinearFormIntegrator, split_coefficient
from pyfemint.core.errors import InvalidConfigurationError
from pyfemint.fem.elements import FunctionSpace
from pyfemint.utils.dense import (add_mult_a_aat, add_mult_a_vvt, add_mult_abt,
                                  add_mult_adat, add_mult_vwt, grad_to_curl, grad_to_div,
                                  mult_vvt)


def _scalar(q, trans, ip) -> float:
    return 1.0 if q is None else q.eval(trans, ip)


# -----------------------------------------------------------------------------
#  (Q curl u, curl v) for edge elements
# -----------------------------------------------------------------------------
class CurlCurlIntegrator(BilinearFormIntegrator):
    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q, _, self.MQ = split_coefficient(q)
        if q is not None and self.Q is None and self.MQ is None:
            raise InvalidConfigurationError("CurlCurlIntegrator takes a scalar or "
                                            "matrix coefficient.")

    @staticmethod
    def default_order(el) -> int:
        if el.space is FunctionSpace.Pk:
            return 2 * el.order - 2
        return 2 * el.order

    def assemble_element_matrix(self, el, trans, elmat=None):
        nd, dim = el.dof, el.dim
        elmat = self._output(elmat, (nd, nd))
        ir = self._rule(el.geom_type, self.default_order(el))
        for ip in ir:
            curlshape = el.calc_curl_shape(ip)
            trans.set_int_point(ip)
            w = ip.weight / trans.weight()
            if dim == 3:
                curlshape = curlshape @ trans.jacobian().T
            if self.MQ is not None:
                add_mult_abt(curlshape @ (w * self.MQ.eval(trans, ip)), curlshape, elmat)
            else:
                add_mult_a_aat(w * _scalar(self.Q, trans, ip), curlshape, elmat)
        return elmat


class VectorCurlCurlIntegrator(BilinearFormIntegrator):
    """``(Q curl u, curl v)`` for H1 vector fields.  In 2D the curl is the
    scalar ``d u_1/dx - d u_0/dy``."""

    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q = q

    @staticmethod
    def default_order(el, trans) -> int:
        return 2 * trans.order_grad(el)

    def assemble_element_matrix(self, el, trans, elmat=None):
        dim, dof = el.dim, el.dof
        elmat = self._output(elmat, (dim * dof, dim * dof))
        dshape = self._work("dshape", (dof, dim))
        ir = self._rule(el.geom_type, self.default_order(el, trans))
        for ip in ir:
            dshape_hat = el.calc_dshape(ip)
            trans.set_int_point(ip)
            w = ip.weight / trans.weight()
            np.matmul(dshape_hat, trans.adjugate(), out=dshape)
            curlshape = grad_to_curl(dshape)
            add_mult_a_aat(w * _scalar(self.Q, trans, ip), curlshape, elmat)
        return elmat

    def get_element_energy(self, el, trans, elfun) -> float:
        """``1/2 (Q curl u, curl u)`` for the field with dofs ``elfun``."""
        dim, dof = el.dim, el.dof
        elfun_mat = np.asarray(elfun, dtype=float).reshape(dim, dof).T
        ir = self._rule(el.geom_type, self.default_order(el, trans))
        energy = 0.0
        for ip in ir:
            grad_hat = elfun_mat.T @ el.calc_dshape(ip)
            trans.set_int_point(ip)
            w = ip.weight / trans.weight()
            grad = grad_hat @ trans.adjugate()
            if dim == 2:
                curl = grad[0, 1] - grad[1, 0]
                w *= curl * curl
            else:
                curl_x = grad[2, 1] - grad[1, 2]
                curl_y = grad[0, 2] - grad[2, 0]
                curl_z = grad[1, 0] - grad[0, 1]
                w *= curl_x * curl_x + curl_y * curl_y + curl_z * curl_z
            energy += w * _scalar(self.Q, trans, ip)
        return 0.5 * energy


# -----------------------------------------------------------------------------
#  Edge/face element forms
# -----------------------------------------------------------------------------
class VectorFEMassIntegrator(BilinearFormIntegrator):
    """
    ``(Q u, v)`` for edge or face elements.  The scalar branch accumulates
    ``a A A^T``, the vector branch ``A D A^T`` and the matrix branch
    ``A K A^T``.  The mixed form (vector trial, scalar H1 test, result
    ``dim*test_dof x trial_dof``) only takes a scalar coefficient.
    """

    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q, self.VQ, self.MQ = split_coefficient(q)

    @staticmethod
    def default_order(el, trans) -> int:
        return trans.order_w() + 2 * el.order

    @staticmethod
    def default_order2(trial_fe, test_fe, trans) -> int:
        return trans.order_w() + test_fe.order + trial_fe.order

    def assemble_element_matrix(self, el, trans, elmat=None):
        dof = el.dof
        elmat = self._output(elmat, (dof, dof))
        ir = self._rule(el.geom_type, self.default_order(el, trans))
        for ip in ir:
            trans.set_int_point(ip)
            vshape = el.calc_vshape(trans)
            w = ip.weight * trans.weight()
            if self.MQ is not None:
                K = w * self.MQ.eval(trans, ip)
                add_mult_abt(vshape @ K, vshape, elmat)
            elif self.VQ is not None:
                add_mult_adat(vshape, w * self.VQ.eval(trans, ip), elmat)
            else:
                add_mult_a_aat(w * _scalar(self.Q, trans, ip), vshape, elmat)
        return elmat

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        if self.VQ is not None or self.MQ is not None:
            raise InvalidConfigurationError(
                "VectorFEMassIntegrator.assemble_element_matrix2(...) is not "
                "implemented for vector/matrix coefficients.")
        dim = test_fe.dim
        test_dof, trial_dof = test_fe.dof, trial_fe.dof
        elmat = self._output(elmat, (dim * test_dof, trial_dof))
        ir = self._rule(test_fe.geom_type, self.default_order2(trial_fe, test_fe, trans))
        for ip in ir:
            trans.set_int_point(ip)
            vshape = trial_fe.calc_vshape(trans)
            shape = test_fe.calc_shape(ip)
            w = ip.weight * trans.weight() * _scalar(self.Q, trans, ip)
            for d in range(dim):
                elmat[d * test_dof:(d + 1) * test_dof, :] += w * np.outer(shape, vshape[:, d])
        return elmat


class VectorFEDivergenceIntegrator(BilinearFormIntegrator):
    """``(Q div u, v)``: face-element trial, scalar test."""

    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q = q

    @staticmethod
    def default_order2(trial_fe, test_fe) -> int:
        return trial_fe.order + test_fe.order - 1

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        elmat = self._output(elmat, (test_fe.dof, trial_fe.dof))
        ir = self._rule(trial_fe.geom_type, self.default_order2(trial_fe, test_fe))
        for ip in ir:
            divshape = trial_fe.calc_div_shape(ip)
            shape = test_fe.calc_shape(ip)
            w = ip.weight
            if self.Q is not None:
                trans.set_int_point(ip)
                w *= self.Q.eval(trans, ip)
            add_mult_vwt(w * shape, divshape, elmat)
        return elmat


class VectorFECurlIntegrator(BilinearFormIntegrator):
    """``(Q curl u, v)``: edge-element trial; the test space is a vector
    (edge) space in 3D and a scalar space in 2D."""

    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q = q

    @staticmethod
    def default_order2(trial_fe, test_fe) -> int:
        return trial_fe.order + test_fe.order - 1

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        elmat = self._output(elmat, (test_fe.dof, trial_fe.dof))
        ir = self._rule(trial_fe.geom_type, self.default_order2(trial_fe, test_fe))
        for ip in ir:
            trans.set_int_point(ip)
            curlshape = trial_fe.calc_curl_shape(ip)
            w = ip.weight * _scalar(self.Q, trans, ip)
            if trial_fe.dim == 3:
                curlshape_dFt = curlshape @ trans.jacobian().T
                add_mult_abt(w * test_fe.calc_vshape(trans), curlshape_dFt, elmat)
            else:
                add_mult_vwt(w * test_fe.calc_shape(ip), curlshape[:, 0], elmat)
        return elmat


class DivDivIntegrator(BilinearFormIntegrator):
    """``(Q div u, div v)`` for face elements."""

    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q = q

    @staticmethod
    def default_order(el) -> int:
        return 2 * el.order - 2

    def assemble_element_matrix(self, el, trans, elmat=None):
        dof = el.dof
        elmat = self._output(elmat, (dof, dof))
        ir = self._rule(el.geom_type, self.default_order(el))
        for ip in ir:
            divshape = el.calc_div_shape(ip)
            trans.set_int_point(ip)
            c = ip.weight / trans.weight() * _scalar(self.Q, trans, ip)
            add_mult_a_vvt(c, divshape, elmat)
        return elmat


# -----------------------------------------------------------------------------
#  H1 vector fields
# -----------------------------------------------------------------------------
class VectorMassIntegrator(BilinearFormIntegrator):
    """
    ``(Q u, v)`` for H1 vector fields with a scalar, diagonal (vector) or
    full matrix coefficient.  ``q_order`` is added to the default order to
    account for a non-constant coefficient.
    """

    def __init__(self, q=None, q_order: int = 0, **kwargs):
        super().__init__(**kwargs)
        self.Q, self.VQ, self.MQ = split_coefficient(q)
        self.q_order = int(q_order)

    def vdim(self, el) -> int:
        if self.VQ is not None:
            return self.VQ.vdim
        if self.MQ is not None:
            return self.MQ.vdim
        return el.dim

    def default_order(self, el, trans) -> int:
        return 2 * el.order + trans.order_w() + self.q_order

    def default_order2(self, trial_fe, test_fe, trans) -> int:
        return trial_fe.order + test_fe.order + trans.order_w() + self.q_order

    def _add_blocks(self, elmat, partelmat, norm, trans, ip, vdim):
        m, n = partelmat.shape
        if self.VQ is not None:
            vec = self.VQ.eval(trans, ip)
            for k in range(vdim):
                elmat[m * k:m * (k + 1), n * k:n * (k + 1)] += (norm * vec[k]) * partelmat
        elif self.MQ is not None:
            mcoeff = self.MQ.eval(trans, ip)
            for i in range(vdim):
                for j in range(vdim):
                    elmat[m * i:m * (i + 1), n * j:n * (j + 1)] += (norm * mcoeff[i, j]) * partelmat
        else:
            norm *= _scalar(self.Q, trans, ip)
            for k in range(vdim):
                elmat[m * k:m * (k + 1), n * k:n * (k + 1)] += norm * partelmat

    def assemble_element_matrix(self, el, trans, elmat=None):
        nd, vdim = el.dof, self.vdim(el)
        elmat = self._output(elmat, (nd * vdim, nd * vdim))
        ir = self._rule(el.geom_type, self.default_order(el, trans), el.space)
        for ip in ir:
            shape = el.calc_shape(ip)
            trans.set_int_point(ip)
            norm = ip.weight * trans.weight()
            self._add_blocks(elmat, mult_vvt(shape), norm, trans, ip, vdim)
        return elmat

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        tr_nd, te_nd, vdim = trial_fe.dof, test_fe.dof, self.vdim(trial_fe)
        elmat = self._output(elmat, (te_nd * vdim, tr_nd * vdim))
        ir = self._rule(trial_fe.geom_type, self.default_order2(trial_fe, test_fe, trans),
                        trial_fe.space)
        for ip in ir:
            shape = trial_fe.calc_shape(ip)
            te_shape = test_fe.calc_shape(ip)
            trans.set_int_point(ip)
            norm = ip.weight * trans.weight()
            self._add_blocks(elmat, np.outer(te_shape, shape), norm, trans, ip, vdim)
        return elmat


class VectorDivergenceIntegrator(BilinearFormIntegrator):
    """``(Q div u, v)``: H1 vector trial (``dim*trial_dof`` columns),
    scalar test."""

    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q = q

    @staticmethod
    def default_order2(trial_fe, test_fe, trans) -> int:
        return trans.order_grad(trial_fe) + test_fe.order

    def assemble_element_matrix2(self, trial_fe, test_fe, trans, elmat=None):
        dim, trial_dof, test_dof = trial_fe.dim, trial_fe.dof, test_fe.dof
        elmat = self._output(elmat, (test_dof, dim * trial_dof))
        gshape = self._work("gshape", (trial_dof, dim))
        ir = self._rule(trial_fe.geom_type, self.default_order2(trial_fe, test_fe, trans))
        for ip in ir:
            dshape = trial_fe.calc_dshape(ip)
            shape = test_fe.calc_shape(ip)
            trans.set_int_point(ip)
            np.matmul(dshape, trans.adjugate(), out=gshape)
            divshape = grad_to_div(gshape)
            c = ip.weight * _scalar(self.Q, trans, ip)
            add_mult_vwt(c * shape, divshape, elmat)
        return elmat


class VectorDiffusionIntegrator(BilinearFormIntegrator):
    """``(Q grad u_i, grad v_i)`` summed over components: ``dim`` copies of
    the scalar diffusion block on the diagonal."""

    def __init__(self, q=None, **kwargs):
        super().__init__(**kwargs)
        self.Q = q

    @staticmethod
    def default_order(el, trans) -> int:
        # integrand is rational when det(J) is not constant
        return 2 * trans.order_grad(el)

    def assemble_element_matrix(self, el, trans, elmat=None):
        dim, dof = el.dim, el.dof
        elmat = self._output(elmat, (dim * dof, dim * dof))
        gshape = self._work("gshape", (dof, dim))
        ir = self._rule(el.geom_type, self.default_order(el, trans), el.space)
        for ip in ir:
            dshape = el.calc_dshape(ip)
            trans.set_int_point(ip)
            norm = ip.weight * trans.weight() * _scalar(self.Q, trans, ip)
            np.matmul(dshape, trans.inverse_jacobian(), out=gshape)
            pelmat = norm * (gshape @ gshape.T)
            for d in range(dim):
                elmat[dof * d:dof * (d + 1), dof * d:dof * (d + 1)] += pelmat
        return elmat


class ElasticityIntegrator(BilinearFormIntegrator):
    """
    Linear isotropic elasticity,
    ``lambda (div u, div v) + mu (grad u + grad u^T, grad v)``.

    The Lame parameters come from two coefficients ``lam`` and ``mu``, or
    from a single coefficient ``m`` as ``lambda = q_lambda m`` and
    ``mu = q_mu m``.  Terms whose parameter is zero at a point are skipped.
    """

    def __init__(self, lam=None, mu=None, *, m=None, q_lambda: float = None,
                 q_mu: float = None, **kwargs):
        super().__init__(**kwargs)
        if m is not None:
            if lam is not None or mu is not None:
                raise InvalidConfigurationError("Give either lam and mu, or m.")
            if q_lambda is None or q_mu is None:
                raise InvalidConfigurationError("A single elasticity coefficient needs "
                                                "q_lambda and q_mu.")
            self.lam, self.mu = None, m
            self.q_lambda, self.q_mu = float(q_lambda), float(q_mu)
        else:
            if lam is None or mu is None:
                raise InvalidConfigurationError("ElasticityIntegrator needs both Lame "
                                                "coefficients lam and mu.")
            self.lam, self.mu = lam, mu
            self.q_lambda = self.q_mu = None

    @staticmethod
    def default_order(el, trans) -> int:
        return 2 * trans.order_grad(el)

    def _lame(self, trans, ip):
        M = self.mu.eval(trans, ip)
        if self.lam is not None:
            return self.lam.eval(trans, ip), M
        return self.q_lambda * M, self.q_mu * M

    def assemble_element_matrix(self, el, trans, elmat=None):
        dof, dim = el.dof, el.dim
        elmat = self._output(elmat, (dof * dim, dof * dim))
        gshape = self._work("gshape", (dof, dim))
        ir = self._rule(el.geom_type, self.default_order(el, trans))
        for ip in ir:
            dshape = el.calc_dshape(ip)
            trans.set_int_point(ip)
            w = ip.weight * trans.weight()
            np.matmul(dshape, trans.inverse_jacobian(), out=gshape)
            L, M = self._lame(trans, ip)

            if L != 0.0:
                add_mult_a_vvt(L * w, grad_to_div(gshape), elmat)

            if M != 0.0:
                pelmat = (M * w) * (gshape @ gshape.T)
                for d in range(dim):
                    elmat[dof * d:dof * (d + 1), dof * d:dof * (d + 1)] += pelmat
                for i in range(dim):
                    for j in range(dim):
                        elmat[dof * i:dof * (i + 1), dof * j:dof * (j + 1)] += \
                            (M * w) * np.outer(gshape[:, j], gshape[:, i])
        return elmat
