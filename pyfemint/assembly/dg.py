"""pyfemint.assembly.dg
Face kernels for discontinuous Galerkin discretisations: upwind/central
trace flux, interior penalty diffusion and the trace-jump coupling of a
face-only space.

Face matrices are laid out ``[side 1 | side 2]``; on a boundary face
(``ftrans.elem2_no is None``) only the side-1 block is built.  Normals are
``calc_ortho`` of the face Jacobian, pointing out of element 1 and scaled by
the face measure factor.
"""
import numpy as np

from pyfemint.assembly.base import BilinearFormIntegrator, split_coefficient
from pyfemint.core.errors import InvalidConfigurationError
from pyfemint.fem.elements import FunctionSpace, MapType
from pyfemint.utils.dense import (add_lower_jump, add_mult_vwt, calc_ortho,
                                  combine_interior_penalty)


def face_normal(ftrans, eip1, dim: int) -> np.ndarray:
    """Scaled outward normal of element 1 at the current face point."""
    if dim == 1:
        return np.array([2.0 * eip1.x - 1.0])
    return calc_ortho(ftrans.face.jacobian())


# -----------------------------------------------------------------------------
#  alpha < rho_u (u.n) {v},[w] > + beta < rho_u |u.n| [v],[w] >
# -----------------------------------------------------------------------------
class DGTraceIntegrator(BilinearFormIntegrator):
    """
    Trace flux of the advection form with velocity ``u``: central part
    weighted by ``alpha / 2``, upwind part by ``beta |u.n|``.  An optional
    density ``rho`` is taken from the upwind side.  Blocks whose weight is
    exactly zero at a point are skipped.
    """

    def __init__(self, u, alpha: float, beta: float, rho=None, **kwargs):
        super().__init__(**kwargs)
        self.u = u
        self.alpha = float(alpha)
        self.beta = float(beta)
        self.rho = rho

    @staticmethod
    def default_order(el1, el2, ftrans) -> int:
        # assumes order(u) == order(mesh)
        if ftrans.elem2_no is not None:
            order = (min(ftrans.elem1.order_w(), ftrans.elem2.order_w())
                     + 2 * max(el1.order, el2.order))
        else:
            order = ftrans.elem1.order_w() + 2 * el1.order
        if el1.space is FunctionSpace.Pk:
            order += 1
        return order

    def assemble_face_matrix(self, el1, el2, ftrans, elmat=None):
        dim = el1.dim
        ndof1 = el1.dof
        ndof2 = el2.dof if ftrans.elem2_no is not None else 0
        elmat = self._output(elmat, (ndof1 + ndof2, ndof1 + ndof2))

        ir = self._rule(ftrans.face_geom, self.default_order(el1, el2, ftrans))
        for ip in ir:
            eip1 = ftrans.loc1.transform(ip)
            eip2 = ftrans.loc2.transform(ip) if ndof2 else None
            shape1 = el1.calc_shape(eip1)

            ftrans.face.set_int_point(ip)
            ftrans.elem1.set_int_point(eip1)
            vu = self.u.eval(ftrans.elem1, eip1)
            nor = face_normal(ftrans, eip1, dim)

            un = float(vu @ nor)
            a = 0.5 * self.alpha * un
            b = self.beta * abs(un)
            # |alpha/2| == |beta| makes two of the blocks vanish at this point

            if self.rho is not None:
                if un >= 0.0 and ndof2:
                    ftrans.elem2.set_int_point(eip2)
                    rho_p = self.rho.eval(ftrans.elem2, eip2)
                else:
                    rho_p = self.rho.eval(ftrans.elem1, eip1)
                a *= rho_p
                b *= rho_p

            w = ip.weight * (a + b)
            if w != 0.0:
                add_mult_vwt(w * shape1, shape1, elmat[:ndof1, :ndof1])

            if ndof2:
                shape2 = el2.calc_shape(eip2)
                if w != 0.0:
                    add_mult_vwt(-w * shape2, shape1, elmat[ndof1:, :ndof1])

                w = ip.weight * (b - a)
                if w != 0.0:
                    add_mult_vwt(w * shape2, shape2, elmat[ndof1:, ndof1:])
                    add_mult_vwt(-w * shape1, shape2, elmat[:ndof1, ndof1:])
        return elmat


# -----------------------------------------------------------------------------
#  - < {(Q grad u).n}, [v] > + sigma < [u], {(Q grad v).n} > + kappa < {h^{-1} Q} [u], [v] >
# -----------------------------------------------------------------------------
class DGDiffusionIntegrator(BilinearFormIntegrator):
    """
    Interior penalty face term of ``-div(Q grad u)``.

    ``sigma = -1`` gives SIPG, ``sigma = 1`` NIPG and ``sigma = 0`` IIPG.
    The penalty uses ``1/h = |n| / det(J)`` on each side, which measures the
    element perpendicular to the face independently of the face map; on
    interior faces ``q/h`` is averaged over the two sides.
    """

    def __init__(self, q=None, sigma: float = -1.0, kappa: float = 0.0, **kwargs):
        super().__init__(**kwargs)
        self.Q, vq, self.MQ = split_coefficient(q)
        if vq is not None:
            raise InvalidConfigurationError("DGDiffusionIntegrator takes a scalar or "
                                            "matrix coefficient.")
        self.sigma = float(sigma)
        self.kappa = float(kappa)

    @staticmethod
    def default_order(el1, el2, ftrans) -> int:
        if ftrans.elem2_no is not None:
            return 2 * max(el1.order, el2.order)
        return 2 * el1.order

    def _side_flux(self, elem, eip, nor, w):
        """Return ``(ni, nh)``: the coefficient-weighted normal and its
        reference counterpart ``adj(J) ni``."""
        if self.MQ is None:
            if self.Q is not None:
                w *= self.Q.eval(elem, eip)
            ni = w * nor
        else:
            ni = self.MQ.eval(elem, eip).T @ (w * nor)
        return ni, elem.adjugate() @ ni

    def assemble_face_matrix(self, el1, el2, ftrans, elmat=None):
        dim = el1.dim
        ndof1 = el1.dof
        ndof2 = el2.dof if ftrans.elem2_no is not None else 0
        ndofs = ndof1 + ndof2
        kappa_is_nonzero = self.kappa != 0.0
        elmat = self._output(elmat, (ndofs, ndofs))
        jmat = self._work("jmat", (ndofs, ndofs))

        # elmat <- < {(Q grad u).n}, [v] >, jmat <- kappa < {h^{-1} Q} [u], [v] >
        ir = self._rule(ftrans.face_geom, self.default_order(el1, el2, ftrans))
        for ip in ir:
            eip1 = ftrans.loc1.transform(ip)
            ftrans.face.set_int_point(ip)
            nor = face_normal(ftrans, eip1, dim)

            shape1 = el1.calc_shape(eip1)
            dshape1 = el1.calc_dshape(eip1)
            ftrans.elem1.set_int_point(eip1)
            w = ip.weight / ftrans.elem1.weight()
            if ndof2:
                w /= 2
            ni, nh = self._side_flux(ftrans.elem1, eip1, nor, w)
            wq = float(ni @ nor)
            dshape1dn = dshape1 @ nh
            add_mult_vwt(shape1, dshape1dn, elmat[:ndof1, :ndof1])

            if ndof2:
                eip2 = ftrans.loc2.transform(ip)
                shape2 = el2.calc_shape(eip2)
                dshape2 = el2.calc_dshape(eip2)
                ftrans.elem2.set_int_point(eip2)
                w = ip.weight / 2 / ftrans.elem2.weight()
                ni, nh = self._side_flux(ftrans.elem2, eip2, nor, w)
                wq += float(ni @ nor)
                dshape2dn = dshape2 @ nh

                add_mult_vwt(shape1, dshape2dn, elmat[:ndof1, ndof1:])
                add_mult_vwt(-shape2, dshape1dn, elmat[ndof1:, :ndof1])
                add_mult_vwt(-shape2, dshape2dn, elmat[ndof1:, ndof1:])

            if kappa_is_nonzero:
                # lower triangle only, mirrored when combining
                wq *= self.kappa
                add_lower_jump(jmat, wq, shape1, shape1, 0, 0, 1.0, True)
                if ndof2:
                    add_lower_jump(jmat, wq, shape2, shape1, ndof1, 0, -1.0, False)
                    add_lower_jump(jmat, wq, shape2, shape2, ndof1, ndof1, 1.0, True)

        # elmat := sigma*elmat^T - elmat + jmat
        combine_interior_penalty(elmat, jmat, self.sigma)
        return elmat


# -----------------------------------------------------------------------------
#  < u, [v] > for a face-only trial space
# -----------------------------------------------------------------------------
class TraceJumpIntegrator(BilinearFormIntegrator):
    """Couples a trace space on the face to the adjoining test spaces;
    the side-2 block is subtracted.  Result ``(ndof1 + ndof2) x face_dof``."""

    @staticmethod
    def default_order(trial_face_fe, test_fe1, test_fe2, ftrans) -> int:
        if ftrans.elem2_no is not None:
            order = max(test_fe1.order, test_fe2.order)
        else:
            order = test_fe1.order
        order += trial_face_fe.order
        if trial_face_fe.map_type is MapType.VALUE:
            order += ftrans.face.order_w()
        return order

    def assemble_trace_face_matrix(self, trial_face_fe, test_fe1, test_fe2, ftrans,
                                   elmat=None):
        face_ndof = trial_face_fe.dof
        ndof1 = test_fe1.dof
        ndof2 = test_fe2.dof if ftrans.elem2_no is not None else 0
        elmat = self._output(elmat, (ndof1 + ndof2, face_ndof))

        ir = self._rule(ftrans.face_geom,
                        self.default_order(trial_face_fe, test_fe1, test_fe2, ftrans))
        for ip in ir:
            ftrans.face.set_int_point(ip)
            face_shape = trial_face_fe.calc_shape(ip)
            eip1 = ftrans.loc1.transform(ip)
            shape1 = test_fe1.calc_shape(eip1)
            ftrans.elem1.set_int_point(eip1)

            w = ip.weight
            if trial_face_fe.map_type is MapType.VALUE:
                w *= ftrans.face.weight()
            face_shape = w * face_shape
            add_mult_vwt(shape1, face_shape, elmat[:ndof1])
            if ndof2:
                eip2 = ftrans.loc2.transform(ip)
                shape2 = test_fe2.calc_shape(eip2)
                ftrans.elem2.set_int_point(eip2)
                add_mult_vwt(-shape2, face_shape, elmat[ndof1:])
        return elmat
