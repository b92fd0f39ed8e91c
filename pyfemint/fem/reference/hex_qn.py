from functools import lru_cache
import numpy as np

from .seg_pn import _lagrange_basis_1d, _eval_1d


def _outer3(lz, ly, lx):
    return np.einsum('k,j,i->kji', lz, ly, lx).reshape(-1)


@lru_cache(maxsize=None)
def hex_qn(n: int, max_deriv_order: int = 1):
    """
    Tensor-product Q_n on [0,1]^3, stacking order (zeta outer, eta, xi inner):
    index = (k*(n+1) + j)*(n+1) + i
    """
    nodes1d, L, dL = _lagrange_basis_1d(n, max_deriv_order)

    def shape(xi, eta, zeta):
        return _outer3(_eval_1d(L, zeta), _eval_1d(L, eta), _eval_1d(L, xi))

    derivs = {}
    for ax in range(max_deriv_order+1):
        for ay in range(max_deriv_order+1):
            for az in range(max_deriv_order+1):
                if ax + ay + az > max_deriv_order:
                    continue
                def make(ax=ax, ay=ay, az=az):
                    def d(xi, eta, zeta):
                        return _outer3(_eval_1d(dL[az], zeta), _eval_1d(dL[ay], eta),
                                       _eval_1d(dL[ax], xi))
                    return d
                derivs[(ax, ay, az)] = make()
    nodes = np.array([(xi, eta, zeta) for zeta in nodes1d for eta in nodes1d for xi in nodes1d])
    return nodes, shape, derivs
