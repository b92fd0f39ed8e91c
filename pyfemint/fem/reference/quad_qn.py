from functools import lru_cache
import numpy as np

from .seg_pn import _lagrange_basis_1d, _eval_1d


@lru_cache(maxsize=None)
def quad_qn(n: int, max_deriv_order: int = 1):
    """
    Tensor-product Q_n on [0,1]^2.
    Returns: (nodes, shape_fn, deriv_fns) where
      shape_fn(xi,eta) -> ( (n+1)^2, )
      deriv_fns[(ax,ay)](xi,eta) -> ( (n+1)^2, ), ax+ay<=max_deriv_order
    Stacking order is (eta outer, xi inner): index = j*(n+1) + i
    """
    nodes1d, L, dL = _lagrange_basis_1d(n, max_deriv_order)

    def shape(xi, eta):
        lx = _eval_1d(L, xi)          # (n+1,)
        ly = _eval_1d(L, eta)         # (n+1,)
        # eta outer, xi inner
        return np.outer(ly, lx).reshape(-1)

    derivs = {}
    for ax in range(max_deriv_order+1):
        for ay in range(max_deriv_order+1):
            if ax + ay > max_deriv_order:
                continue
            def make(ax=ax, ay=ay):
                def d(xi, eta):
                    dx = _eval_1d(dL[ax], xi)   # d^ax/dxi^ax L_i(xi)
                    dy = _eval_1d(dL[ay], eta)  # d^ay/deta^ay L_j(eta)
                    return np.outer(dy, dx).reshape(-1)
                return d
            derivs[(ax, ay)] = make()
    nodes = np.array([(xi, eta) for eta in nodes1d for xi in nodes1d])
    return nodes, shape, derivs
