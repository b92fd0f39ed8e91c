from functools import lru_cache
import sympy as sp
import numpy as np


@lru_cache(maxsize=None)
def _lagrange_basis_1d(n: int, max_deriv_order: int):
    """Return 1D Lagrange basis + derivatives on [0,1] as NUMPY-callable lambdas."""
    x = sp.symbols('x')
    nodes = np.linspace(0.0, 1.0, n+1) if n > 0 else np.array([0.5])
    L = []
    dL = {k: [] for k in range(max_deriv_order+1)}
    for i, xi in enumerate(nodes):
        num = sp.S(1)
        den = 1.0
        for j, xj in enumerate(nodes):
            if i == j:
                continue
            num *= (x - xj)
            den *= (xi - xj)
        Li = sp.simplify(num/den)
        # lambdify shape & all required derivatives (SymPy → numpy functions)
        L.append(sp.lambdify(x, Li, 'numpy'))
        for k in range(max_deriv_order+1):
            dL[k].append(sp.lambdify(x, sp.diff(Li, x, k), 'numpy'))
    return nodes, L, dL


def _eval_1d(vals, z):
    # vals is a list of 1D lambdas; output shape (n+1,)
    return np.array([f(z) for f in vals], dtype=float)


@lru_cache(maxsize=None)
def seg_pn(n: int, max_deriv_order: int = 1):
    """
    P_n on [0,1] with equally spaced nodes in increasing order.
    Returns: (nodes, shape_fn, deriv_fns) where
      shape_fn(xi) -> (n+1,)
      deriv_fns[(k,)](xi) -> (n+1,), k<=max_deriv_order
    """
    if n < 0:
        raise ValueError("Polynomial order n must be non-negative.")
    nodes1d, L, dL = _lagrange_basis_1d(n, max_deriv_order)

    def shape(xi):
        return _eval_1d(L, xi)

    derivs = {}
    for k in range(max_deriv_order+1):
        def make(k=k):
            def d(xi):
                return _eval_1d(dL[k], xi)
            return d
        derivs[(k,)] = make()
    return nodes1d[:, None], shape, derivs
