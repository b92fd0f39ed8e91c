from functools import lru_cache
from itertools import product
import sympy as sp
import numpy as np


@lru_cache(maxsize=None)
def simplex_pn(n: int, dim: int, max_deriv_order: int = 1):
    """
    Return nodes, lambdified shape functions and derivatives up to
    max_deriv_order for P_n Lagrange elements on the unit simplex of
    dimension ``dim`` (2: triangle (0,0)-(1,0)-(0,1), 3: tetrahedron).

    Returns:
        tuple: (nodes, shape_lambda, deriv_lambdas)
            - nodes: (N, dim) reference coordinates of the Lagrange nodes.
            - shape_lambda: Callable giving shape function values [phi_1, ..., phi_N].
            - deriv_lambdas: Dict with multi-index keys, values are callables giving
                             derivative values [D^alpha phi_1, ..., D^alpha phi_N].
    """
    if n < 0:
        raise ValueError("Polynomial order n must be non-negative.")
    syms = sp.symbols("xi eta zeta")[:dim]

    # 1. P_n nodal points, first coordinate running fastest
    if n == 0:  # P0 element has one node, at the centroid
        nodes_ref_coords = [tuple(sp.Rational(1, dim + 1) for _ in range(dim))]
    else:
        nodes_ref_coords = []
        for idx in product(range(n + 1), repeat=dim):
            if sum(idx) <= n:
                nodes_ref_coords.append(tuple(sp.Rational(i, n) for i in idx[::-1]))
        nodes_ref_coords.sort(key=lambda c: tuple(reversed(c)))

    num_nodes = len(nodes_ref_coords)
    expected_num_nodes = sp.binomial(n + dim, dim)
    if num_nodes != expected_num_nodes:
        raise RuntimeError(f"Internal error: Mismatch in Pn node count for order n={n}. "
                           f"Generated {num_nodes}, expected {expected_num_nodes}")

    # 2. Monomial basis for polynomials of total degree <= n
    monomials_sym = []
    for powers in product(range(n + 1), repeat=dim):
        if sum(powers) <= n:
            term = sp.S(1)
            for s, p in zip(syms, powers):
                term *= s**p
            monomials_sym.append(term)

    # 3. Vandermonde-like matrix V
    V_matrix = sp.zeros(num_nodes, num_nodes)
    for i_node, node in enumerate(nodes_ref_coords):
        subs = dict(zip(syms, node))
        for j_monomial, monomial in enumerate(monomials_sym):
            V_matrix[i_node, j_monomial] = monomial.subs(subs)

    # 4. Coefficients of the Lagrange basis
    try:
        coeffs_matrix = (V_matrix.T).inv()
    except ValueError as e:
        raise RuntimeError(f"Vandermonde matrix is singular for P{n} in {dim}D: {e}")

    # 5. Symbolic Lagrange basis
    monomials_matrix_col = sp.Matrix(monomials_sym)
    basis_sym_list = [sp.expand((coeffs_matrix.row(k) * monomials_matrix_col)[0, 0])
                      for k in range(num_nodes)]

    # 6. Derivatives for all multi-indices up to max_deriv_order
    multi_indices = [alpha for alpha in product(range(max_deriv_order + 1), repeat=dim)
                     if sum(alpha) <= max_deriv_order]
    deriv_lambdas = {}
    for alpha in multi_indices:
        derivs_alpha = []
        for phi_sym in basis_sym_list:
            d = phi_sym
            for s, a in zip(syms, alpha):
                if a:
                    d = sp.diff(d, s, a)
            derivs_alpha.append(d)
        deriv_lambdas[alpha] = sp.lambdify(syms, sp.Matrix(derivs_alpha), "numpy")

    shape_lambda = sp.lambdify(syms, sp.Matrix(basis_sym_list), "numpy")
    nodes = np.array([[float(c) for c in node] for node in nodes_ref_coords])
    return nodes, shape_lambda, deriv_lambdas


def tri_pn(n: int, max_deriv_order: int = 1):
    return simplex_pn(n, 2, max_deriv_order)


def tet_pn(n: int, max_deriv_order: int = 1):
    return simplex_pn(n, 3, max_deriv_order)
