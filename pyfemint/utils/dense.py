"""pyfemint.utils.dense
Small dense kernels shared by the integrators: adjugates and inverses of
(possibly non-square) Jacobians, face normals, outer-product accumulation
and the gradient-to-curl/divergence transforms.

All ``add_*`` helpers accumulate into ``out`` in place and return it.
"""
import numba as nb
import numpy as np


# -------------------------------------------------------------------------
# Jacobian algebra
# -------------------------------------------------------------------------
def calc_adjugate(a: np.ndarray) -> np.ndarray:
    """Adjugate of a square ``a``, or ``adj(a^T a) a^T`` when ``a`` is
    ``(sdim, dim)`` with ``sdim > dim``. Result shape ``(dim, sdim)``."""
    a = np.asarray(a, dtype=float)
    h, w = a.shape
    if w == 0:
        return np.zeros((0, h))
    if h != w:
        if h < w:
            raise ValueError(f"calc_adjugate: Jacobian {a.shape} has more columns than rows.")
        # adj(a^T a) a^T
        return _adjugate_square(a.T @ a) @ a.T
    return _adjugate_square(a)


def _adjugate_square(a):
    n = a.shape[0]
    if n == 1:
        return np.ones((1, 1))
    if n == 2:
        return np.array([[a[1, 1], -a[0, 1]],
                         [-a[1, 0], a[0, 0]]])
    if n == 3:
        adj = np.empty((3, 3))
        adj[0, 0] = a[1, 1] * a[2, 2] - a[1, 2] * a[2, 1]
        adj[0, 1] = a[0, 2] * a[2, 1] - a[0, 1] * a[2, 2]
        adj[0, 2] = a[0, 1] * a[1, 2] - a[0, 2] * a[1, 1]
        adj[1, 0] = a[1, 2] * a[2, 0] - a[1, 0] * a[2, 2]
        adj[1, 1] = a[0, 0] * a[2, 2] - a[0, 2] * a[2, 0]
        adj[1, 2] = a[0, 2] * a[1, 0] - a[0, 0] * a[1, 2]
        adj[2, 0] = a[1, 0] * a[2, 1] - a[1, 1] * a[2, 0]
        adj[2, 1] = a[0, 1] * a[2, 0] - a[0, 0] * a[2, 1]
        adj[2, 2] = a[0, 0] * a[1, 1] - a[0, 1] * a[1, 0]
        return adj
    raise ValueError(f"calc_adjugate: unsupported size {a.shape}.")


def calc_inverse(a: np.ndarray) -> np.ndarray:
    """Inverse of a square ``a``; left pseudo-inverse ``(a^T a)^{-1} a^T``
    otherwise."""
    a = np.asarray(a, dtype=float)
    h, w = a.shape
    if h == w:
        return np.linalg.inv(a)
    return np.linalg.solve(a.T @ a, a.T)


def jacobian_weight(a: np.ndarray) -> float:
    """``det(a)`` for square ``a``, ``sqrt(det(a^T a))`` otherwise."""
    h, w = a.shape
    if w == 0:
        return 1.0
    if h == w:
        return float(np.linalg.det(a))
    return float(np.sqrt(np.linalg.det(a.T @ a)))


def calc_ortho(j: np.ndarray) -> np.ndarray:
    """Normal of a face with tangent Jacobian ``j`` (``(2,1)`` or ``(3,2)``),
    scaled by the face measure factor."""
    if j.shape == (2, 1):
        return np.array([j[1, 0], -j[0, 0]])
    if j.shape == (3, 2):
        return np.array([j[1, 0] * j[2, 1] - j[2, 0] * j[1, 1],
                         j[2, 0] * j[0, 1] - j[0, 0] * j[2, 1],
                         j[0, 0] * j[1, 1] - j[1, 0] * j[0, 1]])
    raise ValueError(f"calc_ortho: unsupported face Jacobian shape {j.shape}.")


# -------------------------------------------------------------------------
# Accumulation
# -------------------------------------------------------------------------
def add_mult_a_aat(a: float, A: np.ndarray, out: np.ndarray) -> np.ndarray:
    """out += a * A A^T"""
    out += a * (A @ A.T)
    return out


def add_mult_abt(A: np.ndarray, B: np.ndarray, out: np.ndarray) -> np.ndarray:
    """out += A B^T"""
    out += A @ B.T
    return out


def add_mult_vwt(v: np.ndarray, w: np.ndarray, out: np.ndarray) -> np.ndarray:
    """out += v w^T"""
    out += np.outer(v, w)
    return out


def add_mult_a_vvt(a: float, v: np.ndarray, out: np.ndarray) -> np.ndarray:
    """out += a * v v^T"""
    out += a * np.outer(v, v)
    return out


def add_mult_adat(A: np.ndarray, d: np.ndarray, out: np.ndarray) -> np.ndarray:
    """out += A diag(d) A^T"""
    out += (A * d) @ A.T
    return out


def mult_vvt(v: np.ndarray) -> np.ndarray:
    return np.outer(v, v)


def lump(m: np.ndarray) -> np.ndarray:
    """Replace ``m`` in place by the diagonal matrix of its row sums."""
    rs = m.sum(axis=1)
    m[...] = 0.0
    m[np.diag_indices_from(m)] = rs
    return m


# -------------------------------------------------------------------------
# Gradient transforms
# -------------------------------------------------------------------------
@nb.njit(cache=True)
def grad_to_curl(grad):
    """
    Curls of the vector fields (U_i,0,..), (0,U_i,..), .. from the gradients
    of the scalar functions U_i.  ``grad`` is (n, dim); the result is
    (dim*n, 1) in 2D (scalar curl) and (dim*n, 3) in 3D.
    """
    n = grad.shape[0]
    dim = grad.shape[1]
    if dim == 2:
        curl = np.zeros((2 * n, 1))
        for i in range(n):
            x = grad[i, 0]
            y = grad[i, 1]
            # curl of (Ui,0)
            curl[i, 0] = -y
            # curl of (0,Ui)
            curl[i + n, 0] = x
        return curl
    curl = np.zeros((3 * n, 3))
    for i in range(n):
        x = grad[i, 0]
        y = grad[i, 1]
        z = grad[i, 2]
        j = i + n
        k = j + n
        # curl of (Ui,0,0)
        curl[i, 1] = z
        curl[i, 2] = -y
        # curl of (0,Ui,0)
        curl[j, 0] = -z
        curl[j, 2] = x
        # curl of (0,0,Ui)
        curl[k, 0] = y
        curl[k, 1] = -x
    return curl


def grad_to_div(grad: np.ndarray) -> np.ndarray:
    """Flatten (n, dim) gradients component-major: ``div[d*n + i] = grad[i, d]``."""
    return np.ascontiguousarray(grad.T).ravel()


# -------------------------------------------------------------------------
# Loop kernels
# -------------------------------------------------------------------------
@nb.njit(cache=True)
def add_group_convection(elmat, w, shape, q_nodal, grad):
    """elmat(k,l) += sum_s w*shape(k)*q_nodal(s,k)*grad(l,s)"""
    nd = shape.shape[0]
    dim = grad.shape[1]
    for k in range(nd):
        wsk = w * shape[k]
        for l in range(nd):
            a = 0.0
            for s in range(dim):
                a += q_nodal[s, k] * grad[l, s]
            elmat[k, l] += wsk * a
    return elmat


@nb.njit(cache=True)
def add_lower_jump(jmat, wq, shape_a, shape_b, row0, col0, sign, diagonal):
    """
    Lower-triangular part of the jump matrix:
    jmat(row0+i, col0+j) += sign*wq*shape_a(i)*shape_b(j), restricted to
    j <= i on diagonal blocks.
    """
    na = shape_a.shape[0]
    nb_ = shape_b.shape[0]
    for i in range(na):
        wsi = sign * wq * shape_a[i]
        jmax = i + 1 if diagonal else nb_
        for j in range(jmax):
            jmat[row0 + i, col0 + j] += wsi * shape_b[j]
    return jmat


@nb.njit(cache=True)
def combine_interior_penalty(elmat, jmat, sigma):
    """
    elmat := sigma*elmat^T - elmat + jmat, with the lower triangle of jmat
    mirrored onto the upper one.
    """
    n = elmat.shape[0]
    for i in range(n):
        for j in range(i):
            aij = elmat[i, j]
            aji = elmat[j, i]
            mij = jmat[i, j]
            elmat[i, j] = sigma * aji - aij + mij
            elmat[j, i] = sigma * aij - aji + mij
        elmat[i, i] = (sigma - 1.0) * elmat[i, i] + jmat[i, i]
    return elmat
