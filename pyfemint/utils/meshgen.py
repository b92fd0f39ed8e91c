"""pyfemint.utils.meshgen
Structured meshes of rectangles for drivers and tests.

Each generator returns ``(nodes, elements, corners)``: node coordinates
``(N, 2)``, per-element node ids in the local order of the Lagrange
reference tables and per-element vertex ids in the reference vertex order
(counter-clockwise).
"""
import numpy as np

from pyfemint.core.geometry import Geometry

__all__ = ["structured_quad", "structured_triangles", "face_table"]


def _fine_grid(Lx, Ly, nx, ny, order):
    x = np.linspace(0.0, Lx, order * nx + 1)
    y = np.linspace(0.0, Ly, order * ny + 1)
    nodes = np.array([[xi, yj] for yj in y for xi in x])
    return nodes, len(x)


def structured_quad(Lx: float, Ly: float, *, nx: int, ny: int, poly_order: int = 1):
    """Q_k elements on ``[0,Lx] x [0,Ly]``, element nodes eta-outer, xi-inner."""
    if poly_order < 1:
        raise ValueError("Polynomial order must be a positive integer.")
    k = poly_order
    nodes, n_fine_x = _fine_grid(Lx, Ly, nx, ny, k)
    gid = lambda ix, iy: iy * n_fine_x + ix

    elements = np.empty((nx * ny, (k + 1) ** 2), dtype=int)
    corners = np.empty((nx * ny, 4), dtype=int)
    e = 0
    for ey in range(ny):
        for ex in range(nx):
            ix0, iy0 = k * ex, k * ey
            elements[e] = [gid(ix0 + i, iy0 + j) for j in range(k + 1) for i in range(k + 1)]
            corners[e] = [gid(ix0, iy0), gid(ix0 + k, iy0), gid(ix0 + k, iy0 + k),
                          gid(ix0, iy0 + k)]
            e += 1
    return nodes, elements, corners


def structured_triangles(Lx: float, Ly: float, *, nx_quads: int, ny_quads: int,
                         poly_order: int = 1):
    """P_k triangles, two per base quad, split along the ``(0,0)-(1,1)``
    diagonal."""
    if poly_order < 1:
        raise ValueError("Polynomial order must be a positive integer.")
    k = poly_order
    nodes, n_fine_x = _fine_grid(Lx, Ly, nx_quads, ny_quads, k)
    gid = lambda ix, iy: iy * n_fine_x + ix

    n_loc = (k + 1) * (k + 2) // 2
    n_elem = 2 * nx_quads * ny_quads
    elements = np.empty((n_elem, n_loc), dtype=int)
    corners = np.empty((n_elem, 3), dtype=int)
    e = 0
    for ey in range(ny_quads):
        for ex in range(nx_quads):
            v00 = (k * ex, k * ey)
            v10 = (k * (ex + 1), k * ey)
            v01 = (k * ex, k * (ey + 1))
            v11 = (k * (ex + 1), k * (ey + 1))
            for V0, V1, V2 in ((v00, v10, v11), (v00, v11, v01)):
                d1 = ((V1[0] - V0[0]) // k, (V1[1] - V0[1]) // k)
                d2 = ((V2[0] - V0[0]) // k, (V2[1] - V0[1]) // k)
                elements[e] = [gid(V0[0] + i * d1[0] + j * d2[0], V0[1] + i * d1[1] + j * d2[1])
                               for j in range(k + 1) for i in range(k + 1 - j)]
                corners[e] = [gid(*V0), gid(*V1), gid(*V2)]
                e += 1
    return nodes, elements, corners


def face_table(corners: np.ndarray, geom: Geometry):
    """
    Faces of a conforming mesh as ``(e1, f1, e2, f2)`` tuples with local face
    numbers ``f1``/``f2``; boundary faces have ``e2 = f2 = None``.
    """
    geom = Geometry(geom)
    n_faces = geom.num_faces()
    ref = geom.vertices
    seen = {}
    for e, verts in enumerate(corners):
        for f in range(n_faces):
            fv = geom.face_vertices(f)
            local = [int(np.flatnonzero(np.all(ref == v, axis=1))[0]) for v in fv]
            key = tuple(sorted(int(verts[i]) for i in local))
            seen.setdefault(key, []).append((e, f))
    faces = []
    for key, owners in seen.items():
        if len(owners) == 1:
            (e1, f1), = owners
            faces.append((e1, f1, None, None))
        elif len(owners) == 2:
            (e1, f1), (e2, f2) = owners
            faces.append((e1, f1, e2, f2))
        else:
            raise ValueError(f"Face {key} is shared by {len(owners)} elements.")
    return faces
