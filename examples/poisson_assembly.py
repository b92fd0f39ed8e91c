"""Example: -lap(u) = f on the unit square, continuous Q2 and SIPG P1.

u = sin(pi x) sin(pi y), homogeneous Dirichlet data.  The load vector is
the mass matrix applied to the nodal interpolant of f.
"""
import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from pyfemint.assembly import DGDiffusionIntegrator, DiffusionIntegrator, MassIntegrator
from pyfemint.core.geometry import Geometry
from pyfemint.fem.elements import LagrangeElement
from pyfemint.fem.transform import ElementTransformation, make_face_transformations
from pyfemint.utils.meshgen import face_table, structured_quad, structured_triangles

u_exact = lambda x, y: np.sin(np.pi * x) * np.sin(np.pi * y)
f_rhs = lambda x, y: 2 * np.pi ** 2 * np.sin(np.pi * x) * np.sin(np.pi * y)


def scatter(blocks, N):
    rows, cols, vals = [], [], []
    for dofs_r, dofs_c, mat in blocks:
        rows.append(np.repeat(dofs_r, len(dofs_c)))
        cols.append(np.tile(dofs_c, len(dofs_r)))
        vals.append(mat.ravel())
    return sp.csr_matrix((np.concatenate(vals), (np.concatenate(rows), np.concatenate(cols))),
                         shape=(N, N))


# ---------------------------------------------------------------- continuous Q2
nodes, elems, _ = structured_quad(1.0, 1.0, nx=8, ny=8, poly_order=2)
el = LagrangeElement(Geometry.SQUARE, 2)
diff, mass = DiffusionIntegrator(), MassIntegrator()
K_blocks, M_blocks = [], []
for eid, conn in enumerate(elems):
    trans = ElementTransformation(el, nodes[conn], element_no=eid)
    K_blocks.append((conn, conn, diff.assemble_element_matrix(el, trans)))
    M_blocks.append((conn, conn, mass.assemble_element_matrix(el, trans)))
K = scatter(K_blocks, len(nodes))
F = scatter(M_blocks, len(nodes)) @ f_rhs(nodes[:, 0], nodes[:, 1])

x, y = nodes[:, 0], nodes[:, 1]
inner = ~(np.isclose(x, 0) | np.isclose(x, 1) | np.isclose(y, 0) | np.isclose(y, 1))
uh = np.zeros(len(nodes))
uh[inner] = spla.spsolve(K[inner][:, inner].tocsc(), F[inner])
print('Q2 max nodal error =', np.abs(uh - u_exact(x, y)).max())

# ---------------------------------------------------------------- SIPG P1
nodes, elems, corners = structured_triangles(1.0, 1.0, nx_quads=8, ny_quads=8)
el = LagrangeElement(Geometry.TRIANGLE, 1)
nloc = el.dof
dofs = lambda e: np.arange(e * nloc, (e + 1) * nloc)
N = nloc * len(elems)
trans = [ElementTransformation(el, nodes[conn], element_no=e) for e, conn in enumerate(elems)]

sipg = DGDiffusionIntegrator(sigma=-1.0, kappa=10.0)
K_blocks, M_blocks = [], []
for e, t in enumerate(trans):
    K_blocks.append((dofs(e), dofs(e), diff.assemble_element_matrix(el, t)))
    M_blocks.append((dofs(e), dofs(e), mass.assemble_element_matrix(el, t)))
for e1, f1, e2, f2 in face_table(corners, Geometry.TRIANGLE):
    if e2 is None:
        ftrans = make_face_transformations(trans[e1], f1)
        face_dofs = dofs(e1)
    else:
        ftrans = make_face_transformations(trans[e1], f1, trans[e2], f2)
        face_dofs = np.concatenate([dofs(e1), dofs(e2)])
    K_blocks.append((face_dofs, face_dofs, sipg.assemble_face_matrix(el, el, ftrans)))
K = scatter(K_blocks, N)

dg_nodes = nodes[elems].reshape(-1, 2)
F = scatter(M_blocks, N) @ f_rhs(dg_nodes[:, 0], dg_nodes[:, 1])
uh = spla.spsolve(K.tocsc(), F)
print('SIPG max nodal error =', np.abs(uh - u_exact(dg_nodes[:, 0], dg_nodes[:, 1])).max())
