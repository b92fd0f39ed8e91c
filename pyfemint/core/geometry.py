"""pyfemint.core.geometry
Reference-cell catalogue: dimensions, vertices and local faces.

Reference cells are ``[0,1]^d`` for segment/square/cube and the unit simplex
for triangle/tetrahedron.  Local faces are oriented so that the normal of
the face map (right-hand normal of an edge, cross product of the two
tangents of a 3-D face) points out of the cell.
"""
from enum import Enum

import numpy as np


class Geometry(Enum):
    POINT = "point"
    SEGMENT = "segment"
    TRIANGLE = "triangle"
    SQUARE = "square"
    TETRAHEDRON = "tetrahedron"
    CUBE = "cube"

    @property
    def dim(self) -> int:
        return _DIMS[self]

    @property
    def vertices(self) -> np.ndarray:
        return _VERTICES[self].copy()

    @property
    def face_geometry(self) -> "Geometry":
        """Geometry of the cell's faces."""
        if self not in _FACES:
            raise KeyError(f"No face table for geometry {self.value!r}.")
        return _FACE_GEOMETRY[self]

    def face_vertices(self, face: int) -> np.ndarray:
        """Reference coordinates of the vertices of local face ``face``."""
        try:
            idx = _FACES[self][face]
        except KeyError:
            raise KeyError(f"No face table for geometry {self.value!r}.")
        except IndexError:
            raise IndexError(f"Geometry {self.value!r} has no local face {face}.")
        return _VERTICES[self][list(idx)]

    def num_faces(self) -> int:
        return len(_FACES.get(self, ()))


_DIMS = {
    Geometry.POINT: 0,
    Geometry.SEGMENT: 1,
    Geometry.TRIANGLE: 2,
    Geometry.SQUARE: 2,
    Geometry.TETRAHEDRON: 3,
    Geometry.CUBE: 3,
}

_VERTICES = {
    Geometry.POINT: np.zeros((1, 0)),
    Geometry.SEGMENT: np.array([[0.0], [1.0]]),
    Geometry.TRIANGLE: np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]),
    Geometry.SQUARE: np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]),
    Geometry.TETRAHEDRON: np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0],
                                    [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]),
    Geometry.CUBE: np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0],
                             [1.0, 1.0, 0.0], [0.0, 1.0, 0.0],
                             [0.0, 0.0, 1.0], [1.0, 0.0, 1.0],
                             [1.0, 1.0, 1.0], [0.0, 1.0, 1.0]]),
}

# vertex indices of each local face, counter-clockwise seen from outside;
# square faces list their corners in the order of the reference square
_FACES = {
    Geometry.SEGMENT: ((0,), (1,)),
    Geometry.TRIANGLE: ((0, 1), (1, 2), (2, 0)),
    Geometry.SQUARE: ((0, 1), (1, 2), (2, 3), (3, 0)),
    Geometry.TETRAHEDRON: ((1, 2, 3), (0, 3, 2), (0, 1, 3), (0, 2, 1)),
    Geometry.CUBE: ((0, 3, 2, 1), (0, 1, 5, 4), (1, 2, 6, 5),
                    (2, 3, 7, 6), (3, 0, 4, 7), (4, 5, 6, 7)),
}

_FACE_GEOMETRY = {
    Geometry.SEGMENT: Geometry.POINT,
    Geometry.TRIANGLE: Geometry.SEGMENT,
    Geometry.SQUARE: Geometry.SEGMENT,
    Geometry.TETRAHEDRON: Geometry.TRIANGLE,
    Geometry.CUBE: Geometry.SQUARE,
}


def reference_volume(geom: Geometry) -> float:
    return {
        Geometry.POINT: 1.0,
        Geometry.SEGMENT: 1.0,
        Geometry.TRIANGLE: 0.5,
        Geometry.SQUARE: 1.0,
        Geometry.TETRAHEDRON: 1.0 / 6.0,
        Geometry.CUBE: 1.0,
    }[geom]
