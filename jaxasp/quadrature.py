# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Surface quadrature on the unit sphere.

The sphere is meshed by projecting a subdivided cube: every face carries a
``(2n + 1) x (2n + 1)`` grid of nodes grouped into ``n x n`` nine-node
quadratic elements, nodes on shared edges are merged and all nodes are pushed
radially onto the sphere. Element nodes are ordered as the VTK biquadratic
quad: the four corners counter-clockwise from ``(-1, -1)``, the four
mid-sides starting with ``(0, -1)`` and the centre.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
import numpy as np

from dataclasses import dataclass
from functools import lru_cache, partial
from typing import Dict, List, Tuple

from .errors import ASPError
from .utils.linalg import unit

# (normal, first tangent, second tangent) with t1 x t2 = normal
_CUBE_FACES = (
    ((0, 0, 1), (1, 0, 0), (0, 1, 0)),
    ((0, 0, -1), (0, 1, 0), (1, 0, 0)),
    ((1, 0, 0), (0, 1, 0), (0, 0, 1)),
    ((-1, 0, 0), (0, 0, 1), (0, 1, 0)),
    ((0, 1, 0), (0, 0, 1), (1, 0, 0)),
    ((0, -1, 0), (1, 0, 0), (0, 0, 1)),
)

# local grid offsets (along t1, along t2) of the nine element nodes
_ELEMENT_NODES = (
    (0, 0), (2, 0), (2, 2), (0, 2),
    (1, 0), (2, 1), (1, 2), (0, 1),
    (1, 1),
)

GAUSS_POINTS = np.array(
    [[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]]
) / np.sqrt(3.0)
GAUSS_WEIGHTS = np.ones(4)


@jax.tree_util.register_dataclass
@dataclass(frozen=True, slots=True)
class SurfaceMesh:
    """
    Quadratic surface mesh of the unit sphere.

    Attributes
    ----------
    points : jax.Array
        (M, 3) node positions, every row a unit vector.
    connectivity : jax.Array
        (E, 9) node indices of every element.
    """

    points: jax.Array
    connectivity: jax.Array

    @property
    def num_points(self) -> int:
        return self.points.shape[0]

    @property
    def num_elements(self) -> int:
        return self.connectivity.shape[0]


def form_cube_mesh(element_count: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Nodes and nine-node connectivity of the surface of the cube ``[-1, 1]^3``
    with ``element_count x element_count`` elements per face.
    """
    if element_count < 1:
        raise ASPError(f"the element count must be positive, got {element_count}")

    n = 2 * element_count + 1
    coordinates = np.linspace(-1.0, 1.0, n)
    index: Dict[Tuple[float, ...], int] = {}
    points: List[np.ndarray] = []
    connectivity: List[List[int]] = []

    for normal, t1, t2 in _CUBE_FACES:
        normal, t1, t2 = (np.asarray(v, dtype=float) for v in (normal, t1, t2))
        grid = np.empty((n, n), dtype=int)
        for a, u in enumerate(coordinates):
            for b, v in enumerate(coordinates):
                point = normal + u * t1 + v * t2
                key = tuple(np.round(point, 12) + 0.0)
                if key not in index:
                    index[key] = len(points)
                    points.append(point)
                grid[a, b] = index[key]

        for ea in range(element_count):
            for eb in range(element_count):
                connectivity.append(
                    [grid[2 * ea + da, 2 * eb + db] for da, db in _ELEMENT_NODES]
                )

    return np.asarray(points), np.asarray(connectivity, dtype=int)


@lru_cache(maxsize=None)
def unit_sphere(element_count: int = 1) -> SurfaceMesh:
    """
    Quadrature nodes and quadratic elements on the unit sphere.

    The mesh is built once per refinement level and shared afterwards.

    Example
    -------
    >>> mesh = unit_sphere(1)
    >>> mesh.num_points, mesh.num_elements
    (26, 6)
    """
    points, connectivity = form_cube_mesh(element_count)
    return SurfaceMesh(
        points=unit(jnp.asarray(points, dtype=float)),
        connectivity=jnp.asarray(connectivity),
    )


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="quadrature.shape_functions")
def shape_functions(xi: jax.Array) -> jax.Array:
    """
    Biquadratic Lagrange shape functions at local coordinates ``xi``.

    xi: (..., 2)
    returns: (..., 9)
    """
    x, y = xi[..., 0], xi[..., 1]
    lx = jnp.stack([0.5 * x * (x - 1.0), 1.0 - x * x, 0.5 * x * (x + 1.0)], axis=-1)
    ly = jnp.stack([0.5 * y * (y - 1.0), 1.0 - y * y, 0.5 * y * (y + 1.0)], axis=-1)
    columns = [lx[..., a] * ly[..., b] for a, b in _ELEMENT_NODES]
    return jnp.stack(columns, axis=-1)


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="quadrature.shape_function_gradients")
def shape_function_gradients(xi: jax.Array) -> jax.Array:
    """
    Local gradients of the shape functions.

    xi: (..., 2)
    returns: (..., 9, 2)
    """
    return jax.vmap(jax.jacfwd(shape_functions))(jnp.reshape(xi, (-1, 2))).reshape(
        xi.shape[:-1] + (9, 2)
    )


@jax.jit
def integrate_surface(
    points: jax.Array, connectivity: jax.Array, values: jax.Array
) -> jax.Array:
    """
    Integrate nodal values over a quadratic surface mesh.

    Parameters
    ----------
    points : jax.Array
        (M, 3) node positions.
    connectivity : jax.Array
        (E, 9) element connectivity.
    values : jax.Array
        (M,) or (M, K) nodal values.

    Returns
    -------
    jax.Array
        () or (K,) integrals, using 2x2 Gauss quadrature per element and the
        surface Jacobian ``|dx/dxi x dx/deta|``.
    """
    gauss = jnp.asarray(GAUSS_POINTS)
    N = shape_functions(gauss)  # (G, 9)
    dN = shape_function_gradients(gauss)  # (G, 9, 2)

    element_points = points[connectivity]  # (E, 9, 3)
    tangents = jnp.einsum("enc,gna->egac", element_points, dN)  # (E, G, 2, 3)
    jacobian = jnp.linalg.norm(
        jnp.cross(tangents[..., 0, :], tangents[..., 1, :]), axis=-1
    )  # (E, G)

    element_values = values[connectivity]  # (E, 9, ...)
    at_gauss = jnp.einsum("gn,en...->eg...", N, element_values)
    weights = jacobian * jnp.asarray(GAUSS_WEIGHTS)
    return jnp.einsum("eg,eg...->...", weights, at_gauss)


__all__ = [
    "SurfaceMesh",
    "form_cube_mesh",
    "unit_sphere",
    "shape_functions",
    "shape_function_gradients",
    "integrate_surface",
    "GAUSS_POINTS",
    "GAUSS_WEIGHTS",
]
