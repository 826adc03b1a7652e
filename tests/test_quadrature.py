import jax
jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np
import pytest

import jaxasp as asp
from jaxasp.quadrature import (
    GAUSS_POINTS,
    form_cube_mesh,
    shape_function_gradients,
    shape_functions,
)

NODES = np.array(
    [[-1, -1], [1, -1], [1, 1], [-1, 1], [0, -1], [1, 0], [0, 1], [-1, 0], [0, 0]],
    dtype=float,
)


@pytest.mark.parametrize("n, points, elements", [(1, 26, 6), (2, 98, 24), (3, 218, 54)])
def test_mesh_sizes(n, points, elements):
    mesh = asp.unit_sphere(n)
    assert mesh.num_points == points
    assert mesh.num_elements == elements
    assert mesh.connectivity.shape == (elements, 9)


def test_nodes_lie_on_the_sphere():
    mesh = asp.unit_sphere(2)
    np.testing.assert_allclose(np.linalg.norm(mesh.points, axis=1), 1.0, rtol=1e-12)


def test_mesh_is_cached():
    assert asp.unit_sphere(1) is asp.unit_sphere(1)


def test_invalid_element_count():
    with pytest.raises(asp.ASPError, match="element count"):
        form_cube_mesh(0)


def test_every_node_is_used():
    points, connectivity = form_cube_mesh(2)
    assert set(np.unique(connectivity)) == set(range(points.shape[0]))


def test_elements_face_outwards():
    mesh = asp.unit_sphere(1)
    dN = shape_function_gradients(jnp.zeros(2))
    element_points = mesh.points[mesh.connectivity]
    tangents = jnp.einsum("enc,na->eac", element_points, dN)
    normal = jnp.cross(tangents[:, 0], tangents[:, 1])
    centre = element_points[:, 8]
    assert np.all(np.einsum("ec,ec->e", normal, centre) > 0.0)


def test_shape_functions():
    values = shape_functions(jnp.asarray(NODES))
    np.testing.assert_allclose(values, np.eye(9), atol=1e-14)

    N = shape_functions(jnp.asarray(GAUSS_POINTS))
    np.testing.assert_allclose(N.sum(axis=-1), 1.0, rtol=1e-14)
    np.testing.assert_allclose(shape_function_gradients(jnp.asarray(GAUSS_POINTS)).sum(axis=-2), 0.0, atol=1e-14)


def test_shape_function_gradients(central_difference):
    xi = np.array([0.3, -0.7])
    np.testing.assert_allclose(
        shape_function_gradients(jnp.asarray(xi)),
        central_difference(lambda x: shape_functions(jnp.asarray(x)), xi),
        rtol=1e-7,
        atol=1e-9,
    )


@pytest.mark.parametrize("n, rtol", [(1, 5e-2), (2, 1e-2)])
def test_sphere_area(n, rtol):
    mesh = asp.unit_sphere(n)
    area = asp.integrate_surface(mesh.points, mesh.connectivity, jnp.ones(mesh.num_points))
    assert float(area) == pytest.approx(4.0 * np.pi, rel=rtol)


def test_second_moment():
    mesh = asp.unit_sphere(2)
    values = mesh.points**2
    moments = asp.integrate_surface(mesh.points, mesh.connectivity, values)
    np.testing.assert_allclose(moments, 4.0 * np.pi / 3.0, rtol=1e-2)
    # the mesh has the symmetry of the cube
    np.testing.assert_allclose(moments, moments[0], rtol=1e-12)
