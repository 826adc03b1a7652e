import jax
jax.config.update("jax_enable_x64", True)
import numpy as np
import pytest

import jaxasp as asp


@pytest.fixture(scope="module")
def response():
    state = asp.AggregateState.create(radius=[1.0, 1.0], reference_distance_vectors=[1.5, 0.0, 0.0])
    return asp.assemble(asp.AggregateGraph(state))


def test_output_shapes(response):
    N, M = 2, asp.unit_sphere(1).num_points
    assert response.surface.adhesion_energy_densities.shape == (N, M, N)
    assert response.surface.adhesion_thicknesses.shape == (N, M, N)
    assert response.surface.adhesion_tractions.shape == (N, M, N, 3)
    assert response.surface.overlap_energy_densities.shape == (N, M, N)
    assert response.local.energies.shape == (N,)
    assert response.local.micro_cauchy_stresses.shape == (N, 3, 3)
    assert response.local.state_variables.shape == (N, 0)


def test_undeformed_particles_carry_no_bulk_energy(response):
    np.testing.assert_allclose(response.local.energies, 0.0, atol=1e-14)
    np.testing.assert_allclose(response.local.micro_cauchy_stresses, 0.0, atol=1e-14)
    np.testing.assert_allclose(response.local.current_volumes, 4.0 / 3.0 * np.pi)
    np.testing.assert_array_equal(response.local.log_probability_ratios, 0.0)


def test_interactions_match_the_graph(response):
    points = np.asarray(asp.unit_sphere(1).points)
    plus_x = int(np.argmax(points[:, 0]))
    minus_x = int(np.argmin(points[:, 0]))

    surface = response.surface
    assert surface.adhesion_energy_densities[0, plus_x, 1] == pytest.approx(0.5 * 0.5**2)
    assert surface.adhesion_energy_densities[1, minus_x, 0] == pytest.approx(0.5 * 0.5**2)
    assert surface.overlap_energy_densities[0, plus_x, 1][plus_x] == pytest.approx(0.0625, abs=1e-9)
    assert surface.overlap_energy_densities[1, minus_x, 0][minus_x] == pytest.approx(0.0625, abs=1e-9)
    np.testing.assert_allclose(surface.overlap_tractions[0, plus_x, 1][plus_x], [-0.5, 0.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(surface.overlap_tractions[1, minus_x, 0][minus_x], [0.5, 0.0, 0.0], atol=1e-9)

    graph = asp.AggregateGraph(asp.AggregateState.create(radius=[1.0, 1.0], reference_distance_vectors=[1.5, 0.0, 0.0]))
    graph.local_index, graph.surface_index, graph.nonlocal_index = 0, 7, 1
    assert surface.adhesion_energy_densities[0, 7, 1] == pytest.approx(float(graph.surface_adhesion_energy_density))
    np.testing.assert_allclose(surface.adhesion_tractions[0, 7, 1], graph.surface_adhesion_traction)


def test_overlap_maps_are_filled(response):
    for index in np.ndindex(response.surface.overlap_thicknesses.shape):
        assert isinstance(response.surface.overlap_thicknesses[index], dict)


def test_assemble_local_particles():
    chi = np.diag([1.1, 0.95, 1.0])
    state = asp.AggregateState.create(radius=[1.0, 2.0], micro_deformation=chi, deformation_gradient=chi)
    local = asp.assemble_local_particles(asp.AggregateGraph(state))
    np.testing.assert_allclose(local.current_volumes, 1.045 * 4.0 / 3.0 * np.pi * np.array([1.0, 8.0]))
    assert local.energies[1] == pytest.approx(8.0 * local.energies[0])
    np.testing.assert_allclose(local.energy_densities[0], local.energy_densities[1])


def test_failures_name_the_interaction():
    state = asp.AggregateState.create(radius=[1.0, 1.0], overlap_parameters=np.zeros(0))
    with pytest.raises(asp.ASPError, match=r"failed to evaluate the interaction \(0, 0, 0\)") as info:
        asp.assemble(asp.AggregateGraph(state))
    assert "at least one parameter" in asp.format_trace(info.value)
