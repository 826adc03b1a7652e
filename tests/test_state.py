import jax
jax.config.update("jax_enable_x64", True)
import numpy as np
import pytest

import jaxasp as asp


def test_defaults():
    state = asp.AggregateState.create()
    assert state.num_particles == 1
    assert state.dim == 3
    np.testing.assert_array_equal(state.deformation_gradient, np.eye(3))
    np.testing.assert_array_equal(state.previous_micro_deformation, np.eye(3))
    np.testing.assert_array_equal(state.gradient_micro_deformation, np.zeros((3, 3, 3)))
    np.testing.assert_array_equal(state.reference_distance_vectors, np.zeros((1, 1, 3)))
    np.testing.assert_array_equal(state.particle_parameters, [1.0, 1.0])
    np.testing.assert_array_equal(state.overlap_parameters, [1.0])
    assert state.previous_state_variables.shape == (0,)
    assert state.solver == asp.OverlapSolverSettings()


def test_flat_tensors_are_reshaped():
    F = np.arange(9.0) + 1.0
    state = asp.AggregateState.create(deformation_gradient=F, gradient_micro_deformation=np.ones(27))
    np.testing.assert_array_equal(state.deformation_gradient, F.reshape(3, 3))
    np.testing.assert_array_equal(state.previous_deformation_gradient, F.reshape(3, 3))
    assert state.gradient_micro_deformation.shape == (3, 3, 3)


def test_pair_distance_vector():
    state = asp.AggregateState.create(radius=[1.0, 0.5], reference_distance_vectors=[2.0, 0.0, 1.0])
    D = np.asarray(state.reference_distance_vectors)
    np.testing.assert_array_equal(D[0, 1], [2.0, 0.0, 1.0])
    np.testing.assert_array_equal(D[1, 0], [-2.0, 0.0, -1.0])
    np.testing.assert_array_equal(D[0, 0], 0.0)


def test_list_inputs_do_not_warn(recwarn):
    asp.AggregateState.create(radius=[1.0, 0.5], reference_distance_vectors=[2.0, 0.0, 1.0])
    asp.AggregateState.create(radius=[1.0, 0.5], reference_distance_vectors=[[[0.0] * 3] * 2] * 2)
    assert not [w for w in recwarn if issubclass(w.category, DeprecationWarning) and "size" in str(w.message)]


def test_scalar_radius_with_a_particle_count():
    state = asp.AggregateState.create(num_particles=3, radius=2.0)
    np.testing.assert_array_equal(state.radius, [2.0, 2.0, 2.0])


def test_times_and_temperatures():
    state = asp.AggregateState.create(previous_time=1.0, delta_time=0.25, temperature=300.0)
    assert state.current_time == 1.25
    assert state.previous_temperature == 300.0


@pytest.mark.parametrize(
    "kwargs, message",
    [
        (dict(deformation_gradient=np.eye(2)), "'deformation_gradient' has 4 entries but 9"),
        (dict(radius=[1.0, 1.0], reference_distance_vectors=np.zeros((3, 3, 3))), "'reference_distance_vectors'"),
        (dict(num_particles=3, radius=[1.0, 1.0]), "'radius' has 2 entries but 3"),
    ],
)
def test_size_errors(kwargs, message):
    with pytest.raises(asp.ASPError, match=message):
        asp.AggregateState.create(**kwargs)


def test_invalid_values():
    with pytest.raises(asp.ASPError, match="positive"):
        asp.AggregateState.create(radius=[1.0, 0.0])
    with pytest.raises(asp.ASPError, match="surface_element_count"):
        asp.AggregateState.create(surface_element_count=0)


def test_state_is_immutable():
    state = asp.AggregateState.create()
    with pytest.raises(AttributeError):
        state.temperature = 10.0


def test_unknown_components():
    state = asp.AggregateState.create(particle_model="plastic")
    with pytest.raises(KeyError, match="Unknown ParticleModel 'plastic'"):
        asp.AggregateGraph(state)


def test_registered_components():
    assert "linearelastic" in asp.ParticleModel.registered()
    assert asp.TractionSeparationLaw.registered() == ["linear"]
    assert asp.ParticleModel.create("LinearElastic").type_name == "linearelastic"
