import jax
jax.config.update("jax_enable_x64", True)
import numpy as np
import pytest
import vtk
import vtk.util.numpy_support as vtk_np

import jaxasp as asp


@pytest.fixture(scope="module")
def aggregate():
    state = asp.AggregateState.create(radius=[1.0, 0.5], reference_distance_vectors=[1.4, 0.0, 0.0])
    return state, asp.assemble(asp.AggregateGraph(state))


def _read(filename):
    reader = vtk.vtkXMLUnstructuredGridReader()
    reader.SetFileName(str(filename))
    reader.Update()
    return reader.GetOutput()


@pytest.mark.parametrize("binary", [True, False])
def test_write_surfaces(tmp_path, aggregate, binary):
    state, response = aggregate
    filename = tmp_path / "surfaces.vtu"
    centroids = np.array([[0.0, 0.0, 0.0], [1.4, 0.0, 0.0]])
    asp.write_surfaces(state, response, filename, centroids=centroids, binary=binary)

    grid = _read(filename)
    mesh = asp.unit_sphere(1)
    N, M = 2, mesh.num_points
    assert grid.GetNumberOfPoints() == N * M
    assert grid.GetNumberOfCells() == N * mesh.num_elements
    assert grid.GetCellType(0) == vtk.VTK_BIQUADRATIC_QUAD

    points = vtk_np.vtk_to_numpy(grid.GetPoints().GetData())
    np.testing.assert_allclose(np.linalg.norm(points[:M], axis=1), 1.0, rtol=1e-12)
    np.testing.assert_allclose(np.linalg.norm(points[M:] - centroids[1], axis=1), 0.5, rtol=1e-12)

    data = grid.GetPointData()
    for name in ("particle", "normal", "adhesion_energy_density", "overlap_energy_density"):
        assert data.HasArray(name)
    particle = vtk_np.vtk_to_numpy(data.GetArray("particle"))
    np.testing.assert_array_equal(particle, np.repeat([0, 1], M))
    np.testing.assert_allclose(
        vtk_np.vtk_to_numpy(data.GetArray("adhesion_energy_density")),
        response.surface.adhesion_energy_densities.sum(axis=-1).ravel(),
    )


def test_overlap_is_written_where_the_particles_touch(tmp_path, aggregate):
    state, response = aggregate
    filename = tmp_path / "surfaces.vtu"
    asp.write_surfaces(state, response, filename)
    overlap = vtk_np.vtk_to_numpy(_read(filename).GetPointData().GetArray("overlap_energy_density"))

    plus_x = int(np.argmax(np.asarray(asp.unit_sphere(1).points)[:, 0]))
    assert overlap[plus_x] > 0.0
