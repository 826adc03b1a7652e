# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""VTK export of the deformed particle surfaces."""

from __future__ import annotations

import logging

import numpy as np
import vtk
import vtk.util.numpy_support as vtk_np

from pathlib import Path
from typing import Optional, Union

from .assembly import AssembledResponse
from .quadrature import unit_sphere
from .state import AggregateState

logger = logging.getLogger(__name__)


def _add_point_array(grid: vtk.vtkUnstructuredGrid, name: str, values: np.ndarray) -> None:
    vtk_arr = vtk_np.numpy_to_vtk(np.ascontiguousarray(values), deep=True)
    vtk_arr.SetName(name)
    grid.GetPointData().AddArray(vtk_arr)


def write_surfaces(
    state: AggregateState,
    response: AssembledResponse,
    filename: Union[str, Path],
    centroids: Optional[np.ndarray] = None,
    binary: bool = True,
) -> None:
    """
    Write the current surface of every particle as biquadratic quads.

    Parameters
    ----------
    state : AggregateState
        State the response was assembled from.
    response : AssembledResponse
        Output of :func:`jaxasp.assembly.assemble`.
    filename : str or Path
        Target ``.vtu`` file.
    centroids : np.ndarray, optional
        (N, 3) current centroid of each particle. Defaults to the origin.
    binary : bool
        Appended, zlib compressed data when true, ASCII otherwise.

    Notes
    -----
    Point data: ``particle`` (id), ``normal`` (current unit normal),
    ``adhesion_energy_density`` and ``overlap_energy_density``, both summed
    over the non-local particles.

    Raises
    ------
    RuntimeError
        If VTK reports a failed write.
    """
    mesh = unit_sphere(state.surface_element_count)
    sphere = np.asarray(mesh.points)
    connectivity = np.asarray(mesh.connectivity)
    N, M = state.num_particles, sphere.shape[0]
    centroids = np.zeros((N, 3)) if centroids is None else np.asarray(centroids, dtype=float)

    chi = np.asarray(state.micro_deformation)
    normals = np.linalg.det(chi) * sphere @ np.linalg.inv(chi)
    normals /= np.linalg.norm(normals, axis=-1, keepdims=True)

    positions = np.concatenate(
        [centroids[i] + float(state.radius[i]) * sphere @ chi.T for i in range(N)]
    )
    adhesion = response.surface.adhesion_energy_densities.sum(axis=-1).reshape(N * M)
    overlap = np.zeros((N, M))
    for i in range(N):
        for k in range(N):
            # the overlap map of (i, k) is the same for every surface index
            for p, value in (response.surface.overlap_energy_densities[i, 0, k] or {}).items():
                overlap[i, p] += float(value)

    grid = vtk.vtkUnstructuredGrid()
    points = vtk.vtkPoints()
    points.SetData(vtk_np.numpy_to_vtk(np.ascontiguousarray(positions), deep=True))
    grid.SetPoints(points)

    grid.Allocate(N * connectivity.shape[0])
    for i in range(N):
        for element in connectivity:
            ids = vtk.vtkIdList()
            for node in element:
                ids.InsertNextId(int(node) + i * M)
            grid.InsertNextCell(vtk.VTK_BIQUADRATIC_QUAD, ids)

    _add_point_array(grid, "particle", np.repeat(np.arange(N, dtype=np.int32), M))
    _add_point_array(grid, "normal", np.tile(normals, (N, 1)))
    _add_point_array(grid, "adhesion_energy_density", adhesion)
    _add_point_array(grid, "overlap_energy_density", overlap.reshape(N * M))

    writer = vtk.vtkXMLUnstructuredGridWriter()
    writer.SetFileName(str(filename))
    writer.SetInputData(grid)
    if binary:
        writer.SetDataModeToAppended()
        compressor = vtk.vtkZLibDataCompressor()
        writer.SetCompressor(compressor)
    else:
        writer.SetDataModeToAscii()
    ok = writer.Write()
    if ok != 1:
        raise RuntimeError("VTK surface writer failed")
    logger.info("wrote %d particle surfaces to %s", N, filename)


__all__ = ["write_surfaces"]
