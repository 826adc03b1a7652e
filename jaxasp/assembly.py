# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Assembly of the aggregate response.

The loops advance the indices of an :class:`~jaxasp.aggregate.AggregateGraph`
and reset its scopes, narrowest first, after every iteration of the matching
loop. Results are gathered in host (NumPy) arrays: ``[i]`` for local particle
quantities and ``[i, j, k]`` for interaction quantities, with ``j`` in
quadrature order.
"""

from __future__ import annotations

import logging

import numpy as np

from dataclasses import dataclass

from .aggregate import AggregateGraph
from .errors import ASPError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LocalParticleResponses:
    """Per particle results, leading dimension ``N``."""

    energies: np.ndarray
    energy_densities: np.ndarray
    current_volumes: np.ndarray
    micro_cauchy_stresses: np.ndarray
    """(N, 3, 3)"""
    log_probability_ratios: np.ndarray
    state_variables: np.ndarray
    """(N, n_sv)"""

    @classmethod
    def allocate(cls, N: int, n_state_variables: int) -> "LocalParticleResponses":
        return cls(
            energies=np.zeros(N),
            energy_densities=np.zeros(N),
            current_volumes=np.zeros(N),
            micro_cauchy_stresses=np.zeros((N, 3, 3)),
            log_probability_ratios=np.zeros(N),
            state_variables=np.zeros((N, n_state_variables)),
        )


@dataclass(slots=True)
class SurfaceResponses:
    """
    Per interaction results indexed ``[i, j, k]``.

    The overlap entries are object arrays holding, for every ``(i, j, k)``,
    a dict from the local quadrature index to the value at that point.
    """

    adhesion_energy_densities: np.ndarray
    adhesion_tractions: np.ndarray
    """(N, M, N, 3)"""
    adhesion_thicknesses: np.ndarray
    overlap_energy_densities: np.ndarray
    overlap_tractions: np.ndarray
    overlap_thicknesses: np.ndarray

    @classmethod
    def allocate(cls, N: int, M: int) -> "SurfaceResponses":
        def maps() -> np.ndarray:
            array = np.empty((N, M, N), dtype=object)
            array.fill(None)
            return array

        return cls(
            adhesion_energy_densities=np.zeros((N, M, N)),
            adhesion_tractions=np.zeros((N, M, N, 3)),
            adhesion_thicknesses=np.zeros((N, M, N)),
            overlap_energy_densities=maps(),
            overlap_tractions=maps(),
            overlap_thicknesses=maps(),
        )


@dataclass(slots=True)
class AssembledResponse:
    local: LocalParticleResponses
    surface: SurfaceResponses


def _store_local(graph: AggregateGraph, out: LocalParticleResponses, i: int) -> None:
    out.energies[i] = graph.local_particle_energy
    out.energy_densities[i] = graph.local_particle_energy_density
    out.current_volumes[i] = graph.local_particle_current_volume
    out.micro_cauchy_stresses[i] = np.asarray(graph.local_particle_micro_cauchy_stress)
    out.log_probability_ratios[i] = graph.local_particle_log_probability_ratio
    out.state_variables[i] = np.asarray(graph.local_particle_state_variables)


def _to_host(mapping):
    return {p: np.asarray(value) for p, value in mapping.items()}


def _store_interaction(
    graph: AggregateGraph, out: SurfaceResponses, i: int, j: int, k: int
) -> None:
    out.adhesion_energy_densities[i, j, k] = graph.surface_adhesion_energy_density
    out.adhesion_tractions[i, j, k] = np.asarray(graph.surface_adhesion_traction)
    out.adhesion_thicknesses[i, j, k] = graph.surface_adhesion_thickness
    out.overlap_energy_densities[i, j, k] = _to_host(graph.surface_overlap_energy_density)
    out.overlap_tractions[i, j, k] = _to_host(graph.surface_overlap_traction)
    out.overlap_thicknesses[i, j, k] = _to_host(graph.surface_overlap_thickness)


def assemble_local_particles(graph: AggregateGraph) -> LocalParticleResponses:
    """
    Bulk response of every particle of the aggregate.

    Raises
    ------
    ASPError
        Naming the particle whose evaluation failed. The graph is left as it
        was at the failure, reset it before reusing it.
    """
    N = graph.state.num_particles
    out = LocalParticleResponses.allocate(N, graph.state.previous_state_variables.size)
    for i in range(N):
        graph.local_index = i
        try:
            _store_local(graph, out, i)
        except ASPError as err:
            raise ASPError(f"failed to evaluate local particle {i}") from err
        graph.reset_local_particle()
    return out


def assemble(graph: AggregateGraph) -> AssembledResponse:
    """
    Evaluate every local particle and every (surface point, non-local
    particle) interaction of the aggregate.

    Parameters
    ----------
    graph : AggregateGraph
        Graph over the aggregate state. Its indices are overwritten.

    Returns
    -------
    AssembledResponse

    Raises
    ------
    ASPError
        Naming the ``(i, j, k)`` being evaluated. The scopes are not reset on
        failure.

    Example
    -------
    >>> response = assemble(AggregateGraph(state))
    >>> response.surface.adhesion_energy_densities.shape
    (N, M, N)
    """
    state = graph.state
    N, M = state.num_particles, graph.num_surface_points
    local = LocalParticleResponses.allocate(N, state.previous_state_variables.size)
    surface = SurfaceResponses.allocate(N, M)

    for i in range(N):
        graph.local_index = i
        logger.info("assembling particle %d of %d", i + 1, N)
        try:
            _store_local(graph, local, i)
        except ASPError as err:
            raise ASPError(f"failed to evaluate local particle {i}") from err

        for j in range(M):
            graph.surface_index = j
            for k in range(N):
                graph.nonlocal_index = k
                try:
                    _store_interaction(graph, surface, i, j, k)
                except ASPError as err:
                    raise ASPError(f"failed to evaluate the interaction ({i}, {j}, {k})") from err
                graph.reset_interaction_pair()
            graph.reset_surface_point()
        graph.reset_local_particle()

    return AssembledResponse(local=local, surface=surface)


__all__ = [
    "LocalParticleResponses",
    "SurfaceResponses",
    "AssembledResponse",
    "assemble_local_particles",
    "assemble",
]
