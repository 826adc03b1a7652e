# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Cached kinematic and energetic quantities of a particle aggregate.

The :class:`AggregateGraph` evaluates, for the local particle ``i``, the
surface point ``j`` of its quadrature and the non-local particle ``k``, every
quantity the assembly needs. Quantities are grouped by the narrowest index
they depend on:

- local particle (``i``): copies of the deformation measures, surface
  points, bounding box, volumes and the bulk response;
- surface point (``j``): reference and current normals and the local
  surface position;
- interaction pair (``k``): the non-local particle, the current distance of
  the two surfaces, the overlap map and the surface responses.

Positions of surface points are relative to the centroid of their particle
unless stated otherwise. ``reference_distance_vector`` is the reference
vector from the local to the non-local centroid.
"""

from __future__ import annotations

import math

import jax
import jax.numpy as jnp

from typing import Dict

from .errors import ASPError
from .graph import KinematicGraph, Scope, quantity
from .kinematics import (
    compute_current_distance_general,
    compute_nansons_relation,
    decompose_vector,
    micro_deformation_at,
)
from .particle_models import ParticleModel, ParticleResponse
from .particle_overlap import compute_particle_overlap_with_base
from .quadrature import SurfaceMesh, unit_sphere
from .state import AggregateState
from .traction_laws import TractionSeparationLaw
from .utils import unit

LOCAL = Scope.LOCAL_PARTICLE
SURFACE = Scope.SURFACE_POINT
PAIR = Scope.INTERACTION_PAIR


def bounding_box(points: jax.Array) -> jax.Array:
    """(2, 3) array holding the per axis minimum and maximum of ``points``."""
    return jnp.stack([jnp.min(points, axis=0), jnp.max(points, axis=0)])


def in_bounding_box(points: jax.Array, box: jax.Array) -> jax.Array:
    """Mask of the ``points`` lying in ``box`` (bounds included)."""
    return jnp.all((points >= box[0]) & (points <= box[1]), axis=-1)


class AggregateGraph(KinematicGraph):
    """
    Kinematic graph of an :class:`~jaxasp.state.AggregateState`.

    Parameters
    ----------
    state : AggregateState
        Host supplied state, read only.

    Attributes
    ----------
    local_index, surface_index, nonlocal_index : int
        Current ``(i, j, k)``. Changing an index does not reset anything: the
        caller resets the matching scope first.

    Example
    -------
    >>> graph = AggregateGraph(state)
    >>> graph.local_index, graph.surface_index, graph.nonlocal_index = 0, 3, 1
    >>> graph.surface_adhesion_energy_density
    >>> graph.reset_local_particle()
    """

    def __init__(self, state: AggregateState) -> None:
        super().__init__()
        self.state = state
        self.local_index = 0
        self.surface_index = 0
        self.nonlocal_index = 0
        self.particle_model = ParticleModel.create(state.particle_model)
        self.traction_law = TractionSeparationLaw.create(state.traction_law)

    @property
    def unit_sphere(self) -> SurfaceMesh:
        return unit_sphere(self.state.surface_element_count)

    @property
    def num_surface_points(self) -> int:
        return self.unit_sphere.num_points

    # ------------------------------------------------------------------
    # local particle
    # ------------------------------------------------------------------
    @quantity(LOCAL)
    def local_reference_radius(self) -> jax.Array:
        return self.state.radius[self.local_index]

    @quantity(LOCAL)
    def local_deformation_gradient(self) -> jax.Array:
        return self.state.deformation_gradient

    @quantity(LOCAL)
    def previous_local_deformation_gradient(self) -> jax.Array:
        return self.state.previous_deformation_gradient

    @quantity(LOCAL)
    def local_micro_deformation(self) -> jax.Array:
        return self.state.micro_deformation

    @quantity(LOCAL)
    def previous_local_micro_deformation(self) -> jax.Array:
        return self.state.previous_micro_deformation

    @quantity(LOCAL)
    def local_gradient_micro_deformation(self) -> jax.Array:
        return self.state.gradient_micro_deformation

    @quantity(LOCAL)
    def local_particle_parameters(self) -> jax.Array:
        return self.state.particle_parameters

    @quantity(LOCAL)
    def previous_local_state_variables(self) -> jax.Array:
        return self.state.previous_state_variables

    @quantity(LOCAL)
    def local_reference_surface_points(self) -> jax.Array:
        """(M, 3) quadrature points scaled to the local radius."""
        return self.local_reference_radius * self.unit_sphere.points

    @quantity(LOCAL)
    def local_current_surface_points(self) -> jax.Array:
        return self.local_reference_surface_points @ self.local_micro_deformation.T

    @quantity(LOCAL)
    def local_current_surface_normals(self) -> jax.Array:
        """(M, 3) unit normals of every quadrature point after the Nanson push."""
        chi = self.local_micro_deformation
        pushed = jnp.linalg.det(chi) * self.unit_sphere.points @ jnp.linalg.inv(chi)
        return unit(pushed)

    @quantity(LOCAL)
    def local_particle_current_bounding_box(self) -> jax.Array:
        return bounding_box(self.local_current_surface_points)

    @quantity(LOCAL)
    def local_particle_reference_volume(self) -> jax.Array:
        return 4.0 / 3.0 * math.pi * self.local_reference_radius**3

    @quantity(LOCAL)
    def local_particle_current_volume(self) -> jax.Array:
        return jnp.linalg.det(self.local_micro_deformation) * self.local_particle_reference_volume

    @quantity(LOCAL)
    def local_particle_response(self) -> ParticleResponse:
        """Bulk response of the particle model, evaluated once for all outputs."""
        state = self.state
        return self.particle_model.evaluate(
            state.previous_time,
            state.delta_time,
            self.local_micro_deformation,
            self.previous_local_micro_deformation,
            state.temperature,
            state.previous_temperature,
            self.previous_local_state_variables,
            self.local_particle_parameters,
        )

    @quantity(LOCAL)
    def local_particle_energy_density(self) -> jax.Array:
        return self.local_particle_response.energy_density

    @quantity(LOCAL)
    def local_particle_micro_cauchy_stress(self) -> jax.Array:
        return self.local_particle_response.micro_cauchy_stress

    @quantity(LOCAL)
    def local_particle_state_variables(self) -> jax.Array:
        return self.local_particle_response.state_variables

    @quantity(LOCAL)
    def local_particle_log_probability_ratio(self) -> jax.Array:
        return self.local_particle_response.log_probability_ratio

    @quantity(LOCAL)
    def local_particle_energy(self) -> jax.Array:
        return self.local_particle_energy_density * self.local_particle_current_volume

    # ------------------------------------------------------------------
    # surface point
    # ------------------------------------------------------------------
    @quantity(SURFACE)
    def local_reference_normal(self) -> jax.Array:
        return self.unit_sphere.points[self.surface_index]

    @quantity(SURFACE)
    def local_current_normal(self) -> jax.Array:
        pushed = compute_nansons_relation(self.local_micro_deformation, self.local_reference_normal)
        return unit(pushed)

    @quantity(SURFACE)
    def local_surface_reference_relative_position_vector(self) -> jax.Array:
        return self.local_reference_radius * self.local_reference_normal

    # ------------------------------------------------------------------
    # interaction pair
    # ------------------------------------------------------------------
    @quantity(PAIR)
    def nonlocal_reference_radius(self) -> jax.Array:
        return self.state.radius[self.nonlocal_index]

    @quantity(PAIR)
    def nonlocal_surface_reference_relative_position_vector(self) -> jax.Array:
        """Point of the non-local particle facing the local surface point."""
        return -self.nonlocal_reference_radius * self.local_reference_normal

    @quantity(PAIR)
    def reference_distance_vector(self) -> jax.Array:
        return self.state.reference_distance_vectors[self.local_index, self.nonlocal_index]

    @quantity(PAIR)
    def reference_surface_gap(self) -> jax.Array:
        """Reference vector between the two surface points."""
        return (
            self.reference_distance_vector
            - self.local_surface_reference_relative_position_vector
            + self.nonlocal_surface_reference_relative_position_vector
        )

    @quantity(PAIR)
    def local_reference_particle_spacing(self) -> jax.Array:
        """``dX``, the reference spacing of the two centroids."""
        return (
            self.local_surface_reference_relative_position_vector
            + self.reference_surface_gap
            - self.nonlocal_surface_reference_relative_position_vector
        )

    @quantity(PAIR)
    def nonlocal_micro_deformation_base(self) -> jax.Array:
        return self.local_micro_deformation

    @quantity(PAIR)
    def nonlocal_micro_deformation(self) -> jax.Array:
        return micro_deformation_at(
            self.nonlocal_micro_deformation_base,
            self.local_gradient_micro_deformation,
            self.local_reference_particle_spacing,
        )

    @quantity(PAIR)
    def current_distance_vector(self) -> jax.Array:
        return compute_current_distance_general(
            self.local_surface_reference_relative_position_vector,
            self.nonlocal_surface_reference_relative_position_vector,
            self.reference_surface_gap,
            self.local_deformation_gradient,
            self.local_micro_deformation,
            self.nonlocal_micro_deformation,
        )

    @quantity(PAIR)
    def decomposed_current_distance_vector(self):
        """``(dn, dt)`` with respect to the current normal."""
        return decompose_vector(self.current_distance_vector, self.local_current_normal)

    @quantity(PAIR)
    def nonlocal_reference_surface_points(self) -> jax.Array:
        return self.nonlocal_reference_radius * self.unit_sphere.points

    @quantity(PAIR)
    def nonlocal_current_surface_points(self) -> jax.Array:
        """Current surface of the non-local particle, relative to the local centroid."""
        centroid = self.local_deformation_gradient @ self.local_reference_particle_spacing
        return centroid + self.nonlocal_reference_surface_points @ self.nonlocal_micro_deformation.T

    @quantity(PAIR)
    def nonlocal_particle_current_bounding_box(self) -> jax.Array:
        return bounding_box(self.nonlocal_current_surface_points)

    @quantity(PAIR)
    def particle_pair_overlap(self) -> Dict[int, jax.Array]:
        """
        Overlap vectors of the local surface points that fall in the
        bounding box of the non-local particle, by quadrature index.
        """
        candidates = in_bounding_box(
            self.local_current_surface_points, self.nonlocal_particle_current_bounding_box
        )
        overlap = {}
        for p in jnp.flatnonzero(candidates).tolist():
            overlap[p] = compute_particle_overlap_with_base(
                self.local_reference_surface_points[p],
                self.local_reference_particle_spacing,
                self.nonlocal_reference_radius,
                self.local_deformation_gradient,
                self.local_micro_deformation,
                self.nonlocal_micro_deformation_base,
                self.local_gradient_micro_deformation,
                settings=self.state.solver,
            )
        return overlap

    @quantity(PAIR)
    def surface_parameters(self) -> jax.Array:
        return self.state.surface_parameters

    @quantity(PAIR)
    def surface_overlap_parameters(self) -> jax.Array:
        parameters = self.state.overlap_parameters
        if parameters.size < 1:
            raise ASPError("the overlap law needs at least one parameter")
        return parameters

    @quantity(PAIR)
    def surface_adhesion_traction(self) -> jax.Array:
        dn, dt = self.decomposed_current_distance_vector
        return self.traction_law.traction(dn, dt, self.surface_parameters)

    @quantity(PAIR)
    def surface_adhesion_energy_density(self) -> jax.Array:
        dn, dt = self.decomposed_current_distance_vector
        return self.traction_law.energy(dn, dt, self.surface_parameters)

    @quantity(PAIR)
    def surface_adhesion_thickness(self) -> jax.Array:
        dn, _ = self.decomposed_current_distance_vector
        return jnp.linalg.norm(dn)

    def _normal_overlap(self, p: int, overlap: jax.Array) -> jax.Array:
        return jnp.abs(jnp.dot(overlap, self.local_current_surface_normals[p]))

    @quantity(PAIR)
    def surface_overlap_energy_density(self) -> Dict[int, jax.Array]:
        k = self.surface_overlap_parameters[0]
        return {
            p: 0.5 * k * jnp.dot(o, o) * self._normal_overlap(p, o)
            for p, o in self.particle_pair_overlap.items()
        }

    @quantity(PAIR)
    def surface_overlap_traction(self) -> Dict[int, jax.Array]:
        k = self.surface_overlap_parameters[0]
        return {p: k * o for p, o in self.particle_pair_overlap.items()}

    @quantity(PAIR)
    def surface_overlap_thickness(self) -> Dict[int, jax.Array]:
        return {p: self._normal_overlap(p, o) for p, o in self.particle_pair_overlap.items()}


__all__ = ["AggregateGraph", "bounding_box", "in_bounding_box"]
