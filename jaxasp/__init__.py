# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
JaxASP: micromorphic response of aggregates of deformable spherical particles.
"""

from __future__ import annotations

import jax

# every tensor of the aggregate is binary64
jax.config.update("jax_enable_x64", True)

from .errors import ASPError, format_trace
from .logging_config import setup_logging
from .factory import Factory
from .utils import Derivatives, Layout, LinearSolver, taylor, compose
from .kinematics import (
    compute_current_distance,
    compute_current_distance_general,
    current_distance_derivatives,
    current_distance_general_derivatives,
    decompose_vector,
    decompose_vector_derivatives,
    compute_nansons_relation,
    nanson_derivatives,
)
from .traction_laws import TractionSeparationLaw
from .particle_models import ParticleModel, ParticleResponse
from .overlap import (
    OverlapSolverSettings,
    OverlapSolution,
    solve_surface_point,
    compute_overlap,
    overlap_derivatives,
)
from .particle_overlap import (
    compute_particle_overlap,
    particle_overlap_derivatives,
    compute_particle_overlap_with_base,
    particle_overlap_with_base_derivatives,
    compute_particle_overlap_chi_nl,
    particle_overlap_chi_nl_derivatives,
)
from .quadrature import SurfaceMesh, unit_sphere, integrate_surface
from .state import AggregateState
from .graph import Scope, KinematicGraph, quantity
from .aggregate import AggregateGraph
from .assembly import AssembledResponse, assemble, assemble_local_particles
from .umat import abaqus_umat, material_model, UmatArguments
from .writers import write_surfaces

__all__ = [
    "ASPError",
    "format_trace",
    "setup_logging",
    "Factory",
    "Derivatives",
    "Layout",
    "LinearSolver",
    "taylor",
    "compose",
    "compute_current_distance",
    "compute_current_distance_general",
    "current_distance_derivatives",
    "current_distance_general_derivatives",
    "decompose_vector",
    "decompose_vector_derivatives",
    "compute_nansons_relation",
    "nanson_derivatives",
    "TractionSeparationLaw",
    "ParticleModel",
    "ParticleResponse",
    "OverlapSolverSettings",
    "OverlapSolution",
    "solve_surface_point",
    "compute_overlap",
    "overlap_derivatives",
    "compute_particle_overlap",
    "particle_overlap_derivatives",
    "compute_particle_overlap_with_base",
    "particle_overlap_with_base_derivatives",
    "compute_particle_overlap_chi_nl",
    "particle_overlap_chi_nl_derivatives",
    "SurfaceMesh",
    "unit_sphere",
    "integrate_surface",
    "AggregateState",
    "Scope",
    "KinematicGraph",
    "quantity",
    "AggregateGraph",
    "AssembledResponse",
    "assemble",
    "assemble_local_particles",
    "abaqus_umat",
    "material_model",
    "UmatArguments",
    "write_surfaces",
]
