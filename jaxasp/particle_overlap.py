# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Overlap of a point of the local particle with a non-local particle.

The caller describes the point by its reference position ``Xi_1`` relative
to the local centroid, the reference spacing ``dX`` of the two centroids and
the deformation of the pair. The point is mapped to the target

.. math::

    \\xi^t = \\chi \\Xi^1 - F dX

seen from the non-local centroid, the non-local micro-deformation is built
from one of three descriptions, and the overlap solver of
:mod:`jaxasp.overlap` is called. Its sensitivities with respect to
``(chi_nl, xi_t, R_nl)`` are lifted to the caller's inputs with the chain
rule.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from typing import Callable, Mapping, Optional

from .kinematics import micro_deformation_at
from .overlap import OVERLAP_LAYOUT, OverlapSolverSettings, overlap_derivatives
from .utils import Derivatives, Layout, compose, taylor

PARTICLE_OVERLAP_LAYOUT = Layout.create(
    Xi_1=(3,), dX=(3,), R_nl=(), F=(3, 3), chi=(3, 3), grad_chi=(3, 3, 3)
)
PARTICLE_OVERLAP_BASE_LAYOUT = Layout.create(
    Xi_1=(3,),
    dX=(3,),
    R_nl=(),
    F=(3, 3),
    chi=(3, 3),
    chi_nl_base=(3, 3),
    grad_chi=(3, 3, 3),
)
PARTICLE_OVERLAP_CHI_NL_LAYOUT = Layout.create(
    Xi_1=(3,), dX=(3,), R_nl=(), F=(3, 3), chi=(3, 3), chi_nl=(3, 3)
)


def _solver_inputs(chi_nl, Xi_1, dX, R_nl, F, chi):
    xi_t = chi @ Xi_1 - F @ dX
    return jnp.concatenate([jnp.ravel(chi_nl), xi_t, jnp.reshape(R_nl, (1,))])


def _from_gradient(Xi_1, dX, R_nl, F, chi, grad_chi):
    chi_nl = micro_deformation_at(chi, grad_chi, dX)
    return _solver_inputs(chi_nl, Xi_1, dX, R_nl, F, chi)


def _from_base(Xi_1, dX, R_nl, F, chi, chi_nl_base, grad_chi):
    chi_nl = micro_deformation_at(chi_nl_base, grad_chi, dX)
    return _solver_inputs(chi_nl, Xi_1, dX, R_nl, F, chi)


def _from_chi_nl(Xi_1, dX, R_nl, F, chi, chi_nl):
    return _solver_inputs(chi_nl, Xi_1, dX, R_nl, F, chi)


def _lift(
    solver_inputs: Callable[..., jax.Array],
    layout: Layout,
    inputs: Mapping[str, jax.Array],
    order: int,
    settings: Optional[OverlapSolverSettings],
    initial_guess: Optional[jax.Array],
) -> Derivatives:
    inner = taylor(solver_inputs, layout, inputs, order)
    p = OVERLAP_LAYOUT.unflatten(inner.value)
    outer = overlap_derivatives(p["chi_nl"], p["xi_t"], p["R_nl"], order, settings, initial_guess)
    if order == 0:
        return Derivatives(outer.value, layout)
    return compose(outer, inner, order)


def particle_overlap_derivatives(
    Xi_1,
    dX,
    R_nl,
    F,
    chi,
    grad_chi,
    order: int = 1,
    settings: Optional[OverlapSolverSettings] = None,
    initial_guess: Optional[jax.Array] = None,
) -> Derivatives:
    """
    Overlap of the local point ``Xi_1`` with the non-local particle whose
    micro-deformation is reconstructed as ``chi + grad_chi . dX``.

    Parameters
    ----------
    Xi_1 : jax.Array
        (3,) reference position of the point relative to the local centroid.
    dX : jax.Array
        (3,) reference vector from the local to the non-local centroid.
    R_nl : float
        Reference radius of the non-local particle.
    F : jax.Array
        (3, 3) macro deformation gradient.
    chi : jax.Array
        (3, 3) local micro-deformation.
    grad_chi : jax.Array
        (3, 3, 3) reference gradient of the micro-deformation.
    order : int
        Highest derivative order, 0 to 3.
    settings : OverlapSolverSettings, optional
        Newton solver configuration.
    initial_guess : jax.Array, optional
        (3,) starting point of the Newton iteration in the reference
        configuration of the non-local particle, for a retry after a failed
        solve.

    Returns
    -------
    Derivatives
        The overlap vector and its derivatives with respect to ``Xi_1``,
        ``dX``, ``R_nl``, ``F``, ``chi`` and ``grad_chi``.

    Raises
    ------
    ASPError
        See :func:`jaxasp.overlap.overlap_derivatives`.

    Example
    -------
    >>> d = particle_overlap_derivatives(Xi_1, dX, 1.0, F, chi, grad_chi, order=3)
    >>> d.third_derivative("F", "F", "Xi_1").shape
    (3, 9, 9, 3)
    """
    inputs = dict(Xi_1=Xi_1, dX=dX, R_nl=R_nl, F=F, chi=chi, grad_chi=grad_chi)
    return _lift(_from_gradient, PARTICLE_OVERLAP_LAYOUT, inputs, order, settings, initial_guess)


def particle_overlap_with_base_derivatives(
    Xi_1,
    dX,
    R_nl,
    F,
    chi,
    chi_nl_base,
    grad_chi,
    order: int = 1,
    settings: Optional[OverlapSolverSettings] = None,
    initial_guess: Optional[jax.Array] = None,
) -> Derivatives:
    """
    Same as :func:`particle_overlap_derivatives` with the non-local
    micro-deformation reconstructed from an arbitrary base,
    ``chi_nl_base + grad_chi . dX``.
    """
    inputs = dict(
        Xi_1=Xi_1,
        dX=dX,
        R_nl=R_nl,
        F=F,
        chi=chi,
        chi_nl_base=chi_nl_base,
        grad_chi=grad_chi,
    )
    return _lift(_from_base, PARTICLE_OVERLAP_BASE_LAYOUT, inputs, order, settings, initial_guess)


def particle_overlap_chi_nl_derivatives(
    Xi_1,
    dX,
    R_nl,
    F,
    chi,
    chi_nl,
    order: int = 1,
    settings: Optional[OverlapSolverSettings] = None,
    initial_guess: Optional[jax.Array] = None,
) -> Derivatives:
    """Overlap with the non-local micro-deformation ``chi_nl`` given directly."""
    inputs = dict(Xi_1=Xi_1, dX=dX, R_nl=R_nl, F=F, chi=chi, chi_nl=chi_nl)
    return _lift(_from_chi_nl, PARTICLE_OVERLAP_CHI_NL_LAYOUT, inputs, order, settings, initial_guess)


def compute_particle_overlap(
    Xi_1,
    dX,
    R_nl,
    F,
    chi,
    grad_chi,
    settings: Optional[OverlapSolverSettings] = None,
    initial_guess: Optional[jax.Array] = None,
) -> jax.Array:
    return particle_overlap_derivatives(
        Xi_1, dX, R_nl, F, chi, grad_chi, 0, settings, initial_guess
    ).value


def compute_particle_overlap_with_base(
    Xi_1,
    dX,
    R_nl,
    F,
    chi,
    chi_nl_base,
    grad_chi,
    settings: Optional[OverlapSolverSettings] = None,
    initial_guess: Optional[jax.Array] = None,
) -> jax.Array:
    return particle_overlap_with_base_derivatives(
        Xi_1, dX, R_nl, F, chi, chi_nl_base, grad_chi, 0, settings, initial_guess
    ).value


def compute_particle_overlap_chi_nl(
    Xi_1,
    dX,
    R_nl,
    F,
    chi,
    chi_nl,
    settings: Optional[OverlapSolverSettings] = None,
    initial_guess: Optional[jax.Array] = None,
) -> jax.Array:
    return particle_overlap_chi_nl_derivatives(
        Xi_1, dX, R_nl, F, chi, chi_nl, 0, settings, initial_guess
    ).value


__all__ = [
    "compute_particle_overlap",
    "particle_overlap_derivatives",
    "compute_particle_overlap_with_base",
    "particle_overlap_with_base_derivatives",
    "compute_particle_overlap_chi_nl",
    "particle_overlap_chi_nl_derivatives",
]
