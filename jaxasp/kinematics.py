# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Kinematic relations between two points of a pair of micromorphic particles.

Each relation is available as a value function and as a ``*_derivatives``
function returning a :class:`~jaxasp.utils.Derivatives` with exact
derivative tensors. Tensors may be passed flat (row-major) or shaped.

Notation
--------
``Xi_1`` is the reference position of the point on the local particle
relative to its centroid, ``Xi_2`` the reference position of the point on the
non-local particle relative to its own centroid and ``D`` the reference gap
between them, so that the reference spacing of the centroids is
``dX = Xi_1 + D - Xi_2``. ``F`` is the macro deformation gradient, ``chi``
the micro-deformation of the local particle and ``chi_nl`` the one of the
non-local particle, ``grad_chi[i, I, J] = d chi[i, I] / d X[J]``.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from typing import Tuple

from .errors import ASPError
from .utils import Derivatives, Layout, l2norm, taylor

UNIT_ATOL = 1e-6
UNIT_RTOL = 1e-6

CURRENT_DISTANCE_GENERAL_LAYOUT = Layout.create(
    Xi_1=(3,), Xi_2=(3,), D=(3,), F=(3, 3), chi=(3, 3), chi_nl=(3, 3)
)
CURRENT_DISTANCE_LAYOUT = Layout.create(
    Xi_1=(3,), Xi_2=(3,), D=(3,), F=(3, 3), chi=(3, 3), grad_chi=(3, 3, 3)
)
DECOMPOSE_LAYOUT = Layout.create(d=(3,), n=(3,))
NANSON_LAYOUT = Layout.create(F=(3, 3), dAN=(3,))


def micro_deformation_at(
    chi: jax.Array, grad_chi: jax.Array, dX: jax.Array
) -> jax.Array:
    """First order reconstruction ``chi + grad_chi . dX`` at an offset ``dX``."""
    return chi + jnp.einsum("iIJ,J->iI", grad_chi, dX)


def _current_distance_general(Xi_1, Xi_2, D, F, chi, chi_nl):
    dX = Xi_1 + D - Xi_2
    return F @ dX - chi @ Xi_1 + chi_nl @ Xi_2


def _current_distance(Xi_1, Xi_2, D, F, chi, grad_chi):
    chi_nl = micro_deformation_at(chi, grad_chi, Xi_1 + D - Xi_2)
    return _current_distance_general(Xi_1, Xi_2, D, F, chi, chi_nl)


def current_distance_general_derivatives(
    Xi_1, Xi_2, D, F, chi, chi_nl, order: int = 2
) -> Derivatives:
    """
    Current distance between two surface points and its derivatives with
    respect to ``Xi_1``, ``Xi_2``, ``D``, ``F``, ``chi`` and ``chi_nl``.

    .. math::

        d_i = F_{iI} dX_I - \\chi_{iI} \\Xi^1_I + \\chi^{nl}_{iI} \\Xi^2_I
    """
    inputs = dict(Xi_1=Xi_1, Xi_2=Xi_2, D=D, F=F, chi=chi, chi_nl=chi_nl)
    return taylor(_current_distance_general, CURRENT_DISTANCE_GENERAL_LAYOUT, inputs, order)


def compute_current_distance_general(Xi_1, Xi_2, D, F, chi, chi_nl) -> jax.Array:
    return current_distance_general_derivatives(Xi_1, Xi_2, D, F, chi, chi_nl, 0).value


def current_distance_derivatives(
    Xi_1, Xi_2, D, F, chi, grad_chi, order: int = 2
) -> Derivatives:
    """
    Current distance with the non-local micro-deformation reconstructed from
    ``grad_chi``, and its derivatives with respect to ``Xi_1``, ``Xi_2``,
    ``D``, ``F``, ``chi`` and ``grad_chi``.
    """
    inputs = dict(Xi_1=Xi_1, Xi_2=Xi_2, D=D, F=F, chi=chi, grad_chi=grad_chi)
    return taylor(_current_distance, CURRENT_DISTANCE_LAYOUT, inputs, order)


def compute_current_distance(Xi_1, Xi_2, D, F, chi, grad_chi) -> jax.Array:
    """
    Example
    -------
    >>> compute_current_distance(Xi_1, Xi_2, D, jnp.eye(3), jnp.eye(3), jnp.zeros(27))
    Array(D)
    """
    return current_distance_derivatives(Xi_1, Xi_2, D, F, chi, grad_chi, 0).value


def _normal_part(d, n):
    return jnp.dot(d, n) * n


def _tangential_part(d, n):
    return d - jnp.dot(d, n) * n


def _check_unit(n: jax.Array) -> None:
    norm = float(l2norm(jnp.asarray(n, dtype=float)))
    if abs(norm - 1.0) > UNIT_ATOL + UNIT_RTOL:
        raise ASPError(f"'n' is not a unit vector (norm {norm})", function="decompose_vector")


def decompose_vector_derivatives(
    d, n, order: int = 2
) -> Tuple[Derivatives, Derivatives]:
    """
    Normal and tangential parts of ``d`` with respect to the unit vector
    ``n`` and their derivatives with respect to ``d`` and ``n``.

    Raises
    ------
    ASPError
        If ``n`` is not a unit vector.
    """
    _check_unit(n)
    inputs = dict(d=d, n=n)
    normal = taylor(_normal_part, DECOMPOSE_LAYOUT, inputs, order)
    tangential = taylor(_tangential_part, DECOMPOSE_LAYOUT, inputs, order)
    return normal, tangential


def decompose_vector(d, n) -> Tuple[jax.Array, jax.Array]:
    """
    Split ``d`` into ``dn = (d . n) n`` and ``dt = d - dn``.

    Example
    -------
    >>> decompose_vector(jnp.array([3.0, 4.0, 0.0]), jnp.array([1.0, 0.0, 0.0]))
    (Array([3., 0., 0.]), Array([0., 4., 0.]))
    """
    normal, tangential = decompose_vector_derivatives(d, n, 0)
    return normal.value, tangential.value


def _nanson(F, dAN):
    J = jnp.linalg.det(F)
    return J * jnp.linalg.inv(F).T @ dAN


def nanson_derivatives(F, dAN, order: int = 2) -> Derivatives:
    """
    Nanson's relation ``da n_i = J dA N_I F^{-1}_{Ii}`` and its derivatives
    with respect to ``F`` and ``dAN``.
    """
    return taylor(_nanson, NANSON_LAYOUT, dict(F=F, dAN=dAN), order)


def compute_nansons_relation(F, dAN) -> jax.Array:
    """Push the reference area element ``dA N`` to the current configuration."""
    return nanson_derivatives(F, dAN, 0).value


__all__ = [
    "micro_deformation_at",
    "compute_current_distance_general",
    "current_distance_general_derivatives",
    "compute_current_distance",
    "current_distance_derivatives",
    "decompose_vector",
    "decompose_vector_derivatives",
    "compute_nansons_relation",
    "nanson_derivatives",
]
