# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Linear traction-separation law.

With parameters ``(En, Et)`` the traction is ``t = En dn + Et dt`` and the
energy per unit surface ``e = 1/2 (En |dn|^2 + Et |dt|^2)``.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from dataclasses import dataclass

from . import TractionSeparationLaw
from ..utils import Derivatives, Layout, taylor

LINEAR_TRACTION_LAYOUT = Layout.create(dn=(3,), dt=(3,), parameters=(2,))


def _linear_traction(dn, dt, parameters):
    return parameters[0] * dn + parameters[1] * dt


def _linear_traction_energy(dn, dt, parameters):
    return 0.5 * (parameters[0] * jnp.dot(dn, dn) + parameters[1] * jnp.dot(dt, dt))


def linear_traction_derivatives(dn, dt, parameters, order: int = 2) -> Derivatives:
    """
    Linear traction and its derivatives with respect to ``dn``, ``dt`` and
    ``parameters``.

    Raises
    ------
    ASPError
        If ``parameters`` does not hold exactly two entries.
    """
    inputs = dict(dn=dn, dt=dt, parameters=parameters)
    return taylor(_linear_traction, LINEAR_TRACTION_LAYOUT, inputs, order)


def compute_linear_traction(dn, dt, parameters) -> jax.Array:
    return linear_traction_derivatives(dn, dt, parameters, 0).value


def linear_traction_energy_derivatives(dn, dt, parameters, order: int = 2) -> Derivatives:
    """Linear traction-separation energy and its derivatives."""
    inputs = dict(dn=dn, dt=dt, parameters=parameters)
    return taylor(_linear_traction_energy, LINEAR_TRACTION_LAYOUT, inputs, order)


def compute_linear_traction_energy(dn, dt, parameters) -> jax.Array:
    return linear_traction_energy_derivatives(dn, dt, parameters, 0).value


@TractionSeparationLaw.register("linear")
@dataclass(slots=True)
class LinearTractionSeparation(TractionSeparationLaw):
    """
    Example
    -------
    >>> import jaxasp as asp
    >>> law = asp.TractionSeparationLaw.create("linear")
    >>> law.energy(dn, dt, jnp.array([1.0, 1.0]))
    """

    def traction(self, dn, dt, parameters) -> jax.Array:
        return compute_linear_traction(dn, dt, parameters)

    def energy(self, dn, dt, parameters) -> jax.Array:
        return compute_linear_traction_energy(dn, dt, parameters)


__all__ = [
    "LinearTractionSeparation",
    "compute_linear_traction",
    "linear_traction_derivatives",
    "compute_linear_traction_energy",
    "linear_traction_energy_derivatives",
]
