# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Saint Venant-Kirchhoff particle.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from dataclasses import dataclass
from functools import partial
from typing import Tuple

from . import ParticleModel, ParticleResponse
from ..utils import check_size


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="LinearElastic.response")
def linear_elastic_response(
    chi: jax.Array, lam: jax.Array, mu: jax.Array
) -> Tuple[jax.Array, jax.Array]:
    """
    Energy per unit current volume and Cauchy stress of a linear elastic
    material written with the Green-Lagrange strain of ``chi``.
    """
    eye = jnp.eye(3)
    E = 0.5 * (chi.T @ chi - eye)
    trE = jnp.trace(E)
    J = jnp.linalg.det(chi)
    psi = 0.5 * lam * trE**2 + mu * jnp.sum(E * E)
    S = lam * trE * eye + 2.0 * mu * E
    return psi / J, chi @ S @ chi.T / J


@ParticleModel.register("linearelastic")
@dataclass(slots=True)
class LinearElastic(ParticleModel):
    """
    Linear elastic particle with Lamé parameters ``(lambda, mu)``.

    The state variables are returned unchanged and the log-probability ratio
    is zero.

    Example
    -------
    >>> import jaxasp as asp
    >>> model = asp.ParticleModel.create("linearelastic")
    """

    def evaluate(
        self,
        previous_time,
        delta_time,
        micro_deformation,
        previous_micro_deformation,
        temperature,
        previous_temperature,
        previous_state_variables,
        parameters,
    ) -> ParticleResponse:
        parameters = jnp.asarray(parameters, dtype=float)
        check_size("parameters", parameters, 2)
        chi = jnp.reshape(jnp.asarray(micro_deformation, dtype=float), (3, 3))
        energy_density, stress = linear_elastic_response(chi, parameters[0], parameters[1])
        return ParticleResponse(
            energy_density=energy_density,
            micro_cauchy_stress=stress,
            state_variables=jnp.asarray(previous_state_variables, dtype=float),
            log_probability_ratio=jnp.zeros(()),
        )


__all__ = ["LinearElastic", "linear_elastic_response"]
