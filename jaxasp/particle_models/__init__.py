# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Bulk constitutive models of a single particle.
"""

from __future__ import annotations

import jax

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NamedTuple

from ..factory import Factory


class ParticleResponse(NamedTuple):
    """Response of a particle model at the current micro-deformation."""

    energy_density: jax.Array
    """Strain energy per unit current volume."""
    micro_cauchy_stress: jax.Array
    """(3, 3) micro Cauchy stress."""
    state_variables: jax.Array
    """Updated state variables."""
    log_probability_ratio: jax.Array
    """Log ratio of the current and previous state probabilities."""


@dataclass(slots=True)
class ParticleModel(Factory, ABC):
    """
    Abstract base class for the energy models of the particles.

    Models are stateless: everything they need arrives through
    :meth:`evaluate`, so one instance is shared by all the particles of an
    aggregate.

    Example
    -------
    >>> model = ParticleModel.create("linearelastic")
    >>> response = model.evaluate(previous_time, delta_time, chi, previous_chi,
    >>>                           temperature, previous_temperature,
    >>>                           previous_state_variables, parameters)
    """

    @abstractmethod
    def evaluate(
        self,
        previous_time: float,
        delta_time: float,
        micro_deformation: jax.Array,
        previous_micro_deformation: jax.Array,
        temperature: float,
        previous_temperature: float,
        previous_state_variables: jax.Array,
        parameters: jax.Array,
    ) -> ParticleResponse:
        """
        Evaluate the particle at the end of the increment.

        Parameters
        ----------
        previous_time, delta_time : float
            Start and length of the increment.
        micro_deformation, previous_micro_deformation : jax.Array
            (3, 3) micro-deformation at the end and start of the increment.
        temperature, previous_temperature : float
            Temperature at the end and start of the increment.
        previous_state_variables : jax.Array
            State variables at the start of the increment.
        parameters : jax.Array
            Model parameters.

        Returns
        -------
        ParticleResponse
        """
        raise NotImplementedError


from .linearElastic import LinearElastic

__all__ = ["ParticleModel", "ParticleResponse", "LinearElastic"]
