# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Traction-separation laws coupling the surfaces of two particles.
"""

from __future__ import annotations

import jax

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..factory import Factory


@dataclass(slots=True)
class TractionSeparationLaw(Factory, ABC):
    """
    Abstract base class for the surface laws of the aggregate.

    A law maps the normal and tangential parts of the separation of two
    surfaces, ``dn`` and ``dt``, to a traction and to an energy per unit
    surface.

    Example
    -------
    >>> law = TractionSeparationLaw.create("linear")
    >>> t = law.traction(dn, dt, parameters)
    """

    @abstractmethod
    def traction(self, dn: jax.Array, dt: jax.Array, parameters: jax.Array) -> jax.Array:
        raise NotImplementedError

    @abstractmethod
    def energy(self, dn: jax.Array, dt: jax.Array, parameters: jax.Array) -> jax.Array:
        raise NotImplementedError


from .linear import (
    LinearTractionSeparation,
    compute_linear_traction,
    linear_traction_derivatives,
    compute_linear_traction_energy,
    linear_traction_energy_derivatives,
)

__all__ = [
    "TractionSeparationLaw",
    "LinearTractionSeparation",
    "compute_linear_traction",
    "linear_traction_derivatives",
    "compute_linear_traction_energy",
    "linear_traction_energy_derivatives",
]
