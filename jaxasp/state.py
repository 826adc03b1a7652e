# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Defines the state of a particle aggregate at a material point.
"""

from __future__ import annotations

import math

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from dataclasses import dataclass, field
from typing import Optional, final

from .errors import ASPError
from .overlap import OverlapSolverSettings


def _tensor(name: str, value: Optional[ArrayLike], default: jax.Array, shape) -> jax.Array:
    array = default if value is None else jnp.asarray(value, dtype=float)
    expected = math.prod(shape)
    if array.size != expected:
        raise ASPError(
            f"'{name}' has {array.size} entries but {expected} were expected",
            function="AggregateState.create",
        )
    return jnp.reshape(array, shape)


@final
@dataclass(slots=True, frozen=True)
class AggregateState:
    r"""
    Everything the host supplies for one evaluation of the aggregate.

    The state is immutable: the graph and the assembly read it, they never
    modify it.

    Notes
    -----
    Shapes, with ``N`` particles:

    - ``deformation_gradient``, ``micro_deformation`` and their previous
      values: ``(3, 3)``.
    - ``gradient_micro_deformation``: ``(3, 3, 3)`` with
      ``[i, I, J] = d chi[i, I] / d X[J]``.
    - ``radius``: ``(N,)`` reference radii.
    - ``reference_distance_vectors``: ``(N, N, 3)``, entry ``[i, k]`` is the
      reference vector from the centroid of ``i`` to the one of ``k``.
    """

    previous_time: float
    delta_time: float
    temperature: float
    previous_temperature: float

    deformation_gradient: jax.Array
    previous_deformation_gradient: jax.Array
    micro_deformation: jax.Array
    previous_micro_deformation: jax.Array
    gradient_micro_deformation: jax.Array
    previous_gradient_micro_deformation: jax.Array

    previous_state_variables: jax.Array
    particle_parameters: jax.Array
    surface_parameters: jax.Array
    overlap_parameters: jax.Array

    radius: jax.Array
    reference_distance_vectors: jax.Array

    surface_element_count: int = 1
    particle_model: str = "linearelastic"
    traction_law: str = "linear"
    solver: OverlapSolverSettings = field(default_factory=OverlapSolverSettings)

    @property
    def dim(self) -> int:
        return 3

    @property
    def num_particles(self) -> int:
        return self.radius.shape[0]

    @property
    def current_time(self) -> float:
        return self.previous_time + self.delta_time

    @staticmethod
    def create(
        *,
        num_particles: Optional[int] = None,
        radius: Optional[ArrayLike] = None,
        deformation_gradient: Optional[ArrayLike] = None,
        previous_deformation_gradient: Optional[ArrayLike] = None,
        micro_deformation: Optional[ArrayLike] = None,
        previous_micro_deformation: Optional[ArrayLike] = None,
        gradient_micro_deformation: Optional[ArrayLike] = None,
        previous_gradient_micro_deformation: Optional[ArrayLike] = None,
        reference_distance_vectors: Optional[ArrayLike] = None,
        particle_parameters: Optional[ArrayLike] = None,
        surface_parameters: Optional[ArrayLike] = None,
        overlap_parameters: Optional[ArrayLike] = None,
        previous_state_variables: Optional[ArrayLike] = None,
        previous_time: float = 0.0,
        delta_time: float = 0.0,
        temperature: float = 0.0,
        previous_temperature: Optional[float] = None,
        surface_element_count: int = 1,
        particle_model: str = "linearelastic",
        traction_law: str = "linear",
        solver: Optional[OverlapSolverSettings] = None,
    ) -> "AggregateState":
        r"""
        Factory method to create a new :class:`AggregateState`.

        Parameters
        ----------
        num_particles : int, optional
            Number of particles. Inferred from ``radius`` when omitted, one
            otherwise.
        radius : ArrayLike, optional
            Scalar or ``(N,)`` reference radii. Defaults to ones.
        deformation_gradient, micro_deformation : ArrayLike, optional
            Flat or ``(3, 3)``. Default to the identity.
        previous_deformation_gradient, previous_micro_deformation : ArrayLike, optional
            Default to the current values.
        gradient_micro_deformation : ArrayLike, optional
            Flat or ``(3, 3, 3)``. Defaults to zero.
        reference_distance_vectors : ArrayLike, optional
            ``(N, N, 3)`` centroid to centroid vectors. A single ``(3,)``
            vector is used for ``[0, 1]`` of a pair, its opposite for
            ``[1, 0]``. Defaults to zero.
        particle_parameters : ArrayLike, optional
            Parameters of the particle model. Defaults to ``(1, 1)``.
        surface_parameters : ArrayLike, optional
            Parameters of the traction law. Defaults to ``(1, 1)``.
        overlap_parameters : ArrayLike, optional
            Overlap penalty parameters. Defaults to ``(1,)``.
        previous_state_variables : ArrayLike, optional
            Defaults to an empty vector.
        previous_time, delta_time, temperature, previous_temperature : float
            Time increment and temperatures. The previous temperature defaults
            to the current one.
        surface_element_count : int
            Refinement level of the unit sphere quadrature.
        particle_model, traction_law : str
            Registry keys of the constitutive components.
        solver : OverlapSolverSettings, optional
            Configuration of the overlap solver.

        Returns
        -------
        AggregateState

        Raises
        ------
        ASPError
            If a tensor has the wrong number of entries, a radius is not
            positive or the refinement level is below one.

        Example
        -------
        >>> import jaxasp as asp
        >>> state = asp.AggregateState.create(
        >>>     radius=[1.0, 1.0], reference_distance_vectors=[2.5, 0.0, 0.0]
        >>> )
        >>> state.num_particles
        2
        """
        if radius is None:
            N = 1 if num_particles is None else int(num_particles)
            radius = jnp.ones(N)
        else:
            radius = jnp.atleast_1d(jnp.asarray(radius, dtype=float))
            if num_particles is not None and radius.size == 1:
                radius = jnp.full(int(num_particles), radius[0])
            N = radius.shape[0]
            if num_particles is not None and N != num_particles:
                raise ASPError(
                    f"'radius' has {N} entries but {num_particles} were expected",
                    function="AggregateState.create",
                )
        if bool(jnp.any(radius <= 0.0)):
            raise ASPError(
                f"particle radii must be positive, got {radius}", function="AggregateState.create"
            )
        if surface_element_count < 1:
            raise ASPError(
                f"surface_element_count must be at least one, got {surface_element_count}",
                function="AggregateState.create",
            )

        eye = jnp.eye(3)
        F = _tensor("deformation_gradient", deformation_gradient, eye, (3, 3))
        chi = _tensor("micro_deformation", micro_deformation, eye, (3, 3))
        grad_chi = _tensor(
            "gradient_micro_deformation", gradient_micro_deformation, jnp.zeros((3, 3, 3)), (3, 3, 3)
        )

        if reference_distance_vectors is not None and jnp.asarray(reference_distance_vectors).size == 3 and N == 2:
            vector = jnp.ravel(jnp.asarray(reference_distance_vectors, dtype=float))
            reference_distance_vectors = jnp.zeros((2, 2, 3)).at[0, 1].set(vector).at[1, 0].set(-vector)
        D = _tensor(
            "reference_distance_vectors", reference_distance_vectors, jnp.zeros((N, N, 3)), (N, N, 3)
        )

        def _vector(value, default):
            return jnp.ravel(jnp.asarray(default if value is None else value, dtype=float))

        return AggregateState(
            previous_time=float(previous_time),
            delta_time=float(delta_time),
            temperature=float(temperature),
            previous_temperature=float(
                temperature if previous_temperature is None else previous_temperature
            ),
            deformation_gradient=F,
            previous_deformation_gradient=_tensor(
                "previous_deformation_gradient", previous_deformation_gradient, F, (3, 3)
            ),
            micro_deformation=chi,
            previous_micro_deformation=_tensor(
                "previous_micro_deformation", previous_micro_deformation, chi, (3, 3)
            ),
            gradient_micro_deformation=grad_chi,
            previous_gradient_micro_deformation=_tensor(
                "previous_gradient_micro_deformation",
                previous_gradient_micro_deformation,
                grad_chi,
                (3, 3, 3),
            ),
            previous_state_variables=_vector(previous_state_variables, []),
            particle_parameters=_vector(particle_parameters, [1.0, 1.0]),
            surface_parameters=_vector(surface_parameters, [1.0, 1.0]),
            overlap_parameters=_vector(overlap_parameters, [1.0]),
            radius=radius,
            reference_distance_vectors=D,
            surface_element_count=int(surface_element_count),
            particle_model=particle_model,
            traction_law=traction_law,
            solver=solver or OverlapSolverSettings(),
        )


__all__ = ["AggregateState"]
