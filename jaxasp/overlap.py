# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Overlap of a point with a deformed non-local particle.

The non-local particle is a sphere of radius ``R_nl`` in its reference
configuration, deformed by ``chi_nl``. For a target point ``xi_t`` (current
configuration, relative to the non-local centroid) the closest surface point
``Xi*`` is the stationary point of

.. math::

    \\mathcal{L}(\\Xi, \\lambda) = \\frac{1}{2} |\\chi^{nl} \\Xi - \\xi^t|^2
        - \\lambda (\\Xi \\cdot \\Xi - R_{nl}^2)

and the overlap vector is ``d = chi_nl Xi* - xi_t``. Derivatives of ``d``
with respect to ``chi_nl``, ``xi_t`` and ``R_nl`` follow from implicit
differentiation of the optimality conditions, all orders sharing one
factorisation of the Hessian.
"""

from __future__ import annotations

import logging

import jax
import jax.numpy as jnp

from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ASPError
from .utils import MAX_ORDER, Derivatives, Layout, LinearSolver, check_size, compose, taylor

logger = logging.getLogger(__name__)

OVERLAP_LAYOUT = Layout.create(chi_nl=(3, 3), xi_t=(3,), R_nl=())
"""Inputs of the overlap vector."""

SYSTEM_LAYOUT = Layout.create(Xi=(3,), lam=(), chi_nl=(3, 3), xi_t=(3,), R_nl=())
"""Unknowns ``(Xi, lam)`` followed by the inputs."""

N_UNKNOWNS = 4


@dataclass(frozen=True, slots=True)
class OverlapSolverSettings:
    """
    Tolerances and limits of the Newton solver.

    Attributes
    ----------
    tola, tolr : float
        Convergence when ``|g| <= tola + tolr * |g_0|``.
    max_iteration : int
        Newton iterations allowed before giving up.
    max_ls : int
        Step halvings allowed by the line search.
    alpha_ls : float
        A trial step is accepted once ``|g| <= (1 - alpha_ls) |g_prev|``.
    """

    tola: float = 1e-9
    tolr: float = 1e-9
    max_iteration: int = 20
    max_ls: int = 5
    alpha_ls: float = 1e-4

    def __post_init__(self) -> None:
        if self.tola < 0 or self.tolr < 0:
            raise ValueError(f"tolerances must be non-negative, got tola={self.tola}, tolr={self.tolr}")
        if self.max_iteration < 1 or self.max_ls < 0:
            raise ValueError(
                f"max_iteration must be positive and max_ls non-negative, got {self.max_iteration} and {self.max_ls}"
            )
        if not 0.0 <= self.alpha_ls < 1.0:
            raise ValueError(f"alpha_ls must lie in [0, 1), got {self.alpha_ls}")


@dataclass(frozen=True, slots=True)
class OverlapSolution:
    """Converged stationary point of the overlap Lagrangian."""

    Xi: jax.Array
    lagrange_multiplier: jax.Array
    iterations: int
    residual_norm: float


def _residual(Xi, lam, chi_nl, xi_t, R_nl):
    r = chi_nl @ Xi - xi_t
    return jnp.concatenate(
        [chi_nl.T @ r - 2.0 * lam * Xi, jnp.reshape(R_nl**2 - Xi @ Xi, (1,))]
    )


def _overlap_vector(Xi, lam, chi_nl, xi_t, R_nl):
    return chi_nl @ Xi - xi_t


@jax.jit
def _newton_system(
    X: jax.Array, chi_nl: jax.Array, xi_t: jax.Array, R_nl: jax.Array
) -> Tuple[jax.Array, jax.Array]:
    Xi, lam = X[:3], X[3]
    g = _residual(Xi, lam, chi_nl, xi_t, R_nl)
    H = jnp.block(
        [
            [chi_nl.T @ chi_nl - 2.0 * lam * jnp.eye(3), -2.0 * Xi[:, None]],
            [-2.0 * Xi[None, :], jnp.zeros((1, 1))],
        ]
    )
    return g, H


@jax.jit
def _residual_norm(
    X: jax.Array, chi_nl: jax.Array, xi_t: jax.Array, R_nl: jax.Array
) -> jax.Array:
    return jnp.linalg.norm(_residual(X[:3], X[3], chi_nl, xi_t, R_nl))


def _parameters(chi_nl, xi_t, R_nl):
    return OVERLAP_LAYOUT.unflatten(
        OVERLAP_LAYOUT.flatten(dict(chi_nl=chi_nl, xi_t=xi_t, R_nl=R_nl))
    )


def solve_surface_point(
    chi_nl: jax.Array,
    xi_t: jax.Array,
    R_nl: jax.Array,
    settings: Optional[OverlapSolverSettings] = None,
    initial_guess: Optional[jax.Array] = None,
) -> OverlapSolution:
    """
    Newton iteration for the closest surface point of the non-local particle.

    Parameters
    ----------
    chi_nl : jax.Array
        (3, 3) non-local micro-deformation.
    xi_t : jax.Array
        (3,) target point.
    R_nl : jax.Array
        Reference radius of the non-local particle.
    settings : OverlapSolverSettings, optional
        Tolerances and limits.
    initial_guess : jax.Array, optional
        Starting ``Xi``. Defaults to the pull back ``chi_nl^{-1} xi_t`` of the
        target. The multiplier always starts at one.

    Returns
    -------
    OverlapSolution

    Raises
    ------
    ASPError
        On a singular Newton system, a line search failure or when the
        iteration budget is exhausted.
    """
    settings = settings or OverlapSolverSettings()
    p = _parameters(chi_nl, xi_t, R_nl)
    chi_nl, xi_t, R_nl = p["chi_nl"], p["xi_t"], p["R_nl"]

    if initial_guess is None:
        initial_guess = LinearSolver(chi_nl).solve(xi_t)
    check_size("initial_guess", initial_guess, 3)
    X = jnp.concatenate([jnp.ravel(jnp.asarray(initial_guess, dtype=float)), jnp.ones(1)])

    g, H = _newton_system(X, chi_nl, xi_t, R_nl)
    norm = float(jnp.linalg.norm(g))
    tolerance = settings.tola + settings.tolr * norm

    iteration = 0
    while norm > tolerance:
        if iteration >= settings.max_iteration:
            raise ASPError(
                f"the overlap solver did not converge in {settings.max_iteration} iterations "
                f"(residual {norm:.3e}, tolerance {tolerance:.3e})"
            )
        try:
            step = LinearSolver(H).solve(-g)
        except ASPError as err:
            raise ASPError("singular Hessian in the overlap Newton iteration") from err

        alpha = 1.0
        for _ in range(settings.max_ls + 1):
            trial = X + alpha * step
            trial_norm = float(_residual_norm(trial, chi_nl, xi_t, R_nl))
            if trial_norm <= (1.0 - settings.alpha_ls) * norm:
                break
            alpha *= 0.5
        else:
            raise ASPError(
                f"line search failure: the residual {norm:.3e} was not reduced "
                f"after {settings.max_ls} step halvings"
            )

        X = trial
        g, H = _newton_system(X, chi_nl, xi_t, R_nl)
        norm = float(jnp.linalg.norm(g))
        iteration += 1
        logger.debug("overlap iteration %d: |g| = %.3e, step length %g", iteration, norm, alpha)

    return OverlapSolution(
        Xi=X[:3], lagrange_multiplier=X[3], iterations=iteration, residual_norm=norm
    )


def _implicit_sensitivities(y: jax.Array, order: int) -> Derivatives:
    """
    Derivatives of ``y = (Xi*, lam*, chi_nl, xi_t, R_nl)`` with respect to
    the inputs, from repeated differentiation of ``g(y(p)) = 0``.

    At order ``k`` the unknown block solves ``H X_k = -r_k`` where ``r_k`` is
    the ``k``-th chain rule term of ``g`` with ``X_k`` set to zero.
    """
    G = taylor(_residual, SYSTEM_LAYOUT, SYSTEM_LAYOUT.unflatten(y), order)
    try:
        solver = LinearSolver(G.first[:, :N_UNKNOWNS])
    except ASPError as err:
        raise ASPError("singular Hessian in the implicit differentiation of the overlap") from err

    n_p = OVERLAP_LAYOUT.size
    tensors = [jnp.concatenate([jnp.zeros((N_UNKNOWNS, n_p)), jnp.eye(n_p)])]
    tensors += [jnp.zeros((SYSTEM_LAYOUT.size,) + (n_p,) * k) for k in range(2, order + 1)]

    for k in range(1, order + 1):
        chained = compose(G, Derivatives(y, OVERLAP_LAYOUT, *tensors[:k]), k)
        rest = (chained.first, chained.second, chained.third)[k - 1]
        X_k = -solver.solve(jnp.reshape(rest, (N_UNKNOWNS, -1)))
        tensors[k - 1] = tensors[k - 1].at[:N_UNKNOWNS].set(jnp.reshape(X_k, rest.shape))

    return Derivatives(y, OVERLAP_LAYOUT, *tensors)


def overlap_derivatives(
    chi_nl: jax.Array,
    xi_t: jax.Array,
    R_nl: jax.Array,
    order: int = 1,
    settings: Optional[OverlapSolverSettings] = None,
    initial_guess: Optional[jax.Array] = None,
) -> Derivatives:
    """
    Overlap vector of the target point and its derivatives with respect to
    ``chi_nl``, ``xi_t`` and ``R_nl`` up to ``order``.

    Targets outside the non-local particle (screened with the pull back
    ``chi_nl^{-1} xi_t``) have zero overlap and zero derivatives.

    The Newton iteration starts from the pull back unless ``initial_guess``
    is given. After a numerical failure the call can be repeated with looser
    ``settings`` or another starting ``Xi``: a target at the centroid,
    ``xi_t = 0``, makes the default start singular.

    Raises
    ------
    ASPError
        If ``det(chi_nl) <= 0``, on any input size mismatch or on a
        numerical failure of the solver.

    Example
    -------
    >>> d = overlap_derivatives(jnp.eye(3), jnp.array([0.1, 0.0, 0.0]), 1.0, order=1)
    >>> d.value
    Array([0.9, 0. , 0. ])
    >>> d.jacobian("R_nl")
    Array([[1.], [0.], [0.]])
    """
    if order not in range(MAX_ORDER + 1):
        raise ASPError(f"derivative order must be between 0 and {MAX_ORDER}, got {order}")
    p = _parameters(chi_nl, xi_t, R_nl)
    J = float(jnp.linalg.det(p["chi_nl"]))
    if J <= 0.0:
        raise ASPError(
            f"the non-local micro-deformation must have a positive determinant, got {J}"
        )

    Xi_t = LinearSolver(p["chi_nl"]).solve(p["xi_t"])
    if float(Xi_t @ Xi_t) > float(p["R_nl"] ** 2):
        return Derivatives.zeros(jnp.zeros(3), OVERLAP_LAYOUT, order)

    solution = solve_surface_point(
        p["chi_nl"], p["xi_t"], p["R_nl"], settings, Xi_t if initial_guess is None else initial_guess
    )
    y = jnp.concatenate(
        [
            solution.Xi,
            jnp.reshape(solution.lagrange_multiplier, (1,)),
            OVERLAP_LAYOUT.flatten(p),
        ]
    )
    d = taylor(_overlap_vector, SYSTEM_LAYOUT, SYSTEM_LAYOUT.unflatten(y), order)
    if order == 0:
        return Derivatives(d.value, OVERLAP_LAYOUT)
    return compose(d, _implicit_sensitivities(y, order), order)


def compute_overlap(
    chi_nl: jax.Array,
    xi_t: jax.Array,
    R_nl: jax.Array,
    settings: Optional[OverlapSolverSettings] = None,
    initial_guess: Optional[jax.Array] = None,
) -> jax.Array:
    """Overlap vector ``d = chi_nl Xi* - xi_t``, zero outside the particle."""
    return overlap_derivatives(chi_nl, xi_t, R_nl, 0, settings, initial_guess).value


__all__ = [
    "OverlapSolverSettings",
    "OverlapSolution",
    "solve_surface_point",
    "overlap_derivatives",
    "compute_overlap",
    "OVERLAP_LAYOUT",
]
