# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Dense tensor algebra on flattened, row-major storage.

Tensors of the aggregate are handed around as flat sequences; these helpers
check the advertised dimensions before reshaping, so that every mismatch is
reported with the offending argument and its observed and expected sizes.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
import jax.scipy.linalg as jsl

from functools import partial
from typing import Tuple

from ..errors import ASPError


def check_size(name: str, array: jax.Array, expected: int) -> None:
    """
    Raise an :class:`ASPError` when ``array`` does not hold ``expected`` entries.
    """
    size = jnp.asarray(array).size
    if size != expected:
        raise ASPError(
            f"'{name}' has {size} entries but {expected} were expected",
            function="check_size",
        )


def _as_matrix(name: str, a: jax.Array, rows: int, cols: int) -> jax.Array:
    a = jnp.asarray(a, dtype=float)
    check_size(name, a, rows * cols)
    return jnp.reshape(a, (rows, cols))


def dot(a: jax.Array, b: jax.Array) -> jax.Array:
    """Inner product of two flat vectors of equal size."""
    a = jnp.ravel(jnp.asarray(a, dtype=float))
    b = jnp.ravel(jnp.asarray(b, dtype=float))
    check_size("b", b, a.size)
    return jnp.dot(a, b)


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="linalg.l2norm")
def l2norm(a: jax.Array) -> jax.Array:
    """Euclidean (Frobenius) norm of all the entries of ``a``."""
    return jnp.sqrt(jnp.sum(jnp.asarray(a, dtype=float) ** 2))


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="linalg.unit")
def unit(v: jax.Array) -> jax.Array:
    """
    Normalize vectors along the last axis.
    v: (..., D)
    returns: (..., D), unit vectors; zeros map to zeros.
    """
    norm2 = jnp.sum(v * v, axis=-1, keepdims=True)
    scale = jnp.where(norm2 == 0, 1.0, jax.lax.rsqrt(norm2))
    return v * scale


def eye(n: int) -> jax.Array:
    """Flattened ``n`` by ``n`` identity."""
    return jnp.ravel(jnp.eye(n))


def determinant(a: jax.Array, rows: int, cols: int) -> jax.Array:
    """
    Determinant of a flattened square matrix.

    Raises
    ------
    ASPError
        If the matrix is not square or ``a`` does not have ``rows * cols`` entries.
    """
    if rows != cols:
        raise ASPError(f"determinant requires a square matrix, got {rows}x{cols}")
    return jnp.linalg.det(_as_matrix("a", a, rows, cols))


def inverse(a: jax.Array, rows: int, cols: int) -> jax.Array:
    """Flattened inverse of a flattened square matrix."""
    if rows != cols:
        raise ASPError(f"inverse requires a square matrix, got {rows}x{cols}")
    solver = LinearSolver(_as_matrix("a", a, rows, cols))
    return jnp.ravel(solver.solve(jnp.eye(rows)))


def matrix_multiply(
    a: jax.Array,
    b: jax.Array,
    rows_a: int,
    cols_a: int,
    rows_b: int,
    cols_b: int,
    transpose_a: bool = False,
    transpose_b: bool = False,
) -> jax.Array:
    """
    Flattened product ``op(A) op(B)`` where ``op`` optionally transposes.

    Parameters
    ----------
    a, b : jax.Array
        Flat row-major storage of ``A`` (``rows_a x cols_a``) and ``B``
        (``rows_b x cols_b``).
    transpose_a, transpose_b : bool
        Use the transpose of the stored matrix.

    Returns
    -------
    jax.Array
        The product flattened in row-major order.
    """
    A = _as_matrix("a", a, rows_a, cols_a)
    B = _as_matrix("b", b, rows_b, cols_b)
    if transpose_a:
        A = A.T
    if transpose_b:
        B = B.T
    if A.shape[1] != B.shape[0]:
        raise ASPError(
            f"cannot multiply a {A.shape[0]}x{A.shape[1]} matrix by a {B.shape[0]}x{B.shape[1]} matrix"
        )
    return jnp.ravel(A @ B)


class LinearSolver:
    """
    LU factorisation of a square matrix, reused for many right-hand sides.

    Parameters
    ----------
    a : jax.Array
        Square matrix, either shaped ``(n, n)`` or flat with a square size.

    Raises
    ------
    ASPError
        If the matrix is not square, or is singular to working precision.

    Example
    -------
    >>> solver = LinearSolver(H)
    >>> x1 = solver.solve(b1)
    >>> x2 = solver.solve(B2)  # (n, k) right-hand sides
    """

    __slots__ = ("n", "_factors")

    def __init__(self, a: jax.Array) -> None:
        a = jnp.asarray(a, dtype=float)
        n = int(round(a.size**0.5))
        if n * n != a.size:
            raise ASPError(
                f"the matrix has {a.size} entries, which is not a square size",
                function="LinearSolver",
            )
        a = jnp.reshape(a, (n, n))
        lu, piv = jsl.lu_factor(a)
        pivots = jnp.abs(jnp.diag(lu))
        scale = jnp.max(jnp.abs(a))
        if (
            not bool(jnp.all(jnp.isfinite(lu)))
            or scale == 0.0
            or bool(jnp.min(pivots) <= n * jnp.finfo(lu.dtype).eps * scale)
        ):
            raise ASPError(
                "failed to factorise the matrix: it is singular",
                function="LinearSolver",
            )
        self.n = n
        self._factors: Tuple[jax.Array, jax.Array] = (lu, piv)

    def solve(self, b: jax.Array) -> jax.Array:
        """Solve ``A x = b`` for a vector or for the columns of a matrix ``b``."""
        b = jnp.asarray(b, dtype=float)
        if b.shape[0] != self.n:
            raise ASPError(
                f"'b' has {b.shape[0]} rows but {self.n} were expected",
                function="LinearSolver.solve",
            )
        return jsl.lu_solve(self._factors, b)


def solve_linear_system(a: jax.Array, b: jax.Array) -> jax.Array:
    """Solve ``A x = b`` where ``A`` is given flat and ``b`` is a vector."""
    b = jnp.ravel(jnp.asarray(b, dtype=float))
    a = jnp.asarray(a, dtype=float)
    check_size("a", a, b.size * b.size)
    return LinearSolver(a).solve(b)


__all__ = [
    "check_size",
    "dot",
    "l2norm",
    "unit",
    "eye",
    "determinant",
    "inverse",
    "matrix_multiply",
    "LinearSolver",
    "solve_linear_system",
]
