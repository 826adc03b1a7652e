# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Containers and helpers for derivative tensors up to third order.

Every differentiable quantity of the aggregate is a function of a handful of
named tensor inputs (``F``, ``chi``, ``Xi_1`` ...). A :class:`Layout` fixes
how those inputs are flattened into a single vector ``z`` and
:class:`Derivatives` stores the value together with the tensors
``d value / dz``, ``d² value / dz²`` and ``d³ value / dz³``. Blocks of these
tensors are extracted by input name.
"""

from __future__ import annotations

import math

import jax
import jax.numpy as jnp

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, Mapping, Optional, Tuple

from ..errors import ASPError
from .linalg import check_size

MAX_ORDER = 3


@dataclass(frozen=True, slots=True)
class Layout:
    """
    Ordered, named blocks of a flattened input vector.

    Example
    -------
    >>> layout = Layout.create(F=(3, 3), Xi_1=(3,), R_nl=())
    >>> layout.size
    13
    """

    names: Tuple[str, ...]
    shapes: Tuple[Tuple[int, ...], ...]

    @classmethod
    def create(cls, **blocks: Tuple[int, ...]) -> "Layout":
        return cls(tuple(blocks), tuple(tuple(s) for s in blocks.values()))

    @property
    def sizes(self) -> Tuple[int, ...]:
        return tuple(math.prod(shape) for shape in self.shapes)

    @property
    def size(self) -> int:
        return sum(self.sizes)

    def block(self, name: str) -> slice:
        """Slice of ``z`` occupied by the input ``name``."""
        offset = 0
        for block_name, size in zip(self.names, self.sizes):
            if block_name == name:
                return slice(offset, offset + size)
            offset += size
        raise ASPError(
            f"unknown input '{name}', expected one of {list(self.names)}",
            function="Layout.block",
        )

    def flatten(self, inputs: Mapping[str, jax.Array]) -> jax.Array:
        """
        Concatenate the named inputs in layout order, checking every size.
        """
        parts = []
        for name, size in zip(self.names, self.sizes):
            if name not in inputs:
                raise ASPError(f"missing input '{name}'", function="Layout.flatten")
            value = jnp.asarray(inputs[name], dtype=float)
            check_size(name, value, size)
            parts.append(jnp.ravel(value))
        return jnp.concatenate(parts)

    def unflatten(self, z: jax.Array) -> Dict[str, jax.Array]:
        out = {}
        offset = 0
        for name, shape, size in zip(self.names, self.shapes, self.sizes):
            out[name] = jnp.reshape(z[offset : offset + size], shape)
            offset += size
        return out


@dataclass(slots=True)
class Derivatives:
    """
    A value and its derivative tensors with respect to a :class:`Layout`.

    The tensors are stored against the flattened output and the flattened
    inputs: ``first`` has shape ``(n_out, n)``, ``second`` ``(n_out, n, n)``
    and ``third`` ``(n_out, n, n, n)`` where ``n = layout.size``. Entries that
    were not requested are ``None``.
    """

    value: jax.Array
    layout: Layout
    first: Optional[jax.Array] = None
    second: Optional[jax.Array] = None
    third: Optional[jax.Array] = None

    @property
    def order(self) -> int:
        order = 0
        for tensor in (self.first, self.second, self.third):
            if tensor is None:
                break
            order += 1
        return order

    def _block(self, tensor: Optional[jax.Array], names: Tuple[str, ...]) -> jax.Array:
        if tensor is None:
            raise ASPError(
                f"derivatives of order {len(names)} were not computed",
                function="Derivatives",
            )
        index = (slice(None),) + tuple(self.layout.block(name) for name in names)
        block = tensor[index]
        return jnp.reshape(block, jnp.asarray(self.value).shape + block.shape[1:])

    def jacobian(self, wrt: str) -> jax.Array:
        """Shape ``value.shape + (|wrt|,)``."""
        return self._block(self.first, (wrt,))

    def hessian(self, wrt_a: str, wrt_b: str) -> jax.Array:
        """Shape ``value.shape + (|wrt_a|, |wrt_b|)``."""
        return self._block(self.second, (wrt_a, wrt_b))

    def third_derivative(self, wrt_a: str, wrt_b: str, wrt_c: str) -> jax.Array:
        """Shape ``value.shape + (|wrt_a|, |wrt_b|, |wrt_c|)``."""
        return self._block(self.third, (wrt_a, wrt_b, wrt_c))

    @classmethod
    def zeros(cls, value: jax.Array, layout: Layout, order: int) -> "Derivatives":
        """Derivatives of a locally constant ``value``."""
        n_out, n = jnp.asarray(value).size, layout.size
        tensors = [jnp.zeros((n_out,) + (n,) * k) for k in range(1, order + 1)]
        return cls(jnp.asarray(value), layout, *tensors)


def _check_order(order: int) -> None:
    if order not in range(MAX_ORDER + 1):
        raise ASPError(
            f"derivative order must be between 0 and {MAX_ORDER}, got {order}",
            function="taylor",
        )


@lru_cache(maxsize=None)
def _stages(
    fn: Callable[..., jax.Array], layout: Layout, order: int
) -> Tuple[Callable[[jax.Array], jax.Array], ...]:
    def value(z: jax.Array) -> jax.Array:
        return fn(**layout.unflatten(z))

    def flat(z: jax.Array) -> jax.Array:
        return jnp.ravel(value(z))

    stages = [jax.jit(value)]
    derivative = flat
    for _ in range(order):
        derivative = jax.jacfwd(derivative)
        stages.append(jax.jit(derivative))
    return tuple(stages)


def taylor(
    fn: Callable[..., jax.Array],
    layout: Layout,
    inputs: Mapping[str, jax.Array],
    order: int = 0,
) -> Derivatives:
    """
    Evaluate an explicit function and its derivatives up to ``order``.

    Parameters
    ----------
    fn : Callable
        Pure function taking the layout's names as keyword arguments.
    layout : Layout
        Shapes of the inputs of ``fn``.
    inputs : Mapping[str, jax.Array]
        Values of the inputs, flat or shaped.
    order : int
        Highest derivative order, 0 to 3.

    Returns
    -------
    Derivatives
    """
    _check_order(order)
    z = layout.flatten(inputs)
    stages = _stages(fn, layout, order)
    tensors = [stage(z) for stage in stages]
    return Derivatives(tensors[0], layout, *tensors[1:])


def compose(outer: Derivatives, inner: Derivatives, order: int) -> Derivatives:
    """
    Chain rule for ``y(p(q))``.

    Parameters
    ----------
    outer : Derivatives
        ``y`` and its derivatives with respect to ``p``.
    inner : Derivatives
        ``p`` (flattened in ``outer.layout`` order) and its derivatives with
        respect to ``q``.
    order : int
        Highest order to propagate. Both arguments must carry at least it.

    Returns
    -------
    Derivatives
        ``y`` and its derivatives with respect to ``q``.
    """
    _check_order(order)
    if jnp.asarray(inner.value).size != outer.layout.size:
        raise ASPError(
            f"inner value has {jnp.asarray(inner.value).size} entries but the outer function "
            f"expects {outer.layout.size}"
        )
    if min(outer.order, inner.order) < order:
        raise ASPError(f"cannot compose derivatives of order {order}")

    result = Derivatives(outer.value, inner.layout)
    if order == 0:
        return result

    Y1, P1 = outer.first, inner.first
    result.first = jnp.einsum("op,pa->oa", Y1, P1)
    if order >= 2:
        Y2, P2 = outer.second, inner.second
        result.second = jnp.einsum("opr,pa,rb->oab", Y2, P1, P1) + jnp.einsum(
            "op,pab->oab", Y1, P2
        )
    if order >= 3:
        Y3, P3 = outer.third, inner.third
        mixed = jnp.einsum("opr,pab,rc->oabc", Y2, P2, P1)
        result.third = (
            jnp.einsum("oprs,pa,rb,sc->oabc", Y3, P1, P1, P1)
            + mixed
            + jnp.transpose(mixed, (0, 1, 3, 2))
            + jnp.transpose(mixed, (0, 3, 1, 2))
            + jnp.einsum("op,pabc->oabc", Y1, P3)
        )
    return result


__all__ = ["Layout", "Derivatives", "taylor", "compose", "MAX_ORDER"]
