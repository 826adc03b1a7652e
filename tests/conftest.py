import jax
jax.config.update("jax_enable_x64", True)
import numpy as np
import pytest


def _central_difference(fn, x, h=1e-6):
    """
    Central difference of ``fn`` with respect to every entry of ``x``.

    Returns an array of shape ``fn(x).shape + (x.size,)``.
    """
    x = np.asarray(x, dtype=float)
    flat = x.ravel()
    columns = []
    for a in range(flat.size):
        step = np.zeros_like(flat)
        step[a] = h
        forward = np.asarray(fn((flat + step).reshape(x.shape)))
        backward = np.asarray(fn((flat - step).reshape(x.shape)))
        columns.append((forward - backward) / (2.0 * h))
    return np.stack(columns, axis=-1)


@pytest.fixture
def central_difference():
    return _central_difference


@pytest.fixture
def deformation():
    """A generic, well conditioned deformation of a pair of particles."""
    rng = np.random.default_rng(7)
    F = np.eye(3) + 0.05 * rng.standard_normal((3, 3))
    chi = np.eye(3) + 0.05 * rng.standard_normal((3, 3))
    grad_chi = 0.02 * rng.standard_normal((3, 3, 3))
    return F, chi, grad_chi
