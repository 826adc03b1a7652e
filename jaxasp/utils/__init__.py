# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Tensor algebra and derivative bookkeeping shared by the aggregate components.
"""

from __future__ import annotations

from .linalg import (
    check_size,
    dot,
    l2norm,
    unit,
    eye,
    determinant,
    inverse,
    matrix_multiply,
    LinearSolver,
    solve_linear_system,
)
from .derivatives import Layout, Derivatives, taylor, compose, MAX_ORDER

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
    "Layout",
    "Derivatives",
    "taylor",
    "compose",
    "MAX_ORDER",
]
