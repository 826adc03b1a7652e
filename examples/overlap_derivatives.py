"""
Overlap Sensitivities
----------------------------------------

The overlap of a surface point with a non-local particle is the solution of
a small constrained problem. This example shows how to obtain it together
with its derivatives up to third order and checks one of them against a
finite difference.
"""

# %%
# The Overlap Solver
# ~~~~~~~~~~~~~~~~~~~~~
# A target point ``xi_t = (0.1, 0, 0)`` inside a unit sphere overlaps it by
# ``(0.9, 0, 0)``.

import numpy as np
import jaxasp as asp

d = asp.overlap_derivatives(np.eye(3), [0.1, 0.0, 0.0], 1.0, order=1)
print(f"Overlap: {d.value}")
print(f"d overlap / d R: {d.jacobian('R_nl')[:, 0]}")

# %%
# Solver settings control the Newton iteration.

settings = asp.OverlapSolverSettings(tola=1e-12, tolr=0.0, max_iteration=30)
solution = asp.solve_surface_point(np.eye(3), [0.1, 0.0, 0.0], 1.0, settings)
print(f"Surface point {solution.Xi} found in {solution.iterations} iterations")

# %%
# Particle Overlap
# ~~~~~~~~~~~~~~~~~~~~~
# The particle level functions chain the solver sensitivities to the
# deformation measures of the pair.

F = np.eye(3) + 0.01 * np.arange(9.0).reshape(3, 3)
chi = np.eye(3)
grad_chi = np.zeros((3, 3, 3))
Xi_1, dX = np.array([1.0, 0.0, 0.0]), np.array([1.5, 0.0, 0.0])

d = asp.particle_overlap_derivatives(Xi_1, dX, 1.0, F, chi, grad_chi, order=3, settings=settings)
print(f"d3 overlap / dF dF dXi_1 has shape {d.third_derivative('F', 'F', 'Xi_1').shape}")

# %%
# Finite Difference Check
# ~~~~~~~~~~~~~~~~~~~~~~~~
h = 1e-6
step = np.zeros(3)
step[0] = h
fd = (
    asp.compute_particle_overlap(Xi_1, dX + step, 1.0, F, chi, grad_chi, settings)
    - asp.compute_particle_overlap(Xi_1, dX - step, 1.0, F, chi, grad_chi, settings)
) / (2 * h)
print(f"Analytic: {d.jacobian('dX')[:, 0]}")
print(f"Finite difference: {fd}")
