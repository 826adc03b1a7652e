"""
Two Particle Aggregate
----------------------------------------

This example walks through the evaluation of a pair of overlapping
particles: building an :py:class:`jaxasp.state.AggregateState`, reading
single quantities from the :py:class:`jaxasp.aggregate.AggregateGraph` and
assembling the full response.
"""

# %%
# State Creation
# ~~~~~~~~~~~~~~~~~~~~~
# Two unit spheres whose centroids are ``1.5`` apart along ``x``. A single
# centroid vector is expanded to the ``(2, 2, 3)`` table of a pair.

import numpy as np
import jaxasp as asp

asp.setup_logging()

state = asp.AggregateState.create(
    radius=[1.0, 1.0],
    reference_distance_vectors=[1.5, 0.0, 0.0],
    deformation_gradient=np.diag([1.02, 1.0, 1.0]),
    micro_deformation=np.diag([1.02, 1.0, 1.0]),
)
print(f"Number of particles: {state.num_particles}")
print(f"Reference distance vectors:\n{state.reference_distance_vectors}")

# %%
# Reading Quantities
# ~~~~~~~~~~~~~~~~~~~~~
# Quantities are attributes of the graph. They are computed the first time
# they are read and cached until the scope they belong to is reset.

graph = asp.AggregateGraph(state)
plus_x = int(np.argmax(np.asarray(graph.unit_sphere.points)[:, 0]))
graph.local_index, graph.surface_index, graph.nonlocal_index = 0, plus_x, 1

print(f"Current distance: {graph.current_distance_vector}")
print(f"Overlap: {graph.particle_pair_overlap[plus_x]}")
print(f"Overlap energy density: {graph.surface_overlap_energy_density[plus_x]}")

# %%
# Moving to another surface point requires a reset of the surface point
# scope, which also clears the interaction pair.

graph.reset_surface_point()
graph.surface_index = int(np.argmin(np.asarray(graph.unit_sphere.points)[:, 0]))
print(f"Adhesion energy density at -x: {graph.surface_adhesion_energy_density}")

# %%
# Assembly
# ~~~~~~~~~~~~~~~~~~~~~
# :py:func:`jaxasp.assembly.assemble` visits every local particle, surface
# point and non-local particle and stores the results in dense arrays.

response = asp.assemble(asp.AggregateGraph(state))
print(f"Particle energies: {response.local.energies}")
print(f"Adhesion energy densities: {response.surface.adhesion_energy_densities.shape}")

asp.write_surfaces(state, response, "aggregate.vtu", centroids=[[0.0, 0.0, 0.0], [1.53, 0.0, 0.0]])
