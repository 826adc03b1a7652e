# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.

from setuptools import setup, find_packages

_test_deps = [
    "pytest",
]

setup(
    name="JaxASP",
    version="0.1",
    license="BSD-3",
    description="Micromorphic response of aggregates of deformable spherical particles in JAX",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*", "examples")),
    python_requires=">=3.10",
    install_requires=[
        "jax",
        "vtk",
        "numpy",
    ],
    extras_require={
        # Install these to run the test suite: pip install JaxASP[test]
        "test": _test_deps,
        # Optional JAX backends
        "cuda": ["jax[cuda]"],
        "cuda12": ["jax[cuda12]"],
        "cuda13": ["jax[cuda13]"],
        "tpu": ["jax[tpu]"],
    },
)
