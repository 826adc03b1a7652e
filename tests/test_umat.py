import jax
jax.config.update("jax_enable_x64", True)
import logging

import numpy as np
import pytest

import jaxasp as asp
from jaxasp.umat import (
    column_major_to_matrix,
    fortran_to_python_string,
    isotropic_tangent,
    matrix_to_column_major,
    voigt_stress,
)


def _arguments(dfgrd1=np.eye(3), nstatv=2, nprops=2, props=(1.0, 1.0)):
    """Fortran style argument list of a 3D integration point."""
    ntens = 6
    return dict(
        STRESS=np.zeros(ntens),
        STATEV=np.zeros(nstatv),
        DDSDDE=np.zeros(ntens * ntens),
        SSE=np.zeros(1),
        SPD=np.zeros(1),
        SCD=np.zeros(1),
        RPL=np.zeros(1),
        DDSDDT=np.zeros(ntens),
        DRPLDE=np.zeros(ntens),
        DRPLDT=np.zeros(1),
        STRAN=np.zeros(ntens),
        DSTRAN=np.zeros(ntens),
        TIME=np.array([0.5, 2.0]),
        DTIME=0.1,
        TEMP=293.0,
        DTEMP=1.0,
        PREDEF=np.zeros(1),
        DPRED=np.zeros(1),
        CMNAME=b"AGGREGATE".ljust(80),
        NDI=3,
        NSHR=3,
        NTENS=ntens,
        NSTATV=nstatv,
        PROPS=np.asarray(props, dtype=float),
        NPROPS=nprops,
        COORDS=np.zeros(3),
        DROT=np.eye(3).ravel(order="F"),
        PNEWDT=np.ones(1),
        CELENT=1.0,
        DFGRD0=np.eye(3).ravel(order="F"),
        DFGRD1=np.asarray(dfgrd1, dtype=float).ravel(order="F"),
        NOEL=12,
        NPT=3,
        LAYER=1,
        KSPT=1,
        JSTEP=np.array([1, 1, 0, 0]),
        KINC=4,
    )


def test_column_major_conversions():
    matrix = np.arange(6.0).reshape(2, 3)
    buffer = np.ravel(matrix, order="F")
    np.testing.assert_array_equal(buffer, [0.0, 3.0, 1.0, 4.0, 2.0, 5.0])
    np.testing.assert_array_equal(column_major_to_matrix(buffer, 2, 3), matrix)

    out = np.zeros(6)
    matrix_to_column_major(matrix, out)
    np.testing.assert_array_equal(out, buffer)

    with pytest.raises(asp.ASPError, match="5 entries but 6"):
        column_major_to_matrix(np.zeros(5), 2, 3)


def test_fortran_strings():
    assert fortran_to_python_string(b"AGGREGATE" + b" " * 71) == "AGGREGATE"
    assert fortran_to_python_string(np.frombuffer(b"MAT-1   ", dtype=np.uint8)) == "MAT-1"
    assert fortran_to_python_string("x" * 90) == "x" * 80


def test_voigt_order():
    sigma = np.array([[1.0, 4.0, 5.0], [4.0, 2.0, 6.0], [5.0, 6.0, 3.0]])
    np.testing.assert_array_equal(voigt_stress(sigma, 3, 3), [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    np.testing.assert_array_equal(voigt_stress(sigma, 3, 1), [1.0, 2.0, 3.0, 4.0])


def test_isotropic_tangent():
    D = isotropic_tangent(2.0, 3.0, 3, 3)
    np.testing.assert_array_equal(np.diag(D), [8.0, 8.0, 8.0, 3.0, 3.0, 3.0])
    assert D[0, 1] == 2.0 and D[0, 3] == 0.0
    np.testing.assert_array_equal(D, D.T)


@pytest.mark.parametrize("nstatv, nprops, message", [(3, 2, "NSTATV"), (2, 1, "NPROPS")])
def test_argument_counts(nstatv, nprops, message):
    with pytest.raises(asp.ASPError, match=message):
        asp.abaqus_umat(**_arguments(nstatv=nstatv, nprops=nprops))


def test_stretched_point():
    F = np.diag([1.1, 0.95, 1.0])
    args = _arguments(dfgrd1=F, props=(2.0, 0.5))
    asp.abaqus_umat(**args)

    lam, mu = 2.0, 0.5
    E = 0.5 * (F.T @ F - np.eye(3))
    S = lam * np.trace(E) * np.eye(3) + 2.0 * mu * E
    J = np.linalg.det(F)
    sigma = F @ S @ F.T / J
    psi = 0.5 * lam * np.trace(E) ** 2 + mu * np.sum(E * E)
    V0 = 4.0 / 3.0 * np.pi

    np.testing.assert_allclose(args["STRESS"], [sigma[0, 0], sigma[1, 1], sigma[2, 2], 0.0, 0.0, 0.0], atol=1e-14)
    assert args["SSE"][0] == pytest.approx(psi / J)
    np.testing.assert_allclose(args["STATEV"], [psi * V0, J * V0])
    np.testing.assert_allclose(args["DDSDDE"].reshape(6, 6, order="F"), isotropic_tangent(lam, mu, 3, 3))
    assert args["PNEWDT"][0] == 1.0


def _failing(pnewdt):
    def model(args):
        args.pnewdt = pnewdt
        raise asp.ASPError("the overlap solver did not converge", function="solve_surface_point")

    return model


def test_failure_requests_a_smaller_increment(caplog):
    args = _arguments()
    with caplog.at_level(logging.WARNING, logger="jaxasp"):
        asp.abaqus_umat(**args, model=_failing(0.5))
    assert args["PNEWDT"][0] == 0.5
    np.testing.assert_array_equal(args["STRESS"], 0.0)
    assert "solve_surface_point: the overlap solver did not converge" in caplog.text


def test_failure_without_a_cut_is_fatal(caplog):
    args = _arguments()
    with caplog.at_level(logging.ERROR, logger="jaxasp"):
        with pytest.raises(RuntimeError, match="did not converge"):
            asp.abaqus_umat(**args, model=_failing(1.0))
    assert "AGGREGATE" in caplog.text
