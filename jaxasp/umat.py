# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Abaqus style UMAT entry point for the aggregate.

:func:`abaqus_umat` receives the argument list of the Fortran routine as
NumPy buffers: arrays in column-major (Fortran) storage and pass-by-reference
scalars as length one arrays. It converts them into a row-major
:class:`UmatArguments`, runs the material model and writes every output back
into the caller's storage.
"""

from __future__ import annotations

import logging

import numpy as np

from dataclasses import dataclass
from typing import Callable, Union

from .aggregate import AggregateGraph
from .assembly import assemble_local_particles
from .errors import ASPError, format_trace
from .state import AggregateState

logger = logging.getLogger(__name__)

N_STATE_VARIABLES = 2
N_MATERIAL_PARAMETERS = 2
SPATIAL_DIMENSIONS = 3
CMNAME_WIDTH = 80

_SHEAR_COMPONENTS = ((0, 1), (0, 2), (1, 2))


@dataclass(slots=True)
class UmatArguments:
    """
    Row-major view of the UMAT arguments.

    Field names follow the Abaqus documentation in lower case. Matrices are
    ``(rows, cols)`` NumPy arrays, pass-by-reference scalars are floats.
    """

    stress: np.ndarray
    statev: np.ndarray
    ddsdde: np.ndarray
    sse: float
    spd: float
    scd: float
    rpl: float
    ddsddt: np.ndarray
    drplde: np.ndarray
    drpldt: float
    stran: np.ndarray
    dstran: np.ndarray
    time: np.ndarray
    dtime: float
    temp: float
    dtemp: float
    predef: np.ndarray
    dpred: np.ndarray
    cmname: str
    ndi: int
    nshr: int
    ntens: int
    nstatv: int
    props: np.ndarray
    nprops: int
    coords: np.ndarray
    drot: np.ndarray
    pnewdt: float
    celent: float
    dfgrd0: np.ndarray
    dfgrd1: np.ndarray
    noel: int
    npt: int
    layer: int
    kspt: int
    jstep: np.ndarray
    kinc: int


def column_major_to_matrix(buffer: np.ndarray, rows: int, cols: int) -> np.ndarray:
    """Copy of a column-major buffer as a ``(rows, cols)`` array."""
    buffer = np.asarray(buffer, dtype=float)
    if buffer.shape == (rows, cols):
        return buffer.copy()
    flat = np.ravel(buffer)
    if flat.size != rows * cols:
        raise ASPError(f"buffer has {flat.size} entries but {rows * cols} were expected")
    return np.reshape(flat, (rows, cols), order="F").copy()


def matrix_to_column_major(matrix: np.ndarray, buffer: np.ndarray) -> None:
    """Write ``matrix`` into ``buffer`` in column-major order, in place."""
    if buffer.ndim == 1:
        buffer[:] = np.ravel(matrix, order="F")
    else:
        buffer[...] = matrix


def fortran_to_python_string(name: Union[str, bytes, np.ndarray], width: int = CMNAME_WIDTH) -> str:
    """Trim a fixed width, blank padded Fortran character variable."""
    if isinstance(name, np.ndarray):
        name = name.tobytes()
    if isinstance(name, bytes):
        name = name.decode("ascii", errors="replace")
    return name[:width].rstrip(" \x00")


def voigt_stress(sigma: np.ndarray, ndi: int, nshr: int) -> np.ndarray:
    """Abaqus ordering: ``ndi`` direct components then ``nshr`` shears (12, 13, 23)."""
    direct = [sigma[a, a] for a in range(ndi)]
    shear = [sigma[a, b] for a, b in _SHEAR_COMPONENTS[:nshr]]
    return np.asarray(direct + shear)


def isotropic_tangent(lam: float, mu: float, ndi: int, nshr: int) -> np.ndarray:
    """Elastic stiffness with engineering shear strains."""
    ntens = ndi + nshr
    D = np.zeros((ntens, ntens))
    D[:ndi, :ndi] = lam
    D[np.arange(ndi), np.arange(ndi)] += 2.0 * mu
    D[np.arange(ndi, ntens), np.arange(ndi, ntens)] = mu
    return D


def material_model(args: UmatArguments) -> None:
    """
    Evaluate a single linear elastic particle driven by the deformation
    gradient of the integration point.

    ``props`` holds the Lamé parameters. On exit ``stress`` holds the micro
    Cauchy stress, ``ddsdde`` the isotropic tangent, ``sse`` the energy
    density and ``statev`` the particle energy and current volume.

    Raises
    ------
    ASPError
        If the aggregate cannot be evaluated.
    """
    if args.ntens != args.ndi + args.nshr or args.ndi > SPATIAL_DIMENSIONS:
        raise ASPError(
            f"inconsistent tensor sizes: NTENS={args.ntens}, NDI={args.ndi}, NSHR={args.nshr}"
        )

    state = AggregateState.create(
        radius=1.0,
        deformation_gradient=args.dfgrd1,
        previous_deformation_gradient=args.dfgrd0,
        micro_deformation=args.dfgrd1,
        previous_micro_deformation=args.dfgrd0,
        particle_parameters=args.props,
        previous_state_variables=args.statev,
        previous_time=float(args.time[1]),
        delta_time=args.dtime,
        temperature=args.temp + args.dtemp,
        previous_temperature=args.temp,
    )
    response = assemble_local_particles(AggregateGraph(state))

    lam, mu = (float(p) for p in args.props)
    args.stress = voigt_stress(response.micro_cauchy_stresses[0], args.ndi, args.nshr)
    args.ddsdde = isotropic_tangent(lam, mu, args.ndi, args.nshr)
    args.sse = float(response.energy_densities[0])
    args.statev = np.array([response.energies[0], response.current_volumes[0]])


def abaqus_umat(
    STRESS, STATEV, DDSDDE, SSE, SPD, SCD, RPL, DDSDDT, DRPLDE, DRPLDT,
    STRAN, DSTRAN, TIME, DTIME, TEMP, DTEMP, PREDEF, DPRED, CMNAME,
    NDI, NSHR, NTENS, NSTATV, PROPS, NPROPS, COORDS, DROT, PNEWDT,
    CELENT, DFGRD0, DFGRD1, NOEL, NPT, LAYER, KSPT, JSTEP, KINC,
    model: Callable[[UmatArguments], None] = material_model,
) -> None:
    """
    UMAT with the Abaqus argument list.

    In/out arrays are modified in place. ``SSE``, ``SPD``, ``SCD``, ``RPL``,
    ``DRPLDT`` and ``PNEWDT`` are length one arrays so that the model can
    write them back.

    Raises
    ------
    ASPError
        If ``NSTATV`` or ``NPROPS`` differ from the required two.
    RuntimeError
        If the model fails and ``PNEWDT`` was left at one. When the model asks
        for a smaller increment the failure is logged and the host is
        expected to cut the time step.
    """
    nstatv, nprops = int(NSTATV), int(NPROPS)
    if nstatv != N_STATE_VARIABLES:
        raise ASPError(
            f"NSTATV is {nstatv} but {N_STATE_VARIABLES} state variables are required"
        )
    if nprops != N_MATERIAL_PARAMETERS:
        raise ASPError(
            f"NPROPS is {nprops} but {N_MATERIAL_PARAMETERS} material parameters are required"
        )

    ntens = int(NTENS)
    args = UmatArguments(
        stress=np.array(STRESS, dtype=float),
        statev=np.array(STATEV, dtype=float),
        ddsdde=column_major_to_matrix(DDSDDE, ntens, ntens),
        sse=float(SSE[0]),
        spd=float(SPD[0]),
        scd=float(SCD[0]),
        rpl=float(RPL[0]),
        ddsddt=np.array(DDSDDT, dtype=float),
        drplde=np.array(DRPLDE, dtype=float),
        drpldt=float(DRPLDT[0]),
        stran=np.array(STRAN, dtype=float),
        dstran=np.array(DSTRAN, dtype=float),
        time=np.array(TIME, dtype=float),
        dtime=float(DTIME),
        temp=float(TEMP),
        dtemp=float(DTEMP),
        predef=np.array(PREDEF, dtype=float),
        dpred=np.array(DPRED, dtype=float),
        cmname=fortran_to_python_string(CMNAME),
        ndi=int(NDI),
        nshr=int(NSHR),
        ntens=ntens,
        nstatv=nstatv,
        props=np.array(PROPS, dtype=float),
        nprops=nprops,
        coords=np.array(COORDS, dtype=float),
        drot=column_major_to_matrix(DROT, SPATIAL_DIMENSIONS, SPATIAL_DIMENSIONS),
        pnewdt=float(PNEWDT[0]),
        celent=float(CELENT),
        dfgrd0=column_major_to_matrix(DFGRD0, SPATIAL_DIMENSIONS, SPATIAL_DIMENSIONS),
        dfgrd1=column_major_to_matrix(DFGRD1, SPATIAL_DIMENSIONS, SPATIAL_DIMENSIONS),
        noel=int(NOEL),
        npt=int(NPT),
        layer=int(LAYER),
        kspt=int(KSPT),
        jstep=np.array(JSTEP),
        kinc=int(KINC),
    )

    try:
        model(args)
    except ASPError as err:
        PNEWDT[0] = args.pnewdt
        trace = format_trace(err)
        if np.isclose(args.pnewdt, 1.0, rtol=1e-6, atol=1e-6):
            logger.error("material %s failed at element %d, point %d:\n%s", args.cmname, args.noel, args.npt, trace)
            raise RuntimeError(trace) from err
        logger.warning("material %s requests a smaller increment (PNEWDT=%g):\n%s", args.cmname, args.pnewdt, trace)
        return

    STRESS[:] = args.stress
    STATEV[:] = args.statev
    matrix_to_column_major(args.ddsdde, DDSDDE)
    SSE[0], SPD[0], SCD[0], RPL[0] = args.sse, args.spd, args.scd, args.rpl
    DDSDDT[:] = args.ddsddt
    DRPLDE[:] = args.drplde
    DRPLDT[0] = args.drpldt
    PNEWDT[0] = args.pnewdt


__all__ = [
    "N_STATE_VARIABLES",
    "N_MATERIAL_PARAMETERS",
    "UmatArguments",
    "column_major_to_matrix",
    "matrix_to_column_major",
    "fortran_to_python_string",
    "voigt_stress",
    "isotropic_tangent",
    "material_model",
    "abaqus_umat",
]
