"""
Preallocated model state buffers.

A StateContainer holds the physical and spectral fields of a layered QG
model. The buffers are allocated once by build_state() and then
overwritten in place by every tendency evaluation.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .errors import ShapeMismatchError
from .operators import streamfunction_from_pv


@dataclass(eq=False)
class StateContainer:
    """
    Physical and spectral fields of a layered QG model.

    Attributes:
        q, psi, u, v: Physical PV, streamfunction and velocities (nx, ny, nlayers)
        qh, psih, uh, vh: Spectral counterparts (nkr, nl, nlayers)
        Fqh: Spectral PV forcing buffer, or None for unforced problems
    """
    q: np.ndarray
    psi: np.ndarray
    u: np.ndarray
    v: np.ndarray
    qh: np.ndarray
    psih: np.ndarray
    uh: np.ndarray
    vh: np.ndarray
    Fqh: Optional[np.ndarray] = None

    @property
    def nlayers(self):
        return self.q.shape[-1]


def build_state(grid, params):
    """
    Allocate a zeroed StateContainer for the given grid and parameters.

    Args:
        grid (SpectralGrid): Spectral grid
        params (Params): Model parameters

    Returns:
        StateContainer: State with a forcing buffer only if params.is_forced
    """
    phys = grid.physical_shape(params.nlayers)
    spec = grid.spectral_shape(params.nlayers)

    def real():
        return np.zeros(phys, dtype=np.float64)

    def cplx():
        return np.zeros(spec, dtype=np.complex128)

    return StateContainer(
        q=real(), psi=real(), u=real(), v=real(),
        qh=cplx(), psih=cplx(), uh=cplx(), vh=cplx(),
        Fqh=cplx() if params.is_forced else None,
    )


def update_vars(state, params, grid, sol=None):
    """
    Refresh every derived field of the state from its spectral PV.

    psih is obtained by inversion, then uh = -i l psih and vh = i kr psih,
    and all four fields are transformed to grid space. The imposed flow
    U + u(y) is not included in state.u.

    Args:
        state (StateContainer): State to update in place
        params (Params): Model parameters
        grid (SpectralGrid): Spectral grid
        sol (ndarray, optional): Spectral PV to copy into state.qh first
    """
    if sol is not None:
        if sol.shape != state.qh.shape:
            raise ShapeMismatchError(f"sol has shape {sol.shape}, expected {state.qh.shape}")
        np.copyto(state.qh, sol)

    streamfunction_from_pv(state.psih, state.qh, params.operator, grid)
    np.multiply(-grid.il, state.psih, out=state.uh)
    np.multiply(grid.ikr, state.psih, out=state.vh)

    grid.invtransform(state.q, state.qh)
    grid.invtransform(state.psi, state.psih)
    grid.invtransform(state.u, state.uh)
    grid.invtransform(state.v, state.vh)


def set_pv(state, q, params, grid):
    """
    Set the state from a physical PV field.

    The domain-mean PV of every layer is removed.

    Args:
        state (StateContainer): State to update in place
        q (array_like): Physical PV (nx, ny, nlayers)
        params (Params): Model parameters
        grid (SpectralGrid): Spectral grid
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != state.q.shape:
        raise ShapeMismatchError(f"q has shape {q.shape}, expected {state.q.shape}")
    grid.fwdtransform(state.qh, q)
    state.qh[0, 0, :] = 0.0
    update_vars(state, params, grid)
