"""
Pseudo-spectral PV tendency of the layered QG equations.

The integrator advances the spectral PV qh under

    d(qh)/dt = L qh + N(qh, t)

where L is the diagonal linear coefficient returned by linear_coefficient()
and N is evaluated in place by compute_tendency() (or by
compute_linear_tendency() for the equations linearized about the imposed
flow).

Evaluation of N, with u including the imposed flow U + u(y):
1. qh <- sol, psih <- invS qh
2. uh = -i l psih, vh = i kr psih, transformed to grid space
3. N = -F[u Qx] - F[v Qy]
4. N -= i kr F[u q] + i l F[v q]
5. N[bottom] += mu |k|² psih[bottom] (multi-layer only)
6. N += forcing

The state buffers double as scratch space: after a call, state.qh and
state.psih hold the inverted input, while the physical fields and
uh, vh hold intermediate products. Call state.update_vars() for a
consistent set of derived fields.
"""

import numpy as np

from .operators import streamfunction_from_pv


def _velocities(state, params, grid):
    """Steps 1-2 without the copy: invert and build grid-space velocities."""
    streamfunction_from_pv(state.psih, state.qh, params.operator, grid)
    np.multiply(grid.il, state.psih, out=state.uh)
    np.negative(state.uh, out=state.uh)
    np.multiply(grid.ikr, state.psih, out=state.vh)
    grid.invtransform(state.u, state.uh)
    grid.invtransform(state.v, state.vh)


def _background_advection(N, state, params, grid):
    """N = -F[u Qx] - F[v Qy], using q, uh, vh as scratch."""
    np.multiply(state.u, params.Qx, out=state.q)
    grid.fwdtransform(state.uh, state.q)
    np.negative(state.uh, out=N)

    np.multiply(state.v, params.Qy, out=state.q)
    grid.fwdtransform(state.vh, state.q)
    N -= state.vh


def _drag_and_forcing(N, sol, t, clock, state, params, grid):
    if not params.is_single_layer:
        # vh is free scratch at this point
        drag = state.vh[:, :, -1]
        np.multiply(params.drag, state.psih[:, :, -1], out=drag)
        N[:, :, -1] += drag

    if state.Fqh is not None:
        params.forcing(state.Fqh, sol, t, clock, state, params, grid)
        N += state.Fqh


def compute_tendency(N, sol, t, clock, state, params, grid):
    """
    Evaluate the nonlinear PV tendency in place.

    Args:
        N (ndarray): Output tendency (nkr, nl, nlayers), complex; must not alias sol
        sol (ndarray): Spectral PV (nkr, nl, nlayers), complex; not modified
        t (float): Current time
        clock: Integrator clock, passed through to the forcing
        state (StateContainer): Preallocated work buffers
        params (Params): Model parameters
        grid (SpectralGrid): Spectral grid
    """
    np.copyto(state.qh, sol)
    _velocities(state, params, grid)

    state.u += params.Ubg
    _background_advection(N, state, params, grid)

    # Advective flux divergence i kr F[u q] + i l F[v q]
    grid.invtransform(state.q, state.qh)
    state.u *= state.q
    state.v *= state.q
    grid.fwdtransform(state.uh, state.u)
    grid.fwdtransform(state.vh, state.v)
    state.uh *= grid.ikr
    state.vh *= grid.il
    state.uh += state.vh
    if grid.dealias:
        state.uh *= grid.dealias_mask
    N -= state.uh

    _drag_and_forcing(N, sol, t, clock, state, params, grid)


def compute_linear_tendency(N, sol, t, clock, state, params, grid):
    """
    Evaluate the PV tendency linearized about the imposed flow.

    The total velocity U + u(y) + u advects the background gradients
    Qx, Qy and the perturbation PV is advected by the imposed flow
    U + u(y). Perturbation self-advection is dropped. Without forcing the
    result is affine in sol: N(0) = -F[(U + u(y)) Qx] is the same
    background-on-background term the nonlinear tendency carries.

    Args:
        N (ndarray): Output tendency (nkr, nl, nlayers), complex; must not alias sol
        sol (ndarray): Spectral PV (nkr, nl, nlayers), complex; not modified
        t (float): Current time
        clock: Integrator clock, passed through to the forcing
        state (StateContainer): Preallocated work buffers
        params (Params): Model parameters
        grid (SpectralGrid): Spectral grid
    """
    np.copyto(state.qh, sol)
    _velocities(state, params, grid)

    state.u += params.Ubg
    _background_advection(N, state, params, grid)

    # -d/dx [(U + u(y)) q]
    grid.invtransform(state.q, state.qh)
    np.multiply(params.Ubg, state.q, out=state.u)
    grid.fwdtransform(state.uh, state.u)
    state.uh *= grid.ikr
    N -= state.uh

    _drag_and_forcing(N, sol, t, clock, state, params, grid)


def linear_coefficient(params, grid):
    """
    Diagonal linear coefficient L of d(qh)/dt = L qh + N.

    L = -nu |k|^(2 nnu) for every layer. A single layer also folds its
    linear drag into L (L = -mu - nu |k|^(2 nnu)); layered models apply
    bottom drag inside the tendency instead. L vanishes at k = 0.

    Args:
        params (Params): Model parameters
        grid (SpectralGrid): Spectral grid

    Returns:
        ndarray: Real coefficient (nkr, nl, nlayers)
    """
    L = np.empty(grid.spectral_shape(params.nlayers))
    L[...] = -params.nu * grid.Krsq ** params.nnu
    if params.is_single_layer:
        L -= params.mu
    L[0, 0, :] = 0.0
    return L
