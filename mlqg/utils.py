"""
Flow diagnostics used for monitoring and time-step control.

This module provides helper functions for:
- Maximum and RMS velocities of a layered flow
- CFL number of a time step
"""

import numpy as np


def compute_max_velocity(ux_grid, uy_grid):
    """
    Compute maximum velocity magnitude from grid data.

    Args:
        ux_grid (ndarray): x-velocity in physical space
        uy_grid (ndarray): y-velocity in physical space

    Returns:
        float: Maximum velocity magnitude |u|_max
    """
    return float(np.sqrt(np.max(ux_grid * ux_grid + uy_grid * uy_grid)))


def rms_velocity(ux_grid, uy_grid):
    """
    Compute the RMS speed √(<|u|²>) of each layer.

    Args:
        ux_grid (ndarray): x-velocity (nx, ny, nlayers)
        uy_grid (ndarray): y-velocity (nx, ny, nlayers)

    Returns:
        ndarray: RMS speed per layer (nlayers,)
    """
    return np.sqrt(np.mean(ux_grid**2 + uy_grid**2, axis=(0, 1)))


def cfl_number(state, params, grid, dt):
    """
    Advective CFL number of a time step.

    CFL = dt * max(|u + U + u(y)| / dx + |v| / dy)

    Args:
        state (StateContainer): State with current grid-space velocities
            (as left by update_vars)
        params (Params): Model parameters (for the imposed flow)
        grid (SpectralGrid): Spectral grid
        dt (float): Time step

    Returns:
        float: CFL number
    """
    dx = grid.Lx / grid.nx
    dy = grid.Ly / grid.ny
    u_total = np.abs(state.u + params.Ubg)
    return float(dt * np.max(u_total / dx + np.abs(state.v) / dy))
