"""
Energy and enstrophy diagnostics for layered QG flows.

This module provides functions to compute:
- Layer kinetic energies and interface potential energies
- Layer enstrophies
- Isotropic kinetic-energy and enstrophy spectra of a single layer

All quantities are domain averages computed from the spectral fields of a
StateContainer with Parseval sums over the real-FFT half spectrum. The
state must be current, i.e. psih must be the inversion of qh, which holds
after set_pv(), update_vars() or compute_tendency().
"""

import numpy as np

from .errors import ConfigurationError


def energies(state, params, grid):
    """
    Kinetic energy of each layer and potential energy of each interface.

    KE_j = 1/(2A) sum |k|² |psih_j|² * H_j / sum(H)
    PE_j = 1/(2A) f0²/g'_j sum |psih_{j+1} - psih_j|²

    Args:
        state (StateContainer): Current model state
        params (Params): Model parameters
        grid (SpectralGrid): Spectral grid

    Returns:
        tuple: (KE, PE) with shapes (nlayers,) and (nlayers-1,)
    """
    A = grid.area
    psih = state.psih

    KE = grid.parsevalsum(grid.Krsq * np.abs(psih) ** 2) / (2 * A)
    KE = KE * params.H / np.sum(params.H)

    PE = np.zeros(params.nlayers - 1)
    for j in range(params.nlayers - 1):
        dpsih = psih[:, :, j + 1] - psih[:, :, j]
        PE[j] = params.f0**2 / params.gprime[j] * grid.parsevalsum2(dpsih) / (2 * A)

    return KE, PE


def enstrophies(state, params, grid):
    """
    Domain-averaged PV enstrophy 1/(2A) ∫ q_j² of each layer.

    Returns:
        ndarray: (nlayers,)
    """
    return grid.parsevalsum2(state.qh) / (2 * grid.area)


def compute_diagnostics(state, params, grid):
    """
    Compute the standard scalar diagnostics of the current state.

    Args:
        state (StateContainer): Current model state
        params (Params): Model parameters
        grid (SpectralGrid): Spectral grid

    Returns:
        dict: Dictionary containing:
            - 'kinetic_energy': Layer kinetic energies (nlayers,)
            - 'potential_energy': Interface potential energies (nlayers-1,)
            - 'enstrophy': Layer enstrophies (nlayers,)
            - 'total_energy': sum of all kinetic and potential energies
    """
    KE, PE = energies(state, params, grid)
    return {
        'kinetic_energy': KE,
        'potential_energy': PE,
        'enstrophy': enstrophies(state, params, grid),
        'total_energy': float(np.sum(KE) + np.sum(PE)),
    }


def compute_spectra(state, grid, layer=0):
    """
    Compute isotropic 1D kinetic-energy and enstrophy spectra of one layer.

    Uses shell-averaging in Fourier space: shell n collects the modes with
    floor(|k| / k0) == n, where k0 = 2π/Lx.

    Args:
        state (StateContainer): Current model state
        grid (SpectralGrid): Spectral grid
        layer (int): Layer index (0 is the top layer)

    Returns:
        tuple: (k_bins, E_k, Z_k)
            - k_bins: Physical wavenumber bins (rad/length)
            - E_k: Energy spectrum, sum(E_k) = 1/(2A) ∫ |u|² of the layer
            - Z_k: Enstrophy spectrum, sum(Z_k) = 1/(2A) ∫ q² of the layer

    Raises:
        ConfigurationError: If Lx != Ly
    """
    if abs(grid.Lx - grid.Ly) > 1e-12:
        raise ConfigurationError("Isotropic shell binning requires Lx == Ly")
    k0 = 2 * np.pi / grid.Lx
    N = grid.nx * grid.ny

    psih = state.psih[:, :, layer]
    qh = state.qh[:, :, layer]

    # rfft symmetry weight along kr
    weight = grid.rfft_weight[:, None]
    E_mode = 0.5 * grid.Krsq[:, :, 0] * np.abs(psih) ** 2 * weight / (N * N)
    Z_mode = 0.5 * np.abs(qh) ** 2 * weight / (N * N)

    # Shell indices (integer radius in index space)
    ix = np.fft.rfftfreq(grid.nx, d=1.0 / grid.nx)
    iy = np.fft.fftfreq(grid.ny, d=1.0 / grid.ny)
    IX, IY = np.meshgrid(ix, iy, indexing='ij')
    shell_idx = np.floor(np.sqrt(IX**2 + IY**2)).astype(int)

    mmax = shell_idx.max()
    Ek = np.bincount(shell_idx.ravel(), weights=E_mode.ravel(), minlength=mmax + 1)
    Zk = np.bincount(shell_idx.ravel(), weights=Z_mode.ravel(), minlength=mmax + 1)

    k_bins = np.arange(mmax + 1) * k0
    return k_bins, Ek, Zk
