"""
Doubly periodic spectral grid and initial conditions.

This module provides the spectral grid used by the multi-layer QG core:
wavenumber arrays in real-FFT layout, in-place forward and inverse
transforms between physical (nx, ny, nlayers) and spectral
(nkr, nl, nlayers) arrays, and Parseval sums over the half spectrum.

Layout:
    The real FFT is taken along x, so spectral arrays have shape
    (nx//2+1, ny, ...). Wavenumber arrays carry a trailing singleton
    axis so they broadcast against layered spectral arrays.
"""

import numpy as np

from .errors import ConfigurationError, ShapeMismatchError


def wavenumbers(nx, ny, Lx, Ly):
    """
    Compute wavenumber grids for the real-FFT-along-x layout.

    Args:
        nx (int): Number of grid points in x
        ny (int): Number of grid points in y
        Lx (float): Domain length in x
        Ly (float): Domain length in y

    Returns:
        tuple: (kr, l, KR, L, Krsq)
            - kr: 1D array of x wavenumbers (nx//2+1,) [rfft layout]
            - l: 1D array of y wavenumbers (ny,)
            - KR: 2D meshgrid of x wavenumbers (nx//2+1, ny)
            - L: 2D meshgrid of y wavenumbers (nx//2+1, ny)
            - Krsq: Squared magnitude |k|² (nx//2+1, ny)
    """
    kr = 2 * np.pi * np.fft.rfftfreq(nx, d=Lx / nx)     # (nx//2+1,)
    l = 2 * np.pi * np.fft.fftfreq(ny, d=Ly / ny)       # (ny,)
    KR, L = np.meshgrid(kr, l, indexing='ij')
    Krsq = KR**2 + L**2
    return kr, l, KR, L, Krsq


class SpectralGrid:
    """
    Doubly periodic grid on [0, Lx) x [0, Ly) with real-FFT transforms.

    Attributes:
        nx, ny (int): Physical grid size
        nkr, nl (int): Spectral grid size (nx//2+1, ny)
        Lx, Ly (float): Domain extents
        x, y (ndarray): 1D physical coordinates
        kr, l (ndarray): Wavenumbers shaped (nkr, 1, 1) and (1, nl, 1)
        Krsq, invKrsq (ndarray): |k|² and 1/|k|² shaped (nkr, nl, 1);
            invKrsq is zero at the zero wavenumber
        ikr, il (ndarray): Complex derivative factors i*kr and i*l
        dealias (bool): Whether nonlinear fluxes are 2/3-rule filtered
        dealias_mask (ndarray): 1.0 on retained modes, 0.0 elsewhere
    """

    def __init__(self, nx, ny, Lx=2.0 * np.pi, Ly=2.0 * np.pi, dealias=False):
        if int(nx) != nx or int(ny) != ny or nx <= 0 or ny <= 0:
            raise ConfigurationError(f"Grid dimensions must be positive integers, got nx={nx}, ny={ny}")
        if not (Lx > 0 and Ly > 0):
            raise ConfigurationError(f"Domain lengths must be positive, got Lx={Lx}, Ly={Ly}")

        self.nx, self.ny = int(nx), int(ny)
        self.Lx, self.Ly = float(Lx), float(Ly)
        self.nkr, self.nl = self.nx // 2 + 1, self.ny
        self.dealias = bool(dealias)

        self.x = np.arange(self.nx) * (self.Lx / self.nx)
        self.y = np.arange(self.ny) * (self.Ly / self.ny)

        kr, l, KR, L, Krsq = wavenumbers(self.nx, self.ny, self.Lx, self.Ly)
        self.kr = kr[:, None, None]
        self.l = l[None, :, None]
        self.Krsq = Krsq[:, :, None]
        with np.errstate(divide='ignore'):
            self.invKrsq = np.where(self.Krsq == 0.0, 0.0, 1.0 / self.Krsq)
        self.ikr = 1j * self.kr
        self.il = 1j * self.l

        # 2/3 rectangular dealiasing filter
        kr_max = (self.nx // 3) * (2 * np.pi / self.Lx)
        l_max = (self.ny // 3) * (2 * np.pi / self.Ly)
        keep = (np.abs(KR) <= kr_max) & (np.abs(L) <= l_max)
        self.dealias_mask = keep.astype(np.float64)[:, :, None]

        # rfft symmetry weight: double interior kr>0 modes
        weight = np.full(self.nkr, 2.0)
        weight[0] = 1.0
        if self.nx % 2 == 0:
            weight[-1] = 1.0  # Nyquist is real-valued
        self.rfft_weight = weight

    @property
    def area(self):
        """Domain area Lx*Ly."""
        return self.Lx * self.Ly

    def physical_shape(self, nlayers=None):
        if nlayers is None:
            return (self.nx, self.ny)
        return (self.nx, self.ny, nlayers)

    def spectral_shape(self, nlayers=None):
        if nlayers is None:
            return (self.nkr, self.nl)
        return (self.nkr, self.nl, nlayers)

    def meshgrid(self):
        """Return 2D physical coordinate arrays (X, Y) of shape (nx, ny)."""
        return np.meshgrid(self.x, self.y, indexing='ij')

    def fwdtransform(self, varh, var):
        """
        Forward real FFT of a physical array into a preallocated spectral array.

        Args:
            varh (ndarray): Output, complex (nkr, nl[, nlayers])
            var (ndarray): Input, real (nx, ny[, nlayers])
        """
        np.fft.rfftn(var, axes=(1, 0), out=varh)

    def invtransform(self, var, varh):
        """
        Inverse real FFT of a spectral array into a preallocated physical array.

        The input is left unmodified.

        Args:
            var (ndarray): Output, real (nx, ny[, nlayers])
            varh (ndarray): Input, complex (nkr, nl[, nlayers])
        """
        np.fft.irfftn(varh, s=(self.ny, self.nx), axes=(1, 0), out=var)

    def _weights_for(self, uh):
        if uh.shape[:2] != (self.nkr, self.nl):
            raise ShapeMismatchError(
                f"Spectral array has shape {uh.shape}, expected leading dims {(self.nkr, self.nl)}"
            )
        return self.rfft_weight.reshape((self.nkr,) + (1,) * (uh.ndim - 1))

    def parsevalsum(self, uh):
        """
        Domain integral of a real field from its half spectrum.

        Returns sum over the full spectrum of real(uh), scaled so that
        parsevalsum(|fh|²) equals the integral of f² over the domain.

        Args:
            uh (ndarray): Spectral array (nkr, nl) or (nkr, nl, nlayers)

        Returns:
            float or ndarray: One value per trailing index (per layer)
        """
        w = self._weights_for(uh)
        norm = self.area / (self.nx * self.ny) ** 2
        return norm * np.sum(w * np.real(uh), axis=(0, 1))

    def parsevalsum2(self, uh):
        """Domain integral of |u|² from its half spectrum uh."""
        return self.parsevalsum(np.abs(uh) ** 2)


def initial_condition(rng, grid, nlayers, alpha=1.0, power=2.0, scale=1.0, kmax=None):
    """
    Generate a random zero-mean PV field in physical space.

    The spectral coefficients are drawn from a complex Gaussian distribution
    with variance Var[q_hat(k)] = scale * (|k|² + alpha)^(-power), optionally
    truncated at |k| <= kmax, and transformed to grid space (which enforces
    the rfft reality conditions).

    Args:
        rng: NumPy random generator instance
        grid (SpectralGrid): Grid on which to generate the field
        nlayers (int): Number of layers
        alpha (float): Spectral roll-off parameter
        power (float): Power-law exponent for spectrum
        scale (float): Overall amplitude scaling
        kmax (float, optional): Largest retained wavenumber magnitude

    Returns:
        ndarray: Real PV field (nx, ny, nlayers) with zero domain mean per layer
    """
    K2 = grid.Krsq
    var_k = scale * np.power(K2 + alpha, -power)
    var_k = np.broadcast_to(var_k, grid.spectral_shape(nlayers))

    xi_real = rng.standard_normal(var_k.shape)
    xi_imag = rng.standard_normal(var_k.shape)
    qh = (xi_real + 1j * xi_imag) * np.sqrt(var_k / 2.0)

    if kmax is not None:
        qh[np.broadcast_to(K2 > kmax**2, qh.shape)] = 0.0

    # Enforce zero mean (k=0 mode)
    qh[0, 0, :] = 0.0

    # Scale to grid-point amplitudes of order sqrt(scale)
    qh *= grid.nx * grid.ny

    q = np.empty(grid.physical_shape(nlayers))
    grid.invtransform(q, qh)
    return q
