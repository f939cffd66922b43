"""
PV forcing generators for layered QG simulations.

A forcing generator is any object with a single method

    generator(out, sol, t, clock, state, params, grid)

that fills `out` (complex, (nkr, nl, nlayers)) with a spectral PV forcing
increment. This module provides:
1. ZeroForcing (the default; unforced problems carry no forcing buffer)
2. StochasticForcing: band-limited random forcing that is either white
   noise (δ-correlated in time) or an Ornstein-Uhlenbeck (OU) process
   (finite correlation time)

Stochastic forcing never projects onto the zero wavenumber, so the
domain-mean PV stays zero.
"""

import abc

import numpy as np

from .errors import ConfigurationError


def build_forcing_mask(grid, kmin, kmax):
    """
    Create a boolean mask for band-limited forcing in spectral space.

    Args:
        grid (SpectralGrid): Spectral grid
        kmin (float): Minimum forced wavenumber (physical units)
        kmax (float): Maximum forced wavenumber (physical units)

    Returns:
        ndarray: Boolean mask (nkr, nl), True for wavenumbers in [kmin, kmax],
            with k=0 excluded to preserve zero mean PV.
    """
    K = np.sqrt(grid.Krsq[:, :, 0])
    mask = (K >= kmin) & (K <= kmax)
    mask[0, 0] = False  # Exclude k=0 to maintain zero mean
    return mask


def enforce_reality(fh, even_nx):
    """
    Make a half spectrum the transform of a real field, in place.

    The kr=0 column (and the kr=nx/2 column when nx is even) of a real
    field's rfft satisfies fh[l] = conj(fh[-l]). Both columns are replaced
    by their Hermitian part.

    Args:
        fh (ndarray): Spectral field (nkr, nl, ...), modified in place
        even_nx (bool): Whether the grid has an even number of points in x
    """
    nl = fh.shape[1]
    mirror = (-np.arange(nl)) % nl
    columns = (0, -1) if even_nx and fh.shape[0] > 1 else (0,)
    for i in columns:
        col = fh[i]
        col += np.conj(col[mirror])
        col *= 0.5


class ForcingGenerator(abc.ABC):
    """Interface of a spectral PV forcing generator."""

    @abc.abstractmethod
    def __call__(self, out, sol, t, clock, state, params, grid):
        """
        Fill `out` with the spectral PV forcing at time t.

        Args:
            out (ndarray): Output buffer (nkr, nl, nlayers), complex
            sol (ndarray): Current spectral PV (read-only)
            t (float): Current time
            clock: Integrator clock (provides dt)
            state (StateContainer): Model state buffers
            params (Params): Model parameters
            grid (SpectralGrid): Spectral grid
        """


class ZeroForcing(ForcingGenerator):
    """Forcing generator that contributes nothing."""

    def __call__(self, out, sol, t, clock, state, params, grid):
        out.fill(0.0)

    def __repr__(self):
        return "ZeroForcing()"


class StochasticForcing(ForcingGenerator):
    """
    Band-limited stochastic PV forcing.

    The forcing is normalized so that its RMS amplitude in grid space is
    approximately sigma, independent of grid resolution and forcing band
    width.

    Args:
        grid (SpectralGrid): Spectral grid
        nlayers (int): Number of layers of the model
        kmin (float): Minimum forced wavenumber (physical units)
        kmax (float): Maximum forced wavenumber (physical units)
        sigma (float): Target RMS forcing amplitude in grid space
        rng: NumPy random generator
        stype (str): "white" for white-in-time or "ou" for Ornstein-Uhlenbeck
        tau (float): Correlation time for OU forcing (ignored for white)
        layers (tuple): Indices of the forced layers (default: top layer)

    Notes:
        - White noise scales as 1/sqrt(dt) so that the injected variance
          per unit time is independent of the time step
        - OU uses the exact update a(t+dt) = e^(-dt/τ) a(t) + ξ √(1 - e^(-2dt/τ))
        - Reality conditions are enforced on the kr=0 and Nyquist columns
        - A new realisation is drawn only at the first stage of a step
          (t == clock.t); the remaining stages reuse it
    """

    def __init__(self, grid, nlayers, kmin, kmax, sigma, rng, stype="white", tau=0.5, layers=(0,)):
        if stype not in ("white", "ou"):
            raise ConfigurationError(f"Unsupported forcing type '{stype}'")
        if stype == "ou" and tau <= 0:
            raise ConfigurationError("tau must be > 0 for OU forcing")
        if sigma <= 0:
            raise ConfigurationError("Forcing amplitude sigma must be positive")
        layers = tuple(int(j) for j in layers)
        if not layers or any(j < 0 or j >= nlayers for j in layers):
            raise ConfigurationError(f"Forced layers {layers} out of range for nlayers={nlayers}")

        self.mask = build_forcing_mask(grid, kmin, kmax)
        if not np.any(self.mask):
            raise ConfigurationError(f"Forcing band [{kmin}, {kmax}] contains no modes")

        self.rng = rng
        self.stype = stype
        self.tau = float(tau)
        self.layers = layers

        # Effective number of forced modes (accounting for rfft symmetry)
        weight = np.broadcast_to(grid.rfft_weight[:, None], self.mask.shape)
        M_eff = float(np.sum(weight[self.mask]))

        # Spectral amplitude to achieve ~sigma RMS in grid space
        self.amplitude = (sigma * grid.nx * grid.ny) / np.sqrt(max(M_eff, 1.0))

        shape = grid.spectral_shape(len(layers))
        self._ou_state = np.zeros(shape, dtype=np.complex128)
        self._noise = np.zeros(shape, dtype=np.complex128)
        self._current = self._ou_state
        self._even_nx = grid.nx % 2 == 0

    def _draw(self, s):
        shape = self._noise.shape
        self._noise.real = self.rng.standard_normal(shape)
        self._noise.imag = self.rng.standard_normal(shape)
        self._noise *= s / np.sqrt(2.0)
        self._noise[~self.mask] = 0.0
        return self._noise

    def _advance(self, dt):
        if self.stype == "white":
            # White-in-time: f(t) = ξ(t) / √dt
            fh = self._draw(self.amplitude / np.sqrt(dt))
        else:
            e = np.exp(-dt / self.tau)
            s = self.amplitude * np.sqrt(max(0.0, 1.0 - e * e))
            self._ou_state *= e
            self._ou_state += self._draw(s)
            fh = self._ou_state

        enforce_reality(fh, self._even_nx)
        fh[0, 0, :] = 0.0
        self._current = fh

    def __call__(self, out, sol, t, clock, state, params, grid):
        if clock is None or not hasattr(clock, "dt") or not hasattr(clock, "t"):
            raise ConfigurationError("StochasticForcing needs an integrator clock with t and dt")

        # New realisation at the start of each step; substeps reuse it
        if t == clock.t:
            self._advance(max(float(clock.dt), 1e-12))

        out.fill(0.0)
        out[:, :, list(self.layers)] = self._current
