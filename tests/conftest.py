"""Shared test fixtures for mlqg."""

from __future__ import annotations

import numpy as np
import pytest

from mlqg import domain, params


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(42)


@pytest.fixture
def grid():
    """32x32 grid on a 2π-periodic square."""
    return domain.SpectralGrid(32, 32)


@pytest.fixture
def single_layer(grid):
    """One layer on a beta-plane, no dissipation."""
    return params.build_params(1, 1.0, 1.0, 1.0, [1.0], [1.0], None, None, None,
                               0.0, 0.0, 1, grid)


@pytest.fixture
def two_layer(grid):
    """Two equal layers with Fp = Fm = 1 on a beta-plane."""
    return params.build_params(2, 1.0, 1.0, 1.0, [1.0, 2.0], [1.0, 1.0], None, None, None,
                               0.0, 0.0, 1, grid)


@pytest.fixture
def derivative():
    """FFT derivative of a physical (nx, ny, ...) field along x (axis 0) or y (axis 1)."""
    def _derivative(f, L, axis):
        n = f.shape[axis]
        k = 2 * np.pi * np.fft.fftfreq(n, d=L / n)
        shape = [1] * f.ndim
        shape[axis] = n
        fh = np.fft.fft(f, axis=axis) * (1j * k.reshape(shape))
        return np.real(np.fft.ifft(fh, axis=axis))
    return _derivative


@pytest.fixture
def band_limited_pv(rng):
    """Random zero-mean PV with |k| <= 5 (products stay alias free on 32²)."""
    def _pv(grid, nlayers, kmax=5.0, scale=1.0):
        return domain.initial_condition(rng, grid, nlayers, alpha=1.0, power=1.0,
                                        scale=scale, kmax=kmax)
    return _pv
