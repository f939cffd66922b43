"""Tests for the spectral grid, transforms and initial conditions."""

from __future__ import annotations

import numpy as np
import pytest

from mlqg.domain import SpectralGrid, initial_condition, wavenumbers
from mlqg.errors import ConfigurationError, ShapeMismatchError


class TestWavenumbers:
    """Test wavenumber arrays in real-FFT layout."""

    def test_values_on_2pi_domain(self):
        kr, l, KR, L, Krsq = wavenumbers(8, 6, 2 * np.pi, 2 * np.pi)
        np.testing.assert_allclose(kr, [0, 1, 2, 3, 4])
        np.testing.assert_allclose(l, [0, 1, 2, -3, -2, -1])
        assert KR.shape == L.shape == Krsq.shape == (5, 6)
        np.testing.assert_allclose(Krsq, KR**2 + L**2)

    def test_scaled_domain(self):
        kr, l, *_ = wavenumbers(4, 4, 4 * np.pi, np.pi)
        np.testing.assert_allclose(kr, [0, 0.5, 1.0])
        np.testing.assert_allclose(l, [0, 2, -4, -2])

    def test_grid_attributes(self, grid):
        assert (grid.nkr, grid.nl) == (17, 32)
        assert grid.kr.shape == (17, 1, 1)
        assert grid.l.shape == (1, 32, 1)
        assert grid.Krsq.shape == (17, 32, 1)
        assert grid.invKrsq[0, 0, 0] == 0.0
        np.testing.assert_allclose(grid.invKrsq[1:, :, 0] * grid.Krsq[1:, :, 0], 1.0)
        np.testing.assert_allclose(grid.ikr, 1j * grid.kr)
        assert grid.area == pytest.approx(4 * np.pi**2)
        assert grid.spectral_shape(3) == (17, 32, 3)
        assert grid.physical_shape() == (32, 32)


class TestTransforms:
    """Test in-place real FFTs and Parseval sums."""

    @pytest.mark.parametrize("nx, ny", [(32, 32), (15, 12), (16, 9)])
    def test_round_trip(self, rng, nx, ny):
        grid = SpectralGrid(nx, ny, 3.0, 2.0)
        f = rng.standard_normal((nx, ny, 2))
        fh = np.empty(grid.spectral_shape(2), dtype=np.complex128)
        g = np.empty_like(f)
        grid.fwdtransform(fh, f)
        grid.invtransform(g, fh)
        np.testing.assert_allclose(g, f, atol=1e-12)

    def test_forward_matches_rfft_along_x(self, rng, grid):
        f = rng.standard_normal(grid.physical_shape())
        fh = np.empty(grid.spectral_shape(), dtype=np.complex128)
        grid.fwdtransform(fh, f)
        np.testing.assert_allclose(fh, np.fft.rfft2(f.T).T, atol=1e-10)

    def test_inverse_leaves_input_unchanged(self, rng, grid):
        f = rng.standard_normal(grid.physical_shape(2))
        fh = np.empty(grid.spectral_shape(2), dtype=np.complex128)
        grid.fwdtransform(fh, f)
        before = fh.copy()
        grid.invtransform(np.empty_like(f), fh)
        np.testing.assert_array_equal(fh, before)

    @pytest.mark.parametrize("nx, ny", [(32, 32), (15, 12)])
    def test_parseval(self, rng, nx, ny):
        grid = SpectralGrid(nx, ny, 3.0, 2.0)
        f = rng.standard_normal((nx, ny, 3))
        fh = np.empty(grid.spectral_shape(3), dtype=np.complex128)
        grid.fwdtransform(fh, f)
        expected = grid.area * np.mean(f**2, axis=(0, 1))
        np.testing.assert_allclose(grid.parsevalsum2(fh), expected, rtol=1e-12)

    def test_parsevalsum_of_product(self, rng, grid):
        f = rng.standard_normal(grid.physical_shape())
        g = rng.standard_normal(grid.physical_shape())
        fh = np.empty(grid.spectral_shape(), dtype=np.complex128)
        gh = np.empty_like(fh)
        grid.fwdtransform(fh, f)
        grid.fwdtransform(gh, g)
        expected = grid.area * np.mean(f * g)
        assert grid.parsevalsum(np.conj(fh) * gh) == pytest.approx(expected, rel=1e-10)

    def test_parsevalsum_shape_mismatch(self, grid):
        with pytest.raises(ShapeMismatchError):
            grid.parsevalsum(np.zeros((grid.nx, grid.ny)))


class TestDealiasMask:
    """Test the 2/3-rule filter."""

    def test_retained_modes(self, grid):
        mask = grid.dealias_mask[:, :, 0]
        kr = grid.kr[:, 0, 0]
        l = grid.l[0, :, 0]
        assert mask.shape == (grid.nkr, grid.nl)
        assert np.all(mask[kr <= 10][:, np.abs(l) <= 10] == 1.0)
        assert np.all(mask[kr > 10] == 0.0)
        assert np.all(mask[:, np.abs(l) > 10] == 0.0)


class TestGridValidation:
    """Test rejection of invalid grids."""

    @pytest.mark.parametrize("nx, ny", [(0, 8), (8, -1), (8.5, 8)])
    def test_bad_dimensions(self, nx, ny):
        with pytest.raises(ConfigurationError):
            SpectralGrid(nx, ny)

    def test_bad_lengths(self):
        with pytest.raises(ConfigurationError):
            SpectralGrid(8, 8, Lx=-1.0)


class TestInitialCondition:
    """Test random initial PV generation."""

    def test_zero_mean_and_shape(self, rng, grid):
        q = initial_condition(rng, grid, 3)
        assert q.shape == (32, 32, 3)
        np.testing.assert_allclose(q.mean(axis=(0, 1)), 0.0, atol=1e-12)
        assert np.all(q.std(axis=(0, 1)) > 0)

    def test_reproducible(self, grid):
        q1 = initial_condition(np.random.default_rng(3), grid, 2)
        q2 = initial_condition(np.random.default_rng(3), grid, 2)
        np.testing.assert_array_equal(q1, q2)

    def test_kmax_truncation(self, rng, grid):
        q = initial_condition(rng, grid, 1, kmax=4.0)
        qh = np.empty(grid.spectral_shape(1), dtype=np.complex128)
        grid.fwdtransform(qh, q)
        outside = np.broadcast_to(grid.Krsq > 16.0, qh.shape)
        np.testing.assert_allclose(qh[outside], 0.0, atol=1e-10)
