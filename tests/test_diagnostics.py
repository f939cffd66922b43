"""Tests for energy, enstrophy and spectral diagnostics."""

from __future__ import annotations

import numpy as np
import pytest

from mlqg import domain
from mlqg.diagnostics import compute_diagnostics, compute_spectra, energies, enstrophies
from mlqg.errors import ConfigurationError
from mlqg.operators import pv_from_streamfunction
from mlqg.params import build_params
from mlqg.solver import Clock, rk4_buffers, rk4_step
from mlqg.state import build_state, set_pv, update_vars
from mlqg.tendency import compute_tendency, linear_coefficient


def _state_from_streamfunction(grid, p, psi):
    state = build_state(grid, p)
    grid.fwdtransform(state.psih, psi)
    state.psih[0, 0, :] = 0.0
    pv_from_streamfunction(state.qh, state.psih, p.operator, grid)
    update_vars(state, p, grid)
    return state


class TestEnergies:
    """Test layer kinetic and interface potential energies."""

    def test_single_mode_kinetic_energy(self, grid, single_layer):
        X, Y = grid.meshgrid()
        k, l, A = 3.0, 2.0, 0.7
        psi = (A * np.cos(k * X + l * Y))[..., None]
        state = _state_from_streamfunction(grid, single_layer, psi)
        KE, PE = energies(state, single_layer, grid)
        assert KE.shape == (1,)
        assert PE.shape == (0,)
        assert KE[0] == pytest.approx((k**2 + l**2) * A**2 / 4, rel=1e-12)

    def test_kinetic_energy_matches_grid_velocities(self, grid, band_limited_pv):
        p = build_params(2, 1.0, 1.0, 0.0, [1.0, 2.0], [0.25, 0.75], None, None, None,
                         0.0, 0.0, 1, grid)
        state = build_state(grid, p)
        set_pv(state, band_limited_pv(grid, 2), p, grid)
        KE, _ = energies(state, p, grid)
        expected = 0.5 * np.mean(state.u**2 + state.v**2, axis=(0, 1)) * p.H
        np.testing.assert_allclose(KE, expected, rtol=1e-10)

    def test_potential_energy(self, grid):
        p = build_params(2, 2.0, 0.5, 0.0, [1.0, 1.5], [1.0, 1.0], None, None, None,
                         0.0, 0.0, 1, grid)
        X, Y = grid.meshgrid()
        psi = np.zeros((32, 32, 2))
        psi[..., 0] = 0.4 * np.cos(X)
        state = _state_from_streamfunction(grid, p, psi)
        _, PE = energies(state, p, grid)
        # g' = 1, so PE = 0.5 * f0² * <ψ₁²>
        assert PE[0] == pytest.approx(0.5 * 0.25 * 0.08, rel=1e-12)

    def test_enstrophy(self, grid, two_layer, band_limited_pv):
        state = build_state(grid, two_layer)
        q = band_limited_pv(grid, 2)
        set_pv(state, q, two_layer, grid)
        np.testing.assert_allclose(enstrophies(state, two_layer, grid),
                                   0.5 * np.mean(q**2, axis=(0, 1)), rtol=1e-10)

    def test_compute_diagnostics(self, grid, two_layer, band_limited_pv):
        state = build_state(grid, two_layer)
        set_pv(state, band_limited_pv(grid, 2), two_layer, grid)
        diags = compute_diagnostics(state, two_layer, grid)
        assert set(diags) == {"kinetic_energy", "potential_energy", "enstrophy", "total_energy"}
        assert diags["kinetic_energy"].shape == (2,)
        assert diags["potential_energy"].shape == (1,)
        assert diags["total_energy"] == pytest.approx(
            diags["kinetic_energy"].sum() + diags["potential_energy"].sum())
        assert np.all(diags["kinetic_energy"] > 0)


class TestConservation:
    """Inviscid, unforced runs conserve total energy."""

    def test_energy_conserved_under_rk4(self, rng):
        grid = domain.SpectralGrid(32, 32, dealias=True)
        p = build_params(2, 1.0, 1.0, 1.0, [1.0, 2.0], [0.4, 0.6], None, None, None,
                         0.0, 0.0, 1, grid)
        q = domain.initial_condition(rng, grid, 2, alpha=1.0, power=1.0, scale=0.25, kmax=6.0)

        state = build_state(grid, p)
        set_pv(state, q, p, grid)
        sol = state.qh.copy()
        E0 = compute_diagnostics(state, p, grid)["total_energy"]

        L = linear_coefficient(p, grid)
        clock = Clock(dt=0.01)
        work = rk4_buffers(sol)
        for _ in range(50):
            rk4_step(sol, clock, state, p, grid, L, compute_tendency, work)

        update_vars(state, p, grid, sol=sol)
        E1 = compute_diagnostics(state, p, grid)["total_energy"]
        assert clock.step == 50
        assert abs(E1 - E0) / E0 < 1e-5


class TestSpectra:
    """Test isotropic spectra."""

    def test_spectra_sum_to_layer_totals(self, grid, single_layer, band_limited_pv):
        state = build_state(grid, single_layer)
        set_pv(state, band_limited_pv(grid, 1), single_layer, grid)
        k_bins, Ek, Zk = compute_spectra(state, grid)
        diags = compute_diagnostics(state, single_layer, grid)
        assert k_bins[1] == pytest.approx(1.0)
        assert Ek.sum() == pytest.approx(diags["kinetic_energy"][0], rel=1e-10)
        assert Zk.sum() == pytest.approx(diags["enstrophy"][0], rel=1e-10)
        # Band-limited at |k| <= 5
        np.testing.assert_allclose(Ek[6:], 0.0, atol=1e-12 * Ek.max())

    def test_single_mode_shell(self, grid, single_layer):
        X, Y = grid.meshgrid()
        psi = np.cos(3 * X + 4 * Y)[..., None]
        state = _state_from_streamfunction(grid, single_layer, psi)
        _, Ek, _ = compute_spectra(state, grid)
        assert np.argmax(Ek) == 5

    def test_requires_square_domain(self, single_layer):
        grid = domain.SpectralGrid(32, 32, 2 * np.pi, np.pi)
        state = build_state(grid, single_layer)
        with pytest.raises(ConfigurationError):
            compute_spectra(state, grid)
