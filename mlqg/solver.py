"""
Reference driver for layered QG simulations.

This module wires the spectral core into a runnable simulation:
- Grid, forcing and parameter setup from command-line arguments
- Random initial PV and initial diagnostics
- Classical fourth-order Runge-Kutta stepping of d(qh)/dt = L qh + N
- Time integration loop with diagnostic logging and blow-up detection
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from . import diagnostics
from . import domain
from . import forcing
from . import params as qg_params
from . import state as qg_state
from . import tendency
from . import utils
from .errors import NumericalError

logger = logging.getLogger(__name__)


@dataclass
class Clock:
    """Integrator clock handed to the tendency and forcing."""
    t: float = 0.0
    dt: float = 0.0
    step: int = 0


def setup_problem(args, r=0):
    """
    Build the grid, parameters and equation for a simulation.

    Args:
        args: Parsed (and validated) command-line arguments
        r (int): Realisation index (for seeding the forcing RNG)

    Returns:
        tuple: (grid, params, L, calcN)
            - grid: SpectralGrid
            - params: Params
            - L: Diagonal linear coefficient (nkr, nl, nlayers)
            - calcN: Tendency function, nonlinear or linearized
    """
    grid = domain.SpectralGrid(args.nx, args.ny, args.Lx, args.Ly, dealias=args.dealias)

    generator = None
    if args.forcing == "stochastic":
        # Separate stream from the initial condition
        rng = np.random.default_rng([args.seed + r, 1])
        generator = forcing.StochasticForcing(
            grid,
            args.nlayers,
            args.kmin,
            args.kmax,
            sigma=args.f_sigma,
            rng=rng,
            stype=args.stoch_type,
            tau=args.tau_ou,
            layers=args.forced_layers,
        )

    params = qg_params.build_params(
        args.nlayers, args.g, args.f0, args.beta, args.rho, args.H, args.U,
        None, None, args.mu, args.nu, args.nnu, grid, forcing=generator,
    )

    L = tendency.linear_coefficient(params, grid)
    calcN = tendency.compute_linear_tendency if args.linear else tendency.compute_tendency
    return grid, params, L, calcN


def initialise_fields(args, grid, params, r):
    """
    Allocate the model state and set a random initial PV.

    Args:
        args: Parsed command-line arguments
        grid (SpectralGrid): Spectral grid
        params (Params): Model parameters
        r (int): Realisation index (for seeding RNG)

    Returns:
        tuple: (state, sol)
            - state: StateContainer holding the initial fields
            - sol: Spectral PV (nkr, nl, nlayers), the integrated variable
    """
    rng = np.random.default_rng(args.seed + r)
    q0 = domain.initial_condition(
        rng, grid, params.nlayers,
        alpha=args.ic_alpha, power=args.ic_power, scale=args.ic_scale, kmax=args.ic_kmax,
    )

    state = qg_state.build_state(grid, params)
    qg_state.set_pv(state, q0, params, grid)
    sol = state.qh.copy()

    u0_max = utils.compute_max_velocity(state.u, state.v)
    diags = diagnostics.compute_diagnostics(state, params, grid)
    logger.info("[run %d] Initial conditions: max|u|=%.3e, E=%.6e",
                r, u0_max, diags['total_energy'])

    return state, sol


def rk4_buffers(sol):
    """Preallocate the work arrays used by rk4_step()."""
    return {name: np.empty_like(sol) for name in ("N", "ksum", "sub", "tmp")}


def _rhs(out, sol, t, clock, state, params, grid, L, calcN, tmp):
    calcN(out, sol, t, clock, state, params, grid)
    np.multiply(L, sol, out=tmp)
    out += tmp


def rk4_step(sol, clock, state, params, grid, L, calcN, work):
    """
    Advance sol by one classical RK4 step of length clock.dt in place.

    Args:
        sol (ndarray): Spectral PV, updated in place
        clock (Clock): Clock; t and step are advanced
        state (StateContainer): Work buffers for the tendency
        params (Params): Model parameters
        grid (SpectralGrid): Spectral grid
        L (ndarray): Diagonal linear coefficient
        calcN (callable): Tendency function
        work (dict): Buffers from rk4_buffers()
    """
    dt, t = clock.dt, clock.t
    N, ksum, sub, tmp = work["N"], work["ksum"], work["sub"], work["tmp"]
    args = (clock, state, params, grid, L, calcN, tmp)

    _rhs(N, sol, t, *args)
    np.copyto(ksum, N)
    np.multiply(N, 0.5 * dt, out=sub)
    sub += sol

    _rhs(N, sub, t + 0.5 * dt, *args)
    np.multiply(N, 2.0, out=tmp)
    ksum += tmp
    np.multiply(N, 0.5 * dt, out=sub)
    sub += sol

    _rhs(N, sub, t + 0.5 * dt, *args)
    np.multiply(N, 2.0, out=tmp)
    ksum += tmp
    np.multiply(N, dt, out=sub)
    sub += sol

    _rhs(N, sub, t + dt, *args)
    ksum += N

    ksum *= dt / 6.0
    sol += ksum

    clock.t = t + dt
    clock.step += 1


def run_single_realisation(args, r):
    """
    Run a single realisation of the layered QG simulation.

    This is the main simulation driver that:
    1. Sets up grid, parameters and forcing
    2. Initialises the PV field
    3. Runs the RK4 time integration loop
    4. Logs diagnostics every args.log_every steps

    Args:
        args: Parsed command-line arguments
        r (int): Realisation index (0, 1, 2, ...)

    Returns:
        tuple: (sol, clock, diags) with the final spectral PV, clock and
            diagnostics dictionary

    Raises:
        NumericalError: If the solution stops being finite
    """
    grid, params, L, calcN = setup_problem(args, r)
    state, sol = initialise_fields(args, grid, params, r)

    nsteps = int(math.ceil(args.t_end / args.dt - 1e-12))
    clock = Clock(t=0.0, dt=args.dt, step=0)
    work = rk4_buffers(sol)

    try:
        logger.info("[run %d] Starting time integration: %d steps of dt=%.3e", r, nsteps, clock.dt)

        while clock.step < nsteps:
            rk4_step(sol, clock, state, params, grid, L, calcN, work)

            if clock.step % args.log_every == 0 or clock.step == nsteps:
                if not np.all(np.isfinite(sol)):
                    raise NumericalError(f"Solution became non-finite at step {clock.step}, t={clock.t:.4f}")

                qg_state.update_vars(state, params, grid, sol=sol)
                diags = diagnostics.compute_diagnostics(state, params, grid)
                logger.info(
                    "[run %d] it=%6d t=%9.4f E=%12.6e Z=%12.6e max|u|=%10.3e rms|u|=%s CFL=%6.3f",
                    r, clock.step, clock.t, diags['total_energy'], np.sum(diags['enstrophy']),
                    utils.compute_max_velocity(state.u, state.v),
                    " ".join("%.3e" % x for x in utils.rms_velocity(state.u, state.v)),
                    utils.cfl_number(state, params, grid, clock.dt),
                )

    except Exception:
        logger.exception("[run %d] Exception in main loop", r)
        raise

    qg_state.update_vars(state, params, grid, sol=sol)
    diags = diagnostics.compute_diagnostics(state, params, grid)
    logger.info("[run %d] Simulation complete", r)
    return sol, clock, diags
