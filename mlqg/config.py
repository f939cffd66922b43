"""
Configuration and command-line argument parsing for layered QG simulations.

This module handles all command-line arguments and parameter validation
for the reference driver.
"""

import argparse
import numpy as np

from .errors import ConfigurationError


def get_args(argv=None):
    """
    Parse command-line arguments for a layered QG simulation.

    Args:
        argv (list, optional): Argument list; defaults to sys.argv[1:]

    Returns:
        argparse.Namespace: Parsed command-line arguments containing all
            simulation parameters (domain size, layer stratification,
            dissipation, forcing options, time stepping, etc.)
    """
    ap = argparse.ArgumentParser(
        description="Multi-layer quasi-geostrophic flow on a doubly periodic beta-plane",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Domain / resolution parameters
    domain_group = ap.add_argument_group('Domain and Resolution')
    domain_group.add_argument(
        "--nx", type=int, default=128,
        help="Number of grid points in x direction"
    )
    domain_group.add_argument(
        "--ny", type=int, default=128,
        help="Number of grid points in y direction"
    )
    domain_group.add_argument(
        "--Lx", type=float, default=2.0 * np.pi,
        help="Domain length in x direction"
    )
    domain_group.add_argument(
        "--Ly", type=float, default=2.0 * np.pi,
        help="Domain length in y direction"
    )
    domain_group.add_argument(
        "--dealias", action="store_true",
        help="Apply the 2/3-rule filter to the nonlinear flux"
    )

    # Stratification
    layer_group = ap.add_argument_group('Layers and Stratification')
    layer_group.add_argument(
        "--nlayers", type=int, default=2,
        help="Number of fluid layers (layer 0 is the top)"
    )
    layer_group.add_argument(
        "--rho", type=float, nargs="+", default=[1.0, 1.025],
        help="Layer densities, top to bottom"
    )
    layer_group.add_argument(
        "--H", type=float, nargs="+", default=[0.2, 0.8],
        help="Layer rest thicknesses, top to bottom"
    )
    layer_group.add_argument(
        "--U", type=float, nargs="+", default=None,
        help="Imposed uniform zonal flow of each layer (default: at rest)"
    )

    # Physics parameters
    physics_group = ap.add_argument_group('Physical Parameters')
    physics_group.add_argument(
        "--g", type=float, default=1.0,
        help="Gravitational acceleration"
    )
    physics_group.add_argument(
        "--f0", type=float, default=1.0,
        help="Constant planetary vorticity"
    )
    physics_group.add_argument(
        "--beta", type=float, default=1.0,
        help="Planetary vorticity gradient"
    )
    physics_group.add_argument(
        "--mu", type=float, default=5e-3,
        help="Linear bottom drag coefficient (0 disables)"
    )
    physics_group.add_argument(
        "--nu", type=float, default=1e-12,
        help="(Hyper)viscosity coefficient"
    )
    physics_group.add_argument(
        "--nnu", type=int, default=4,
        help="Hyperviscous order (1 = Laplacian viscosity)"
    )
    physics_group.add_argument(
        "--linear", action="store_true",
        help="Integrate the equations linearized about the imposed flow"
    )

    # Forcing options
    forcing_group = ap.add_argument_group('Forcing Configuration')
    forcing_group.add_argument(
        "--forcing", type=str, default="none",
        choices=["stochastic", "none"],
        help="Forcing type: stochastic (band-limited) or none"
    )
    forcing_group.add_argument(
        "--stoch_type", type=str, default="white",
        choices=["white", "ou"],
        help="Stochastic forcing type: white (δ-correlated) or ou (Ornstein-Uhlenbeck)"
    )
    forcing_group.add_argument(
        "--kmin", type=float, default=8.0,
        help="Minimum forced wavenumber (physical units: rad/length)"
    )
    forcing_group.add_argument(
        "--kmax", type=float, default=12.0,
        help="Maximum forced wavenumber (physical units: rad/length)"
    )
    forcing_group.add_argument(
        "--f_sigma", type=float, default=0.02,
        help="RMS forcing amplitude in grid space"
    )
    forcing_group.add_argument(
        "--tau_ou", type=float, default=0.3,
        help="Correlation time for OU forcing (ignored for white noise)"
    )
    forcing_group.add_argument(
        "--forced_layers", type=int, nargs="+", default=[0],
        help="Indices of the forced layers"
    )

    # Time integration
    time_group = ap.add_argument_group('Time Integration')
    time_group.add_argument(
        "--t_end", type=float, default=10.0,
        help="Total simulation time"
    )
    time_group.add_argument(
        "--dt", type=float, default=1e-2,
        help="Time step of the RK4 integrator"
    )
    time_group.add_argument(
        "--log_every", type=int, default=100,
        help="Number of steps between diagnostic log lines"
    )

    # Ensemble and reproducibility
    ensemble_group = ap.add_argument_group('Ensemble Configuration')
    ensemble_group.add_argument(
        "--n_realisations", type=int, default=1,
        help="Number of independent realisations to run"
    )
    ensemble_group.add_argument(
        "--seed", type=int, default=42,
        help="Base random seed for initial conditions (each realisation uses seed+r)"
    )

    # Initial conditions
    ic_group = ap.add_argument_group('Initial Conditions')
    ic_group.add_argument(
        "--ic_alpha", type=float, default=1.0,
        help="Spectral roll-off parameter for initial PV"
    )
    ic_group.add_argument(
        "--ic_power", type=float, default=2.0,
        help="Power-law exponent for initial PV spectrum"
    )
    ic_group.add_argument(
        "--ic_scale", type=float, default=1e-2,
        help="Overall amplitude scaling for initial PV"
    )
    ic_group.add_argument(
        "--ic_kmax", type=float, default=None,
        help="Optional largest wavenumber present in the initial PV"
    )

    return ap.parse_args(argv)


def validate_args(args):
    """
    Validate command-line arguments for consistency.

    Args:
        args: Parsed arguments from get_args()

    Raises:
        ConfigurationError: If arguments are inconsistent or invalid
    """
    # Check domain parameters
    if args.nx <= 0 or args.ny <= 0:
        raise ConfigurationError("Grid dimensions nx and ny must be positive")

    if args.Lx <= 0 or args.Ly <= 0:
        raise ConfigurationError("Domain lengths Lx and Ly must be positive")

    # Check stratification
    if args.nlayers < 1:
        raise ConfigurationError("Number of layers must be at least 1")

    for name in ("rho", "H"):
        if len(getattr(args, name)) != args.nlayers:
            raise ConfigurationError(f"--{name} needs exactly nlayers={args.nlayers} values")

    if args.U is not None and len(args.U) != args.nlayers:
        raise ConfigurationError(f"--U needs exactly nlayers={args.nlayers} values")

    if min(args.H) <= 0:
        raise ConfigurationError("Layer thicknesses H must be positive")

    if args.nlayers > 1:
        if args.g <= 0:
            raise ConfigurationError("Gravitational acceleration g must be positive")
        if any(b <= a for a, b in zip(args.rho[:-1], args.rho[1:])):
            raise ConfigurationError("Densities rho must increase strictly with depth")

    # Check dissipation
    if args.mu < 0:
        raise ConfigurationError("Bottom drag mu must be non-negative")

    if args.nu < 0:
        raise ConfigurationError("Viscosity nu must be non-negative")

    if args.nnu < 1:
        raise ConfigurationError("Hyperviscous order nnu must be >= 1")

    # Check forcing parameters
    if args.forcing == "stochastic":
        if args.kmin < 0 or args.kmax < 0:
            raise ConfigurationError("Forcing wavenumbers kmin and kmax must be non-negative")
        if args.kmin >= args.kmax:
            raise ConfigurationError("Must have kmin < kmax for forcing band")
        if args.f_sigma <= 0:
            raise ConfigurationError("Forcing amplitude f_sigma must be positive")
        if args.stoch_type == "ou" and args.tau_ou <= 0:
            raise ConfigurationError("OU correlation time tau_ou must be positive")
        if any(j < 0 or j >= args.nlayers for j in args.forced_layers):
            raise ConfigurationError("Forced layer indices must lie in [0, nlayers)")

    # Check time parameters
    if args.t_end <= 0:
        raise ConfigurationError("End time t_end must be positive")

    if args.dt <= 0 or args.dt > args.t_end:
        raise ConfigurationError("Time step dt must satisfy 0 < dt <= t_end")

    if args.log_every <= 0:
        raise ConfigurationError("log_every must be positive")

    if args.n_realisations <= 0:
        raise ConfigurationError("Number of realisations must be positive")

    if args.ic_scale < 0:
        raise ConfigurationError("ic_scale must be non-negative")
