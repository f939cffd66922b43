"""
MLQG: Multi-layer Quasi-Geostrophic Solver
==========================================

Pseudo-spectral core for layered quasi-geostrophic flow on a doubly
periodic f/beta-plane.

Modules:
    domain: Spectral grid, transforms and initial conditions
    params: Physical parameters, coupling coefficients and background gradients
    operators: Layer coupling matrices and PV inversion
    state: Preallocated model state buffers
    tendency: Nonlinear and linearized PV tendencies
    forcing: Stochastic PV forcing (white noise, OU process)
    diagnostics: Energies, enstrophies and spectra
    config: Configuration and command-line argument parsing
    solver: Reference RK4 driver
    utils: Flow diagnostics for monitoring
    errors: Exception types
"""

__version__ = "0.1.0"
__author__ = "Michael Groom"

from . import errors
from . import domain
from . import operators
from . import forcing
from . import params
from . import state
from . import tendency
from . import diagnostics
from . import config
from . import solver
from . import utils

__all__ = [
    "errors",
    "domain",
    "operators",
    "forcing",
    "params",
    "state",
    "tendency",
    "diagnostics",
    "config",
    "solver",
    "utils",
]
