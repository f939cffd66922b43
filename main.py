#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
MLQG: Multi-layer Quasi-Geostrophic Solver
==========================================

Layered quasi-geostrophic simulations on a doubly periodic beta-plane.

Usage:
    # Two-layer baroclinic run with imposed shear
    python main.py --nlayers 2 --rho 1 1.025 --H 0.2 0.8 --U 0.05 0 --t_end 50

    # Stochastically forced barotropic run
    python main.py --nlayers 1 --rho 1 --H 1 --forcing stochastic --kmin 8 --kmax 12

For help:
    python main.py --help
"""

import logging
import sys

from mlqg import config, solver
from mlqg.errors import ConfigurationError


def main(argv=None):
    """
    Main entry point for MLQG simulations.

    Parses command-line arguments, validates configuration, sets up logging,
    and runs the requested number of realisations.
    """
    # Parse arguments
    args = config.get_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger = logging.getLogger(__name__)

    # Validate arguments
    try:
        config.validate_args(args)
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    logger.info("=" * 70)
    logger.info("MLQG: Multi-layer Quasi-Geostrophic Solver")
    logger.info("=" * 70)
    logger.info("Domain: %dx%d grid on [0,%.2f]x[0,%.2f], dealias=%s",
                args.nx, args.ny, args.Lx, args.Ly, args.dealias)
    logger.info("Layers: %d, rho=%s, H=%s, U=%s", args.nlayers, args.rho, args.H, args.U)
    logger.info("Physics: g=%.3e, f0=%.3e, beta=%.3e, mu=%.2e, nu=%.2e, nnu=%d",
                args.g, args.f0, args.beta, args.mu, args.nu, args.nnu)
    logger.info("Forcing: %s (kmin=%.1f, kmax=%.1f, sigma=%.2e)",
                args.forcing, args.kmin, args.kmax, args.f_sigma)
    logger.info("Time: t_end=%.2f, dt=%.2e, linear=%s", args.t_end, args.dt, args.linear)
    logger.info("Number of realisations: %d", args.n_realisations)
    logger.info("=" * 70)

    # Run realisations
    for r in range(args.n_realisations):
        logger.info("")
        logger.info("Starting realisation %d/%d", r + 1, args.n_realisations)
        logger.info("-" * 70)

        solver.run_single_realisation(args, r)

        logger.info("-" * 70)
        logger.info("Completed realisation %d/%d", r + 1, args.n_realisations)

    # Final summary
    logger.info("")
    logger.info("=" * 70)
    logger.info("All %d realisation(s) completed successfully!", args.n_realisations)
    logger.info("=" * 70)


if __name__ == "__main__":
    main()
