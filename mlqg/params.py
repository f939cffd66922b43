"""
Physical parameters, derived coefficients and background PV gradients.

build_params() validates the physical inputs of a layered QG model,
derives the reduced gravities and interface coupling coefficients,
computes the background PV gradients Qx, Qy and builds the layer coupling
operator. The result is an immutable Params bundle: a frozen dataclass
whose arrays are read-only.

Background gradients (layer 0 on top, Ut = U + u(y)):
    Qx = d(eta)/dx in the bottom layer, zero elsewhere
    Qy_0 = beta - Ut_0'' - Fp_0 (Ut_1 - Ut_0)
    Qy_j = beta - Ut_j'' - Fp_j (Ut_{j+1} - Ut_j) - Fm_{j-1} (Ut_{j-1} - Ut_j)
    Qy_{n-1} = beta - Ut_{n-1}'' - Fm_{n-2} (Ut_{n-2} - Ut_{n-1}) + d(eta)/dy
"""

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from .errors import ConfigurationError, ShapeMismatchError
from .forcing import ZeroForcing
from .operators import LayerCouplingOperator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Params:
    """
    Immutable parameter and operator bundle of a layered QG model.

    Attributes:
        nlayers: Number of fluid layers
        g: Gravitational acceleration
        f0: Constant planetary vorticity
        beta: Planetary vorticity y-gradient
        rho: Density of each layer (nlayers,)
        H: Rest thickness of each layer (nlayers,)
        U: Imposed uniform zonal flow of each layer (nlayers,)
        u: Imposed zonal flow u(y) of each layer (ny, nlayers)
        eta: Topographic PV (nx, ny)
        mu: Linear bottom drag
        nu: Viscosity coefficient
        nnu: Hyperviscous order (nnu=1 is plain viscosity)
        gprime: Reduced gravity at each interface (nlayers-1,)
        Fp: Interface coupling felt by the upper layer (nlayers-1,)
        Fm: Interface coupling felt by the lower layer (nlayers-1,)
        Ubg: Total imposed zonal flow U + u(y), shaped (1, ny, nlayers)
        Qx: Zonal background PV gradient (nx, ny, nlayers)
        Qy: Meridional background PV gradient (nx, ny, nlayers)
        drag: mu*|k|² for the bottom layer (nkr, nl)
        operator: LayerCouplingOperator holding S and invS
        forcing: ForcingGenerator producing the spectral PV forcing
    """
    nlayers: int
    g: float
    f0: float
    beta: float
    rho: np.ndarray
    H: np.ndarray
    U: np.ndarray
    u: np.ndarray
    eta: np.ndarray
    mu: float
    nu: float
    nnu: int
    gprime: np.ndarray
    Fp: np.ndarray
    Fm: np.ndarray
    Ubg: np.ndarray
    Qx: np.ndarray
    Qy: np.ndarray
    drag: np.ndarray
    operator: LayerCouplingOperator
    forcing: Any

    @property
    def is_single_layer(self):
        return self.nlayers == 1

    @property
    def is_forced(self):
        return not isinstance(self.forcing, ZeroForcing)


def _layer_array(name, value, nlayers):
    arr = np.atleast_1d(np.asarray(value, dtype=np.float64))
    if arr.shape != (nlayers,):
        raise ShapeMismatchError(f"{name} must have shape ({nlayers},), got {arr.shape}")
    return arr


def _check_finite(**arrays):
    for name, arr in arrays.items():
        if not np.all(np.isfinite(arr)):
            raise ConfigurationError(f"{name} contains non-finite values")


def coupling_coefficients(g, f0, rho, H):
    """
    Reduced gravities and interface coupling coefficients.

    gprime_j = g (rho_{j+1} - rho_j) / rho_j
    Fp_j = f0² / (gprime_j H_j),  Fm_j = f0² / (gprime_j H_{j+1})

    Args:
        g (float): Gravitational acceleration
        f0 (float): Constant planetary vorticity
        rho (ndarray): Layer densities, top to bottom (nlayers,)
        H (ndarray): Layer thicknesses (nlayers,)

    Returns:
        tuple: (gprime, Fp, Fm), each (nlayers-1,)

    Raises:
        ConfigurationError: If any reduced gravity is not positive
    """
    gprime = g * (rho[1:] - rho[:-1]) / rho[:-1]
    if np.any(gprime <= 0):
        raise ConfigurationError(
            f"Reduced gravity must be positive at every interface (density increasing downward), got {gprime}"
        )
    Fp = f0**2 / (gprime * H[:-1])
    Fm = f0**2 / (gprime * H[1:])
    return gprime, Fp, Fm


def background_gradients(grid, beta, U, u, eta, Fp, Fm):
    """
    Background PV gradients from beta, imposed flow and topography.

    Args:
        grid (SpectralGrid): Spectral grid
        beta (float): Planetary vorticity y-gradient
        U (ndarray): Imposed uniform flow (nlayers,)
        u (ndarray): Imposed flow u(y) (ny, nlayers)
        eta (ndarray): Topographic PV (nx, ny)
        Fp (ndarray): Upper-layer couplings (nlayers-1,)
        Fm (ndarray): Lower-layer couplings (nlayers-1,)

    Returns:
        tuple: (Qx, Qy), each (nx, ny, nlayers)
    """
    nlayers = U.size
    nx, ny = grid.nx, grid.ny

    # Curvature of the imposed flow, computed spectrally
    u_full = np.ascontiguousarray(np.broadcast_to(u[None, :, :], (nx, ny, nlayers)))
    uh = np.empty(grid.spectral_shape(nlayers), dtype=np.complex128)
    grid.fwdtransform(uh, u_full)
    uh *= -grid.l**2
    uyy = np.empty_like(u_full)
    grid.invtransform(uyy, uh)

    # Topographic PV gradients
    etah = np.empty(grid.spectral_shape(), dtype=np.complex128)
    grid.fwdtransform(etah, eta)
    etax = np.empty((nx, ny))
    etay = np.empty((nx, ny))
    grid.invtransform(etax, grid.ikr[..., 0] * etah)
    grid.invtransform(etay, grid.il[..., 0] * etah)

    Ut = U[None, None, :] + u_full

    Qx = np.zeros((nx, ny, nlayers))
    Qx[:, :, -1] += etax

    Qy = beta - uyy
    for j in range(nlayers - 1):
        shear = Ut[:, :, j + 1] - Ut[:, :, j]
        Qy[:, :, j] -= Fp[j] * shear
        Qy[:, :, j + 1] += Fm[j] * shear
    Qy[:, :, -1] += etay

    return Qx, Qy


def build_params(nlayers, g, f0, beta, rho, H, U, u, eta, mu, nu, nnu, grid, forcing=None):
    """
    Validate physical inputs and build the immutable Params bundle.

    Args:
        nlayers (int): Number of fluid layers (>= 1)
        g (float): Gravitational acceleration
        f0 (float): Constant planetary vorticity
        beta (float): Planetary vorticity y-gradient
        rho (array_like): Layer densities, top to bottom (nlayers,)
        H (array_like): Layer rest thicknesses (nlayers,)
        U (array_like or None): Imposed uniform zonal flow (nlayers,)
        u (array_like or None): Imposed zonal flow u(y), (ny, nlayers) or (ny,) for one layer
        eta (array_like or None): Topographic PV (nx, ny)
        mu (float): Linear bottom drag (>= 0)
        nu (float): Viscosity coefficient (>= 0)
        nnu (int): Hyperviscous order (>= 1)
        grid (SpectralGrid): Spectral grid
        forcing (ForcingGenerator, optional): PV forcing; defaults to ZeroForcing()

    Returns:
        Params: Immutable parameter bundle

    Raises:
        ConfigurationError: Inadmissible parameter values
        ShapeMismatchError: Array shapes inconsistent with nlayers or the grid
        NumericalError: Singular coupling matrix at a nonzero wavenumber
    """
    if isinstance(nlayers, bool) or int(nlayers) != nlayers or nlayers < 1:
        raise ConfigurationError(f"nlayers must be an integer >= 1, got {nlayers}")
    nlayers = int(nlayers)
    nx, ny = grid.nx, grid.ny

    rho = _layer_array("rho", rho, nlayers)
    H = _layer_array("H", H, nlayers)
    U = np.zeros(nlayers) if U is None else _layer_array("U", U, nlayers)

    if u is None:
        u = np.zeros((ny, nlayers))
    else:
        u = np.asarray(u, dtype=np.float64)
        if u.ndim == 1 and nlayers == 1:
            u = u[:, None]
        if u.shape != (ny, nlayers):
            raise ShapeMismatchError(f"u must have shape ({ny}, {nlayers}), got {u.shape}")

    if eta is None:
        eta = np.zeros((nx, ny))
    else:
        eta = np.asarray(eta, dtype=np.float64)
        if eta.shape != (nx, ny):
            raise ShapeMismatchError(f"eta must have shape ({nx}, {ny}), got {eta.shape}")

    _check_finite(g=g, f0=f0, beta=beta, rho=rho, H=H, U=U, u=u, eta=eta, mu=mu, nu=nu)

    if np.any(H <= 0):
        raise ConfigurationError(f"Layer thicknesses H must be positive, got {H}")
    if np.any(rho <= 0):
        raise ConfigurationError(f"Layer densities rho must be positive, got {rho}")
    if mu < 0:
        raise ConfigurationError(f"Bottom drag mu must be non-negative, got {mu}")
    if nu < 0:
        raise ConfigurationError(f"Viscosity nu must be non-negative, got {nu}")
    if int(nnu) != nnu or nnu < 1:
        raise ConfigurationError(f"Hyperviscous order nnu must be an integer >= 1, got {nnu}")

    if nlayers > 1:
        if g <= 0:
            raise ConfigurationError(f"Gravitational acceleration g must be positive, got {g}")
        gprime, Fp, Fm = coupling_coefficients(g, f0, rho, H)
    else:
        gprime, Fp, Fm = np.zeros(0), np.zeros(0), np.zeros(0)

    Qx, Qy = background_gradients(grid, beta, U, u, eta, Fp, Fm)
    operator = LayerCouplingOperator(Fp, Fm, grid)

    Ubg = (U[None, :] + u)[None, :, :]
    drag = mu * grid.Krsq[:, :, 0]

    arrays = dict(rho=rho, H=H, U=U, u=u, eta=eta, gprime=gprime, Fp=Fp, Fm=Fm,
                  Ubg=Ubg, Qx=Qx, Qy=Qy, drag=drag)
    for name, arr in arrays.items():
        arr = np.array(arr, dtype=np.float64)
        arr.setflags(write=False)
        arrays[name] = arr

    logger.debug("Built params: nlayers=%d, gprime=%s, Fp=%s, Fm=%s",
                 nlayers, arrays["gprime"], arrays["Fp"], arrays["Fm"])

    return Params(
        nlayers=nlayers,
        g=float(g),
        f0=float(f0),
        beta=float(beta),
        mu=float(mu),
        nu=float(nu),
        nnu=int(nnu),
        operator=operator,
        forcing=ZeroForcing() if forcing is None else forcing,
        **arrays,
    )
