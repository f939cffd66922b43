"""
Per-wavenumber layer coupling operators and PV inversion.

For every horizontal wavenumber (k, l) the PV and streamfunction of the
nlayers fluid layers are related by

    qh(k, l, :) = S(k, l) psih(k, l, :),     S = -|k|² I + F

where F is the tridiagonal vertical coupling matrix built from the
interface coefficients Fp (felt by the upper layer) and Fm (felt by the
lower layer). S and its inverse are stored as contiguous
(nkr*nl, nlayers, nlayers) buffers.

The inversion routines are called on every tendency evaluation and work
in place on preallocated arrays.
"""

import logging

import numpy as np

from .errors import NumericalError, ShapeMismatchError

logger = logging.getLogger(__name__)

# Relative determinant threshold below which a block is treated as singular
_SINGULAR_RTOL = 1e-12


def coupling_matrix(Fp, Fm):
    """
    Build the tridiagonal vertical coupling matrix F.

    Args:
        Fp (array_like): Coupling felt by the upper layer of each interface (nlayers-1,)
        Fm (array_like): Coupling felt by the lower layer of each interface (nlayers-1,)

    Returns:
        ndarray: F (nlayers, nlayers) with sub-diagonal Fm, super-diagonal Fp
            and diagonal -([Fp, 0] + [0, Fm])
    """
    Fp = np.atleast_1d(np.asarray(Fp, dtype=np.float64))
    Fm = np.atleast_1d(np.asarray(Fm, dtype=np.float64))
    if Fp.shape != Fm.shape or Fp.ndim != 1:
        raise ShapeMismatchError(f"Fp and Fm must be 1D of equal length, got {Fp.shape} and {Fm.shape}")

    n = Fp.size + 1
    F = np.zeros((n, n))
    idx = np.arange(n - 1)
    F[idx, idx + 1] = Fp
    F[idx + 1, idx] = Fm
    F[idx, idx] -= Fp
    F[idx + 1, idx + 1] -= Fm
    return F


def _check_determinant(det, blocks, K2):
    scale = np.max(np.abs(blocks), axis=(-2, -1)) ** blocks.shape[-1]
    bad = (np.abs(det) <= _SINGULAR_RTOL * scale) | ~np.isfinite(det)
    bad &= K2 != 0.0
    if np.any(bad):
        idx = np.argwhere(bad)[0]
        raise NumericalError(
            f"Layer coupling matrix is singular at wavenumber index {tuple(int(i) for i in idx)}"
        )


def _inverse_2x2(A):
    a, b = A[..., 0, 0], A[..., 0, 1]
    c, d = A[..., 1, 0], A[..., 1, 1]
    det = a * d - b * c
    adj = np.empty_like(A)
    adj[..., 0, 0] = d
    adj[..., 0, 1] = -b
    adj[..., 1, 0] = -c
    adj[..., 1, 1] = a
    return adj, det


def _inverse_3x3(A):
    a = A
    adj = np.empty_like(A)
    adj[..., 0, 0] = a[..., 1, 1] * a[..., 2, 2] - a[..., 1, 2] * a[..., 2, 1]
    adj[..., 0, 1] = a[..., 0, 2] * a[..., 2, 1] - a[..., 0, 1] * a[..., 2, 2]
    adj[..., 0, 2] = a[..., 0, 1] * a[..., 1, 2] - a[..., 0, 2] * a[..., 1, 1]
    adj[..., 1, 0] = a[..., 1, 2] * a[..., 2, 0] - a[..., 1, 0] * a[..., 2, 2]
    adj[..., 1, 1] = a[..., 0, 0] * a[..., 2, 2] - a[..., 0, 2] * a[..., 2, 0]
    adj[..., 1, 2] = a[..., 0, 2] * a[..., 1, 0] - a[..., 0, 0] * a[..., 1, 2]
    adj[..., 2, 0] = a[..., 1, 0] * a[..., 2, 1] - a[..., 1, 1] * a[..., 2, 0]
    adj[..., 2, 1] = a[..., 0, 1] * a[..., 2, 0] - a[..., 0, 0] * a[..., 2, 1]
    adj[..., 2, 2] = a[..., 0, 0] * a[..., 1, 1] - a[..., 0, 1] * a[..., 1, 0]
    det = (a[..., 0, 0] * adj[..., 0, 0]
           + a[..., 0, 1] * adj[..., 1, 0]
           + a[..., 0, 2] * adj[..., 2, 0])
    return adj, det


def invert_blocks(blocks, K2):
    """
    Invert a stack of small square matrices.

    Uses closed-form adjugate formulas for sizes up to 3 and batched
    numpy.linalg.inv otherwise.

    Args:
        blocks (ndarray): Matrices to invert (..., n, n)
        K2 (ndarray): |k|² for each matrix (...); blocks at K2 == 0 are
            not checked for singularity

    Returns:
        ndarray: Inverses (..., n, n)

    Raises:
        NumericalError: If any block at a nonzero wavenumber is singular
    """
    n = blocks.shape[-1]
    if n == 1:
        det = blocks[..., 0, 0]
        _check_determinant(det, blocks, K2)
        with np.errstate(divide='ignore', invalid='ignore'):
            return 1.0 / blocks
    if n == 2:
        adj, det = _inverse_2x2(blocks)
    elif n == 3:
        adj, det = _inverse_3x3(blocks)
    else:
        det = np.linalg.det(blocks)
        _check_determinant(det, blocks, K2)
        try:
            inv = np.linalg.inv(blocks)
        except np.linalg.LinAlgError as exc:
            raise NumericalError(f"Layer coupling matrix inversion failed: {exc}") from exc
        if not np.all(np.isfinite(inv)):
            raise NumericalError("Layer coupling matrix inversion produced non-finite values")
        return inv

    _check_determinant(det, blocks, K2)
    with np.errstate(divide='ignore', invalid='ignore'):
        return adj / det[..., None, None]


class LayerCouplingOperator:
    """
    Per-wavenumber matrices S(k, l) and invS(k, l) for a layered fluid.

    Args:
        Fp (array_like): Upper-layer interface couplings (nlayers-1,)
        Fm (array_like): Lower-layer interface couplings (nlayers-1,)
        grid (SpectralGrid): Spectral grid

    Attributes:
        nlayers (int): Number of layers
        F (ndarray): Vertical coupling matrix (nlayers, nlayers)
        S, invS (ndarray): (nkr, nl, nlayers, nlayers) views onto the
            contiguous operator buffers

    Raises:
        NumericalError: If S is singular at a nonzero wavenumber
    """

    def __init__(self, Fp, Fm, grid):
        self.F = coupling_matrix(Fp, Fm)
        self.nlayers = self.F.shape[0]
        self.nkr, self.nl = grid.nkr, grid.nl

        n = self.nlayers
        K2 = grid.Krsq[:, :, 0].reshape(-1)
        eye = np.eye(n)

        self._S = np.ascontiguousarray(self.F[None, :, :] - K2[:, None, None] * eye)

        # Substitute |k|²=1 at k=0 to regularise the singular barotropic block
        K2_reg = np.where(K2 == 0.0, 1.0, K2)
        S_reg = self.F[None, :, :] - K2_reg[:, None, None] * eye
        self._invS = np.ascontiguousarray(invert_blocks(S_reg, K2))
        self._invS[K2 == 0.0] = 0.0

        for arr in (self.F, self._S, self._invS):
            arr.setflags(write=False)

        logger.debug("Built layer coupling operator: nlayers=%d, %d wavenumbers", n, K2.size)

    @property
    def is_scalar(self):
        """True for a single layer, where inversion is a pointwise division."""
        return self.nlayers == 1

    @property
    def S(self):
        return self._S.reshape(self.nkr, self.nl, self.nlayers, self.nlayers)

    @property
    def invS(self):
        return self._invS.reshape(self.nkr, self.nl, self.nlayers, self.nlayers)

    def block(self, i, j, inverse=False):
        """Return the (nlayers, nlayers) matrix at wavenumber index (i, j)."""
        buf = self._invS if inverse else self._S
        return buf[i * self.nl + j]


def _apply(out, inp, blocks):
    """out[k, l, :] = blocks[k, l] @ inp[k, l, :] without casting blocks to complex."""
    if blocks.shape[-1] == 1:
        np.multiply(blocks[..., 0], inp, out=out)
        return
    np.matmul(blocks, inp.real[..., None], out=out.real[..., None])
    np.matmul(blocks, inp.imag[..., None], out=out.imag[..., None])


def streamfunction_from_pv(psih, qh, operator, grid):
    """
    Invert spectral PV to spectral streamfunction in place.

    psih(k, l, :) = invS(k, l) qh(k, l, :)

    Args:
        psih (ndarray): Output streamfunction (nkr, nl, nlayers), complex
        qh (ndarray): Input PV (nkr, nl, nlayers), complex; not modified
        operator (LayerCouplingOperator): Coupling operator
        grid (SpectralGrid): Spectral grid
    """
    _apply(psih, qh, operator.invS)


def pv_from_streamfunction(qh, psih, operator, grid):
    """
    Compute spectral PV from spectral streamfunction in place.

    qh(k, l, :) = S(k, l) psih(k, l, :)

    Args:
        qh (ndarray): Output PV (nkr, nl, nlayers), complex
        psih (ndarray): Input streamfunction (nkr, nl, nlayers), complex; not modified
        operator (LayerCouplingOperator): Coupling operator
        grid (SpectralGrid): Spectral grid
    """
    _apply(qh, psih, operator.S)
