"""Rotation and translation operators for beam shape coefficients.

Both operators act on coefficient vectors in combined index layout, and are
returned as sparse matrices so that they can be reused for several beams.

.. autosummary::
    :nosignatures:

    wigner_rotation_matrix
    translate_z_matrices

The rotation matrices are calculated as matrix exponentials of the angular
momentum operators, which makes them exactly unitary and a representation of
the rotation group. The axial translation matrices are calculated from the
scalar addition coefficients, obtained by recurrences in degree and order
starting from the zeroth order coefficients.

"""
import logging
import numpy as np
import scipy.linalg
import scipy.sparse
from scipy.spatial.transform import Rotation
from scipy.special import spherical_jn, spherical_yn

from .utils import DimensionMismatch, check_basis, total_orders

logger = logging.getLogger(__name__)

wavenumber = 2 * np.pi
"""Wavenumber for lengths given in wavelengths."""


def _angular_momentum(n):
    """Angular momentum matrices for degree `n`, ordered by increasing order."""
    m = np.arange(-n, n + 1)
    raising = np.diag(np.sqrt((n - m[:-1]) * (n + m[:-1] + 1)), -1)
    lowering = raising.T
    Jx = (raising + lowering) / 2
    Jy = (raising - lowering) / 2j
    Jz = np.diag(m)
    return Jx, Jy, Jz


def wigner_rotation_matrix(nmax, R):
    """Wigner rotation matrix for a rotation matrix `R`.

    The matrix `D` transforms coefficients of a field :math:`E(r)` into the
    coefficients of the rotated field :math:`R E(R^T r)`. It is block diagonal,
    with one block for each degree.

    Parameters
    ----------
    nmax : int
        The truncation degree.
    R : array_like
        Rotation matrix, shape 3x3.

    Returns
    -------
    D : scipy.sparse.csr_matrix
        The rotation operator, shape ``(total_orders(nmax), total_orders(nmax))``.

    Raises
    ------
    DimensionMismatch
        If `R` is not 3x3.
    ValueError
        If `R` is not orthogonal or is a reflection.

    """
    R = np.asarray(R, dtype=float)
    if R.shape != (3, 3):
        raise DimensionMismatch('Rotation matrix must be 3x3, got {}'.format(R.shape))
    if not (np.allclose(R @ R.T, np.eye(3), atol=1e-8) and np.linalg.det(R) > 0):
        raise ValueError('Matrix is not a proper rotation matrix')
    if nmax < 1:
        return scipy.sparse.csr_matrix((0, 0), dtype=complex)
    logger.debug('Building Wigner rotation matrix for nmax={}'.format(nmax))
    rotvec = Rotation.from_matrix(R).as_rotvec()
    blocks = []
    for n in range(1, nmax + 1):
        Jx, Jy, Jz = _angular_momentum(n)
        generator = rotvec[0] * Jx + rotvec[1] * Jy + rotvec[2] * Jz
        blocks.append(scipy.linalg.expm(-1j * generator))
    return scipy.sparse.block_diag(blocks, format='csr')


def _a(n, m):
    # Coupling of degree n to n+1 in cos(theta) Y_n^m.
    n = np.asarray(n, dtype=float)
    m = abs(m)
    with np.errstate(divide='ignore', invalid='ignore'):
        value = (n + m + 1) * (n - m + 1) / ((2 * n + 1) * (2 * n + 3))
    return np.where(n >= m, np.sqrt(np.clip(value, 0, None)), 0)


def _b_up(n, m):
    # Coupling of (n, m) to (n+1, m+1) under the raising derivative.
    n = np.asarray(n, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        value = (n + m + 1) * (n + m + 2) / ((2 * n + 1) * (2 * n + 3))
    return np.where(n >= m, np.sqrt(np.clip(value, 0, None)), 0)


def _b_down(n, m):
    # Coupling of (n, m) to (n-1, m+1) under the raising derivative.
    n = np.asarray(n, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        value = (n - m) * (n - m - 1) / ((2 * n - 1) * (2 * n + 1))
    return np.where(n >= m + 2, np.sqrt(np.clip(value, 0, None)), 0)


def _shift_up(values):
    # values[n' + 1] at position n'
    return np.concatenate([values[1:], [0]])


def _shift_down(values):
    # values[n' - 1] at position n'
    return np.concatenate([[0], values[:-1]])


def _scalar_coaxial(nmax_out, nmax_in, kt, basis):
    """Scalar coaxial translation coefficients for a positive distance.

    Returns an array ``C[m, n', n]`` for ``0 <= m <= min(nmax_out, nmax_in)``,
    rows up to ``n' = nmax_out`` and columns up to ``n = nmax_in + 1``.
    Only coefficients with ``n <= n'`` are calculated by recurrence, the others
    follow from ``C[m, n', n] = (-1)**(n + n') * C[m, n, n']``.
    """
    size = max(nmax_out, nmax_in + 1) + 1
    num_rows = 2 * size + 2
    max_m = min(nmax_out, nmax_in)
    rows = np.arange(num_rows)

    if basis == 'regular':
        kernel = spherical_jn(rows, kt) + 0j
    elif basis == 'outgoing':
        kernel = spherical_jn(rows, kt) + 1j * spherical_yn(rows, kt)
    else:
        kernel = spherical_jn(rows, kt) - 1j * spherical_yn(rows, kt)

    C = np.zeros((max_m + 1, num_rows, size), dtype=complex)
    sectorial = (-1.)**rows * np.sqrt(2 * rows + 1) * kernel
    for m in range(max_m + 1):
        if m > 0:
            sectorial = (_b_up(rows - 1, m - 1) * _shift_down(sectorial)
                         + _b_down(rows + 1, m - 1) * _shift_up(sectorial)) / _b_up(m - 1, m - 1)
            sectorial[rows < m] = 0
        Cm = C[m]
        Cm[:, m] = sectorial
        for n in range(m, size - 1):
            previous = Cm[:, n - 1] if n > m else 0
            current = Cm[:, n]
            Cm[:, n + 1] = (_a(n - 1, m) * previous
                            - _a(rows, m) * _shift_up(current)
                            + _a(rows - 1, m) * _shift_down(current)) / _a(n, m)
            Cm[:n + 1, n + 1] = 0

    C = C[:, :size]
    degrees = np.arange(size)
    lower = degrees[:, None] >= degrees[None, :]
    parity = (-1.)**np.add.outer(degrees, degrees)
    C = np.where(lower, C, parity * np.swapaxes(C, 1, 2))
    return C[:, :nmax_out + 1, :nmax_in + 2]


def translate_z_matrices(nmax_out, nmax_in, z, basis='regular'):
    """Axial translation matrices.

    Calculates the matrices `A` and `B` which transform the coefficients of
    a field :math:`E(r)` into the coefficients of the translated field
    :math:`E(r - z\\hat{z})` as

    .. math:: a' = A a + B b, \\quad b' = B a + A b

    Parameters
    ----------
    nmax_out : int
        Truncation degree of the translated coefficients.
    nmax_in : int
        Truncation degree of the original coefficients.
    z : float
        Translation distance along the z-axis, in wavelengths.
    basis : str
        Radial functions of the translation kernel.
        ``'regular'`` re-expands regular waves, ``'outgoing'`` and
        ``'incoming'`` re-expand outgoing or incoming waves as regular
        waves close to the new origin.

    Returns
    -------
    A : scipy.sparse.csr_matrix
        Coupling between the same kind of wave functions.
    B : scipy.sparse.csr_matrix
        Coupling between the two kinds of wave functions.

    Raises
    ------
    UnsupportedBasis
        If the basis is unknown.

    """
    check_basis(basis)
    shape = (total_orders(nmax_out), total_orders(nmax_in))
    if z == 0:
        return scipy.sparse.eye(shape[0], shape[1], dtype=complex, format='csr'), scipy.sparse.csr_matrix(shape, dtype=complex)

    logger.debug('Building translation matrices for z={}, nmax {} -> {}, {} basis'.format(z, nmax_in, nmax_out, basis))
    # Translating the field by z evaluates the wave functions at r + t z-hat.
    kt = -wavenumber * z
    C = _scalar_coaxial(nmax_out, nmax_in, abs(kt), basis)
    if kt < 0:
        parity = (-1.)**np.add.outer(np.arange(C.shape[1]), np.arange(C.shape[2]))
        C = C * parity

    rows, cols, A_values, B_values = [], [], [], []
    for m in range(-min(nmax_out, nmax_in), min(nmax_out, nmax_in) + 1):
        Cm = C[abs(m)]
        n_out = np.arange(max(abs(m), 1), nmax_out + 1)
        n_in = np.arange(max(abs(m), 1), nmax_in + 1)
        if n_out.size == 0 or n_in.size == 0:
            continue
        nn_out = n_out[:, None]
        nn_in = n_in[None, :]
        C_same = Cm[nn_out, nn_in]
        C_next = Cm[nn_out, nn_in + 1]
        C_prev = Cm[nn_out, nn_in - 1]
        norm = nn_out * (nn_out + 1)
        alpha = (nn_in * (nn_in + 1) * C_same
                 - kt * nn_in * _a(nn_in, m) * C_next
                 - kt * (nn_in + 1) * _a(nn_in - 1, m) * C_prev) / norm
        beta = 1j * m * kt * C_same / norm
        scale = np.sqrt(norm / (nn_in * (nn_in + 1)))

        ci_out = np.broadcast_to(nn_out * (nn_out + 1) + m, alpha.shape)
        ci_in = np.broadcast_to(nn_in * (nn_in + 1) + m, alpha.shape)
        rows.append(ci_out.ravel() - 1)
        cols.append(ci_in.ravel() - 1)
        A_values.append((scale * alpha).ravel())
        B_values.append((scale * beta).ravel())

    if not rows:
        return scipy.sparse.csr_matrix(shape, dtype=complex), scipy.sparse.csr_matrix(shape, dtype=complex)
    rows = np.concatenate(rows)
    cols = np.concatenate(cols)
    A = scipy.sparse.csr_matrix((np.concatenate(A_values), (rows, cols)), shape=shape)
    B = scipy.sparse.csr_matrix((np.concatenate(B_values), (rows, cols)), shape=shape)
    return A, B
