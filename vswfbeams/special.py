"""Special functions for vector spherical wave functions.

The angular parts of the VSWFs are built from orthonormal spherical harmonics
with the Condon-Shortley phase, and the radial parts from spherical Bessel or
Hankel functions. Repeated field evaluations at the same points reuse the
values through a `VswfData` object.

.. autosummary::
    :nosignatures:

    spherical_harmonics
    radial_function
    VswfData

"""
import logging
import numpy as np
from scipy.special import sph_harm_y, spherical_jn, spherical_yn

from .utils import check_basis, from_combined_index

logger = logging.getLogger(__name__)

small_radius = 1e-100
"""Replaces zero radial arguments to avoid evaluating at the singularity."""


def _ynm(n, m, theta, phi):
    # Orthonormal harmonic, zero where the mode does not exist.
    valid = (n >= 0) & (np.abs(m) <= n)
    n_safe = np.where(valid, n, 0)
    m_safe = np.where(valid, m, 0)
    return np.where(valid, sph_harm_y(n_safe, m_safe, theta, phi), 0)


def spherical_harmonics(n, m, theta, phi):
    r"""Spherical harmonics and their angular derivatives.

    The angular derivatives are calculated using the ladder relations to
    lower orders, which keeps them finite at the poles.

    Parameters
    ----------
    n : array_like
        Degrees, one per mode.
    m : array_like
        Orders, one per mode.
    theta : array_like
        Polar angles, one per sample.
    phi : array_like
        Azimuthal angles, one per sample.

    Returns
    -------
    Y : ndarray
        The harmonics :math:`Y_n^m`, shape modes x samples.
    Ytheta : ndarray
        The polar derivative :math:`\partial Y / \partial \theta`.
    Yphi : ndarray
        The scaled azimuthal derivative :math:`\frac{1}{\sin\theta}\partial Y / \partial \phi`.

    """
    n = np.asarray(n).reshape(-1, 1)
    m = np.asarray(m).reshape(-1, 1)
    theta = np.asarray(theta, dtype=float).reshape(1, -1)
    phi = np.asarray(phi, dtype=float).reshape(1, -1)

    Y = _ynm(n, m, theta, phi)
    e_minus = np.exp(-1j * phi)
    e_plus = np.exp(1j * phi)

    Ytheta = 0.5 * (
        np.sqrt(np.clip((n - m) * (n + m + 1), 0, None)) * e_minus * _ynm(n, m + 1, theta, phi)
        - np.sqrt(np.clip((n + m) * (n - m + 1), 0, None)) * e_plus * _ynm(n, m - 1, theta, phi)
    )
    Yphi = -0.5j * np.sqrt((2 * n + 1) / (2 * n - 1)) * (
        np.sqrt(np.clip((n - m) * (n - m - 1), 0, None)) * e_minus * _ynm(n - 1, m + 1, theta, phi)
        + np.sqrt(np.clip((n + m) * (n + m - 1), 0, None)) * e_plus * _ynm(n - 1, m - 1, theta, phi)
    )
    return Y, Ytheta, Yphi


def radial_function(n, kr, basis='regular'):
    """Spherical Bessel or Hankel functions and their derivative term.

    Parameters
    ----------
    n : array_like
        Degrees, one per row of the output.
    kr : array_like
        Nondimensional radii, one per column of the output.
        Zero radii are replaced with `small_radius`.
    basis : str
        ``'regular'`` for spherical Bessel functions of the first kind,
        ``'outgoing'`` for spherical Hankel functions of the first kind,
        ``'incoming'`` for spherical Hankel functions of the second kind.

    Returns
    -------
    hn : ndarray
        The radial functions.
    dhn : ndarray
        The derivative term :math:`(x h_n(x))' / x` appearing in the VSWFs.

    Raises
    ------
    UnsupportedBasis
        If the basis is not one of the three above.

    """
    check_basis(basis)
    n = np.asarray(n).reshape(-1, 1)
    kr = np.asarray(kr, dtype=float).reshape(1, -1)
    kr = np.where(kr == 0, small_radius, kr)

    def z(order):
        if basis == 'regular':
            return spherical_jn(order, kr) + 0j
        elif basis == 'outgoing':
            return spherical_jn(order, kr) + 1j * spherical_yn(order, kr)
        else:
            return spherical_jn(order, kr) - 1j * spherical_yn(order, kr)

    hn = z(n)
    dhn = z(n - 1) - n * hn / kr
    return hn, dhn


class VswfData:
    """Cache for harmonics and radial functions.

    Pass the same object to repeated field evaluations at the same points
    to avoid recalculating the special functions. The values are stored
    per combined index and per degree. Calling with different points clears
    the stored values, so the returned values are always the same as an
    uncached calculation.

    The object is not safe to share between threads.
    """

    def __init__(self):
        self._angles = None
        self._harmonics = {}
        self._radii = None
        self._radial = {}

    def __repr__(self):
        return '{}(<{} harmonics>, <{} radial functions>)'.format(type(self).__name__, len(self._harmonics), len(self._radial))

    @staticmethod
    def _same(stored, new):
        return stored is not None and stored.shape == new.shape and np.array_equal(stored, new)

    def evaluate_harmonics(self, ci, theta, phi):
        """Harmonics for the combined indices `ci` at the given angles.

        Returns
        -------
        Y, Ytheta, Yphi : ndarray
            Arrays of shape modes x samples, see `spherical_harmonics`.

        """
        ci = np.atleast_1d(np.asarray(ci, dtype=int))
        angles = np.stack([np.asarray(theta, dtype=float).ravel(), np.asarray(phi, dtype=float).ravel()])
        if not self._same(self._angles, angles):
            self._angles = angles
            self._harmonics = {}

        missing = sorted(set(ci.tolist()) - set(self._harmonics))
        if missing:
            logger.debug('Evaluating {} harmonics at {} angles'.format(len(missing), angles.shape[1]))
            n, m = from_combined_index(np.array(missing))
            values = spherical_harmonics(n, m, angles[0], angles[1])
            for row, idx in enumerate(missing):
                self._harmonics[idx] = tuple(v[row] for v in values)

        num_samples = angles.shape[1]
        output = []
        for part in range(3):
            if ci.size == 0:
                output.append(np.zeros((0, num_samples), dtype=complex))
            else:
                output.append(np.stack([self._harmonics[idx][part] for idx in ci.tolist()]))
        return tuple(output)

    def evaluate_radial(self, n, kr, basis='regular'):
        """Radial functions for the degrees `n` at the radii `kr`.

        Returns
        -------
        hn, dhn : ndarray
            Arrays of shape degrees x samples, see `radial_function`.

        """
        check_basis(basis)
        n = np.atleast_1d(np.asarray(n, dtype=int))
        kr = np.asarray(kr, dtype=float).ravel()
        if not self._same(self._radii, kr):
            self._radii = kr
            self._radial = {}

        missing = sorted(set((basis, order) for order in n.tolist()) - set(self._radial))
        if missing:
            logger.debug('Evaluating {} {} radial functions at {} radii'.format(len(missing), basis, kr.size))
            orders = np.array([order for _, order in missing])
            values = radial_function(orders, kr, basis)
            for row, key in enumerate(missing):
                self._radial[key] = tuple(v[row] for v in values)

        output = []
        for part in range(2):
            if n.size == 0:
                output.append(np.zeros((0, kr.size), dtype=complex))
            else:
                output.append(np.stack([self._radial[(basis, order)][part] for order in n.tolist()]))
        return tuple(output)
