"""Miscellaneous tools for mode indexing and coordinates.

The vector spherical wave functions are indexed by a degree ``n >= 1`` and an
order ``|m| <= n``. Throughout the package these pairs are stored in a single
linear "combined index" ``ci = n * (n + 1) + m``, which starts at 1 for
``(n, m) = (1, -1)``. A coefficient vector truncated at degree ``nmax`` holds
``total_orders(nmax) = nmax * (nmax + 2)`` values, and the value for a mode
is found at position ``ci - 1``.

.. autosummary::
    :nosignatures:

    combined_index
    from_combined_index
    total_orders
    ModeIndexer
    shifted_indices
    gather_shifted
    xyz2rtp
    rtp2xyz
    rtpv2xyzv
    xyzv2rtpv
    rotx
    roty
    rotz

"""
import numpy as np


class DimensionMismatch(ValueError):
    pass


class InvalidModeIndex(ValueError):
    pass


class TruncationError(ValueError):
    pass


class UnsupportedBasis(ValueError):
    pass


bases = ('regular', 'incoming', 'outgoing')
"""The radial function families that a VSWF expansion can be evaluated with."""


def check_basis(basis):
    """Raise `UnsupportedBasis` unless `basis` is one of the known bases."""
    if basis not in bases:
        raise UnsupportedBasis('Unknown basis {!r}, expected one of {}'.format(basis, bases))
    return basis


def combined_index(n, m):
    """Convert degree and order to combined index.

    Parameters
    ----------
    n : int or array_like
        The degree, at least 1.
    m : int or array_like
        The order, with ``|m| <= n``.

    Returns
    -------
    ci : int or ndarray
        The combined index ``n * (n + 1) + m``.

    Raises
    ------
    InvalidModeIndex
        If any degree is below 1 or any order larger than its degree.

    """
    n = np.asarray(n)
    m = np.asarray(m)
    if np.any(n < 1):
        raise InvalidModeIndex('Degree must be at least 1')
    if np.any(np.abs(m) > n):
        raise InvalidModeIndex('Order cannot be larger than the degree')
    ci = n * (n + 1) + m
    if ci.ndim == 0:
        return int(ci)
    return ci.astype(int)


def from_combined_index(ci):
    """Convert combined index to degree and order.

    Parameters
    ----------
    ci : int or array_like
        Combined index, at least 1.

    Returns
    -------
    n : int or ndarray
        The degree.
    m : int or ndarray
        The order.

    Raises
    ------
    InvalidModeIndex
        If any combined index is below 1.

    """
    ci = np.asarray(ci)
    if np.any(ci < 1):
        raise InvalidModeIndex('Combined index must be at least 1')
    n = np.floor(np.sqrt(ci)).astype(int)
    m = ci - n * (n + 1)
    if ci.ndim == 0:
        return int(n), int(m)
    return n, m.astype(int)


def total_orders(nmax):
    """Number of modes with degrees ``1 <= n <= nmax``."""
    return nmax * (nmax + 2)


def nmax_from_length(length):
    """Truncation degree for a coefficient vector of given length.

    Raises
    ------
    InvalidModeIndex
        If the length does not correspond to a complete set of degrees.

    """
    nmax = int(round((length + 1)**0.5)) - 1
    if nmax < 0 or total_orders(nmax) != length:
        raise InvalidModeIndex('Coefficient length {} does not match any truncation degree'.format(length))
    return nmax


class ModeIndexer:
    """
    Helper class to index vector spherical wave functions.

    Converts between the combined index and the ``(n, m)`` form. Indexing with
    a combined index gives the tuple ``(n, m)``, while calling the object with
    such a tuple gives the combined index. Iterating gives all ``(n, m)`` from
    the minimum to the maximum degree, in combined index order.

    Parameters
    ----------
    max_order : int
        The maximum degree to iterate to.
    min_order : int
        The degree to start iterations from, default 1.

    Examples
    --------
    To loop over the degrees and orders in a single for loop::

        >>> for n, m in ModeIndexer(2):
        >>>     print((n, m))
        (1, -1)
        (1, 0)
        (1, 1)
        (2, -2)
        (2, -1)
        (2, 0)
        (2, 1)
        (2, 2)

    To loop over degrees and orders in nested loops::

        >>> idx = ModeIndexer(2)
        >>> for n in idx.orders:
        >>>     print(n, end=': ')
        >>>     for m in idx.modes:
        >>>         print(m, end=' ')
        >>>     print()
        1: -1 0 1
        2: -2 -1 0 1 2

    """

    def __init__(self, max_order, min_order=1):
        self.max_order = max_order
        self.min_order = max(min_order, 1)

    def __call__(self, order, mode):
        return combined_index(order, mode)

    def __getitem__(self, index):
        return from_combined_index(index)

    def __iter__(self):
        for index in range(self.min_order**2, total_orders(self.max_order) + 1):
            yield self[index]

    def __len__(self):
        return max(total_orders(self.max_order) - self.min_order**2 + 1, 0)

    @property
    def indices(self):
        """All combined indices in the indexer, as an array."""
        return np.arange(self.min_order**2, total_orders(self.max_order) + 1)

    @property
    def n(self):
        """The degree of every mode in the indexer, as an array."""
        return from_combined_index(self.indices)[0] if len(self) > 0 else np.zeros(0, int)

    @property
    def m(self):
        """The order of every mode in the indexer, as an array."""
        return from_combined_index(self.indices)[1] if len(self) > 0 else np.zeros(0, int)

    @property
    def orders(self):
        """Iterate over degrees.

        Will enable the synchronized `modes` iterator.
        """
        self._current_order = self.min_order
        while self._current_order <= self.max_order:
            yield self._current_order
            self._current_order += 1
        del self._current_order

    @property
    def modes(self):
        """Iterate over the orders of the current degree."""
        try:
            order = self._current_order
        except AttributeError:
            raise AttributeError('Cannot iterate over modes without iterating over orders!') from None
        mode = -order
        while mode <= order:
            yield mode
            mode += 1


_shifts = {
    'n+1': (1, 0),
    'm+1': (0, 1),
    'n+1,m+1': (1, 1),
    'n+1,m-1': (1, -1),
}
"""The degree and order shifts used by the force and torque recurrences."""


def shifted_indices(n, m, nmax):
    """Combined indices of shifted modes.

    For every mode ``(n, m)`` the combined indices of ``(n+1, m)``,
    ``(n, m+1)``, ``(n+1, m+1)`` and ``(n+1, m-1)`` are calculated.
    Shifted modes outside of the truncation, or with ``|m| > n``, are
    flagged as invalid and given the placeholder index 1.

    Parameters
    ----------
    n : array_like
        Degrees.
    m : array_like
        Orders.
    nmax : int
        The truncation degree.

    Returns
    -------
    shifted : dict
        Maps ``'n+1'``, ``'m+1'``, ``'n+1,m+1'`` and ``'n+1,m-1'`` to
        tuples ``(ci, valid)`` of index and boolean mask arrays.

    """
    n = np.asarray(n)
    m = np.asarray(m)
    shifted = {}
    for name, (dn, dm) in _shifts.items():
        new_n = n + dn
        new_m = m + dm
        valid = (new_n <= nmax) & (np.abs(new_m) <= new_n)
        ci = np.where(valid, new_n * (new_n + 1) + new_m, 1)
        shifted[name] = (ci.astype(int), valid)
    return shifted


def gather_shifted(values, n, m, nmax):
    """Collect values at shifted modes, zero where the shift is invalid.

    Parameters
    ----------
    values : ndarray
        Dense coefficient vector of length ``total_orders(nmax)``.
    n, m : array_like
        Degrees and orders to shift from.
    nmax : int
        The truncation degree of `values`.

    Returns
    -------
    gathered : dict
        Arrays with the same keys as `shifted_indices`.

    """
    values = np.asarray(values)
    if values.shape[0] != total_orders(nmax):
        raise DimensionMismatch('Got {} values, expected {} for nmax={}'.format(values.shape[0], total_orders(nmax), nmax))
    gathered = {}
    for name, (ci, valid) in shifted_indices(n, m, nmax).items():
        if values.shape[0] == 0:
            gathered[name] = np.zeros(ci.shape, dtype=values.dtype)
        else:
            gathered[name] = np.where(valid, values[ci - 1], 0)
    return gathered


def xyz2rtp(xyz):
    """Convert Cartesian points to spherical coordinates.

    Parameters
    ----------
    xyz : array_like
        Points, shape 3xN or 3.

    Returns
    -------
    rtp : ndarray
        Radius, polar angle and azimuthal angle, same shape as `xyz`.

    """
    xyz = np.asarray(xyz, dtype=float)
    if xyz.shape[0] != 3:
        raise DimensionMismatch('Cartesian points must have 3 components')
    x, y, z = xyz
    rho = np.hypot(x, y)
    return np.stack([np.hypot(rho, z), np.arctan2(rho, z), np.arctan2(y, x)], axis=0)


def rtp2xyz(rtp):
    """Convert spherical coordinates to Cartesian points."""
    rtp = np.asarray(rtp, dtype=float)
    if rtp.shape[0] != 3:
        raise DimensionMismatch('Spherical points must have 3 components')
    r, theta, phi = rtp
    return np.stack([
        r * np.sin(theta) * np.cos(phi),
        r * np.sin(theta) * np.sin(phi),
        r * np.cos(theta)], axis=0)


def _unit_vectors(theta, phi):
    # Rows are the Cartesian components of r-hat, theta-hat and phi-hat.
    st, ct = np.sin(theta), np.cos(theta)
    sp, cp = np.sin(phi), np.cos(phi)
    zero = np.zeros(np.shape(theta))
    return np.array([
        [st * cp, st * sp, ct],
        [ct * cp, ct * sp, -st],
        [-sp, cp, zero]])


def rtpv2xyzv(vrtp, rtp):
    """Convert spherical vector components to Cartesian components.

    Parameters
    ----------
    vrtp : array_like
        Vector components along r, theta and phi, shape 3xN.
    rtp : array_like
        The location of the vectors in spherical coordinates, shape 3xN.

    Returns
    -------
    vxyz : ndarray
        Cartesian vector components.

    """
    vrtp = np.asarray(vrtp)
    rtp = np.asarray(rtp, dtype=float)
    units = _unit_vectors(rtp[1], rtp[2])
    return np.einsum('ij...,i...->j...', units, vrtp)


def xyzv2rtpv(vxyz, xyz):
    """Convert Cartesian vector components to spherical components.

    Returns
    -------
    vrtp : ndarray
        Vector components along r, theta and phi.
    rtp : ndarray
        The location in spherical coordinates.

    """
    vxyz = np.asarray(vxyz)
    rtp = xyz2rtp(xyz)
    units = _unit_vectors(rtp[1], rtp[2])
    return np.einsum('ij...,j...->i...', units, vxyz), rtp


def rotx(angle):
    """Rotation matrix around the x-axis, angle in radians."""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[1, 0, 0], [0, c, -s], [0, s, c]])


def roty(angle):
    """Rotation matrix around the y-axis, angle in radians."""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, 0, s], [0, 1, 0], [-s, 0, c]])


def rotz(angle):
    """Rotation matrix around the z-axis, angle in radians."""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0], [s, c, 0], [0, 0, 1]])
