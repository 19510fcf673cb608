"""Beam shape coefficients.

A beam is described by the coefficients of its vector spherical wave function
expansion, stored in a `Bsc` object. The coefficients ``a`` multiply the
transverse electric wave functions (M) and the coefficients ``b`` the
transverse magnetic wave functions (N), both in combined index layout.
All lengths are in wavelengths.

.. autosummary::
    :nosignatures:

    Bsc
    sum
    times
    rotate
    force
    torque
    spin
    force_torque_spin

Every operation on a `Bsc` returns a new object. Arrays of beams are
represented as numpy object arrays, and the module level functions accept
such arrays where they make sense.

"""
import functools
import logging
import operator
import warnings
import numpy as np
import scipy.sparse

from . import operators
from .fieldvector import FieldVector
from .special import VswfData
from .utils import (DimensionMismatch, InvalidModeIndex, TruncationError, UnsupportedBasis,
                    ModeIndexer, check_basis, combined_index, from_combined_index, gather_shifted,
                    nmax_from_length, rtp2xyz, rotx, roty, rotz, total_orders, xyz2rtp)

logger = logging.getLogger(__name__)

power_loss_policies = ('ignore', 'warn', 'error')


def _dense(values):
    if scipy.sparse.issparse(values):
        return np.asarray(values.toarray()).ravel()
    return np.asarray(values)


def _column(values):
    return scipy.sparse.csc_matrix(np.asarray(values).reshape(-1, 1))


def _beam_array(beams):
    if isinstance(beams, Bsc):
        out = np.empty(1, dtype=object)
        out[0] = beams
        return out
    return np.asarray(beams, dtype=object)


class Bsc:
    """Beam shape coefficients.

    Parameters
    ----------
    a : array_like or sparse matrix
        Coefficients of the transverse electric wave functions.
    b : array_like or sparse matrix
        Coefficients of the transverse magnetic wave functions.

    Both vectors must have the same length ``nmax * (nmax + 2)``.
    Sparse inputs are kept as sparse columns, other inputs are stored as
    dense arrays. The storage format does not change any results.

    Raises
    ------
    DimensionMismatch
        If `a` and `b` have different lengths, or are not vectors.
    InvalidModeIndex
        If the length is not a complete set of degrees.

    """

    __array_ufunc__ = None

    def __init__(self, a=None, b=None):
        a = np.zeros(0, dtype=complex) if a is None else a
        b = np.zeros(0, dtype=complex) if b is None else b
        for values in (a, b):
            shape = values.shape if scipy.sparse.issparse(values) else np.shape(values)
            if len(shape) > 2 or (len(shape) == 2 and shape[1] != 1):
                raise DimensionMismatch('Coefficients must be vectors or single columns, got shape {}'.format(shape))
        if scipy.sparse.issparse(a) or scipy.sparse.issparse(b):
            a = scipy.sparse.csc_matrix(a, dtype=complex).reshape(-1, 1) if scipy.sparse.issparse(a) else _column(np.asarray(a, dtype=complex))
            b = scipy.sparse.csc_matrix(b, dtype=complex).reshape(-1, 1) if scipy.sparse.issparse(b) else _column(np.asarray(b, dtype=complex))
        else:
            a = np.asarray(a, dtype=complex).ravel()
            b = np.asarray(b, dtype=complex).ravel()
        if a.shape[0] != b.shape[0]:
            raise DimensionMismatch('Coefficient vectors have different lengths, {} and {}'.format(a.shape[0], b.shape[0]))
        self._nmax = nmax_from_length(a.shape[0])
        self._a = a
        self._b = b

    def __repr__(self):
        return '{}(nmax={}, power={:.6g}{})'.format(type(self).__name__, self.nmax, self.power, ', sparse' if self.issparse else '')

    def _new(self, a, b):
        # New beam with the same storage format as this one.
        if self.issparse:
            return Bsc(_column(a), _column(b))
        return Bsc(a, b)

    @classmethod
    def from_dense(cls, a, b, n, m):
        """Create beams from coefficients for given modes.

        Parameters
        ----------
        a, b : array_like
            Coefficients, one row per mode. Two dimensional inputs give one
            beam per column.
        n, m : array_like
            Degree and order for each row.

        Returns
        -------
        beam : Bsc or ndarray
            A single beam, or an object array of beams for two dimensional
            coefficients. Repeated modes are summed.

        Raises
        ------
        InvalidModeIndex
            If the lengths of the inputs do not match.

        """
        a = np.asarray(a, dtype=complex)
        b = np.asarray(b, dtype=complex)
        n = np.asarray(n, dtype=int).ravel()
        m = np.asarray(m, dtype=int).ravel()
        if n.shape != m.shape or a.shape[0] != n.size or b.shape != a.shape:
            raise InvalidModeIndex('Mode indices and coefficients must have matching lengths, got n:{} m:{} a:{} b:{}'.format(n.size, m.size, a.shape, b.shape))
        nmax = int(n.max()) if n.size else 0
        ci = combined_index(n, m) if n.size else np.zeros(0, dtype=int)

        def scatter(values):
            full = np.zeros((total_orders(nmax),) + values.shape[1:], dtype=complex)
            np.add.at(full, ci - 1, values)
            return full

        full_a, full_b = scatter(a), scatter(b)
        if a.ndim == 1:
            return cls(full_a, full_b)
        beams = np.empty(a.shape[1], dtype=object)
        for idx in range(a.shape[1]):
            beams[idx] = cls(full_a[:, idx], full_b[:, idx])
        return beams

    @classmethod
    def basis_set(cls, ci):
        """Single mode beams for the requested combined indices.

        Returns
        -------
        beams : ndarray
            Object array with ``2 * len(ci)`` beams, first the transverse
            electric beams (``a = 1``) followed by the transverse magnetic
            beams (``b = 1``), in the order of `ci`.

        """
        ci = np.atleast_1d(np.asarray(ci, dtype=int))
        n, m = from_combined_index(ci)
        ones = np.eye(ci.size)
        zeros = np.zeros((ci.size, ci.size))
        te = cls.from_dense(ones, zeros, n, m)
        tm = cls.from_dense(zeros, ones, n, m)
        return np.concatenate([te, tm])

    @property
    def a(self):
        """Transverse electric coefficients, as stored."""
        return self._a

    @property
    def b(self):
        """Transverse magnetic coefficients, as stored."""
        return self._b

    @property
    def ab(self):
        """Dense stacked coefficients ``[a; b]``."""
        return np.concatenate([_dense(self._a), _dense(self._b)])

    @property
    def nmax(self):
        return self._nmax

    @property
    def power(self):
        """The power of the beam, sum of squared coefficient magnitudes."""
        if self.issparse:
            return float(np.sum(np.abs(self._a.data)**2) + np.sum(np.abs(self._b.data)**2))
        return float(np.sum(np.abs(self._a)**2) + np.sum(np.abs(self._b)**2))

    def set_power(self, power):
        """Scale the beam to a new power."""
        return self * np.sqrt(power / self.power)

    @property
    def issparse(self):
        return scipy.sparse.issparse(self._a)

    def full(self):
        """Beam with dense storage."""
        return Bsc(_dense(self._a), _dense(self._b))

    def sparse(self):
        """Beam with sparse storage."""
        return Bsc(_column(_dense(self._a)), _column(_dense(self._b)))

    def make_sparse(self, abs_tol=None, rel_tol=None):
        """Remove small coefficients and store the beam sparse.

        A mode is kept only if its power ``|a|**2 + |b|**2`` is larger than
        every given threshold.

        Parameters
        ----------
        abs_tol : float, optional
            Absolute power threshold.
        rel_tol : float, optional
            Power threshold relative to the total beam power.

        """
        a, b = self.get_coefficients()
        mode_power = np.abs(a)**2 + np.abs(b)**2
        keep = np.ones(mode_power.shape, dtype=bool)
        if abs_tol is not None:
            keep &= mode_power > abs_tol
        if rel_tol is not None:
            keep &= mode_power > rel_tol * mode_power.sum()
        logger.debug('Keeping {} of {} modes when sparsifying'.format(np.count_nonzero(keep), keep.size))
        return Bsc(_column(np.where(keep, a, 0)), _column(np.where(keep, b, 0)))

    def set_nmax(self, nmax, abs_tol=None, rel_tol=1e-15, power_loss='warn'):
        """Change the truncation degree.

        Growing the truncation pads with zeros. Shrinking the truncation
        compares the power before and after, and applies the power loss
        policy if the change is larger than either tolerance.

        Parameters
        ----------
        nmax : int
            The new truncation degree.
        abs_tol : float, optional
            Tolerance for the absolute power change, disabled by default.
        rel_tol : float, optional
            Tolerance for the relative power change, default 1e-15.
        power_loss : str
            ``'ignore'``, ``'warn'`` (default) or ``'error'``.

        Raises
        ------
        TruncationError
            If power is lost with ``power_loss='error'``.
        ValueError
            If the power loss policy is unknown.

        """
        if power_loss not in power_loss_policies:
            raise ValueError('Unknown power loss policy {!r}, expected one of {}'.format(power_loss, power_loss_policies))
        if nmax < 0:
            raise InvalidModeIndex('Truncation degree cannot be negative')
        length = total_orders(nmax)
        current = total_orders(self.nmax)
        if length == current:
            return self._new(_dense(self._a), _dense(self._b))
        a, b = self.get_coefficients()
        if length > current:
            pad = np.zeros(length - current, dtype=complex)
            return self._new(np.concatenate([a, pad]), np.concatenate([b, pad]))

        beam = self._new(a[:length], b[:length])
        if power_loss != 'ignore':
            before = self.power
            after = beam.power
            abs_error = abs(after - before)
            rel_error = abs_error / before if before > 0 else 0
            if (abs_tol is not None and abs_error > abs_tol) or (rel_tol is not None and rel_error > rel_tol):
                message = 'Truncating to nmax={} changed the beam power by {:.3g} (relative {:.3g})'.format(nmax, abs_error, rel_error)
                if power_loss == 'error':
                    raise TruncationError(message)
                warnings.warn(message)
        logger.debug('Truncated beam from nmax={} to nmax={}'.format(self.nmax, nmax))
        return beam

    def shrink_nmax(self, abs_tol=None, rel_tol=1e-15):
        """Reduce the truncation degree while preserving the power.

        The search starts at the degree of the last mode with power above
        `abs_tol` (or at zero), and increases the degree until the relative
        power error is below `rel_tol`. The first degree that satisfies the
        tolerance is used.

        """
        a, b = self.get_coefficients()
        mode_power = np.abs(a)**2 + np.abs(b)**2
        min_nmax = 0
        if abs_tol is not None:
            significant = np.flatnonzero(mode_power > abs_tol)
            if significant.size:
                min_nmax = from_combined_index(significant[-1] + 1)[0]
        total = self.power
        for nmax in range(min_nmax, self.nmax + 1):
            beam = self.set_nmax(nmax, power_loss='ignore')
            if rel_tol is None or total == 0 or abs(beam.power - total) / total < rel_tol:
                break
        logger.debug('Shrunk beam from nmax={} to nmax={}'.format(self.nmax, beam.nmax))
        return beam

    def get_coefficients(self, ci=None):
        """Dense coefficients.

        Parameters
        ----------
        ci : array_like, optional
            Combined indices to get, default all stored modes.
            Indices beyond the truncation give zeros.

        Returns
        -------
        a, b : ndarray
            The requested coefficients.

        """
        a = _dense(self._a)
        b = _dense(self._b)
        if ci is None:
            return a.copy(), b.copy()
        ci = np.asarray(ci, dtype=int)
        if np.any(ci < 1):
            raise InvalidModeIndex('Combined index must be at least 1')
        inside = ci <= a.size
        safe = np.where(inside, ci, 1) - 1
        if a.size == 0:
            return np.zeros(ci.shape, dtype=complex), np.zeros(ci.shape, dtype=complex)
        return np.where(inside, a[safe], 0), np.where(inside, b[safe], 0)

    def set_coefficients(self, a, b=None, ci=None):
        """Beam with replaced coefficients.

        Parameters
        ----------
        a, b : array_like
            New coefficients. If `b` is not given, `a` is either the
            stacked vector ``[a; b]`` or another `Bsc` to copy the
            coefficients from.
        ci : array_like, optional
            Combined indices for the coefficients. If not given, `a` and
            `b` replace all coefficients. Otherwise the other modes are kept,
            and the truncation grows if needed.

        Raises
        ------
        DimensionMismatch
            If a stacked vector has an odd length.

        """
        if b is None:
            if isinstance(a, Bsc):
                a, b = a.get_coefficients()
            else:
                ab = np.asarray(a).ravel()
                if ab.size % 2:
                    raise DimensionMismatch('Stacked coefficients must have an even length, got {}'.format(ab.size))
                a, b = ab[:ab.size // 2], ab[ab.size // 2:]
        if ci is None:
            return self._new(a, b)
        ci = np.atleast_1d(np.asarray(ci, dtype=int))
        nmax = max(self.nmax, from_combined_index(ci.max())[0]) if ci.size else self.nmax
        new_a, new_b = self.set_nmax(nmax).get_coefficients()
        new_a[ci - 1] = a
        new_b[ci - 1] = b
        return self._new(new_a, new_b)

    def combined_index(self, full=False):
        """Combined indices of the modes in the beam.

        Parameters
        ----------
        full : bool
            Return all modes up to the truncation instead of only the
            modes with non-zero coefficients.

        """
        if full:
            return ModeIndexer(self.nmax).indices
        a, b = self.get_coefficients()
        return np.flatnonzero((a != 0) | (b != 0)) + 1

    def mode_indices(self):
        """Degree and order of every stored mode."""
        indexer = ModeIndexer(self.nmax)
        return indexer.n, indexer.m

    def real(self):
        a, b = self.get_coefficients()
        return self._new(a.real, b.real)

    def imag(self):
        a, b = self.get_coefficients()
        return self._new(a.imag, b.imag)

    def abs(self):
        a, b = self.get_coefficients()
        return self._new(np.abs(a), np.abs(b))

    __abs__ = abs

    def __add__(self, other):
        if not isinstance(other, Bsc):
            return NotImplemented
        nmax = max(self.nmax, other.nmax)
        a1, b1 = self.set_nmax(nmax).get_coefficients()
        a2, b2 = other.set_nmax(nmax).get_coefficients()
        return self._new(a1 + a2, b1 + b2)

    def __sub__(self, other):
        if not isinstance(other, Bsc):
            return NotImplemented
        return self + (-other)

    def __neg__(self):
        return self * -1

    def __mul__(self, other):
        if isinstance(other, Bsc) or np.ndim(other) != 0:
            return NotImplemented
        a, b = self.get_coefficients()
        return self._new(a * other, b * other)

    __rmul__ = __mul__

    def __truediv__(self, other):
        if isinstance(other, Bsc) or np.ndim(other) != 0:
            return NotImplemented
        a, b = self.get_coefficients()
        return self._new(a / other, b / other)

    def __rmatmul__(self, other):
        return self.apply(other)

    def apply(self, matrix):
        """Apply a linear operator to the coefficients.

        A matrix with as many columns as the length of `a` is applied to
        `a` and `b` separately. A matrix with twice that number of columns is
        applied to the stacked vector ``[a; b]``, and the result is split in
        two halves. This is the same as ``matrix @ beam``.

        Raises
        ------
        DimensionMismatch
            If the number of columns matches neither case.

        """
        columns = matrix.shape[1]
        a, b = self.get_coefficients()
        if columns == a.size:
            return self._new(np.asarray(matrix @ a).ravel(), np.asarray(matrix @ b).ravel())
        if columns == 2 * a.size:
            ab = np.asarray(matrix @ np.concatenate([a, b])).ravel()
            if ab.size % 2:
                raise DimensionMismatch('Operator on stacked coefficients must have an even number of rows')
            half = ab.size // 2
            return self._new(ab[:half], ab[half:])
        raise DimensionMismatch('Operator with {} columns cannot be applied to a beam with {} modes'.format(columns, a.size))

    def _field_terms(self):
        ci = self.combined_index()
        a, b = self.get_coefficients(ci)
        if ci.size:
            n, m = from_combined_index(ci)
        else:
            n = m = np.zeros(0, dtype=int)
        return ci, n, a, b

    def _near_field(self, rtp, basis, data, magnetic):
        check_basis(basis)
        rtp = np.asarray(rtp, dtype=float)
        if rtp.ndim == 1:
            rtp = rtp.reshape(3, 1) if rtp.size == 3 else rtp
        if rtp.ndim != 2 or rtp.shape[0] != 3:
            raise DimensionMismatch('Points must have shape 3xN, got {}'.format(rtp.shape))
        data = VswfData() if data is None else data

        ci, n, a, b = self._field_terms()
        if magnetic:
            a, b = b, a
        kr = operators.wavenumber * rtp[0]
        Y, Ytheta, Yphi = data.evaluate_harmonics(ci, rtp[1], rtp[2])
        degrees, rows = np.unique(n, return_inverse=True)
        hn, dhn = data.evaluate_radial(degrees, kr, basis)
        hn, dhn = hn[rows], dhn[rows]

        Nn = 1 / np.sqrt(n * (n + 1))[:, None]
        a = a[:, None]
        b = b[:, None]
        kr_safe = np.where(kr == 0, 1e-100, kr)
        Er = np.sum(Nn * (n * (n + 1))[:, None] / kr_safe * hn * Y * b, axis=0)
        Etheta = np.sum(Nn * (a * Yphi * hn + b * Ytheta * dhn), axis=0)
        Ephi = np.sum(Nn * (-a * Ytheta * hn + b * Yphi * dhn), axis=0)
        E = np.stack([Er, Etheta, Ephi])
        if magnetic:
            E = -1j * E
        return FieldVector(np.concatenate([E, rtp]), 'spherical'), data

    def _far_field(self, tp, basis, data, magnetic):
        check_basis(basis)
        if basis == 'regular':
            raise UnsupportedBasis('Far fields need an incoming or outgoing basis')
        tp = np.asarray(tp, dtype=float)
        if tp.ndim == 1:
            tp = tp.reshape(-1, 1)
        if tp.shape[0] == 3:
            rtp = tp
        elif tp.shape[0] == 2:
            rtp = np.concatenate([np.ones((1, tp.shape[1])), tp])
        else:
            raise DimensionMismatch('Directions must have shape 2xN or 3xN, got {}'.format(tp.shape))
        data = VswfData() if data is None else data

        ci, n, a, b = self._field_terms()
        if magnetic:
            a, b = b, a
        phase = 1j if basis == 'incoming' else -1j
        Nn = 1 / np.sqrt(n * (n + 1))
        a = (phase**(n + 1) * Nn * a)[:, None]
        b = (phase**n * Nn * b)[:, None]
        Y, Ytheta, Yphi = data.evaluate_harmonics(ci, rtp[1], rtp[2])
        Etheta = np.sum(a * Yphi + b * Ytheta, axis=0)
        Ephi = np.sum(-a * Ytheta + b * Yphi, axis=0)
        E = np.stack([np.zeros_like(Etheta), Etheta, Ephi])
        if magnetic:
            E = -1j * E
        return FieldVector(np.concatenate([E, rtp]), 'spherical'), data

    def efield(self, rtp, basis='regular', data=None):
        """Electric field at points in spherical coordinates.

        Parameters
        ----------
        rtp : array_like
            Radius, polar and azimuthal angle of the points, shape 3xN.
            The radius is in wavelengths.
        basis : str
            ``'regular'``, ``'incoming'`` or ``'outgoing'`` radial functions.
        data : VswfData, optional
            Cache of special function values from earlier calls.

        Returns
        -------
        E : FieldVector
            The field in spherical coordinates, located at `rtp`.
        data : VswfData
            The cache, for reuse with the same points.

        """
        return self._near_field(rtp, basis, data, magnetic=False)

    def hfield(self, rtp, basis='regular', data=None):
        """Magnetic field at points in spherical coordinates, see `efield`."""
        return self._near_field(rtp, basis, data, magnetic=True)

    def efield_xyz(self, xyz, basis='regular', data=None):
        """Electric field at Cartesian points, in Cartesian coordinates."""
        E, data = self.efield(xyz2rtp(xyz), basis=basis, data=data)
        return E.to_cartesian(), data

    def hfield_xyz(self, xyz, basis='regular', data=None):
        """Magnetic field at Cartesian points, in Cartesian coordinates."""
        H, data = self.hfield(xyz2rtp(xyz), basis=basis, data=data)
        return H.to_cartesian(), data

    def efarfield(self, tp, basis='incoming', data=None):
        """Electric far field in given directions.

        Parameters
        ----------
        tp : array_like
            Polar and azimuthal angles, shape 2xN, or points with the radius
            first, shape 3xN. The radius is not used.
        basis : str
            ``'incoming'`` or ``'outgoing'``.
        data : VswfData, optional
            Cache of special function values from earlier calls.

        Returns
        -------
        E : FieldVector
            The transverse far field in spherical coordinates.
        data : VswfData
            The cache, for reuse with the same directions.

        Raises
        ------
        UnsupportedBasis
            For the regular basis, which has no single far field.

        """
        return self._far_field(tp, basis, data, magnetic=False)

    def hfarfield(self, tp, basis='incoming', data=None):
        """Magnetic far field in given directions, see `efarfield`."""
        return self._far_field(tp, basis, data, magnetic=True)

    def rotate(self, R, nmax=None):
        """Rotate the beam.

        The rotated beam has the field :math:`R E(R^T r)`.

        Parameters
        ----------
        R : array_like
            Rotation matrix, shape 3x3.
        nmax : int, optional
            Truncation of the rotated beam, default the current truncation.

        Returns
        -------
        beam : Bsc
            The rotated beam.
        D : scipy.sparse.csr_matrix
            The Wigner rotation matrix, can be reused with ``D @ beam``.

        """
        nmax = self.nmax if nmax is None else nmax
        D = operators.wigner_rotation_matrix(nmax, R)
        return self.set_nmax(nmax).apply(D), D

    def rotate_x(self, angle, nmax=None):
        """Rotate the beam around the x-axis, angle in radians."""
        return self.rotate(rotx(angle), nmax=nmax)

    def rotate_y(self, angle, nmax=None):
        """Rotate the beam around the y-axis, angle in radians."""
        return self.rotate(roty(angle), nmax=nmax)

    def rotate_z(self, angle, nmax=None):
        """Rotate the beam around the z-axis, angle in radians."""
        return self.rotate(rotz(angle), nmax=nmax)

    def translate_z(self, z, nmax=None, basis='regular'):
        """Translate the beam along the z-axis.

        The translated beam has the field :math:`E(r - z\\hat{z})`.

        Parameters
        ----------
        z : float or array_like
            Translation distance in wavelengths. A sequence of distances
            gives an object array of beams, and lists of matrices.
        nmax : int, optional
            Truncation of the translated beam, default the current truncation.
        basis : str
            Radial functions of the translation kernel, see
            `~vswfbeams.operators.translate_z_matrices`.

        Returns
        -------
        beam : Bsc
            The translated beam.
        A, B : scipy.sparse.csr_matrix
            The translation matrices.

        """
        nmax = self.nmax if nmax is None else nmax
        if np.ndim(z) > 0:
            distances = np.ravel(z)
            beams = np.empty(distances.size, dtype=object)
            As, Bs = [], []
            for idx, distance in enumerate(distances):
                beams[idx], A, B = self.translate_z(distance, nmax=nmax, basis=basis)
                As.append(A)
                Bs.append(B)
            return beams, As, Bs
        A, B = operators.translate_z_matrices(nmax, self.nmax, float(z), basis=basis)
        return self.apply(scipy.sparse.bmat([[A, B], [B, A]], format='csr')), A, B

    def translate_xyz(self, xyz, nmax=None, basis='regular'):
        """Translate the beam in an arbitrary direction.

        The beam is rotated so that the translation is along the z-axis,
        translated and rotated back.

        Parameters
        ----------
        xyz : array_like
            Translation in wavelengths, shape 3 or 3xN. Several translations
            give an object array of beams.
        nmax : int, optional
            Truncation of the translated beam, default the current truncation.
        basis : str
            Radial functions of the translation kernel.

        """
        xyz = np.asarray(xyz, dtype=float)
        if xyz.shape[0] != 3:
            raise DimensionMismatch('Translations must have shape 3xN, got {}'.format(xyz.shape))
        nmax = self.nmax if nmax is None else nmax
        if xyz.ndim == 2:
            beams = np.empty(xyz.shape[1], dtype=object)
            for idx in range(xyz.shape[1]):
                beams[idx] = self.translate_xyz(xyz[:, idx], nmax=nmax, basis=basis)
            return beams
        r, theta, phi = xyz2rtp(xyz)
        if r == 0:
            return self.set_nmax(nmax)
        R = rotz(phi) @ roty(theta)
        beam, _ = self.rotate(R.T)
        beam, _, _ = beam.translate_z(r, nmax=nmax, basis=basis)
        beam, _ = beam.rotate(R)
        return beam

    def translate_rtp(self, rtp, nmax=None, basis='regular'):
        """Translate the beam, with the translation in spherical coordinates."""
        return self.translate_xyz(rtp2xyz(rtp), nmax=nmax, basis=basis)

    def force(self, sbeam):
        """Force from this incident beam and a scattered beam, see `force`."""
        return force(self, sbeam)

    def torque(self, sbeam):
        """Torque from this incident beam and a scattered beam, see `torque`."""
        return torque(self, sbeam)

    def spin(self, sbeam):
        """Spin transfer from this incident beam and a scattered beam, see `spin`."""
        return spin(self, sbeam)


def sum(beams, axis=None):
    """Add beams together.

    Parameters
    ----------
    beams : array_like
        Object array or sequence of beams.
    axis : int, optional
        Axis to sum along. By default all beams are added.

    Returns
    -------
    beam : Bsc or ndarray
        The sum, as a single beam or an object array with one less dimension.

    """
    beams = _beam_array(beams)
    if beams.size == 0:
        raise DimensionMismatch('Cannot sum an empty array of beams')
    if axis is None:
        return functools.reduce(operator.add, beams.flat)
    beams = np.moveaxis(beams, axis, 0)
    out = np.empty(beams.shape[1:], dtype=object)
    for idx in np.ndindex(*out.shape):
        out[idx] = functools.reduce(operator.add, beams[(slice(None),) + idx])
    if out.ndim == 0:
        return out[()]
    return out


def times(beams, values):
    """Scale each beam by its own factor.

    Parameters
    ----------
    beams : array_like
        Object array or sequence of beams.
    values : array_like
        One scalar per beam.

    Returns
    -------
    beams : ndarray
        Object array of the scaled beams, same shape as `beams`.

    Raises
    ------
    DimensionMismatch
        If the number of values differs from the number of beams.

    """
    beams = _beam_array(beams)
    values = np.asarray(values).ravel()
    if values.size != beams.size:
        raise DimensionMismatch('Got {} factors for {} beams'.format(values.size, beams.size))
    out = np.empty(beams.shape, dtype=object)
    for idx, (beam, value) in enumerate(zip(beams.flat, values)):
        out.flat[idx] = beam * value
    return out


def _broadcast(first, second):
    first = _beam_array(first).ravel()
    second = _beam_array(second).ravel()
    if first.size != second.size and 1 not in (first.size, second.size):
        raise DimensionMismatch('Cannot broadcast {} and {} elements'.format(first.size, second.size))
    count = max(first.size, second.size)
    return np.resize(first, count), np.resize(second, count)


def rotate(beams, R, nmax=None):
    """Rotate an array of beams.

    Parameters
    ----------
    beams : Bsc or array_like
        One or several beams.
    R : array_like
        One rotation matrix, shape 3x3, or several given as 3x3N or Nx3x3.
    nmax : int, optional
        Truncation of the rotated beams.

    Returns
    -------
    beams : ndarray
        Object array of the rotated beams.
    D : list
        The Wigner rotation matrices.

    Raises
    ------
    DimensionMismatch
        If the number of beams and rotations differ and neither is one.

    """
    R = np.asarray(R, dtype=float)
    if R.ndim == 2 and R.shape[0] == 3 and R.shape[1] % 3 == 0:
        R = np.stack(np.split(R, R.shape[1] // 3, axis=1))
    elif R.ndim != 3 or R.shape[1:] != (3, 3):
        raise DimensionMismatch('Rotations must have shape 3x3N or Nx3x3, got {}'.format(R.shape))
    rotations = np.empty(R.shape[0], dtype=object)
    for idx in range(R.shape[0]):
        rotations[idx] = R[idx]
    beams, rotations = _broadcast(beams, rotations)
    out = np.empty(beams.size, dtype=object)
    Ds = []
    for idx, (beam, rotation) in enumerate(zip(beams, rotations)):
        out[idx], D = beam.rotate(rotation, nmax=nmax)
        Ds.append(D)
    return out, Ds


def _force_terms(ibeam, sbeam):
    nmax = max(ibeam.nmax, sbeam.nmax)
    a, b = ibeam.set_nmax(nmax).get_coefficients()
    p, q = sbeam.set_nmax(nmax).get_coefficients()
    b = 1j * b
    q = 1j * q
    indexer = ModeIndexer(nmax)
    n = indexer.n.astype(float)
    m = indexer.m.astype(float)
    shifted = {name: gather_shifted(values, indexer.n, indexer.m, nmax) for name, values in zip('abpq', (a, b, p, q))}
    return n, m, a, b, p, q, shifted


def _force_single(ibeam, sbeam):
    n, m, a, b, p, q, s = _force_terms(ibeam, sbeam)
    anp1, bnp1, pnp1, qnp1 = (s[x]['n+1'] for x in 'abpq')
    amp1, bmp1, pmp1, qmp1 = (s[x]['m+1'] for x in 'abpq')
    anp1mp1, bnp1mp1, pnp1mp1, qnp1mp1 = (s[x]['n+1,m+1'] for x in 'abpq')
    anp1mm1, bnp1mm1, pnp1mm1, qnp1mm1 = (s[x]['n+1,m-1'] for x in 'abpq')

    Az = m / n / (n + 1) * np.imag(-a * np.conj(b) + np.conj(q) * p)
    Bz = 1 / (n + 1) * np.sqrt(n * (n - m + 1) * (n + m + 1) * (n + 2) / (2 * n + 3) / (2 * n + 1)) \
        * np.imag(anp1 * np.conj(a) + bnp1 * np.conj(b) - pnp1 * np.conj(p) - qnp1 * np.conj(q))
    fz = 2 * np.sum(Az + Bz)

    Axy = 1j / n / (n + 1) * np.sqrt((n - m) * (n + m + 1)) \
        * (np.conj(pmp1) * q - np.conj(amp1) * b - np.conj(qmp1) * p + np.conj(bmp1) * a)
    Bxy = 1j / (n + 1) * np.sqrt(n * (n + 2)) / np.sqrt((2 * n + 1) * (2 * n + 3)) * (
        np.sqrt((n + m + 1) * (n + m + 2)) * (
            p * np.conj(pnp1mp1) + q * np.conj(qnp1mp1) - a * np.conj(anp1mp1) - b * np.conj(bnp1mp1))
        + np.sqrt((n - m + 1) * (n - m + 2)) * (
            pnp1mm1 * np.conj(p) + qnp1mm1 * np.conj(q) - anp1mm1 * np.conj(a) - bnp1mm1 * np.conj(b)))
    fxy = np.sum(Axy + Bxy)
    return np.array([np.real(fxy), np.imag(fxy), np.real(fz)])


def _torque_single(ibeam, sbeam):
    n, m, a, b, p, q, s = _force_terms(ibeam, sbeam)
    amp1, bmp1, pmp1, qmp1 = (s[x]['m+1'] for x in 'abpq')
    tz = np.sum(m * (np.abs(a)**2 + np.abs(b)**2 - np.abs(p)**2 - np.abs(q)**2))
    txy = np.sum(np.sqrt((n - m) * (n + m + 1))
                 * (a * np.conj(amp1) + b * np.conj(bmp1) - p * np.conj(pmp1) - q * np.conj(qmp1)))
    return np.array([np.real(txy), np.imag(txy), np.real(tz)])


def _spin_single(ibeam, sbeam):
    n, m, a, b, p, q, s = _force_terms(ibeam, sbeam)
    anp1, bnp1, pnp1, qnp1 = (s[x]['n+1'] for x in 'abpq')
    amp1, bmp1, pmp1, qmp1 = (s[x]['m+1'] for x in 'abpq')
    anp1mp1, bnp1mp1, pnp1mp1, qnp1mp1 = (s[x]['n+1,m+1'] for x in 'abpq')
    anp1mm1, bnp1mm1, pnp1mm1, qnp1mm1 = (s[x]['n+1,m-1'] for x in 'abpq')

    Cz = m / n / (n + 1) * (-np.abs(a)**2 + np.abs(q)**2 - np.abs(b)**2 + np.abs(p)**2)
    Dz = -2 / (n + 1) * np.sqrt(n * (n - m + 1) * (n + m + 1) * (n + 2) / (2 * n + 3) / (2 * n + 1)) \
        * np.real(anp1 * np.conj(b) - bnp1 * np.conj(a) - pnp1 * np.conj(q) + qnp1 * np.conj(p))
    sz = np.sum(Cz + Dz)

    Cxy = 1j / n / (n + 1) * np.sqrt((n - m) * (n + m + 1)) \
        * (np.conj(pmp1) * p - np.conj(amp1) * a + np.conj(qmp1) * q - np.conj(bmp1) * b)
    Dxy = 1j / (n + 1) * np.sqrt(n * (n + 2)) / np.sqrt((2 * n + 1) * (2 * n + 3)) * (
        np.sqrt((n + m + 1) * (n + m + 2)) * (
            p * np.conj(qnp1mp1) - q * np.conj(pnp1mp1) - a * np.conj(bnp1mp1) + b * np.conj(anp1mp1))
        + np.sqrt((n - m + 1) * (n - m + 2)) * (
            pnp1mm1 * np.conj(q) - qnp1mm1 * np.conj(p) - anp1mm1 * np.conj(b) + bnp1mm1 * np.conj(a)))
    sxy = np.sum(Cxy + Dxy)
    return np.array([np.imag(sxy), np.real(sxy), np.real(sz)])


def _pairwise(calculation, ibeam, sbeam):
    if isinstance(ibeam, Bsc) and isinstance(sbeam, Bsc):
        return calculation(ibeam, sbeam)
    ibeams, sbeams = _broadcast(ibeam, sbeam)
    return np.stack([calculation(i, s) for i, s in zip(ibeams, sbeams)], axis=1)


def force(ibeam, sbeam):
    """Force on a particle from incident and scattered beams.

    Uses the expressions by Crichton and Marsden (2000) of the results by
    Farsund and Felderhof (1996). The scattered beam must be the total field
    outside the particle, expressed with incoming and outgoing waves.
    Both beams are zero padded to the larger truncation.

    The components are the real and imaginary parts of complex sums. They
    are real up to numerical errors, and only the relevant real or imaginary
    part is returned.

    Parameters
    ----------
    ibeam : Bsc or array_like
        The incident beam or beams.
    sbeam : Bsc or array_like
        The scattered beam or beams.

    Returns
    -------
    force : ndarray
        Cartesian force, shape 3, or 3xN for arrays of beams, in units of
        the beam power divided by the speed of light in the medium.

    Raises
    ------
    DimensionMismatch
        If the number of incident and scattered beams differ and neither
        is one.

    """
    return _pairwise(_force_single, ibeam, sbeam)


def torque(ibeam, sbeam):
    """Torque on a particle from incident and scattered beams.

    Same conventions as `force`, in units of the beam power divided by the
    angular frequency.
    """
    return _pairwise(_torque_single, ibeam, sbeam)


def spin(ibeam, sbeam):
    """Spin angular momentum transfer from incident and scattered beams.

    Same conventions as `torque`.
    """
    return _pairwise(_spin_single, ibeam, sbeam)


def force_torque_spin(ibeam, sbeam):
    """Force, torque and spin transfer in one call."""
    return force(ibeam, sbeam), torque(ibeam, sbeam), spin(ibeam, sbeam)
