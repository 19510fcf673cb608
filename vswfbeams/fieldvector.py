"""Vector quantities tagged with their coordinate system.

Field evaluations return `FieldVector` objects, which keep track of whether
the three vector components are Cartesian ``(x, y, z)`` or spherical
``(r, theta, phi)``, optionally together with the location of each vector.
The location is stored in the same coordinate system as the components.
"""
import numpy as np

from .utils import DimensionMismatch, rtp2xyz, rtpv2xyzv, xyzv2rtpv

frames = ('cartesian', 'spherical')


class FieldVector:
    """Field values with coordinate system information.

    Arithmetic between two field vectors is done on the Cartesian components,
    and the result has no location. Arithmetic with plain numbers or arrays
    applies to the components and keeps both the coordinate system and the
    location.

    Parameters
    ----------
    vec : array_like
        Field values, shape 3xN, or 6xN where the last three rows are
        the location of each vector.
    basis : str
        Either ``'cartesian'`` or ``'spherical'``, default Cartesian.

    """

    __array_ufunc__ = None

    def __init__(self, vec, basis='cartesian'):
        vec = np.asarray(vec)
        if vec.ndim == 1:
            vec = vec.reshape(-1, 1)
        if vec.shape[0] not in (3, 6):
            raise DimensionMismatch('Field vectors need 3 or 6 rows, got {}'.format(vec.shape[0]))
        if basis not in frames:
            raise ValueError('Unknown coordinate system {!r}'.format(basis))
        self._vec = vec[:3]
        self._pos = np.real(vec[3:]).astype(float) if vec.shape[0] == 6 else None
        self.basis = basis

    def __repr__(self):
        return '{}(<{} points>, basis={!r})'.format(type(self).__name__, self.vec.shape[1], self.basis)

    @property
    def vec(self):
        """The vector components, shape 3xN."""
        return self._vec

    @property
    def pos(self):
        """The vector locations, shape 3xN, or None."""
        return self._pos

    @property
    def vxyz(self):
        """The Cartesian components."""
        return self.to_cartesian().vec

    @property
    def vrtp(self):
        """The spherical components."""
        return self.to_spherical().vec

    def to_cartesian(self):
        """Convert to Cartesian coordinates.

        Raises
        ------
        DimensionMismatch
            If a spherical field vector has no location.

        """
        if self.basis == 'cartesian':
            return self
        if self.pos is None:
            raise DimensionMismatch('Spherical field vectors need a location for conversion')
        vxyz = rtpv2xyzv(self.vec, self.pos)
        return FieldVector(np.concatenate([vxyz, rtp2xyz(self.pos)], axis=0), 'cartesian')

    def to_spherical(self):
        """Convert to spherical coordinates.

        Raises
        ------
        DimensionMismatch
            If the field vector has no location.

        """
        if self.basis == 'spherical':
            return self
        if self.pos is None:
            raise DimensionMismatch('Cartesian field vectors need a location for conversion')
        vrtp, rtp = xyzv2rtpv(self.vec, self.pos)
        return FieldVector(np.concatenate([vrtp, rtp], axis=0), 'spherical')

    def sum(self):
        """Sum the vectors over all locations, in Cartesian coordinates."""
        return FieldVector(np.sum(self.vxyz, axis=1, keepdims=True), 'cartesian')

    def _operate(self, other, operation):
        if isinstance(other, FieldVector):
            if other.vec.shape != self.vec.shape:
                raise DimensionMismatch('Field vectors have different shapes, {} and {}'.format(self.vec.shape, other.vec.shape))
            return FieldVector(operation(self.vxyz, other.vxyz), 'cartesian')
        try:
            shape = np.broadcast_shapes(self.vec.shape, np.shape(other))
        except ValueError as err:
            raise DimensionMismatch('Cannot combine a field of shape {} with shape {}'.format(self.vec.shape, np.shape(other))) from err
        if shape != self.vec.shape:
            raise DimensionMismatch('Operation changed the field shape from {} to {}'.format(self.vec.shape, shape))
        vec = operation(self.vec, other)
        if self.pos is not None:
            vec = np.concatenate([vec, self.pos], axis=0)
        return FieldVector(vec, self.basis)

    def __add__(self, other):
        return self._operate(other, lambda x, y: x + y)

    def __radd__(self, other):
        return self._operate(other, lambda x, y: y + x)

    def __sub__(self, other):
        return self._operate(other, lambda x, y: x - y)

    def __rsub__(self, other):
        return self._operate(other, lambda x, y: y - x)

    def __mul__(self, other):
        return self._operate(other, lambda x, y: x * y)

    def __rmul__(self, other):
        return self._operate(other, lambda x, y: y * x)

    def __truediv__(self, other):
        return self._operate(other, lambda x, y: x / y)

    def __neg__(self):
        return self._operate(-1, lambda x, y: x * y)
