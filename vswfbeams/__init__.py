"""vswfbeams, a python package for beam shape coefficients of vector spherical wave function expansions.

The API consists of one main module and a few supporting modules.
The main module `~vswfbeams.bsc` contains the `~vswfbeams.bsc.Bsc` class, which stores
the expansion coefficients of a beam and implements the field evaluations, the algebra,
translations and rotations of beams, as well as the optical force, torque and spin transfer
between an incident and a scattered beam.
The rotation and translation matrices are calculated in the `~vswfbeams.operators` module,
and the spherical harmonics and radial functions in the `~vswfbeams.special` module.
Field values are returned as `~vswfbeams.fieldvector.FieldVector` objects, and the
`~vswfbeams.utils` module has the mode indexing conventions used throughout the package.

All lengths are given in wavelengths in the surrounding medium.
"""

import logging

logger = logging.getLogger(__name__)

__all__ = ['utils', 'fieldvector', 'special', 'operators', 'bsc']

from . import _version
__version_info__ = _version.version_info
__version__ = _version.version
del _version  # Keep the namespace clean. Import directly from the `_version` module if needed.


from . import *
from .bsc import Bsc
from .fieldvector import FieldVector
from .utils import DimensionMismatch, InvalidModeIndex, TruncationError, UnsupportedBasis
