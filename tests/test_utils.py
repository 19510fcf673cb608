import vswfbeams
import numpy as np
import pytest
from vswfbeams.utils import (combined_index, from_combined_index, total_orders, ModeIndexer,
                             shifted_indices, gather_shifted, nmax_from_length,
                             xyz2rtp, rtp2xyz, rtpv2xyzv, xyzv2rtpv, rotx, roty, rotz)

xyz = np.array([[0.1, -0.2, 0.3], [1., 2., -3.], [-0.5, 0, 0.25], [0, 0, 1.]]).T


def test_index_bijection():
    for n in range(1, 12):
        for m in range(-n, n + 1):
            assert from_combined_index(combined_index(n, m)) == (n, m)


def test_index_vectorized():
    ci = np.arange(1, total_orders(5) + 1)
    n, m = from_combined_index(ci)
    np.testing.assert_array_equal(combined_index(n, m), ci)
    assert combined_index(1, -1) == 1
    assert combined_index(2, -2) == 4
    assert from_combined_index(8) == (2, 2)


@pytest.mark.parametrize("n, m", [(0, 0), (1, 2), (2, -3)])
def test_invalid_modes(n, m):
    with pytest.raises(vswfbeams.InvalidModeIndex):
        combined_index(n, m)


def test_invalid_combined_index():
    with pytest.raises(vswfbeams.InvalidModeIndex):
        from_combined_index(0)
    with pytest.raises(vswfbeams.InvalidModeIndex):
        from_combined_index([3, -1])


def test_total_orders():
    assert total_orders(0) == 0
    assert total_orders(1) == 3
    assert total_orders(4) == 24
    assert nmax_from_length(24) == 4
    assert nmax_from_length(0) == 0
    with pytest.raises(vswfbeams.InvalidModeIndex):
        nmax_from_length(5)


def test_mode_indexer():
    indexer = ModeIndexer(3)
    assert len(indexer) == total_orders(3)
    assert list(indexer)[:4] == [(1, -1), (1, 0), (1, 1), (2, -2)]
    assert indexer(2, 1) == 7
    assert indexer[7] == (2, 1)
    np.testing.assert_array_equal(indexer.indices, np.arange(1, 16))
    for idx, (n, m) in enumerate(indexer):
        assert indexer.n[idx] == n
        assert indexer.m[idx] == m

    orders = []
    for n in indexer.orders:
        orders.append(list(indexer.modes))
    assert orders == [[-1, 0, 1], [-2, -1, 0, 1, 2], [-3, -2, -1, 0, 1, 2, 3]]
    with pytest.raises(AttributeError):
        list(indexer.modes)

    assert len(ModeIndexer(3, 2)) == total_orders(3) - 3
    assert len(ModeIndexer(0)) == 0
    assert ModeIndexer(0).n.size == 0


def test_shifted_indices():
    n, m = from_combined_index(np.arange(1, total_orders(2) + 1))
    shifted = shifted_indices(n, m, 2)

    ci, valid = shifted['n+1']
    np.testing.assert_array_equal(valid, n < 2)
    np.testing.assert_array_equal(ci[valid], combined_index(n[valid] + 1, m[valid]))

    ci, valid = shifted['m+1']
    np.testing.assert_array_equal(valid, m < n)
    np.testing.assert_array_equal(ci[valid], combined_index(n[valid], m[valid] + 1))

    for name, dm in [('n+1,m+1', 1), ('n+1,m-1', -1)]:
        ci, valid = shifted[name]
        np.testing.assert_array_equal(valid, n < 2)
        np.testing.assert_array_equal(ci[valid], combined_index(n[valid] + 1, m[valid] + dm))
        assert np.all(ci >= 1)


def test_gather_shifted():
    nmax = 2
    values = np.arange(1, total_orders(nmax) + 1) * 1.
    n, m = from_combined_index(np.arange(1, total_orders(nmax) + 1))
    gathered = gather_shifted(values, n, m, nmax)
    # (1, -1) -> (2, -1) has ci 5, (1, 1) -> (1, 2) is out of range
    assert gathered['n+1'][0] == 5
    assert gathered['m+1'][2] == 0
    assert gathered['m+1'][1] == 3
    assert gathered['n+1,m-1'][0] == 4
    assert gathered['n+1,m+1'][2] == 8
    np.testing.assert_array_equal(gathered['n+1'][3:], 0)
    with pytest.raises(vswfbeams.DimensionMismatch):
        gather_shifted(values[:-1], n, m, nmax)


def test_coordinates():
    rtp = xyz2rtp(xyz)
    np.testing.assert_allclose(rtp[0], np.sum(xyz**2, axis=0)**0.5)
    np.testing.assert_allclose(rtp2xyz(rtp), xyz, atol=1e-15)
    np.testing.assert_allclose(xyz2rtp([0, 0, 1]), [1, 0, 0])
    np.testing.assert_allclose(xyz2rtp([0, 1, 0]), [1, np.pi / 2, np.pi / 2])


def test_vector_coordinates():
    vxyz = np.array([[1., 2., 3.], [0, -1j, 1], [0.5, 0.5, 0], [1, 0, 0]]).T
    vrtp, rtp = xyzv2rtpv(vxyz, xyz)
    np.testing.assert_allclose(rtpv2xyzv(vrtp, rtp), vxyz, atol=1e-15)
    np.testing.assert_allclose(np.sum(np.abs(vrtp)**2, axis=0), np.sum(np.abs(vxyz)**2, axis=0))
    # Radial component along the position vector
    np.testing.assert_allclose(vrtp[0, 0], np.dot(vxyz[:, 0], xyz[:, 0]) / np.sum(xyz[:, 0]**2)**0.5)
    # Theta points down at the equator
    vrtp, _ = xyzv2rtpv([0, 0, 1], [1, 0, 0])
    np.testing.assert_allclose(vrtp, [0, -1, 0], atol=1e-15)


@pytest.mark.parametrize("rot, axis", [(rotx, 0), (roty, 1), (rotz, 2)])
def test_rotation_matrices(rot, axis):
    R = rot(0.3)
    np.testing.assert_allclose(R @ R.T, np.eye(3), atol=1e-15)
    np.testing.assert_allclose(np.linalg.det(R), 1)
    np.testing.assert_allclose(R[:, axis], np.eye(3)[axis])
    np.testing.assert_allclose(rot(0.1) @ rot(0.2), R, atol=1e-15)


def test_rotation_direction():
    np.testing.assert_allclose(rotz(np.pi / 2) @ [1, 0, 0], [0, 1, 0], atol=1e-15)
    np.testing.assert_allclose(rotx(np.pi / 2) @ [0, 1, 0], [0, 0, 1], atol=1e-15)
    np.testing.assert_allclose(roty(np.pi / 2) @ [0, 0, 1], [1, 0, 0], atol=1e-15)
