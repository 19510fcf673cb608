import vswfbeams
import numpy as np
import pytest
from scipy.special import sph_harm_y, spherical_jn, spherical_yn
from vswfbeams.special import spherical_harmonics, radial_function, VswfData
from vswfbeams.utils import from_combined_index, total_orders

nmax = 4
ci = np.arange(1, total_orders(nmax) + 1)
n, m = from_combined_index(ci)
theta = np.array([0.1, 0.7, np.pi / 2, 2.3, 3.0])
phi = np.array([0., 0.4, -1.2, 2.5, 3.1])
kr = np.array([0.3, 1., 2 * np.pi, 7.5])


def test_harmonics_values():
    Y, Ytheta, Yphi = spherical_harmonics(n, m, theta, phi)
    assert Y.shape == (ci.size, theta.size)
    np.testing.assert_allclose(Y, sph_harm_y(n[:, None], m[:, None], theta, phi))
    np.testing.assert_allclose(Yphi, 1j * m[:, None] / np.sin(theta) * Y, atol=1e-12)


def test_harmonics_theta_derivative():
    delta = 1e-6
    _, Ytheta, _ = spherical_harmonics(n, m, theta, phi)
    Y_plus, _, _ = spherical_harmonics(n, m, theta + delta, phi)
    Y_minus, _, _ = spherical_harmonics(n, m, theta - delta, phi)
    np.testing.assert_allclose(Ytheta, (Y_plus - Y_minus) / (2 * delta), rtol=1e-6, atol=1e-8)


def test_harmonics_at_poles():
    Y, Ytheta, Yphi = spherical_harmonics(n, m, [0, np.pi], [0.3, 0.3])
    assert np.all(np.isfinite(Y))
    assert np.all(np.isfinite(Ytheta))
    assert np.all(np.isfinite(Yphi))
    # Only |m| = 1 survives on the axis for the angular derivatives
    np.testing.assert_allclose(Yphi[np.abs(m) != 1], 0, atol=1e-12)
    np.testing.assert_allclose(Yphi[(n == 1) & (m == 1), 0], -1j * np.sqrt(3 / (8 * np.pi)) * np.exp(0.3j))


@pytest.mark.parametrize("basis, expected", [
    ('regular', lambda n, x: spherical_jn(n, x)),
    ('outgoing', lambda n, x: spherical_jn(n, x) + 1j * spherical_yn(n, x)),
    ('incoming', lambda n, x: spherical_jn(n, x) - 1j * spherical_yn(n, x)),
])
def test_radial_functions(basis, expected):
    degrees = np.arange(1, 6)
    hn, dhn = radial_function(degrees, kr, basis)
    assert hn.shape == (degrees.size, kr.size)
    np.testing.assert_allclose(hn, expected(degrees[:, None], kr))
    delta = 1e-6
    derivative = ((kr + delta) * expected(degrees[:, None], kr + delta)
                  - (kr - delta) * expected(degrees[:, None], kr - delta)) / (2 * delta) / kr
    np.testing.assert_allclose(dhn, derivative, rtol=1e-6)


def test_radial_zero_radius():
    hn, dhn = radial_function([1, 2, 3], [0, 1], 'regular')
    assert np.all(np.isfinite(hn))
    assert np.all(np.isfinite(dhn))
    np.testing.assert_allclose(hn[:, 0], 0, atol=1e-90)
    np.testing.assert_allclose(dhn[0, 0], 2 / 3)


def test_unsupported_basis():
    with pytest.raises(vswfbeams.UnsupportedBasis):
        radial_function([1], [1], 'standing')
    with pytest.raises(vswfbeams.UnsupportedBasis):
        VswfData().evaluate_radial([1], [1], 'standing')


def test_cache_matches_direct():
    data = VswfData()
    direct = spherical_harmonics(n, m, theta, phi)
    first = data.evaluate_harmonics(ci[::2], theta, phi)
    second = data.evaluate_harmonics(ci, theta, phi)
    third = data.evaluate_harmonics(ci, theta, phi)
    for part in range(3):
        np.testing.assert_array_equal(first[part], direct[part][::2])
        np.testing.assert_array_equal(second[part], direct[part])
        np.testing.assert_array_equal(third[part], second[part])

    direct = radial_function([3, 1], kr, 'outgoing')
    data.evaluate_radial([1, 2], kr, 'outgoing')
    cached = data.evaluate_radial([3, 1], kr, 'outgoing')
    for part in range(2):
        np.testing.assert_array_equal(cached[part], direct[part])


def test_cache_new_points():
    data = VswfData()
    data.evaluate_harmonics(ci, theta, phi)
    Y, _, _ = data.evaluate_harmonics(ci, theta[:2], phi[:2])
    assert Y.shape == (ci.size, 2)
    np.testing.assert_array_equal(Y, spherical_harmonics(n, m, theta[:2], phi[:2])[0])

    data.evaluate_radial([1, 2], kr, 'regular')
    hn, _ = data.evaluate_radial([1, 2], kr[::-1], 'regular')
    np.testing.assert_array_equal(hn, radial_function([1, 2], kr[::-1], 'regular')[0])

    hn, _ = data.evaluate_radial([1, 2], kr[::-1], 'incoming')
    np.testing.assert_array_equal(hn, radial_function([1, 2], kr[::-1], 'incoming')[0])


def test_cache_empty():
    Y, Ytheta, Yphi = VswfData().evaluate_harmonics([], theta, phi)
    assert Y.shape == (0, theta.size)
    hn, dhn = VswfData().evaluate_radial([], kr)
    assert hn.shape == (0, kr.size)
