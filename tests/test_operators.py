import vswfbeams
import numpy as np
import pytest
from scipy.spatial.transform import Rotation
from vswfbeams.operators import wigner_rotation_matrix, translate_z_matrices
from vswfbeams.utils import total_orders, from_combined_index, rotx, roty, rotz

R1 = Rotation.from_euler('zyz', [0.3, 1.1, -0.7]).as_matrix()
R2 = Rotation.from_euler('xyz', [-0.5, 0.2, 2.1]).as_matrix()


@pytest.mark.parametrize("nmax", [1, 3, 6])
def test_rotation_unitary(nmax):
    D = wigner_rotation_matrix(nmax, R1).toarray()
    assert D.shape == (total_orders(nmax), total_orders(nmax))
    np.testing.assert_allclose(D @ D.conj().T, np.eye(D.shape[0]), atol=1e-12)


def test_rotation_group():
    D1 = wigner_rotation_matrix(4, R1)
    D2 = wigner_rotation_matrix(4, R2)
    D21 = wigner_rotation_matrix(4, R2 @ R1)
    np.testing.assert_allclose((D2 @ D1).toarray(), D21.toarray(), atol=1e-12)
    np.testing.assert_allclose(wigner_rotation_matrix(4, R1.T).toarray(), D1.conj().T.toarray(), atol=1e-12)


def test_rotation_block_structure():
    D = wigner_rotation_matrix(3, R1).toarray()
    n, _ = from_combined_index(np.arange(1, total_orders(3) + 1))
    np.testing.assert_array_equal(D[n[:, None] != n[None, :]], 0)


def test_rotation_about_z():
    angle = 0.4
    D = wigner_rotation_matrix(3, rotz(angle)).toarray()
    _, m = from_combined_index(np.arange(1, total_orders(3) + 1))
    np.testing.assert_allclose(D, np.diag(np.exp(-1j * m * angle)), atol=1e-12)


def test_rotation_identity():
    D = wigner_rotation_matrix(2, np.eye(3)).toarray()
    np.testing.assert_allclose(D, np.eye(8), atol=1e-15)
    assert wigner_rotation_matrix(0, np.eye(3)).shape == (0, 0)
    with pytest.raises(vswfbeams.DimensionMismatch):
        wigner_rotation_matrix(2, np.eye(2))


@pytest.mark.parametrize("matrix", [2 * np.eye(3), np.diag([1., 1., -1.]), np.array([[1., 0.1, 0], [0, 1, 0], [0, 0, 1]])])
def test_rotation_rejects_non_rotations(matrix):
    with pytest.raises(ValueError):
        wigner_rotation_matrix(2, matrix)


@pytest.mark.parametrize("nmax_out, nmax_in", [(3, 3), (5, 2), (2, 4)])
def test_translation_zero(nmax_out, nmax_in):
    A, B = translate_z_matrices(nmax_out, nmax_in, 0)
    shape = (total_orders(nmax_out), total_orders(nmax_in))
    assert A.shape == shape
    assert B.shape == shape
    np.testing.assert_array_equal(A.toarray(), np.eye(*shape))
    assert B.count_nonzero() == 0


@pytest.mark.parametrize("basis", ['regular', 'incoming', 'outgoing'])
def test_translation_structure(basis):
    A, B = translate_z_matrices(5, 3, 0.3, basis)
    A = A.toarray()
    B = B.toarray()
    _, m_out = from_combined_index(np.arange(1, total_orders(5) + 1))
    _, m_in = from_combined_index(np.arange(1, total_orders(3) + 1))
    different = m_out[:, None] != m_in[None, :]
    np.testing.assert_array_equal(A[different], 0)
    np.testing.assert_array_equal(B[different], 0)
    np.testing.assert_array_equal(B[:, m_in == 0], 0)


def test_translation_reversal():
    nmax = 3
    A, B = translate_z_matrices(nmax, nmax, 0.2)
    A_back, B_back = translate_z_matrices(nmax, nmax, -0.2)
    n, m = from_combined_index(np.arange(1, total_orders(nmax) + 1))
    parity = (-1.)**(n[:, None] + n[None, :])
    np.testing.assert_allclose(A_back.toarray(), parity * A.toarray(), atol=1e-14)
    np.testing.assert_allclose(B_back.toarray(), -parity * B.toarray(), atol=1e-14)


def test_translation_composition():
    # Two short translations equal one longer, with a large intermediate truncation.
    A1, B1 = translate_z_matrices(20, 2, 0.1)
    A2, B2 = translate_z_matrices(2, 20, 0.15)
    A, B = translate_z_matrices(2, 2, 0.25)
    T1 = np.block([[A1.toarray(), B1.toarray()], [B1.toarray(), A1.toarray()]])
    T2 = np.block([[A2.toarray(), B2.toarray()], [B2.toarray(), A2.toarray()]])
    T = np.block([[A.toarray(), B.toarray()], [B.toarray(), A.toarray()]])
    np.testing.assert_allclose(T2 @ T1, T, atol=1e-10)


def test_translation_unsupported_basis():
    with pytest.raises(vswfbeams.UnsupportedBasis):
        translate_z_matrices(2, 2, 0.1, 'standing')
