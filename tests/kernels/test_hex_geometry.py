"""Tests for the compiled hexahedron geometry helpers."""
import numpy as np
import pytest

from exdyn.kernels.hex_geometry import (
    HOURGLASS_VECTORS,
    NATURAL_COORDS,
    gradient_operator,
    hourglass_operator,
    polar_decomposition,
    rotate_symmetric,
)
from exdyn.mesh import CORNER_OFFSETS


def rotation_z(angle):
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def box_coords(lx=1.0, ly=1.0, lz=1.0):
    return CORNER_OFFSETS.astype(np.float64) * np.array([lx, ly, lz])


def grad_and_volume(x):
    grad = np.empty((3, 8))
    volume = gradient_operator(np.ascontiguousarray(x), grad)
    return grad, volume


def test_unit_cube_gradient_operator():
    grad, volume = grad_and_volume(box_coords())
    assert volume == pytest.approx(1.0)
    np.testing.assert_allclose(grad, 0.25 * NATURAL_COORDS.T, atol=1e-14)


def test_box_gradient_operator_scales_with_face_area():
    grad, volume = grad_and_volume(box_coords(2.0, 3.0, 4.0))
    assert volume == pytest.approx(24.0)
    signs = NATURAL_COORDS.T
    np.testing.assert_allclose(grad[0], 0.25 * 12.0 * signs[0])
    np.testing.assert_allclose(grad[1], 0.25 * 8.0 * signs[1])
    np.testing.assert_allclose(grad[2], 0.25 * 6.0 * signs[2])


def test_gradient_operator_of_distorted_element():
    rng = np.random.default_rng(1234)
    x = box_coords() + 0.1 * rng.uniform(-1.0, 1.0, size=(8, 3))
    grad, volume = grad_and_volume(x)
    assert volume > 0.0
    np.testing.assert_allclose(grad.sum(axis=1), 0.0, atol=1e-13)
    # volume is homogeneous of degree three in the coordinates
    np.testing.assert_allclose(
        np.einsum("ni,in->", x, grad) / 3.0, volume, rtol=1e-12
    )
    # sum_I x_iI dV/dx_jI = V delta_ij
    np.testing.assert_allclose(
        np.einsum("ni,jn->ij", x, grad), volume * np.eye(3), atol=1e-12
    )


def test_gradient_operator_is_rotation_invariant():
    x = box_coords(1.0, 2.0, 0.5)
    rot = rotation_z(0.4)
    grad, volume = grad_and_volume(x)
    grad_rot, volume_rot = grad_and_volume(x @ rot.T)
    assert volume_rot == pytest.approx(volume)
    np.testing.assert_allclose(grad_rot, rot @ grad, atol=1e-14)


def test_inverted_element_has_negative_volume():
    x = box_coords()[[4, 5, 6, 7, 0, 1, 2, 3]]
    _, volume = grad_and_volume(x)
    assert volume == pytest.approx(-1.0)


def test_hourglass_operator_orthogonal_to_linear_fields():
    rng = np.random.default_rng(7)
    x = box_coords(1.0, 1.5, 0.8) + 0.05 * rng.uniform(-1, 1, size=(8, 3))
    grad, volume = grad_and_volume(x)
    hgop = np.empty((4, 8))
    hourglass_operator(x, grad, volume, hgop)
    np.testing.assert_allclose(hgop @ np.ones(8), 0.0, atol=1e-13)
    np.testing.assert_allclose(hgop @ x, 0.0, atol=1e-13)


def test_hourglass_operator_of_cube_is_base_vectors():
    x = box_coords()
    grad, volume = grad_and_volume(x)
    hgop = np.empty((4, 8))
    hourglass_operator(x, grad, volume, hgop)
    np.testing.assert_allclose(hgop, HOURGLASS_VECTORS, atol=1e-14)


def test_polar_decomposition_recovers_rotation():
    rot = rotation_z(np.pi / 6.0)
    stretch = np.diag([1.1, 0.9, 1.0])
    F = rot @ stretch
    R = np.empty((3, 3))
    converged, iterations = polar_decomposition(F, R, 25, 1e-12)
    assert converged
    assert 1 <= iterations <= 25
    np.testing.assert_allclose(R, rot, atol=1e-10)


def test_polar_decomposition_of_identity_converges_immediately():
    R = np.empty((3, 3))
    converged, iterations = polar_decomposition(np.eye(3), R, 25, 1e-12)
    assert converged
    assert iterations == 1
    np.testing.assert_array_equal(R, np.eye(3))


@pytest.mark.parametrize(
    "F",
    [
        np.zeros((3, 3)),
        np.diag([1.0, 1.0, -1.0]),
        np.full((3, 3), np.nan),
    ],
    ids=["singular", "reflection", "nan"],
)
def test_polar_decomposition_falls_back_to_identity(F):
    R = np.full((3, 3), 5.0)
    converged, _ = polar_decomposition(F, R, 25, 1e-12)
    assert not converged
    np.testing.assert_array_equal(R, np.eye(3))


def test_polar_decomposition_respects_iteration_budget():
    F = rotation_z(1.0) @ np.diag([3.0, 0.2, 1.0])
    R = np.empty((3, 3))
    converged, iterations = polar_decomposition(F, R, 1, 1e-12)
    assert not converged
    assert iterations == 1


def test_rotate_symmetric_quarter_turn():
    s_in = np.array([1.0, 2.0, 3.0, 0.0, 0.0, 0.0])
    s_out = np.empty(6)
    rotate_symmetric(rotation_z(np.pi / 2.0), s_in, s_out)
    np.testing.assert_allclose(s_out, [2.0, 1.0, 3.0, 0.0, 0.0, 0.0],
                               atol=1e-14)
