"""Compiled hexahedron geometry and small-tensor helpers.

Everything here is a serial ``njit`` function meant to be called from inside
the parallel element kernels, one element at a time. Arrays passed in are
small per-element scratch buffers (``(8, 3)`` node coordinates, ``(3, 8)``
gradient operators, ``(3, 3)`` tensors).

The gradient operator is the exact derivative of the element volume with
respect to the nodal coordinates (the mean-quadrature ``B`` matrix of
Flanagan and Belytschko). It is integrated with 2x2x2 Gauss points, which is
exact for trilinear hexahedra.
"""
import math

import numpy as np
from numba import njit

# Natural coordinates of the eight corners, matching exdyn.mesh.CORNER_OFFSETS.
NATURAL_COORDS = np.array(
    [
        [-1.0, -1.0, -1.0],
        [1.0, -1.0, -1.0],
        [1.0, 1.0, -1.0],
        [-1.0, 1.0, -1.0],
        [-1.0, -1.0, 1.0],
        [1.0, -1.0, 1.0],
        [1.0, 1.0, 1.0],
        [-1.0, 1.0, 1.0],
    ]
)

DET_FLOOR = 1.0e-12


def _shape_derivatives() -> np.ndarray:
    """``dN_node/dxi_a`` at each 2x2x2 Gauss point, shape ``(8, 8, 3)``."""
    gauss_points = NATURAL_COORDS / np.sqrt(3.0)
    derivs = np.empty((8, 8, 3))
    for g, (xi, eta, zeta) in enumerate(gauss_points):
        for node, (a, b, c) in enumerate(NATURAL_COORDS):
            derivs[g, node, 0] = 0.125 * a * (1.0 + b * eta) * (1.0 + c * zeta)
            derivs[g, node, 1] = 0.125 * b * (1.0 + a * xi) * (1.0 + c * zeta)
            derivs[g, node, 2] = 0.125 * c * (1.0 + a * xi) * (1.0 + b * eta)
    return derivs


def _hourglass_base_vectors() -> np.ndarray:
    """The four hourglass base vectors, shape ``(4, 8)``."""
    xi, eta, zeta = NATURAL_COORDS.T
    return np.vstack((eta * zeta, zeta * xi, xi * eta, xi * eta * zeta))


SHAPE_DERIVATIVES = _shape_derivatives()
HOURGLASS_VECTORS = _hourglass_base_vectors()


@njit(cache=True)
def cofactor3(m, cof):
    """Cofactor matrix of a 3x3 matrix, written into ``cof``."""
    for i in range(3):
        i1 = (i + 1) % 3
        i2 = (i + 2) % 3
        for a in range(3):
            a1 = (a + 1) % 3
            a2 = (a + 2) % 3
            cof[i, a] = m[i1, a1] * m[i2, a2] - m[i1, a2] * m[i2, a1]


@njit(cache=True)
def det3(m):
    return (
        m[0, 0] * (m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1])
        - m[0, 1] * (m[1, 0] * m[2, 2] - m[1, 2] * m[2, 0])
        + m[0, 2] * (m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0])
    )


@njit(cache=True)
def set_identity3(m):
    for i in range(3):
        for j in range(3):
            m[i, j] = 1.0 if i == j else 0.0


@njit(cache=True)
def matmul3(a, b, out):
    """``out = a @ b``; ``out`` must not alias an input."""
    for i in range(3):
        for j in range(3):
            s = 0.0
            for k in range(3):
                s += a[i, k] * b[k, j]
            out[i, j] = s


@njit(cache=True)
def matmul3_bt(a, b, out):
    """``out = a @ b.T``; ``out`` must not alias an input."""
    for i in range(3):
        for j in range(3):
            s = 0.0
            for k in range(3):
                s += a[i, k] * b[j, k]
            out[i, j] = s


@njit(cache=True)
def sym_to_matrix(s, m):
    """Expand six ``xx, yy, zz, xy, yz, zx`` components into ``m``."""
    m[0, 0] = s[0]
    m[1, 1] = s[1]
    m[2, 2] = s[2]
    m[0, 1] = s[3]
    m[1, 0] = s[3]
    m[1, 2] = s[4]
    m[2, 1] = s[4]
    m[2, 0] = s[5]
    m[0, 2] = s[5]


@njit(cache=True)
def matrix_to_sym(m, s):
    """Symmetric part of ``m`` as six components."""
    s[0] = m[0, 0]
    s[1] = m[1, 1]
    s[2] = m[2, 2]
    s[3] = 0.5 * (m[0, 1] + m[1, 0])
    s[4] = 0.5 * (m[1, 2] + m[2, 1])
    s[5] = 0.5 * (m[2, 0] + m[0, 2])


@njit(cache=True)
def rotate_symmetric(rot, s_in, s_out):
    """``s_out = rot @ S_in @ rot.T`` on six-component tensors."""
    full = np.empty((3, 3))
    tmp = np.empty((3, 3))
    res = np.empty((3, 3))
    sym_to_matrix(s_in, full)
    matmul3(rot, full, tmp)
    matmul3_bt(tmp, rot, res)
    matrix_to_sym(res, s_out)


@njit(cache=True)
def gradient_operator(x, grad):
    """Mean-quadrature gradient operator and volume of one hexahedron.

    Parameters
    ----------
    x
        ``(8, 3)`` nodal coordinates.
    grad
        ``(3, 8)`` output, ``grad[i, I] = dV / dx_iI``.

    Returns
    -------
    float
        Element volume. Non-positive for inverted or collapsed elements.
    """
    jac = np.empty((3, 3))
    cof = np.empty((3, 3))
    for i in range(3):
        for node in range(8):
            grad[i, node] = 0.0
    volume = 0.0
    for g in range(8):
        for i in range(3):
            for a in range(3):
                s = 0.0
                for node in range(8):
                    s += x[node, i] * SHAPE_DERIVATIVES[g, node, a]
                jac[i, a] = s
        cofactor3(jac, cof)
        volume += (
            jac[0, 0] * cof[0, 0]
            + jac[0, 1] * cof[0, 1]
            + jac[0, 2] * cof[0, 2]
        )
        for i in range(3):
            for node in range(8):
                s = 0.0
                for a in range(3):
                    s += cof[i, a] * SHAPE_DERIVATIVES[g, node, a]
                grad[i, node] += s
    return volume


@njit(cache=True)
def hourglass_operator(x, grad, volume, hgop):
    """Flanagan-Belytschko hourglass shape vectors.

    ``hgop[a, I] = Gamma[a, I] - (Gamma[a] . x_i) grad[i, I] / volume``,
    which is orthogonal to every linear velocity field.
    """
    proj = np.empty(3)
    inv_volume = 1.0 / volume
    for a in range(4):
        for i in range(3):
            s = 0.0
            for node in range(8):
                s += HOURGLASS_VECTORS[a, node] * x[node, i]
            proj[i] = s
        for node in range(8):
            hgop[a, node] = HOURGLASS_VECTORS[a, node] - inv_volume * (
                proj[0] * grad[0, node]
                + proj[1] * grad[1, node]
                + proj[2] * grad[2, node]
            )


@njit(cache=True)
def polar_decomposition(F, R, max_iterations, tolerance):
    """Rotation factor of ``F = V R`` by Newton iteration.

    Iterates ``X <- (X + X^-T) / 2`` from ``X = F`` until the Frobenius norm
    of the update falls below ``tolerance * |X|``.

    Parameters
    ----------
    F
        ``(3, 3)`` deformation gradient.
    R
        ``(3, 3)`` output rotation. Identity when the iteration does not
        converge.
    max_iterations
        Iteration budget.
    tolerance
        Relative convergence tolerance.

    Returns
    -------
    tuple of (bool, int)
        Whether the iteration converged, and the iterations used.
    """
    set_identity3(R)
    for i in range(3):
        for j in range(3):
            if not math.isfinite(F[i, j]):
                return False, 0
    x = np.empty((3, 3))
    cof = np.empty((3, 3))
    for i in range(3):
        for j in range(3):
            x[i, j] = F[i, j]

    for iteration in range(1, max_iterations + 1):
        cofactor3(x, cof)
        det = x[0, 0] * cof[0, 0] + x[0, 1] * cof[0, 1] + x[0, 2] * cof[0, 2]
        if not det > DET_FLOOR:
            return False, iteration
        inv_det = 1.0 / det
        change = 0.0
        norm = 0.0
        for i in range(3):
            for j in range(3):
                updated = 0.5 * (x[i, j] + cof[i, j] * inv_det)
                delta = updated - x[i, j]
                change += delta * delta
                norm += updated * updated
                x[i, j] = updated
        if change <= tolerance * tolerance * norm:
            for i in range(3):
                for j in range(3):
                    R[i, j] = x[i, j]
            return True, iteration
    return False, max_iterations
