"""Tests for force assembly and the central-difference node update."""
import numpy as np
import pytest

from exdyn.kernels import finish_step
from exdyn.status import NONFINITE_STATE, ZERO_MASS


def scatter_reference(region):
    """Assemble element forces with an unbuffered scatter-add."""
    expected = np.zeros((region.num_nodes, 3))
    for corner in range(8):
        np.add.at(
            expected,
            region.elem_node_ids[:, corner],
            region.element_force[:, :, corner],
        )
    return expected


def test_gather_matches_scatter(block_region):
    region = block_region
    rng = np.random.default_rng(3)
    region.element_force[:] = rng.normal(size=region.element_force.shape)
    region.delta_t[:] = 0.0
    finish_step(region, 0, 1)
    np.testing.assert_allclose(
        region.internal_force, scatter_reference(region), rtol=1e-12,
        atol=1e-12,
    )
    assert not region.node_status.any()


def test_zero_force_leaves_state_at_rest(block_region):
    region = block_region
    region.element_force[:] = 0.0
    region.delta_t[:] = 1.0e-5
    for step in range(4):
        current, following = step % 2, (step + 1) % 2
        finish_step(region, current, following)
    assert not region.displacement.any()
    assert not region.velocity.any()
    assert not region.acceleration.any()


def test_central_difference_update(unit_region):
    region = unit_region
    force = np.array([0.4, -0.2, 0.1])
    region.element_force[0] = (force[:, None] * np.ones((3, 8)))
    region.velocity[:, :, 0] = np.array([1.0, 2.0, 3.0])
    region.displacement[:, :, 0] = 0.5
    dt_current = 2.0e-6
    dt_next = 4.0e-6
    region.delta_t[0] = dt_current
    region.delta_t[1] = dt_next

    finish_step(region, 0, 1)

    mass = region.nodal_mass[0]
    accel = force / mass
    v_next = np.array([1.0, 2.0, 3.0]) + 0.5 * (dt_current + dt_next) * accel
    u_next = 0.5 + dt_next * v_next
    np.testing.assert_allclose(region.internal_force, force[None, :].repeat(
        region.num_nodes, axis=0))
    np.testing.assert_allclose(region.acceleration[0], accel)
    np.testing.assert_allclose(region.velocity[:, :, 1],
                               np.tile(v_next, (region.num_nodes, 1)))
    np.testing.assert_allclose(region.displacement[:, :, 1],
                               np.tile(u_next, (region.num_nodes, 1)))
    # the source slot is not modified
    np.testing.assert_array_equal(region.displacement[:, :, 0], 0.5)


def test_first_step_is_half_step(unit_region):
    region = unit_region
    region.element_force[0] = 1.0
    region.delta_t[0] = 0.0
    region.delta_t[1] = 1.0e-5
    finish_step(region, 0, 1)
    accel = 1.0 / region.nodal_mass[0]
    np.testing.assert_allclose(region.velocity[:, :, 1], 0.5e-5 * accel)


@pytest.mark.parametrize(
    "material_override",
    [{"gravity": (0.0, 0.0, -9.81)}],
    indirect=True,
)
def test_gravity_accelerates_free_nodes(unit_region):
    region = unit_region
    region.element_force[:] = 0.0
    region.delta_t[:] = 1.0e-3
    finish_step(region, 0, 1)
    np.testing.assert_allclose(
        region.acceleration, np.tile([0.0, 0.0, -9.81], (8, 1))
    )
    np.testing.assert_allclose(region.velocity[:, 2, 1], -9.81e-3)


def test_zero_mass_node_flagged_and_untouched(unit_region):
    region = unit_region
    region.nodal_mass[2] = 0.0
    region.element_force[:] = 1.0
    region.velocity[:, :, 1] = 7.0
    region.delta_t[:] = 1.0e-6
    finish_step(region, 0, 1)
    assert region.node_status[2] & ZERO_MASS
    np.testing.assert_array_equal(region.velocity[2, :, 1], 7.0)
    others = [n for n in range(8) if n != 2]
    assert not region.node_status[others].any()


def test_non_finite_update_flagged(unit_region):
    region = unit_region
    region.element_force[0, 0, :] = np.inf
    region.delta_t[:] = 1.0e-6
    finish_step(region, 0, 1)
    assert np.all(region.node_status & NONFINITE_STATE)
