"""test/test_dynamics.py - NearHoverQuadNoYaw unit tests"""

import numpy as np
import pytest

from meta_planner.models.near_hover_quad import G, NearHoverQuadNoYaw


class TestConstruction:

    def test_dimensions(self, quad):
        assert quad.X_DIM == 6
        assert quad.U_DIM == 3
        assert quad.P_DIM == 3

    def test_wrong_bound_length_raises(self):
        with pytest.raises(ValueError):
            NearHoverQuadNoYaw(lower_u=[-0.1, -0.1], upper_u=[0.1, 0.1])

    def test_inverted_bounds_raise(self):
        with pytest.raises(ValueError):
            NearHoverQuadNoYaw(lower_u=[0.1, -0.1, 7.81], upper_u=[-0.1, 0.1, 11.81])


class TestEvaluate:

    def test_hover_has_zero_acceleration(self, quad):
        x_dot = quad.evaluate(np.zeros(6), np.array([0.0, 0.0, G]))
        np.testing.assert_allclose(x_dot, np.zeros(6), atol=1e-12)

    def test_position_rates_are_velocities(self, quad):
        state = np.array([0.0, 1.0, 0.0, -2.0, 0.0, 3.0])
        x_dot = quad.evaluate(state, np.array([0.0, 0.0, G]))
        np.testing.assert_allclose(x_dot[[0, 2, 4]], [1.0, -2.0, 3.0])

    def test_attitude_accelerates_horizontally(self, quad):
        x_dot = quad.evaluate(np.zeros(6), np.array([0.1, -0.1, G]))
        assert x_dot[1] == pytest.approx(G * np.tan(0.1))
        assert x_dot[3] == pytest.approx(-G * np.tan(0.1))


class TestIndexing:

    def test_interleaved_layout(self, quad):
        assert [quad.spatial_dimension(i) for i in range(3)] == [0, 2, 4]
        assert [quad.velocity_dimension(i) for i in range(3)] == [1, 3, 5]

    @pytest.mark.parametrize("axis", [-1, 3])
    def test_out_of_range_axis_raises(self, quad, axis):
        with pytest.raises(ValueError):
            quad.spatial_dimension(axis)
        with pytest.raises(ValueError):
            quad.velocity_dimension(axis)

    def test_puncture(self, quad):
        state = np.array([1.0, 10.0, 2.0, 20.0, 3.0, 30.0])
        np.testing.assert_array_equal(quad.puncture(state), [1.0, 2.0, 3.0])


class TestLift:

    def test_lift_then_puncture_returns_positions(self, quad):
        positions = [np.array([0.0, 0.0, 0.0]),
                     np.array([1.0, 2.0, 0.5]),
                     np.array([3.0, 2.0, -1.0])]
        times = [0.0, 2.0, 4.0]

        states = quad.lift_geometric_trajectory(positions, times)

        assert len(states) == 3
        for state, position in zip(states, positions):
            np.testing.assert_allclose(quad.puncture(state), position)

    def test_lift_velocities(self, quad):
        positions = [np.zeros(3), np.array([2.0, -1.0, 0.5])]
        states = quad.lift_geometric_trajectory(positions, [0.0, 2.0])

        np.testing.assert_allclose(states[0][[1, 3, 5]], [1.0, -0.5, 0.25])
        np.testing.assert_allclose(states[-1][[1, 3, 5]], np.zeros(3))

    def test_length_mismatch_raises(self, quad):
        with pytest.raises(ValueError):
            quad.lift_geometric_trajectory([np.zeros(3)], [0.0, 1.0])


class TestSimulation:

    def test_hover_stays_put(self, quad):
        state = np.array([1.0, 0.0, 2.0, 0.0, 3.0, 0.0])
        next_state = quad.simulate_step(state, quad.hover_control(), 0.02)
        np.testing.assert_allclose(next_state, state, atol=1e-12)

    def test_control_is_clipped(self, quad):
        state = np.zeros(6)
        clipped = quad.simulate_step(state, np.array([1.0, 0.0, G]), 1.0)
        limited = quad.simulate_step(state, np.array([0.1, 0.0, G]), 1.0)
        np.testing.assert_allclose(clipped, limited)

    def test_disturbance_enters_velocity(self, quad):
        next_state = quad.simulate_step(np.zeros(6), quad.hover_control(), 1.0,
                                        disturbance=np.array([0.5, 0.0, -0.5]))
        np.testing.assert_allclose(next_state[[1, 3, 5]], [0.5, 0.0, -0.5])

    def test_rk4_matches_euler_for_constant_acceleration_velocity(self, quad):
        state = np.zeros(6)
        control = np.array([0.1, 0.0, G])
        euler = quad.simulate_step(state, control, 0.1, method='euler')
        rk4 = quad.simulate_step(state, control, 0.1, method='rk4')
        assert rk4[1] == pytest.approx(euler[1])
        # RK4 integrates the position exactly: 0.5 * a * t^2
        assert rk4[0] == pytest.approx(0.5 * G * np.tan(0.1) * 0.01)

    def test_unknown_method_raises(self, quad):
        with pytest.raises(ValueError):
            quad.simulate_step(np.zeros(6), quad.hover_control(), 0.1, method='midpoint')
