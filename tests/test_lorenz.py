"""Unit tests for lorenz.py module."""

import logging
import math
from dataclasses import replace

import numpy as np
import pytest

from physlab.history import History
from physlab.integrators import rk4_step
from physlab.lorenz import (
    LorenzComparator,
    LorenzParams,
    LorenzState,
    lorenz_derivative,
    lorenz_step,
    separation,
)
from physlab.render import Circle, FrameContext, Line, Polyline, Rect, Surface, Text, Trail


def make_sim():
    """Helper to create a comparator with default configuration."""
    return LorenzComparator()


def run(sim, params, steps, state=None):
    """Helper to advance the twins and return the final state and separations."""
    state = state or sim.initial_state(params)
    separations = []
    for _ in range(steps):
        state = sim.step(state, params, sim.fixed_dt)
        separations.append(separation(state.a, state.b))
    return state, separations


class TestLorenzDerivative:
    """Test the vector field."""

    def test_known_value(self):
        """Test the derivative at (1, 1, 1) with the classic parameters."""
        result = lorenz_derivative(np.array([1.0, 1.0, 1.0]), 10.0, 28.0, 8.0 / 3.0)
        np.testing.assert_allclose(result, [0.0, 26.0, 1.0 - 8.0 / 3.0])

    def test_origin_fixed(self):
        """Test that the origin is a fixed point for any parameters."""
        np.testing.assert_array_equal(lorenz_derivative(np.zeros(3), 10.0, 5.0, 2.0), [0.0, 0.0, 0.0])

    def test_stacked_matches_single(self):
        """Test that integrating stacked twins equals integrating each alone, bit for bit."""
        def derivative(points):
            return lorenz_derivative(points, 10.0, 28.0, 8.0 / 3.0)

        points = np.array([[1.0, 1.0, 1.0], [1.0 + 1e-5, 1.0, 1.0]])
        stacked = rk4_step(derivative, points, 0.005)
        for index in range(2):
            assert np.array_equal(stacked[index], rk4_step(derivative, points[index], 0.005))

    def test_separation(self):
        """Test the Euclidean distance helper."""
        assert separation((0.0, 0.0, 0.0), (3.0, 4.0, 0.0)) == pytest.approx(5.0)


class TestLorenzParams:
    """Test parameter sanitizing and slider mapping."""

    def test_epsilon_slider_log_midpoint(self):
        """Test that the middle epsilon slider position is the geometric mean of the range."""
        params = LorenzParams.from_sliders(epsilon=50)
        assert params.epsilon == pytest.approx(10 ** -3.5, rel=1e-9)
        assert LorenzParams().epsilon == pytest.approx(10 ** -3.5, rel=1e-9)

    def test_epsilon_slider_ends(self):
        """Test the slider extremes."""
        assert LorenzParams.from_sliders(epsilon=0).epsilon == pytest.approx(1e-6)
        assert LorenzParams.from_sliders(epsilon=100).epsilon == pytest.approx(1e-1)

    def test_clamping(self):
        """Test that rho and speed stay within their slider ranges."""
        params = LorenzParams(rho=40.0, speed=10.0, epsilon=5.0)
        assert params.rho == 30.0
        assert params.speed == 3.0
        assert params.epsilon == pytest.approx(0.1)
        assert LorenzParams(rho=float("nan")).rho == 28.0

    def test_unknown_view(self):
        """Test that an unknown view is rejected."""
        with pytest.raises(ValueError, match="Unknown Lorenz view"):
            LorenzParams(view="poincare")

    def test_reset_fields(self):
        """Test which changes restart the twins."""
        sim = make_sim()
        params = LorenzParams()
        assert sim.needs_reset(params, replace(params, rho=5.0))
        assert sim.needs_reset(params, replace(params, epsilon=1e-5))
        assert not sim.needs_reset(params, replace(params, speed=2.0))
        assert not sim.needs_reset(params, replace(params, view="separation"))


class TestTwins:
    """Test the twin integration."""

    def test_initial_offset_along_x(self):
        """Test that the second twin starts epsilon away along x."""
        params = LorenzParams(epsilon=1e-4)
        state = make_sim().initial_state(params)
        assert state.a == (1.0, 1.0, 1.0)
        assert state.b == pytest.approx((1.0 + 1e-4, 1.0, 1.0))
        assert separation(state.a, state.b) == pytest.approx(1e-4)

    def test_step_deterministic(self):
        """Test that equal inputs give bit-identical states."""
        sim = make_sim()
        params = LorenzParams()
        state = sim.initial_state(params)
        assert sim.step(state, params, sim.fixed_dt) == sim.step(state, params, sim.fixed_dt)

    def test_time_scale(self):
        """Test that one reference frame advances base_dt Lorenz time units at speed 1."""
        sim = make_sim()
        params = LorenzParams()
        state = sim.initial_state(params)
        expected = lorenz_step(state, params, 0.005)
        assert sim.step(state, params, sim.fixed_dt).a == pytest.approx(expected.a, rel=1e-12)

    def test_speed_scales_step(self):
        """Test that speed multiplies the Lorenz time advanced per step."""
        sim = make_sim()
        params = LorenzParams(speed=2.0)
        state = sim.initial_state(params)
        expected = lorenz_step(state, params, 0.01)
        assert sim.step(state, params, sim.fixed_dt).a == pytest.approx(expected.a, rel=1e-12)

    def test_chaotic_separation_grows(self):
        """Test that rho = 28 amplifies a tiny offset to the attractor's scale."""
        sim = make_sim()
        params = LorenzParams(rho=28.0, epsilon=1e-5)
        _, separations = run(sim, params, 6000)
        assert max(separations[-1000:]) > 1.0

    def test_stable_separation_shrinks(self):
        """Test that rho = 5 pulls both twins onto the same fixed point."""
        sim = make_sim()
        params = LorenzParams(rho=5.0, epsilon=1e-5)
        state, separations = run(sim, params, 6000)
        assert separations[-1] < 1e-5
        fixed = math.sqrt(params.beta * (params.rho - 1.0))
        assert state.a == pytest.approx((fixed, fixed, params.rho - 1.0), abs=1e-3)

    def test_non_finite_twin_restarted(self, caplog):
        """Test that a broken twin restarts from its initial point while the other continues."""
        sim = make_sim()
        params = LorenzParams(epsilon=1e-3)
        state = LorenzState((1.0, 1.0, 1.0), (float("nan"), 0.0, 0.0))
        with caplog.at_level(logging.WARNING, logger="physlab"):
            stepped = sim.step(state, params, sim.fixed_dt)
        assert stepped.b == pytest.approx((1.001, 1.0, 1.0))
        assert all(math.isfinite(value) for value in stepped.a)
        assert stepped.a != (1.0, 1.0, 1.0)
        assert "Lorenz" in caplog.text

    def test_diagnostics(self):
        """Test the separation readouts."""
        sim = make_sim()
        params = LorenzParams(epsilon=1e-4)
        diagnostics = sim.diagnostics(sim.initial_state(params), params)
        assert diagnostics["separation"] == pytest.approx(1e-4)
        assert diagnostics["log_separation"] == pytest.approx(-4.0)
        assert diagnostics["b_x"] == pytest.approx(1.0001)

    def test_log_separation_floor(self):
        """Test that identical twins report the floor instead of -inf."""
        sim = make_sim()
        state = LorenzState((1.0, 2.0, 3.0), (1.0, 2.0, 3.0))
        assert sim.diagnostics(state, LorenzParams())["log_separation"] == pytest.approx(-10.0)


class TestHistoryAndRender:
    """Test trails, the separation plot and the rotating projection."""

    def make_history(self, sim, params, steps):
        """Helper to record a short run."""
        history = sim.new_history()
        state = sim.initial_state(params)
        for index in range(steps):
            state = sim.step(state, params, sim.fixed_dt)
            sim.record(history, state, params, index * sim.fixed_dt)
        return state, history

    def test_history_capacities(self):
        """Test the trail and separation buffer sizes."""
        history = make_sim().new_history()
        assert history.capacity("trail_a") == 3000
        assert history.capacity("trail_b") == 3000
        assert history.capacity("separation") == 800

    def test_attractor_view(self):
        """Test that both trails and both heads are drawn."""
        sim = make_sim()
        params = LorenzParams()
        state, history = self.make_history(sim, params, 10)
        frame = sim.render(state, params, history.view(), FrameContext(), Surface())
        trails = frame.of_type(Trail)
        assert len(trails) == 2
        assert len(trails[0].points) == 10
        assert trails[0].alphas[-1] == pytest.approx(1.0)
        assert trails[0].alphas[0] < trails[0].alphas[-1]
        assert frame.count(Circle) == 4

    def test_attractor_without_history(self):
        """Test that the heads are drawn before any trail exists."""
        sim = make_sim()
        params = LorenzParams()
        frame = sim.render(sim.initial_state(params), params, History().view(), FrameContext(), Surface())
        assert frame.count(Trail) == 0
        assert frame.count(Circle) == 4

    def test_rotation_follows_frame_index(self):
        """Test that the projection turns with the frame counter only."""
        sim = make_sim()
        params = LorenzParams()
        state = LorenzState((10.0, 5.0, 30.0), (10.0, 5.0, 30.0))
        view = History().view()
        first = sim.render(state, params, view, FrameContext(frame_index=0), Surface())
        again = sim.render(state, params, view, FrameContext(frame_index=0), Surface())
        later = sim.render(state, params, view, FrameContext(frame_index=500), Surface())
        assert first == again
        assert first.of_type(Circle)[0].center != later.of_type(Circle)[0].center

    def test_projection_centres_attractor(self):
        """Test that the point (0, y, rho - 1) lands on the surface centre."""
        sim = make_sim()
        params = LorenzParams(rho=28.0)
        projection = sim.projection(params, FrameContext(frame_index=123), Surface(600, 480))
        assert projection.scale == pytest.approx(0.018 * 480)
        assert projection.project(0.0, 7.0, 27.0) == pytest.approx((300.0, 240.0))

    def test_separation_view(self):
        """Test the log-scale separation plot."""
        sim = make_sim()
        params = LorenzParams(view="separation")
        state, history = self.make_history(sim, params, 20)
        frame = sim.render(state, params, history.view(), FrameContext(), Surface())
        assert frame.count(Rect) == 1
        assert frame.count(Line) == 6
        assert frame.count(Polyline) == 1
        assert frame.count(Text) == 8
        labels = [text.text for text in frame.of_type(Text)]
        assert "Time" in labels
        assert "Separation (log scale)" in labels

    def test_separation_view_waits_for_samples(self):
        """Test that the plot is empty until two samples are recorded."""
        sim = make_sim()
        params = LorenzParams(view="separation")
        frame = sim.render(sim.initial_state(params), params, sim.new_history().view(), FrameContext(), Surface())
        assert frame.count(Polyline) == 0
