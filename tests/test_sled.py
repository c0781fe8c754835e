"""Unit tests for sled.py module."""

import logging
import math

import pytest

from physlab.history import History
from physlab.interaction import Gesture, PointerEvent, PointerKind
from physlab.render import Arrow, FrameContext, Line, Rect, Surface
from physlab.sled import PRESETS, Sled, SledParams, SledState


def make_sim():
    """Helper to create a sled with default configuration."""
    return Sled()


def resting(x=5.0):
    """Helper to create a sled at rest at position x."""
    return SledState(position=(x, 0.0))


class TestSledParams:
    """Test parameter sanitizing, sliders and presets."""

    def test_slider_defaults(self):
        """Test that default slider positions give 2 kg and mu = 0.2."""
        params = SledParams.from_sliders()
        assert params.mass == pytest.approx(2.0)
        assert params.friction_coeff == pytest.approx(0.2)
        assert params.push_right == 0.0
        assert params.push_left == 0.0

    def test_slider_ranges(self):
        """Test that full sliders reach the configured maxima."""
        params = SledParams.from_sliders(mass=100, push_right=100, push_left=50, friction_coeff=100)
        assert params.mass == pytest.approx(10.0)
        assert params.push_right == pytest.approx(20.0)
        assert params.push_left == pytest.approx(10.0)
        assert params.friction_coeff == pytest.approx(1.0)

    def test_applied_force(self):
        """Test that the two pushes combine with sign."""
        assert SledParams(push_right=3.0, push_left=8.0).applied_force == pytest.approx(-5.0)

    def test_clamping(self):
        """Test that bad values never reach the physics."""
        assert SledParams(mass=0.0).mass == pytest.approx(1e-3)
        assert SledParams(mass=float("nan")).mass == 2.0
        assert SledParams(push_right=-4.0).push_right == 0.0
        assert SledParams(friction_coeff=float("inf")).friction_coeff == 0.2

    def test_presets(self):
        """Test the named presets."""
        assert SledParams.preset("gentle") == SledParams(1.0, 5.0, 0.0, 0.1)
        assert SledParams.preset("heavy").mass == 8.0
        assert SledParams.preset("high-friction").friction_coeff == 0.8
        assert set(PRESETS) == {"gentle", "heavy", "high-friction"}

    def test_unknown_preset(self):
        """Test that an unknown preset is rejected."""
        with pytest.raises(ValueError, match="Unknown sled preset"):
            SledParams.preset("icy")


class TestSledForces:
    """Test the force balance."""

    def test_static_friction_balances(self):
        """Test that a push below mu*N is exactly cancelled."""
        forces = make_sim().forces(resting(), SledParams(mass=2.0, push_right=5.0, friction_coeff=0.5))
        assert forces.friction == pytest.approx(-5.0)
        assert forces.net == pytest.approx(0.0)
        assert forces.static
        assert forces.normal == pytest.approx(19.6)
        assert forces.weight == pytest.approx(-19.6)

    def test_static_limit(self):
        """Test that a push above mu*N leaves the excess as net force."""
        forces = make_sim().forces(resting(), SledParams(mass=2.0, push_right=15.0, friction_coeff=0.5))
        assert forces.friction == pytest.approx(-9.8)
        assert forces.net == pytest.approx(5.2)

    def test_kinetic_friction(self):
        """Test that a moving sled feels mu*N against its motion."""
        state = SledState(position=(5.0, 0.0), velocity=(1.0, 0.0))
        forces = make_sim().forces(state, SledParams(mass=2.0, friction_coeff=0.2))
        assert forces.friction == pytest.approx(-3.92)
        assert not forces.static

    def test_diagnostics(self):
        """Test the reported scalars."""
        sim = make_sim()
        diagnostics = sim.diagnostics(resting(), SledParams(push_right=5.0, friction_coeff=0.5))
        assert diagnostics["applied_force"] == pytest.approx(5.0)
        assert diagnostics["friction_force"] == pytest.approx(-5.0)
        assert diagnostics["static"] == 1.0


class TestSledDynamics:
    """Test the integration and its friction constraints."""

    def test_small_push_holds_still(self):
        """Test that static friction keeps the sled exactly in place."""
        sim = make_sim()
        params = SledParams(mass=2.0, push_right=5.0, friction_coeff=0.5)
        state = resting()
        for _ in range(100):
            state = sim.step(state, params, sim.fixed_dt)
        assert state.position[0] == 5.0
        assert state.velocity[0] == 0.0

    def test_large_push_accelerates(self):
        """Test the first step under a push above the static limit."""
        sim = make_sim()
        params = SledParams(mass=2.0, push_right=15.0, friction_coeff=0.5)
        state = sim.step(resting(), params, sim.fixed_dt)
        assert state.acceleration[0] == pytest.approx(2.6)
        assert state.velocity[0] == pytest.approx(0.026)
        assert state.position[0] == pytest.approx(5.00026)

    def test_gentle_preset_velocity(self):
        """Test constant acceleration over one second of the gentle preset."""
        sim = make_sim()
        params = SledParams.preset("gentle")
        state = sim.initial_state(params)
        for _ in range(100):
            state = sim.step(state, params, sim.fixed_dt)
        assert state.velocity[0] == pytest.approx(5.0 - 0.98, rel=1e-9)

    def test_kinetic_friction_stops_without_reversing(self):
        """Test that friction brings a coasting sled to rest instead of pushing it back."""
        sim = make_sim()
        params = SledParams(mass=2.0, friction_coeff=0.5)
        state = SledState(position=(5.0, 0.0), velocity=(0.015, 0.0))
        stopped = sim.step(state, params, sim.fixed_dt)
        assert stopped.velocity[0] == 0.0
        assert stopped.position[0] == 5.0

    def test_stopped_sled_has_no_acceleration(self):
        """Test that the step which stops a coasting sled also zeroes its acceleration."""
        sim = make_sim()
        params = SledParams(mass=2.0, friction_coeff=0.5)
        state = SledState(position=(5.0, 0.0), velocity=(0.015, 0.0))
        stopped = sim.step(state, params, sim.fixed_dt)
        assert stopped.acceleration == (0.0, 0.0)
        assert sim.diagnostics(stopped, params)["acceleration"] == 0.0

    def test_creep_below_threshold_snapped(self):
        """Test that a sub-threshold velocity with no push is held at zero."""
        sim = make_sim()
        params = SledParams(mass=2.0, friction_coeff=0.5)
        state = SledState(position=(5.0, 0.0), velocity=(0.005, 0.0))
        assert sim.step(state, params, sim.fixed_dt).velocity[0] == 0.0

    def test_decelerates_to_rest(self):
        """Test that a pushed-then-released sled eventually stops."""
        sim = make_sim()
        params = SledParams(mass=2.0, friction_coeff=0.2)
        state = SledState(position=(3.0, 0.0), velocity=(2.0, 0.0))
        for _ in range(200):
            state = sim.step(state, params, sim.fixed_dt)
        assert state.velocity[0] == 0.0
        assert state.position[0] > 3.0

    def test_boundary_bounce(self):
        """Test restitution at the track end."""
        sim = make_sim()
        params = SledParams(friction_coeff=0.0)
        lower, upper = sim.bounds
        state = SledState(position=(upper - 0.001, 0.0), velocity=(2.0, 0.0))
        bounced = sim.step(state, params, sim.fixed_dt)
        assert bounced.position[0] == upper
        assert bounced.velocity[0] == pytest.approx(-1.0)

    def test_stays_on_track(self):
        """Test that a hard push never drives the sled off the track."""
        sim = make_sim()
        params = SledParams(mass=1.0, push_left=20.0, friction_coeff=0.0)
        state = resting()
        lower, upper = sim.bounds
        for _ in range(1000):
            state = sim.step(state, params, sim.fixed_dt)
            assert lower <= state.position[0] <= upper

    def test_non_finite_recovered(self, caplog):
        """Test that a broken state is replaced by a safe one and logged."""
        sim = make_sim()
        state = SledState(position=(5.0, 0.0), velocity=(float("nan"), 0.0))
        with caplog.at_level(logging.WARNING, logger="physlab"):
            recovered = sim.step(state, SledParams(), sim.fixed_dt)
        assert math.isfinite(recovered.position[0])
        assert recovered.velocity[0] == 0.0
        assert "sled" in caplog.text


class TestSledInteraction:
    """Test placing and flicking the sled."""

    def test_tap_places_sled(self):
        """Test that a tap moves the sled there at rest."""
        sim = make_sim()
        state = SledState(position=(2.0, 0.0), velocity=(3.0, 0.0))
        placed = sim.apply_interaction(state, SledParams(), PointerEvent(PointerKind.DOWN, 300, 240), Surface(),
                                       Gesture())
        assert placed.position[0] == pytest.approx(5.0)
        assert placed.velocity == (0.0, 0.0)

    def test_tap_at_edge_clamped(self):
        """Test that the sled body stays on the track."""
        sim = make_sim()
        placed = sim.apply_interaction(resting(), SledParams(), PointerEvent(PointerKind.DOWN, 30, 240), Surface(),
                                       Gesture())
        assert placed.position[0] == pytest.approx(0.4)

    def test_tap_off_track_ignored(self):
        """Test that taps beside the track do nothing."""
        sim = make_sim()
        state = resting()
        result = sim.apply_interaction(state, SledParams(), PointerEvent(PointerKind.DOWN, 5, 240), Surface(),
                                       Gesture())
        assert result is state

    def test_drag_sets_velocity(self):
        """Test that dragging flicks the sled."""
        sim = make_sim()
        gesture = Gesture()
        gesture.begin(300, 240)
        moved = sim.apply_interaction(resting(), SledParams(), PointerEvent(PointerKind.MOVE, 327, 240), Surface(),
                                      gesture)
        assert moved.velocity[0] == pytest.approx(1.0)
        assert moved.position[0] == 5.0


class TestSledRender:
    """Test the force diagram."""

    def test_resting_sled(self):
        """Test that a sled with no push shows only weight and normal force."""
        sim = make_sim()
        params = SledParams()
        frame = sim.render(sim.initial_state(params), params, History().view(), FrameContext(), Surface())
        assert frame.count(Arrow) == 2
        assert frame.count(Rect) == 3
        assert frame.count(Line) == 11
        sled = frame.of_type(Rect)[-1]
        assert sled.corner_radius == 8.0

    def test_pushed_sled(self):
        """Test that a push beyond the static limit draws push, friction and net force."""
        sim = make_sim()
        params = SledParams(mass=2.0, push_right=15.0, friction_coeff=0.5)
        frame = sim.render(resting(), params, History().view(), FrameContext(), Surface())
        arrows = frame.of_type(Arrow)
        assert len(arrows) == 5
        assert [arrow.label for arrow in arrows if arrow.label] == ["F_net"]
        friction = arrows[3]
        assert friction.end[0] < friction.start[0]

    def test_moving_sled_shows_velocity(self):
        """Test that motion adds acceleration and velocity vectors."""
        sim = make_sim()
        params = SledParams(friction_coeff=0.2)
        state = sim.step(SledState(position=(5.0, 0.0), velocity=(2.0, 0.0)), params, sim.fixed_dt)
        frame = sim.render(state, params, History().view(), FrameContext(), Surface())
        labels = {arrow.label for arrow in frame.of_type(Arrow)}
        assert {"F_net", "a", "v"} <= labels

    def test_history(self):
        """Test the velocity series."""
        sim = make_sim()
        history = sim.new_history()
        sim.record(history, SledState(position=(5.0, 0.0), velocity=(1.5, 0.0)), SledParams(), 0.25)
        assert history.view().latest("velocity") == (0.25, 1.5)
        assert history.capacity("velocity") == 600
