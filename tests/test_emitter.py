"""
Tests for object_controller.emitter: orbit timers.
"""

import math
import pytest

from object_controller.emitter import PoseEmitter, TrackedObject


@pytest.fixture
def sent():
    return []


@pytest.fixture
def emitter(sent, clock):
    return PoseEmitter(sent.append, period=0.05, clock=clock)


def test_create_timer_captures_start_time(emitter, clock):
    obj = emitter.create_timer("bear_doll", 0.5)
    assert obj == TrackedObject("bear_doll", 0.5, clock.now)
    assert emitter.timers["bear_doll"].next_due == pytest.approx(clock.now + 0.05)


def test_timers_view_is_read_only(emitter):
    emitter.create_timer("bear_doll", 0.5)
    with pytest.raises(TypeError):
        emitter.timers["dog_doll"] = None


@pytest.mark.parametrize("t", [0.0, 1.0, 12.345, 1_700_000_000.25])
def test_absolute_phase_formula(emitter, clock, t):
    obj = emitter.create_timer("bear_doll", 0.5)
    t0 = clock.now
    pose = emitter.orbit_pose(obj, t)
    assert pose.translation.x == pytest.approx(math.cos(t0 + 0.5 * t), abs=1e-9)
    assert pose.translation.y == pytest.approx(math.sin(t0 + 0.5 * t), abs=1e-9)


def test_elapsed_phase_formula(sent, clock):
    emitter = PoseEmitter(sent.append, clock=clock, phase_mode="elapsed")
    obj = emitter.create_timer("dog_doll", 0.6)
    start = emitter.orbit_pose(obj, clock.now)
    assert (start.translation.x, start.translation.y) == pytest.approx((1.0, 0.0))
    later = emitter.orbit_pose(obj, clock.now + 2.0)
    assert later.translation.x == pytest.approx(math.cos(1.2), abs=1e-9)
    assert later.translation.y == pytest.approx(math.sin(1.2), abs=1e-9)


def test_unknown_phase_mode():
    with pytest.raises(ValueError):
        PoseEmitter(print, phase_mode="relative")


def test_nothing_fires_before_first_period(emitter, sent, clock):
    emitter.create_timer("bear_doll", 0.5)
    clock.advance(0.049)
    assert emitter.spin_once() == 0
    assert sent == []


def test_due_timer_publishes_flat_pose_without_rotation(emitter, sent, clock):
    emitter.create_timer("rabbit_doll", 0.7)
    clock.advance(0.05)
    assert emitter.spin_once() == 1
    (pose,) = sent
    assert pose.child_frame_id == "rabbit_doll"
    assert pose.frame_id == "map"
    assert pose.translation.z == 0.0
    assert pose.rotation is None
    assert math.hypot(pose.translation.x, pose.translation.y) == pytest.approx(1.0)


def test_each_timer_fires_once_per_period(emitter, sent, clock):
    emitter.create_timer("bear_doll", 0.5)
    for _ in range(10):
        clock.advance(0.05)
        emitter.spin_once()
    assert len(sent) == 10


def test_timers_are_independent(emitter, sent, clock):
    emitter.create_timer("bear_doll", 0.5)
    clock.advance(0.03)
    emitter.create_timer("dog_doll", 0.6)
    clock.advance(0.025)
    emitter.spin_once()
    assert [p.child_frame_id for p in sent] == ["bear_doll"]
    clock.advance(0.03)
    emitter.spin_once()
    assert [p.child_frame_id for p in sent] == ["bear_doll", "dog_doll"]


def test_late_timer_does_not_burst(emitter, sent, clock):
    emitter.create_timer("bear_doll", 0.5)
    clock.advance(1.0)
    assert emitter.spin_once() == 1
    assert emitter.spin_once() == 0
    assert emitter.timers["bear_doll"].next_due == pytest.approx(clock.now + 0.05)


def test_cancel_timer_stops_emissions(emitter, sent, clock):
    emitter.create_timer("bear_doll", 0.5)
    assert emitter.cancel_timer("bear_doll") is True
    assert emitter.cancel_timer("bear_doll") is False
    clock.advance(1.0)
    assert emitter.spin_once() == 0
    assert sent == []


def test_recreating_timer_replaces_it(emitter, clock):
    emitter.create_timer("bear_doll", 0.5)
    clock.advance(3.0)
    obj = emitter.create_timer("bear_doll", 0.9)
    assert len(emitter.timers) == 1
    assert emitter.timers["bear_doll"].obj is obj
    assert obj.start_time == clock.now
