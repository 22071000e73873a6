"""
Tests for object_controller.utils.
"""

import pytest

from object_controller.utils import Rate, topic_segment_name, poll_until


def test_topic_segment_name():
    assert topic_segment_name("/goods/transform") == "objctl_goods_transform"
    assert topic_segment_name("/goods/message/from_ros") == "objctl_goods_message_from_ros"


def test_topic_segment_name_rejects_empty():
    with pytest.raises(ValueError):
        topic_segment_name("///")


def test_poll_until_returns_first_value():
    values = iter([None, None, 7])
    assert poll_until(lambda: next(values), timeout=1.0, poll_interval=0) == 7


def test_poll_until_times_out():
    assert poll_until(lambda: None, timeout=0.01) is None


class _Time:
    def __init__(self):
        self.now = 0.0
        self.slept = []

    def clock(self):
        return self.now

    def sleep(self, dt):
        self.slept.append(dt)
        self.now += dt


def test_rate_sleeps_remaining_period():
    t = _Time()
    rate = Rate(50, clock=t.clock, sleep=t.sleep)
    t.now += 0.005
    rate.sleep()
    assert t.slept == [pytest.approx(0.015)]
    t.now += 0.01
    rate.sleep()
    assert t.slept[-1] == pytest.approx(0.01)


def test_rate_resets_when_far_behind():
    t = _Time()
    rate = Rate(50, clock=t.clock, sleep=t.sleep)
    t.now += 0.5
    rate.sleep()
    assert t.slept == []
    t.now += 0.005
    rate.sleep()
    assert t.slept == [pytest.approx(0.015)]


def test_rate_rejects_non_positive():
    with pytest.raises(ValueError):
        Rate(0)
