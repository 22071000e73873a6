"""
Shared test fixtures and helpers for object_controller tests.
"""

import pytest


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, dt):
        self.now += dt


class RecordingPublisher:
    """Stands in for a bus Publisher and keeps everything sent."""

    def __init__(self):
        self.sent = []
        self.closed = False

    def send(self, message):
        self.sent.append(message)
        return True

    def close(self):
        self.closed = True


class CountingTerminal:
    """Context manager that counts how often the terminal was restored."""

    def __init__(self):
        self.entered = 0
        self.restored = 0

    def __enter__(self):
        self.entered += 1
        return self

    def __exit__(self, *_):
        self.restored += 1


class NoSleepRate:
    def __init__(self):
        self.sleeps = 0

    def sleep(self):
        self.sleeps += 1


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def pose_pub():
    return RecordingPublisher()


@pytest.fixture
def text_pub():
    return RecordingPublisher()


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "multiprocess: test spawns a second process"
    )
