"""
Tests for object_controller.cli argument handling and exit codes.
"""

import pytest

from conftest import CountingTerminal

from object_controller import cli, force_unlink
from object_controller.cli import build_parser, config_from_args, main
from object_controller.exceptions import TerminalReadError
from object_controller.utils import topic_segment_name

_TOPIC_ARGS = [
    "--transform-topic", "/test/cli/transform",
    "--outbound-topic", "/test/cli/from_ros",
    "--inbound-topic", "/test/cli/from_sim",
]


@pytest.fixture(autouse=True)
def cleanup():
    topics = _TOPIC_ARGS[1::2]
    for topic in topics:
        force_unlink(topic_segment_name(topic))
    yield
    for topic in topics:
        force_unlink(topic_segment_name(topic))


class _ClosingReader:
    """Reports end of input on the first poll."""

    def __init__(self, fd):
        self.closed = False

    def poll(self):
        self.closed = True
        return None


class _BrokenReader:
    def __init__(self, fd):
        self.closed = False

    def poll(self):
        raise TerminalReadError("read() on fd 0 failed: [Errno 5] Input/output error")


@pytest.fixture
def terminal(monkeypatch):
    term = CountingTerminal()
    monkeypatch.setattr(cli, "RawTerminal", lambda fd: term)
    return term


def test_defaults():
    config = config_from_args(build_parser().parse_args([]))
    assert config.transform_topic == "/goods/transform"
    assert config.phase_mode == "absolute"
    assert config.serialization == "pickle"


def test_overrides():
    args = build_parser().parse_args(
        ["--phase", "elapsed", "--inbound-topic", "/sim/out", "--rate", "25"]
    )
    config = config_from_args(args)
    assert config.phase_mode == "elapsed"
    assert config.inbound_topic == "/sim/out"
    assert config.loop_hz == 25.0


def test_invalid_config_exit_code():
    assert main(["--rate", "0"]) == 2


def test_normal_shutdown_exits_zero(monkeypatch, terminal):
    monkeypatch.setattr(cli, "KeyboardReader", _ClosingReader)
    assert main(_TOPIC_ARGS) == 0
    assert terminal.restored == 1


def test_read_failure_exits_nonzero(monkeypatch, terminal, caplog):
    monkeypatch.setattr(cli, "KeyboardReader", _BrokenReader)
    assert main(_TOPIC_ARGS) == 1
    assert terminal.restored == 1
    assert "Input/output error" in caplog.text
