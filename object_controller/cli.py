"""
Command-line entry points.

``object-controller``
    Run the keyboard controller on stdin until Ctrl-C.

``object-controller-echo``
    Log everything the controller publishes; handy as a stand-in
    receiver when no simulator is running.
"""

import sys
import signal
import time
import argparse
import logging

from .bus import Subscriber
from .config import ControllerConfig, PHASE_MODES
from .controller import ObjectController
from .exceptions import BusConnectionError, ConfigError, TerminalReadError
from .keyboard import KeyboardReader, RawTerminal
from .serialize import METHODS

logger = logging.getLogger("objctl.cli")

LOG_FORMAT = "[%(levelname)s] [%(asctime)s] %(name)s: %(message)s"


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    defaults = ControllerConfig()
    parser.add_argument("--transform-topic", default=defaults.transform_topic)
    parser.add_argument("--outbound-topic", default=defaults.outbound_topic)
    parser.add_argument(
        "--serialization", choices=METHODS, default=defaults.serialization
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )


def build_parser() -> argparse.ArgumentParser:
    defaults = ControllerConfig()
    parser = argparse.ArgumentParser(
        prog="object-controller",
        description="Move simulator objects from the keyboard.",
    )
    _add_common_args(parser)
    parser.add_argument("--inbound-topic", default=defaults.inbound_topic)
    parser.add_argument(
        "--phase",
        choices=PHASE_MODES,
        default=defaults.phase_mode,
        help="orbit phase formula (default: %(default)s)",
    )
    parser.add_argument("--rate", type=float, default=defaults.loop_hz, help="loop Hz")
    return parser


def config_from_args(args: argparse.Namespace) -> ControllerConfig:
    return ControllerConfig(
        transform_topic=args.transform_topic,
        outbound_topic=args.outbound_topic,
        inbound_topic=args.inbound_topic,
        phase_mode=args.phase,
        serialization=args.serialization,
        loop_hz=args.rate,
    ).validate()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    try:
        config = config_from_args(args)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2

    try:
        controller = ObjectController.from_config(config)
    except BusConnectionError as exc:
        logger.error("%s", exc)
        return 1

    with controller:
        previous = controller.install_signal_handler()
        try:
            return controller.run(KeyboardReader(0), RawTerminal(0))
        except TerminalReadError as exc:
            logger.error("%s", exc)
            return 1
        finally:
            signal.signal(signal.SIGINT, previous)


def echo_main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="object-controller-echo",
        description="Log pose and text messages published by object-controller.",
    )
    _add_common_args(parser)
    parser.add_argument(
        "--timeout-connect",
        type=float,
        default=10.0,
        help="seconds to wait for the controller's topics",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    def log_message(message):
        logger.info("%r", message)

    try:
        poses = Subscriber(
            args.transform_topic,
            callback=log_message,
            timeout_connect=args.timeout_connect,
            serialization=args.serialization,
        )
        texts = Subscriber(
            args.outbound_topic,
            callback=log_message,
            timeout_connect=args.timeout_connect,
            serialization=args.serialization,
        )
    except BusConnectionError as exc:
        logger.error("%s", exc)
        return 1

    with poses, texts:
        try:
            while True:
                poses.spin_once()
                texts.spin_once()
                time.sleep(0.01)
        except KeyboardInterrupt:
            logger.info("Echo stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
