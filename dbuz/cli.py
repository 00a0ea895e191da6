import argparse
import logging
import os
import sys
from typing import List, Optional

from dbuz.bus import BusSettings, connect
from dbuz.dispatcher import Dispatcher
from dbuz.errors import DbuzError
from dbuz.filters import build_rules
from dbuz.publisher import publish
from dbuz.transport import BusConnection
from dbuz.util import add_default_args

logger = logging.getLogger(__name__)


def run_subscribe(connection: BusConnection, args: argparse.Namespace):
    rules = build_rules(args.path, args.name)
    Dispatcher(connection, rules, verbose=args.verbose).subscribe()


def run_once(connection: BusConnection, args: argparse.Namespace):
    rules = build_rules(args.path, args.name)
    Dispatcher(connection, rules).once()


def run_publish(connection: BusConnection, args: argparse.Namespace):
    publish(connection, args.path, args.name, args.args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dbuz", description="dbus cli utils")
    add_default_args(parser)

    commands = parser.add_subparsers(dest="command", required=True)
    subscribe = commands.add_parser("subscribe", aliases=["sub"], help="subscribe to a signal")
    subscribe.set_defaults(handler=run_subscribe)

    once = commands.add_parser("once", help="subscribe to a single signal")
    once.set_defaults(handler=run_once)

    pub = commands.add_parser("publish", aliases=["pub"], help="publish a signal")
    pub.add_argument("args", nargs="*", help="String values for the signal body")
    pub.set_defaults(handler=run_publish)
    return parser


def _silence_stdout():
    # Point stdout at devnull so the interpreter's final flush doesn't hit the closed pipe again
    try:
        fd = sys.stdout.fileno()
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, fd)
        os.close(devnull)
    except (OSError, ValueError):
        pass


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    settings = BusSettings(zmq_publish=args.zmq_publish, zmq_subscribe=args.zmq_subscribe)

    try:
        with connect(args.bus, settings) as connection:
            args.handler(connection, args)
    except KeyboardInterrupt:
        logger.info(f"Shutting down {args.command}")
    except BrokenPipeError:
        logger.debug("Output closed by reader, stopping")
        _silence_stdout()
    except DbuzError as e:
        logger.error(str(e))
        logger.debug("Command failed", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
