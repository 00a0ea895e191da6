import os
from argparse import ArgumentParser


def add_default_args(parser: ArgumentParser):
    parser.add_argument(
        "--bus",
        type=str,
        default=os.getenv("DBUZ_BUS", "session"),
        help="Bus to use [session/system/zmq/custom D-Bus address]",
    )
    parser.add_argument(
        "--path",
        type=str,
        default="/org/dbuz/default",
        help="Object path, or <path>/* to include everything beneath it",
    )
    parser.add_argument(
        "--name",
        type=str,
        required=True,
        help="Signal name, <interface>.<member> or a bare <member>",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument(
        "--zmq-publish",
        type=str,
        default=os.getenv("DBUZ_ZMQ_PUBLISH", "tcp://localhost:5556"),
        help="Broker endpoint publishers connect to with --bus zmq",
    )
    parser.add_argument(
        "--zmq-subscribe",
        type=str,
        default=os.getenv("DBUZ_ZMQ_SUBSCRIBE", "tcp://localhost:5557"),
        help="Broker endpoint subscribers connect to with --bus zmq",
    )

    parser.add_argument(
        "--log-level",
        default=os.getenv("DBUZ_LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level",
    )
