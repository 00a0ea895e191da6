import argparse
import logging
import os
from typing import List, Optional

import zmq

logger = logging.getLogger(__name__)


def event_bus(
    frontend_address: str,
    backend_address: str,
    context: Optional[zmq.Context] = None,
):
    """
    Proxy events from publishers to subscribers until interrupted.

    Publishers connect to ``frontend_address`` and subscribers to
    ``backend_address``. A ``context`` passed in belongs to the caller, and
    terminating it stops the proxy.
    """
    own_context = context is None
    context = context or zmq.Context()
    frontend = context.socket(zmq.XSUB)  # For publishers
    backend = context.socket(zmq.XPUB)  # For subscribers

    try:
        frontend.bind(frontend_address)
        backend.bind(backend_address)
        logger.info(f"Broker listening: publishers on {frontend_address}, subscribers on {backend_address}")
        zmq.proxy(frontend, backend)  # Proxy messages between publishers and subscribers
    except zmq.ContextTerminated:
        logger.info("Broker context terminated")
    except KeyboardInterrupt:
        print("\nShutting down broker")
    finally:
        frontend.close(0)
        backend.close(0)
        if own_context:
            context.term()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="dbuz-broker", description="zmq event bus for dbuz")
    parser.add_argument(
        "--frontend",
        type=str,
        default=os.getenv("DBUZ_BROKER_FRONTEND", "tcp://*:5556"),
        help="Address publishers connect to",
    )
    parser.add_argument(
        "--backend",
        type=str,
        default=os.getenv("DBUZ_BROKER_BACKEND", "tcp://*:5557"),
        help="Address subscribers connect to",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        event_bus(args.frontend, args.backend)
    except zmq.ZMQError as e:
        logger.error(f"Broker failed. {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
