import logging
import time
from typing import List, Optional, Sequence

import zmq

from dbuz.errors import BusConnectionError, EmitError, MatchRegistrationError
from dbuz.models import Event, MatchRule, WireValue, parse_message
from dbuz.transport import BusConnection

logger = logging.getLogger(__name__)


class ZmqTransport(BusConnection):
    """
    Event bus over ZeroMQ pub/sub, normally fronted by ``dbuz-broker``.

    Publishers connect a PUB socket to the broker's XSUB side and subscribers
    connect a SUB socket to its XPUB side. Events travel as JSON. zmq topic
    filtering is prefix based, so every event is subscribed to and the match
    rules are applied as events arrive.
    """

    def __init__(
        self,
        bus: str,
        publish_address: str,
        subscribe_address: str,
        settle_s: float = 0.2,
        linger_ms: int = 1000,
    ) -> None:
        super().__init__(bus)
        self.publish_address = publish_address
        self.subscribe_address = subscribe_address
        self.settle_s = settle_s
        self.linger_ms = linger_ms
        self.context = zmq.Context()
        self.subscribe_socket: Optional[zmq.Socket] = None
        self.publish_socket: Optional[zmq.Socket] = None

    def _connect(self, socket_type: int, address: str) -> zmq.Socket:
        socket = self.context.socket(socket_type)
        try:
            socket.connect(address)
        except zmq.ZMQError as e:
            socket.close(0)
            raise BusConnectionError(f"{self.bus} ({address})", e) from e
        logger.debug(f"Connected to {address}")
        return socket

    def _subscriber(self) -> zmq.Socket:
        if self.subscribe_socket is None:
            socket = self._connect(zmq.SUB, self.subscribe_address)
            try:
                socket.setsockopt_string(zmq.SUBSCRIBE, "")
            except zmq.ZMQError as e:
                socket.close(0)
                raise MatchRegistrationError(e) from e
            self.subscribe_socket = socket
        return self.subscribe_socket

    def _publisher(self) -> zmq.Socket:
        if self.publish_socket is None:
            self.publish_socket = self._connect(zmq.PUB, self.publish_address)
            self.publish_socket.setsockopt(zmq.LINGER, self.linger_ms)
            # A fresh PUB socket drops whatever it sends before the peer handshake
            time.sleep(self.settle_s)
        return self.publish_socket

    def _register(self, rules: List[MatchRule]):
        self._subscriber()

    def _receive(self, timeout_s: float) -> Optional[Event]:
        socket = self._subscriber()
        if not socket.poll(int(timeout_s * 1000)):
            return None
        raw = socket.recv()
        try:
            message = parse_message(raw.decode("utf-8"))
        except ValueError:
            # Covers bad UTF-8, bad JSON and unknown or invalid models
            logger.warning(f"Ignoring unparseable message: {raw!r}")
            return None
        if not isinstance(message, Event):
            return None
        return message

    def emit(self, path: str, name: str, body: Sequence[WireValue]):
        interface, _, member = name.rpartition(".")
        event = Event(path=path, interface=interface, member=member, body=list(body))
        socket = self._publisher()
        try:
            socket.send_string(event.model_dump_json())
        except zmq.ZMQError as e:
            raise EmitError(path, name, e) from e

    def _release(self):
        if self.subscribe_socket is not None:
            self.subscribe_socket.close(0)
        if self.publish_socket is not None:
            self.publish_socket.close(self.linger_ms)
        self.context.term()
