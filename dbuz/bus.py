import logging
from typing import Optional

from pydantic import BaseModel

from dbuz.dbus_transport import DBusTransport
from dbuz.transport import BusConnection
from dbuz.zmq_transport import ZmqTransport

logger = logging.getLogger(__name__)

ZMQ_BUS = "zmq"


class BusSettings(BaseModel):
    """Transport options beyond the bus selector itself."""

    zmq_publish: str = "tcp://localhost:5556"
    zmq_subscribe: str = "tcp://localhost:5557"
    zmq_settle_s: float = 0.2


def connect(bus: str, settings: Optional[BusSettings] = None) -> BusConnection:
    """
    Open a connection for ``bus``: ``session``, ``system``, ``zmq`` or a D-Bus address.

    Raises BusConnectionError when the bus can't be reached.
    """
    settings = settings or BusSettings()
    logger.debug(f"Connecting to {bus} bus")
    if bus == ZMQ_BUS:
        return ZmqTransport(
            bus,
            publish_address=settings.zmq_publish,
            subscribe_address=settings.zmq_subscribe,
            settle_s=settings.zmq_settle_s,
        )
    return DBusTransport(bus)
