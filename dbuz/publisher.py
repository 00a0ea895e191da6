import logging
from typing import Sequence

from dbuz.models import StringValue
from dbuz.transport import BusConnection

logger = logging.getLogger(__name__)


def publish(connection: BusConnection, path: str, name: str, args: Sequence[str]):
    """Emit one signal called ``name`` at ``path`` carrying ``args`` as strings, in order."""
    body = [StringValue(value=arg) for arg in args]
    connection.emit(path, name, body)
    logger.info(f"Published {name} on {path} with {len(body)} values")
