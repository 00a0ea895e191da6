import logging
import queue
import sys
from typing import Optional, Sequence, TextIO

from dbuz.errors import BusConnectionError
from dbuz.models import Event, MatchRule, WireValue
from dbuz.transport import BusConnection

logger = logging.getLogger(__name__)


def render_body(body: Sequence[WireValue]) -> str:
    """Join the body's values with spaces. Every value has to be a string."""
    return " ".join(value.as_string() for value in body)


class Dispatcher:
    """Drains events matching ``rules`` from ``connection`` onto an output stream."""

    def __init__(
        self,
        connection: BusConnection,
        rules: Sequence[MatchRule],
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
        verbose: bool = False,
    ) -> None:
        self.connection = connection
        self.rules = list(rules)
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.verbose = verbose

    def _events(self) -> "queue.Queue[Optional[Event]]":
        self.connection.add_match(self.rules)
        return self.connection.events()

    def process_message(self, event: Event):
        if self.verbose:
            print(repr(event), file=self.err, flush=True)
        print(render_body(event.body), file=self.out, flush=True)

    def subscribe(self):
        """Render every matching event, one line each, until the connection closes."""
        events = self._events()
        while True:
            event = events.get()
            if event is None:
                break
            self.process_message(event)

        failure = self.connection.receive_error
        if failure is not None:
            raise BusConnectionError(self.connection.bus, failure) from failure
        logger.info(f"Connection to {self.connection.bus} bus closed")

    def once(self):
        """Render exactly one matching event, without a trailing newline."""
        events = self._events()
        event = events.get()
        if event is None:
            failure = self.connection.receive_error
            raise BusConnectionError(
                self.connection.bus, failure or "connection closed before an event arrived"
            ) from failure
        self.out.write(render_body(event.body))
        self.out.flush()
