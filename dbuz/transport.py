import logging
import queue
import threading
from typing import List, Optional, Sequence

from dbuz.filters import matches
from dbuz.models import Event, MatchRule, WireValue

logger = logging.getLogger(__name__)


class BusConnection:
    """
    One connection to a bus, owned by a single command invocation.

    Subclasses supply the transport: ``_register`` installs match rules,
    ``_receive`` decodes the next incoming signal, ``emit`` sends one and
    ``_release`` frees whatever the transport holds. Incoming events are pumped
    by a background thread into a single-slot queue; ``None`` in the queue means
    the connection is closed.
    """

    poll_interval_s = 0.1

    def __init__(self, bus: str) -> None:
        self.bus = bus
        self.match_groups: List[List[MatchRule]] = []
        self.receive_error: Optional[Exception] = None
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self._events: "queue.Queue[Optional[Event]]" = queue.Queue(maxsize=1)
        self._closed = False

    def _register(self, rules: List[MatchRule]):
        raise NotImplementedError()

    def _receive(self, timeout_s: float) -> Optional[Event]:
        """Next incoming event, None on timeout. Raises EOFError once the bus hangs up."""
        raise NotImplementedError()

    def _release(self):
        raise NotImplementedError()

    def emit(self, path: str, name: str, body: Sequence[WireValue]):
        raise NotImplementedError()

    def add_match(self, rules: Sequence[MatchRule]):
        rules = list(rules)
        self._register(rules)
        self.match_groups.append(rules)
        logger.debug(f"Registered match rules on {self.bus} bus: {rules}")

    def wants(self, event: Event) -> bool:
        # Separately registered groups are alternatives, rules within a group all apply
        if not self.match_groups:
            return True
        return any(matches(group, event) for group in self.match_groups)

    def events(self) -> "queue.Queue[Optional[Event]]":
        if self.thread is None:
            self.thread = threading.Thread(target=self._pump, name=f"dbuz-{self.bus}-receive")
            self.thread.daemon = True
            self.thread.start()
        return self._events

    def _pump(self):
        try:
            while not self.stop_event.is_set():
                try:
                    event = self._receive(self.poll_interval_s)
                except EOFError:
                    logger.info(f"{self.bus} bus hung up")
                    break
                if event is None or not self.wants(event):
                    continue
                self._put(event)
        except Exception as e:
            logger.debug(f"Receive loop on {self.bus} bus failed", exc_info=True)
            self.receive_error = e
        finally:
            self._put(None)

    def _put(self, item: Optional[Event]):
        # Block while the consumer still holds the slot, but notice a close
        while not self.stop_event.is_set():
            try:
                self._events.put(item, timeout=self.poll_interval_s)
                return
            except queue.Full:
                continue

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.stop_event.set()
        if self.thread:
            self.thread.join()
        self._release()
        logger.debug(f"Closed connection to {self.bus} bus")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
