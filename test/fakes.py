import time
from collections import deque
from typing import List, Optional, Sequence

from dbuz.errors import EmitError, MatchRegistrationError
from dbuz.models import Event, MatchRule, WireValue
from dbuz.transport import BusConnection


class MemoryConnection(BusConnection):
    """In-process bus: events queued on ``incoming`` are delivered, emits can loop back."""

    poll_interval_s = 0.01

    def __init__(
        self,
        events: Sequence[Event] = (),
        hang_up_when_drained: bool = True,
        loopback: bool = False,
        reject_rules: bool = False,
        fail_emit: bool = False,
        fail_receive: Optional[Exception] = None,
    ) -> None:
        super().__init__("memory")
        self.incoming = deque(events)
        self.hang_up_when_drained = hang_up_when_drained
        self.loopback = loopback
        self.reject_rules = reject_rules
        self.fail_emit = fail_emit
        self.fail_receive = fail_receive
        self.registered: List[List[MatchRule]] = []
        self.emitted = []
        self.received = 0
        self.released = False

    def _register(self, rules: List[MatchRule]):
        if self.reject_rules:
            raise MatchRegistrationError("rules rejected")
        self.registered.append(rules)

    def _receive(self, timeout_s: float) -> Optional[Event]:
        if self.incoming:
            self.received += 1
            return self.incoming.popleft()
        if self.fail_receive is not None:
            raise self.fail_receive
        if self.hang_up_when_drained:
            raise EOFError("drained")
        time.sleep(timeout_s)
        return None

    def emit(self, path: str, name: str, body: Sequence[WireValue]):
        if self.fail_emit:
            raise EmitError(path, name, "emit refused")
        self.emitted.append((path, name, list(body)))
        if self.loopback:
            interface, _, member = name.rpartition(".")
            self.incoming.append(Event(path=path, interface=interface, member=member, body=list(body)))

    def _release(self):
        self.released = True
