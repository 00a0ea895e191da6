import logging
import re
from typing import List, Optional, Sequence, Tuple

from jeepney import (
    DBusAddress,
    DBusErrorResponse,
    HeaderFields,
    MatchRule as DBusMatchRule,
    Message,
    MessageType,
    message_bus,
    new_signal,
)
from jeepney.auth import AuthenticationError
from jeepney.io.blocking import Proxy, open_dbus_connection

from dbuz.errors import BusConnectionError, EmitError, MatchRegistrationError
from dbuz.models import (
    BooleanValue,
    ContainerValue,
    DoubleValue,
    Event,
    ExactPath,
    IntegerValue,
    Interface,
    MatchRule,
    Member,
    ObjectPathValue,
    PathPrefix,
    SignatureValue,
    StringValue,
    WireValue,
)
from dbuz.transport import BusConnection

logger = logging.getLogger(__name__)

BUS_ALIASES = {"session": "SESSION", "system": "SYSTEM"}
INTEGER_CODES = set("ynqiuxt")
REPLY_TIMEOUT_S = 5.0
NAME_ELEMENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
MAX_NAME_LENGTH = 255


def split_signal_name(name: str) -> Tuple[str, str]:
    """
    Split ``<interface>.<member>`` at its last dot.

    Raises ValueError unless both halves are valid D-Bus names: the interface
    needs at least two dot-separated elements, every element is made of
    ``[A-Za-z0-9_]`` and can't start with a digit, and neither half is longer
    than 255 characters.
    """
    interface, _, member = name.rpartition(".")
    if not interface:
        raise ValueError("signal name must be <interface>.<member>")
    if len(member) > MAX_NAME_LENGTH or not NAME_ELEMENT.fullmatch(member):
        raise ValueError(f"invalid member name {member!r}")
    elements = interface.split(".")
    if (
        len(interface) > MAX_NAME_LENGTH
        or len(elements) < 2
        or not all(NAME_ELEMENT.fullmatch(element) for element in elements)
    ):
        raise ValueError(f"invalid interface name {interface!r}")
    return interface, member


def split_signature(signature: str) -> List[str]:
    """Split a D-Bus signature into its complete types, e.g. ``"sa{sv}i"`` -> ``["s", "a{sv}", "i"]``."""
    types = []
    start = 0
    depth = 0
    for i, code in enumerate(signature):
        if code in "({":
            depth += 1
        elif code in ")}":
            depth -= 1
        if depth == 0 and code != "a":
            types.append(signature[start : i + 1])
            start = i + 1
    return types


def to_value(signature: str, value) -> WireValue:
    code = signature[0]
    if code == "s":
        return StringValue(value=value)
    elif code == "o":
        return ObjectPathValue(value=value)
    elif code == "g":
        return SignatureValue(value=value)
    elif code in INTEGER_CODES:
        return IntegerValue(value=value)
    elif code == "d":
        return DoubleValue(value=value)
    elif code == "b":
        return BooleanValue(value=bool(value))
    return ContainerValue(signature=signature, value=repr(value))


def signal_to_event(msg: Message) -> Event:
    fields = msg.header.fields
    signature = fields.get(HeaderFields.signature, "")
    body = [to_value(sig, value) for sig, value in zip(split_signature(signature), msg.body)]
    return Event(
        path=fields.get(HeaderFields.path, ""),
        interface=fields.get(HeaderFields.interface, ""),
        member=fields.get(HeaderFields.member, ""),
        body=body,
    )


def to_dbus_rule(rules: Sequence[MatchRule]) -> DBusMatchRule:
    """Fold the rules into the single conjunctive rule the bus daemon expects."""
    fields = {"type": "signal"}
    for rule in rules:
        if isinstance(rule, ExactPath):
            fields["path"] = rule.path
        elif isinstance(rule, PathPrefix):
            fields["path_namespace"] = rule.path.rstrip("/") or "/"
        elif isinstance(rule, Interface):
            fields["interface"] = rule.name
        elif isinstance(rule, Member):
            fields["member"] = rule.name
    return DBusMatchRule(**fields)


class DBusTransport(BusConnection):
    """Connection to a D-Bus session, system or custom-address bus."""

    def __init__(self, bus: str) -> None:
        super().__init__(bus)
        try:
            self.conn = open_dbus_connection(bus=BUS_ALIASES.get(bus, bus))
        except (OSError, KeyError, ValueError, RuntimeError, AuthenticationError) as e:
            raise BusConnectionError(bus, e) from e
        logger.debug(f"Connected to {bus} bus as {self.conn.unique_name}")

    def _register(self, rules: List[MatchRule]):
        rule = to_dbus_rule(rules)
        try:
            Proxy(message_bus, self.conn, timeout=REPLY_TIMEOUT_S).AddMatch(rule)
        except (DBusErrorResponse, OSError) as e:
            raise MatchRegistrationError(e) from e

    def _receive(self, timeout_s: float) -> Optional[Event]:
        try:
            msg = self.conn.receive(timeout=timeout_s)
        except TimeoutError:
            return None
        except ConnectionResetError as e:
            raise EOFError(str(e)) from e
        if msg.header.message_type != MessageType.signal:
            return None
        return signal_to_event(msg)

    def emit(self, path: str, name: str, body: Sequence[WireValue]):
        try:
            interface, member = split_signal_name(name)
        except ValueError as e:
            raise EmitError(path, name, e) from e
        strings = tuple(value.as_string() for value in body)
        try:
            msg = new_signal(
                DBusAddress(path, interface=interface),
                member,
                "s" * len(strings) or None,
                strings,
            )
            self.conn.send(msg)
        except (OSError, ValueError) as e:
            raise EmitError(path, name, e) from e

    def _release(self):
        self.conn.close()
