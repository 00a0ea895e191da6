import json
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from dbuz.errors import PayloadTypeError

# Models represent things we pass between the bus and the terminal, and what
# the zmq transport sends over the wire.


class WireValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    def as_string(self) -> str:
        """Project onto a plain string, or fail for anything that isn't one."""
        raise PayloadTypeError(self.type, getattr(self, "value", None))


class StringValue(WireValue):
    type: Literal["string"] = "string"
    value: str

    def as_string(self) -> str:
        return self.value


class ObjectPathValue(WireValue):
    type: Literal["object_path"] = "object_path"
    value: str


class SignatureValue(WireValue):
    type: Literal["signature"] = "signature"
    value: str


class IntegerValue(WireValue):
    type: Literal["integer"] = "integer"
    value: int


class DoubleValue(WireValue):
    type: Literal["double"] = "double"
    value: float


class BooleanValue(WireValue):
    type: Literal["boolean"] = "boolean"
    value: bool


class ContainerValue(WireValue):
    """Arrays, structs, dicts and variants. Kept as their signature and a repr."""

    type: Literal["container"] = "container"
    signature: str
    value: str


Value = Annotated[
    Union[
        StringValue,
        ObjectPathValue,
        SignatureValue,
        IntegerValue,
        DoubleValue,
        BooleanValue,
        ContainerValue,
    ],
    Field(discriminator="type"),
]


class Event(BaseModel):
    """A broadcast signal as delivered by the bus."""

    model_config = ConfigDict(frozen=True)

    type: Literal["event"] = "event"
    path: str
    interface: str = ""
    member: str
    body: List[Value] = Field(default_factory=list)


class ExactPath(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["exact_path"] = "exact_path"
    path: str

    def matches(self, event: Event) -> bool:
        return event.path == self.path


class PathPrefix(BaseModel):
    """Matches ``path`` itself and every path hierarchically beneath it."""

    model_config = ConfigDict(frozen=True)

    type: Literal["path_prefix"] = "path_prefix"
    path: str

    def matches(self, event: Event) -> bool:
        prefix = self.path.rstrip("/")
        if not prefix:
            return True
        return event.path == prefix or event.path.startswith(prefix + "/")


class Interface(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["interface"] = "interface"
    name: str

    def matches(self, event: Event) -> bool:
        return event.interface == self.name


class Member(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["member"] = "member"
    name: str

    def matches(self, event: Event) -> bool:
        return event.member == self.name


MatchRule = Annotated[
    Union[ExactPath, PathPrefix, Interface, Member], Field(discriminator="type")
]


message_registry = {
    "event": Event,
}


def parse_message(message_str: str) -> BaseModel:
    """Parse message string into appropriate model"""
    data = json.loads(message_str)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got: {type(data).__name__}")
    msg_type = data.get("type")
    model_cls = message_registry.get(msg_type)
    if model_cls is None:
        raise ValueError(f"Unknown message type: {msg_type}")
    return model_cls(**data)
