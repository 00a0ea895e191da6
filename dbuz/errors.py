class DbuzError(Exception):
    """Base class for every fatal dbuz error."""


class BusConnectionError(DbuzError):
    """The bus could not be reached, or the connection died while in use."""

    def __init__(self, bus: str, cause: object):
        self.bus = bus
        self.cause = cause
        super().__init__(f"Failed to connect to {bus} bus. {cause}")


class MatchRegistrationError(DbuzError):
    """The transport rejected the match rules."""

    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"Signal match error. {cause}")


class PayloadTypeError(DbuzError, TypeError):
    """An event body element was not a string."""

    def __init__(self, kind: str, value: object):
        self.kind = kind
        self.value = value
        super().__init__(f"Expected a string value, got {kind}: {value!r}")


class EmitError(DbuzError):
    """Publishing a signal failed."""

    def __init__(self, path: str, name: str, cause: object):
        self.path = path
        self.name = name
        self.cause = cause
        super().__init__(f"Failed to emit {name} on {path}. {cause}")
