import io

import pytest

from dbuz.dispatcher import Dispatcher
from dbuz.errors import EmitError
from dbuz.filters import build_rules
from dbuz.models import StringValue
from dbuz.publisher import publish

from fakes import MemoryConnection


def test_arguments_become_string_values_in_order():
    with MemoryConnection() as connection:
        publish(connection, "/x", "org.foo.Bar", ["b", "a", "c"])
    assert connection.emitted == [
        ("/x", "org.foo.Bar", [StringValue(value="b"), StringValue(value="a"), StringValue(value="c")])
    ]


def test_name_is_passed_through_unsplit():
    with MemoryConnection() as connection:
        publish(connection, "/x", "N", [])
    assert connection.emitted == [("/x", "N", [])]


def test_emit_failure_propagates():
    with MemoryConnection(fail_emit=True) as connection:
        with pytest.raises(EmitError, match="N"):
            publish(connection, "/x", "N", ["a"])


def test_published_event_reaches_matching_subscriber():
    out = io.StringIO()
    with MemoryConnection(loopback=True) as connection:
        publish(connection, "/x", "N", ["a", "b"])
        Dispatcher(connection, build_rules("/x", "N"), out=out).once()
    assert out.getvalue() == "a b"
