import pytest

from dbuz import cli
from dbuz.errors import BusConnectionError
from dbuz.models import Event, StringValue

from fakes import MemoryConnection


@pytest.fixture
def connection(monkeypatch):
    conn = MemoryConnection()
    conn.calls = []

    def fake_connect(bus, settings):
        conn.calls.append((bus, settings))
        return conn

    monkeypatch.setattr(cli, "connect", fake_connect)
    return conn


def signal(*values, path="/org/dbuz/default", member="N"):
    return Event(path=path, member=member, body=[StringValue(value=v) for v in values])


def test_publish_sends_positional_arguments(connection):
    assert cli.main(["--path", "/x", "--name", "org.foo.N", "pub", "a", "b"]) == 0
    assert connection.emitted == [
        ("/x", "org.foo.N", [StringValue(value="a"), StringValue(value="b")])
    ]
    assert connection.released


def test_subscribe_streams_lines(connection, capsys):
    connection.incoming.extend([signal("a", "b"), signal("c")])
    assert cli.main(["--name", "N", "subscribe"]) == 0
    assert capsys.readouterr().out == "a b\nc\n"
    assert connection.released


def test_sub_alias_and_verbose(connection, capsys):
    connection.incoming.append(signal("a"))
    assert cli.main(["--name", "N", "-v", "sub"]) == 0
    captured = capsys.readouterr()
    assert captured.out == "a\n"
    assert "Event(" in captured.err


def test_once_prints_without_newline(connection, capsys):
    connection.incoming.extend([signal("one"), signal("two")])
    assert cli.main(["--name", "N", "once"]) == 0
    assert capsys.readouterr().out == "one"


def test_path_wildcard_reaches_descendants(connection, capsys):
    connection.incoming.extend([signal("deep", path="/a/b/c"), signal("other", path="/z")])
    assert cli.main(["--path", "/a/*", "--name", "N", "sub"]) == 0
    assert capsys.readouterr().out == "deep\n"


def test_name_is_required(connection):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["sub"])
    assert exc_info.value.code == 2


def test_bus_options_reach_connect(connection):
    cli.main(["--bus", "zmq", "--zmq-publish", "tcp://bus:1", "--zmq-subscribe", "tcp://bus:2", "--name", "N", "pub"])
    bus, settings = connection.calls[0]
    assert bus == "zmq"
    assert settings.zmq_publish == "tcp://bus:1"
    assert settings.zmq_subscribe == "tcp://bus:2"


def test_connect_failure_exits_non_zero(monkeypatch, caplog):
    def refuse(bus, settings):
        raise BusConnectionError(bus, OSError("no socket"))

    monkeypatch.setattr(cli, "connect", refuse)
    assert cli.main(["--bus", "system", "--name", "N", "sub"]) == 1
    assert "system" in caplog.text
    assert "no socket" in caplog.text


def test_rejected_rules_still_close_connection(connection, caplog):
    connection.reject_rules = True
    assert cli.main(["--name", "N", "sub"]) == 1
    assert "Signal match error" in caplog.text
    assert connection.released


def test_emit_failure_still_closes_connection(connection):
    connection.fail_emit = True
    assert cli.main(["--name", "N", "pub", "a"]) == 1
    assert connection.released


def test_non_string_payload_exits_non_zero(connection, caplog):
    connection.incoming.append(Event(path="/org/dbuz/default", member="N", body=[{"type": "integer", "value": 3}]))
    assert cli.main(["--name", "N", "sub"]) == 1
    assert "Expected a string value" in caplog.text
    assert connection.released


def test_interrupt_closes_connection(connection, monkeypatch):
    def interrupted(*args):
        raise KeyboardInterrupt()

    monkeypatch.setattr(cli, "publish", interrupted)
    assert cli.main(["--name", "N", "pub"]) == 0
    assert connection.released


class ClosedPipe:
    def write(self, text):
        raise BrokenPipeError(32, "Broken pipe")

    def flush(self):
        raise BrokenPipeError(32, "Broken pipe")

    def fileno(self):
        raise OSError("no file descriptor")


def test_reader_closing_output_exits_quietly(connection, monkeypatch, caplog):
    connection.incoming.extend([signal("a"), signal("b")])
    monkeypatch.setattr("sys.stdout", ClosedPipe())
    assert cli.main(["--name", "N", "sub"]) == 0
    assert connection.released
    assert "ERROR" not in caplog.text
