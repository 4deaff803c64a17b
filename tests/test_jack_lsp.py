from __future__ import annotations

import subprocess

import pytest

import jack_cli
from jack_cli import JackCommandError, jack_connect, jack_disconnect
from jack_lsp import list_connections, list_ports, parse_connections, parse_ports
from jack_types import JackCommands, JackPort


PORTS_TEXT = """\
system:capture_1
\tproperties: output,physical,terminal,
baresip-4242:input
\tproperties: input,
"""

CONNECTIONS_TEXT = """\
system:capture_1
   baresip-4242:input
   system:playback_1
\tproperties: output,physical,terminal,
baresip-4242:input
   system:capture_1
\tproperties: input,
system:playback_1
   system:capture_1
\tproperties: input,physical,terminal,
"""


def test_parse_ports_keeps_names_and_capabilities() -> None:
    ports = parse_ports(PORTS_TEXT)
    assert ports == [
        JackPort(name="system:capture_1", properties=("output", "physical", "terminal")),
        JackPort(name="baresip-4242:input", properties=("input",)),
    ]
    assert ports[0].is_output and not ports[0].is_input
    assert ports[1].is_input and not ports[1].is_output


def test_parse_ports_accepts_space_indent_and_missing_properties() -> None:
    text = "a:out\n   properties: output, terminal\nb:in\n\nc:in\n  properties: input\n"
    ports = parse_ports(text)
    assert [p.name for p in ports] == ["a:out", "b:in", "c:in"]
    assert ports[0].properties == ("output", "terminal")
    assert ports[1].properties == ()
    assert ports[2].properties == ("input",)


def test_parse_ports_ignores_indented_lines_before_first_port() -> None:
    assert parse_ports("\tproperties: output,\n") == []


def test_parse_connections_records_edges_from_output_side_only() -> None:
    edges = parse_connections(CONNECTIONS_TEXT)
    assert edges == [
        ("system:capture_1", "baresip-4242:input"),
        ("system:capture_1", "system:playback_1"),
    ]


def test_parse_connections_drops_peers_of_port_without_properties() -> None:
    text = "a:in\n   b:out\nb:out\n\tproperties: output,\n"
    assert parse_connections(text) == []


def test_list_ports_runs_configured_command(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = []

    def run(cmd):
        seen.append(list(cmd))
        return subprocess.CompletedProcess(cmd, 0, PORTS_TEXT, "")

    monkeypatch.setattr(jack_cli, "_run", run)
    ports = list_ports(JackCommands(lsp="/opt/jack/bin/jack_lsp"))
    assert seen == [["/opt/jack/bin/jack_lsp", "-p"]]
    assert len(ports) == 2

    edges = list_connections(JackCommands(lsp="/opt/jack/bin/jack_lsp"))
    assert seen[-1] == ["/opt/jack/bin/jack_lsp", "-c", "-p"]
    assert edges == []


def test_listing_failure_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        jack_cli, "_run", lambda cmd: subprocess.CompletedProcess(cmd, 1, "", "JACK server not running")
    )
    with pytest.raises(JackCommandError, match="JACK server not running"):
        list_ports()


def test_missing_binary_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    def run(cmd):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(jack_cli, "_run", run)
    with pytest.raises(JackCommandError, match="could not be run"):
        list_connections()


def test_connect_failure_carries_port_names(fake_jack) -> None:
    fake_jack({"a:out": ("output",)})
    with pytest.raises(JackCommandError) as info:
        jack_connect("a:out", "missing:in")
    assert info.value.source == "a:out"
    assert info.value.target == "missing:in"
    assert "not a valid port" in info.value.stderr
    assert "a:out -> missing:in" in str(info.value)


def test_connect_existing_edge_is_not_an_error(fake_jack) -> None:
    jack = fake_jack({"a:out": ("output",), "b:in": ("input",)}, [("a:out", "b:in")])
    jack_connect("a:out", "b:in")
    assert jack.edges == {("a:out", "b:in")}


def test_disconnect_reports_failure(fake_jack) -> None:
    jack = fake_jack({"a:out": ("output",), "b:in": ("input",)}, [("a:out", "b:in")])
    jack_disconnect("a:out", "b:in")
    assert jack.edges == set()
    with pytest.raises(JackCommandError, match="not connected"):
        jack_disconnect("a:out", "b:in")


def test_empty_port_names_rejected() -> None:
    with pytest.raises(JackCommandError):
        jack_connect("", "b:in")
    with pytest.raises(JackCommandError):
        jack_disconnect("a:out", "")
