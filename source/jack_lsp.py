# jack_lsp.py
from __future__ import annotations

from typing import List, Optional, Tuple

from jack_cli import jack_lsp_text
from jack_types import DEFAULT_COMMANDS, Edges, JackCommands, JackPort


PROPS_PREFIX = "properties:"


def _is_indented(line: str) -> bool:
    return line.startswith((" ", "\t"))


def parse_properties(text: str) -> Tuple[str, ...]:
    return tuple(s.strip() for s in text.split(",") if s.strip())


def parse_ports(text: str) -> List[JackPort]:
    """
    I parse `jack_lsp -p` output: a port line, then indented detail lines.
    """
    out: List[JackPort] = []
    name: Optional[str] = None
    props: Tuple[str, ...] = ()

    for line in text.splitlines():
        if not line.strip():
            continue
        if not _is_indented(line):
            if name is not None:
                out.append(JackPort(name=name, properties=props))
            name = line.strip()
            props = ()
            continue
        if name is None:
            continue
        s = line.strip()
        if s.startswith(PROPS_PREFIX):
            props = parse_properties(s[len(PROPS_PREFIX):])

    if name is not None:
        out.append(JackPort(name=name, properties=props))
    return out


def parse_connections(text: str) -> Edges:
    """
    I parse `jack_lsp -c -p` output. Peer lines are buffered until the port's
    properties line; they become edges only when that port is an output, so
    each edge is reported once, from its source side.
    """
    edges: Edges = []
    port: Optional[str] = None
    peers: List[str] = []

    for line in text.splitlines():
        if not line.strip():
            continue
        if not _is_indented(line):
            port = line.strip()
            peers = []
            continue
        if port is None:
            continue
        s = line.strip()
        if s.startswith(PROPS_PREFIX):
            if "output" in parse_properties(s[len(PROPS_PREFIX):]):
                edges.extend((port, peer) for peer in peers)
            peers = []
        else:
            peers.append(s)

    return edges


def list_ports(cmds: JackCommands = DEFAULT_COMMANDS) -> List[JackPort]:
    return parse_ports(jack_lsp_text("-p", cmds=cmds))


def list_connections(cmds: JackCommands = DEFAULT_COMMANDS) -> Edges:
    return parse_connections(jack_lsp_text("-c", "-p", cmds=cmds))
