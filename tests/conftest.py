from __future__ import annotations

import subprocess
from typing import Dict, List, Sequence, Set, Tuple

import pytest

import jack_cli


class FakeJack:
    """In-memory JACK graph answering jack_lsp / jack_connect / jack_disconnect."""

    def __init__(self, ports: Dict[str, Tuple[str, ...]], edges: Sequence[Tuple[str, str]] = ()) -> None:
        self.ports = dict(ports)
        self.edges: Set[Tuple[str, str]] = set(edges)
        self.calls: List[List[str]] = []
        self.broken: Set[Tuple[str, str]] = set()

    def _peers(self, name: str) -> List[str]:
        out = sorted(b for a, b in self.edges if a == name)
        out += sorted(a for a, b in self.edges if b == name)
        return out

    def lsp(self, with_connections: bool) -> str:
        lines: List[str] = []
        for name, props in self.ports.items():
            lines.append(name)
            if with_connections:
                lines.extend(f"   {peer}" for peer in self._peers(name))
            lines.append("\tproperties: " + ",".join(props) + ",")
        return "\n".join(lines) + "\n"

    def __call__(self, cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
        cmd = list(cmd)
        self.calls.append(cmd)
        exe = cmd[0]

        if exe == "jack_lsp":
            return subprocess.CompletedProcess(cmd, 0, self.lsp("-c" in cmd), "")

        a, b = cmd[1], cmd[2]
        if exe == "jack_connect":
            if (a, b) in self.broken:
                return subprocess.CompletedProcess(cmd, 1, "", "cannot connect client")
            if a not in self.ports or b not in self.ports:
                return subprocess.CompletedProcess(cmd, 1, "", f"ERROR {b} not a valid port")
            if (a, b) in self.edges:
                return subprocess.CompletedProcess(cmd, 1, "", "already connected")
            self.edges.add((a, b))
            return subprocess.CompletedProcess(cmd, 0, "", "")

        if exe == "jack_disconnect":
            if (a, b) in self.edges:
                self.edges.discard((a, b))
                return subprocess.CompletedProcess(cmd, 0, "", "")
            if (b, a) in self.edges:
                self.edges.discard((b, a))
                return subprocess.CompletedProcess(cmd, 0, "", "")
            return subprocess.CompletedProcess(cmd, 1, "", "not connected")

        raise AssertionError(f"unexpected command {cmd}")

    def commands(self, exe: str) -> List[List[str]]:
        return [c for c in self.calls if c[0] == exe]


@pytest.fixture
def fake_jack(monkeypatch: pytest.MonkeyPatch):
    def install(ports: Dict[str, Tuple[str, ...]], edges: Sequence[Tuple[str, str]] = ()) -> FakeJack:
        jack = FakeJack(ports, edges)
        monkeypatch.setattr(jack_cli, "_run", jack)
        return jack

    return install
