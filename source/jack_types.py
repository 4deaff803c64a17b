# jack_types.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class JackPort:
    name: str                   # "node:port"
    properties: Tuple[str, ...]  # "output","physical","terminal"... in daemon order

    @property
    def is_output(self) -> bool:
        return "output" in self.properties

    @property
    def is_input(self) -> bool:
        return "input" in self.properties


@dataclass(frozen=True)
class JackCommands:
    lsp: str = "jack_lsp"
    connect: str = "jack_connect"
    disconnect: str = "jack_disconnect"


Edge = Tuple[str, str]
Edges = List[Edge]

DEFAULT_COMMANDS = JackCommands()
