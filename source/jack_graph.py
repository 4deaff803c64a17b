# jack_graph.py
from __future__ import annotations

from typing import Collection, List, Sequence

from jack_types import JackPort
from models import JackPortIntent


class WildcardPattern:
    """
    Literal text where each `*` stands for any substring; matched against the
    whole name.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self._parts = text.split("*")

    @property
    def has_wildcard(self) -> bool:
        return len(self._parts) > 1

    def matches(self, name: str) -> bool:
        if not self.has_wildcard:
            return name == self.text

        first, last = self._parts[0], self._parts[-1]
        if len(name) < len(first) + len(last):
            return False
        if not name.startswith(first) or not name.endswith(last):
            return False

        pos = len(first)
        end = len(name) - len(last)
        for mid in self._parts[1:-1]:
            i = name.find(mid, pos, end)
            if i < 0:
                return False
            pos = i + len(mid)
        return True

    def filter(self, names: Sequence[str]) -> List[str]:
        return [n for n in names if self.matches(n)]

    def __repr__(self) -> str:
        return f"WildcardPattern({self.text!r})"


def node_of(port_name: str) -> str:
    node, sep, _ = port_name.rpartition(":")
    return node if sep else ""


def port_suffix(port_name: str) -> str:
    _, _, suffix = port_name.rpartition(":")
    return suffix


def port_names(ports: Sequence[JackPort]) -> List[str]:
    return [p.name for p in ports]


def output_ports(ports: Sequence[JackPort]) -> List[str]:
    return [p.name for p in ports if p.is_output]


def input_ports(ports: Sequence[JackPort]) -> List[str]:
    return [p.name for p in ports if p.is_input]


def _is_claimed(name: str, claimed: Collection[str]) -> bool:
    return name in claimed or node_of(name) in claimed


def resolve_target(
    intent: JackPortIntent,
    names: Sequence[str],
    affinity: str = "",
    claimed: Collection[str] = (),
) -> str:
    """
    I pick the concrete target port for an intent.

    A known node affinity wins; then a pattern match, preferring a node no other
    program has claimed; then the stored name as-is. A pattern with no match is
    returned unchanged so the connect reports it as missing.
    """
    target = intent.target_name

    if affinity:
        return f"{affinity}:{port_suffix(target)}"

    if intent.is_pattern:
        hits = WildcardPattern(target).filter(names)
        if not hits:
            return target
        for h in hits:
            if not _is_claimed(h, claimed):
                return h
        return hits[0]

    return target
