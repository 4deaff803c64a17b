# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


@dataclass(frozen=True)
class UnresolvedTarget:
    pattern: str  # "node-*:in_1" style, may also be plain text if never resolved


@dataclass(frozen=True)
class ResolvedTarget:
    name: str  # concrete "node:port"


TargetRef = Union[UnresolvedTarget, ResolvedTarget]


def target_from_text(text: str) -> TargetRef:
    if "*" in text:
        return UnresolvedTarget(pattern=text)
    return ResolvedTarget(name=text)


def target_text(t: TargetRef) -> str:
    if isinstance(t, UnresolvedTarget):
        return t.pattern
    return t.name


@dataclass
class JackPortIntent:
    filter: str = ""
    source_name: str = ""
    target_search_name: str = ""
    target: TargetRef = field(default_factory=lambda: ResolvedTarget(name=""))

    @property
    def target_name(self) -> str:
        return target_text(self.target)

    @property
    def is_pattern(self) -> bool:
        return isinstance(self.target, UnresolvedTarget)

    def tags(self) -> List[str]:
        return self.filter.split()

    def matches_use_case(self, use_case: str) -> bool:
        """
        Empty filter means always desired. An empty use case only selects those.
        """
        tags = self.tags()
        if not tags:
            return True
        return bool(use_case) and use_case in tags

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filter": self.filter,
            "source_name": self.source_name,
            "target_search_name": self.target_search_name,
            "target_name": self.target_name,
            "target_kind": "pattern" if self.is_pattern else "resolved",
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "JackPortIntent":
        if not isinstance(d, dict):
            raise ValueError("connection entry is not an object")
        name = str(d.get("target_name") or "")
        kind = d.get("target_kind")
        if kind == "pattern":
            t: TargetRef = UnresolvedTarget(pattern=name)
        elif kind == "resolved":
            t = ResolvedTarget(name=name)
        elif kind is None:
            t = target_from_text(name)
        else:
            raise ValueError(f"unknown target_kind: {kind!r}")
        return cls(
            filter=str(d.get("filter") or ""),
            source_name=str(d.get("source_name") or ""),
            target_search_name=str(d.get("target_search_name") or ""),
            target=t,
        )


@dataclass
class AudioProgramConfig:
    program_name: str
    command_name: str = ""
    start_params: List[str] = field(default_factory=list)
    jack_ports: List[JackPortIntent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "program_name": self.program_name,
            "command_name": self.command_name,
            "start_params": list(self.start_params),
            "jack_ports": [p.to_dict() for p in self.jack_ports],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AudioProgramConfig":
        if not isinstance(d, dict):
            raise ValueError("config is not an object")
        name = d.get("program_name")
        if not isinstance(name, str) or not name:
            raise ValueError("program_name missing")
        params = d.get("start_params") or []
        ports = d.get("jack_ports") or []
        if not isinstance(params, list) or not isinstance(ports, list):
            raise ValueError("start_params and jack_ports must be lists")
        return cls(
            program_name=name,
            command_name=str(d.get("command_name") or ""),
            start_params=[str(p) for p in params],
            jack_ports=[JackPortIntent.from_dict(p) for p in ports],
        )


@dataclass(frozen=True)
class StartupOptions:
    grace_ms: int = 300
    trigger_program: str = "baresip"
    trigger_input: str = "D"
