# backend.py
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Collection, List, Optional, Set, Tuple

from jack_cli import JackCommandError, jack_connect, jack_disconnect
from jack_graph import input_ports, output_ports, port_names, resolve_target
from jack_lsp import list_connections, list_ports
from jack_types import DEFAULT_COMMANDS, Edge, JackCommands, JackPort
from models import (
    AudioProgramConfig,
    JackPortIntent,
    StartupOptions,
    UnresolvedTarget,
    target_from_text,
)
from program import ManagedAudioProgram, load_all
from store_config import AppSettings, ConfigStore


logger = logging.getLogger(__name__)

DEFAULT_USE_CASE = "default"


def default_program_config() -> AudioProgramConfig:
    pattern = "baresip-*:input"
    return AudioProgramConfig(
        program_name="baresip stream",
        command_name="baresip",
        start_params=[],
        jack_ports=[
            JackPortIntent(
                filter="",
                source_name="system:capture_1",
                target_search_name=pattern,
                target=UnresolvedTarget(pattern=pattern),
            )
        ],
    )


def _usable(intent: JackPortIntent, names: Collection[str]) -> bool:
    return bool(intent.source_name) and bool(intent.target_name) and intent.source_name in names


class JackStreamingBackend:
    """
    I own the managed programs. Every public call takes the lock for its whole
    run; the `_` helpers expect it to be held already.
    """

    def __init__(
        self,
        programs_dir: Path,
        commands: JackCommands = DEFAULT_COMMANDS,
        startup: StartupOptions = StartupOptions(),
        store: Optional[ConfigStore] = None,
    ) -> None:
        self.programs_dir = Path(programs_dir)
        self.commands = commands
        self.startup = startup
        self.store = store
        self.active_use_case = ""
        self._lock = threading.Lock()
        self._programs: List[ManagedAudioProgram] = []
        self._made: Set[Edge] = set()  # edges connected by this backend and not yet torn down

    @classmethod
    def from_settings(cls, settings: AppSettings, store: Optional[ConfigStore] = None) -> "JackStreamingBackend":
        b = cls(settings.programs_dir, settings.commands, settings.startup, store)
        b.active_use_case = settings.last_use_case
        return b

    def server_label(self) -> str:
        return "JACK (jack_lsp / jack_connect)"

    # programs

    def load(self) -> List[str]:
        with self._lock:
            programs, errors = load_all(self.programs_dir, self.startup)
            if not programs and not errors:
                prog = ManagedAudioProgram(default_program_config(), self.programs_dir, self.startup)
                errors.extend(prog.save_config())
                programs.append(prog)
            self._programs = programs
            for e in errors:
                logger.warning(e)
            return errors

    def _get(self, name: str) -> ManagedAudioProgram:
        for p in self._programs:
            if p.name == name:
                return p
        raise KeyError(f"Unknown program '{name}'.")

    def program_names(self) -> List[str]:
        with self._lock:
            return [p.name for p in self._programs]

    def program_config(self, name: str) -> AudioProgramConfig:
        with self._lock:
            return AudioProgramConfig.from_dict(self._get(name).config.to_dict())

    def program_status(self, name: str) -> Tuple[bool, str]:
        with self._lock:
            p = self._get(name)
            return p.is_running(), p.jack_node_name

    def add_program(self) -> str:
        with self._lock:
            taken = {p.name for p in self._programs}
            n = len(self._programs) + 1
            while f"New program {n}" in taken:
                n += 1
            cfg = AudioProgramConfig(program_name=f"New program {n}")
            self._programs.append(ManagedAudioProgram(cfg, self.programs_dir, self.startup))
            return cfg.program_name

    def remove_program(self, name: str) -> List[str]:
        with self._lock:
            p = self._get(name)
            errors = p.delete_config()
            self._programs.remove(p)
            logger.info("removed program %s", name)
            return errors

    def update_program(
        self,
        name: str,
        program_name: Optional[str] = None,
        command_name: Optional[str] = None,
        start_params: Optional[List[str]] = None,
    ) -> List[str]:
        with self._lock:
            p = self._get(name)
            errors: List[str] = []
            if program_name is not None and program_name != p.name:
                if any(o.name == program_name for o in self._programs if o is not p):
                    errors.append(f"A program named '{program_name}' already exists.")
                else:
                    errors.extend(p.rename(program_name))
            if command_name is not None:
                p.config.command_name = command_name.strip()
            if start_params is not None:
                p.config.start_params = list(start_params)
            return errors

    def save_program(self, name: str) -> List[str]:
        with self._lock:
            return self._get(name).save_config()

    def add_intent(self, name: str) -> Tuple[int, List[str]]:
        with self._lock:
            p = self._get(name)
            p.config.jack_ports.append(JackPortIntent())
            return len(p.config.jack_ports) - 1, p.save_config()

    def update_intent(
        self,
        name: str,
        index: int,
        filter: Optional[str] = None,
        source_name: Optional[str] = None,
        target_search_name: Optional[str] = None,
        target_name: Optional[str] = None,
    ) -> List[str]:
        with self._lock:
            p = self._get(name)
            intent = p.config.jack_ports[index]
            if filter is not None:
                intent.filter = filter
            if source_name is not None:
                intent.source_name = source_name.strip()
            if target_search_name is not None:
                intent.target_search_name = target_search_name.strip()
            if target_name is not None:
                intent.target = target_from_text(target_name.strip())
            return p.save_config()

    def remove_intent(self, name: str, index: int) -> List[str]:
        with self._lock:
            p = self._get(name)
            del p.config.jack_ports[index]
            return p.save_config()

    def start_program(self, name: str) -> List[str]:
        with self._lock:
            return self._get(name).start()

    def stop_program(self, name: str) -> List[str]:
        with self._lock:
            return self._get(name).stop()

    def reset_affinity(self, name: str) -> List[str]:
        with self._lock:
            return self._get(name).reset_affinity()

    # graph

    def port_choices(self) -> Tuple[List[str], List[str]]:
        ports = list_ports(self.commands)
        return output_ports(ports), input_ports(ports)

    def compute_filters(self) -> List[str]:
        with self._lock:
            return self._compute_filters()

    def _compute_filters(self) -> List[str]:
        out: List[str] = []
        seen: Set[str] = set()
        for p in self._programs:
            for intent in p.config.jack_ports:
                for tag in intent.tags():
                    if tag not in seen:
                        seen.add(tag)
                        out.append(tag)
        return out or [DEFAULT_USE_CASE]

    def _claimed_by_others(self, prog: ManagedAudioProgram) -> Set[str]:
        return {p.jack_node_name for p in self._programs if p is not prog and p.jack_node_name}

    def _snapshot_ports(self, errors: List[str]) -> Optional[List[JackPort]]:
        try:
            return list_ports(self.commands)
        except JackCommandError as e:
            errors.append(str(e))
            logger.error("port listing failed: %s", e)
            return None

    def activate(self, use_case: str) -> List[str]:
        with self._lock:
            errors = self._launch_all()

            ports = self._snapshot_ports(errors)
            if ports is not None:
                names = port_names(ports)
                known = set(names)
                for p in self._programs:
                    claimed = self._claimed_by_others(p)
                    for intent in p.config.jack_ports:
                        if not intent.matches_use_case(use_case):
                            continue
                        if not _usable(intent, known):
                            logger.debug("skipping %s -> %s for %s", intent.source_name, intent.target_name, p.name)
                            continue
                        target = resolve_target(intent, names, p.jack_node_name, claimed)
                        try:
                            jack_connect(intent.source_name, target, self.commands)
                        except JackCommandError as e:
                            errors.append(str(e))
                            logger.warning("%s", e)
                            continue
                        self._made.add((intent.source_name, target))
                        if intent.is_pattern:
                            errors.extend(p.remember_target(intent, target))

                errors.extend(self._reconcile(use_case))
                self._set_active(use_case)

            return errors

    def _launch_all(self) -> List[str]:
        errors: List[str] = []
        launched: List[ManagedAudioProgram] = []
        for p in self._programs:
            spawned, errs = p.launch()
            errors.extend(errs)
            if spawned:
                launched.append(p)

        if launched:
            time.sleep(self.startup.grace_ms / 1000.0)
            for p in launched:
                errors.extend(p.finish_launch())
        return errors

    def deactivate(self) -> List[str]:
        with self._lock:
            errors = self._reconcile("")
            self._set_active("")
            return errors

    def reconcile(self, use_case: str) -> List[str]:
        with self._lock:
            return self._reconcile(use_case)

    def _set_active(self, use_case: str) -> None:
        self.active_use_case = use_case
        if self.store is not None:
            try:
                self.store.record_use_case(use_case)
            except OSError as e:
                logger.warning("could not record use case: %s", e)

    def _reconcile(self, use_case: str) -> List[str]:
        errors: List[str] = []
        ports = self._snapshot_ports(errors)
        if ports is None:
            return errors
        try:
            live = list_connections(self.commands)
        except JackCommandError as e:
            errors.append(str(e))
            logger.error("connection listing failed: %s", e)
            return errors

        names = port_names(ports)
        known = set(names)

        desired: Set[Edge] = set()
        managed: Set[str] = set()
        for p in self._programs:
            claimed = self._claimed_by_others(p)
            for intent in p.config.jack_ports:
                if not intent.source_name or not intent.target_name:
                    continue
                target = resolve_target(intent, names, p.jack_node_name, claimed)
                managed.add(intent.source_name)
                managed.add(target)
                if intent.matches_use_case(use_case):
                    desired.add((intent.source_name, target))

        for s, t in live:
            if (s, t) in desired or (t, s) in desired:
                continue
            if s not in known or t not in known:
                continue
            made = (s, t) in self._made or (t, s) in self._made
            if not made and (s not in managed or t not in managed):
                continue
            try:
                jack_disconnect(s, t, self.commands)
            except JackCommandError as e:
                errors.append(str(e))
                logger.warning("%s", e)
                continue
            self._made.discard((s, t))
            self._made.discard((t, s))

        return errors
