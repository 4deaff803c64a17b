# program.py
from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import List, Optional, Tuple

import psutil

from jack_graph import node_of
from models import (
    AudioProgramConfig,
    JackPortIntent,
    ResolvedTarget,
    StartupOptions,
    UnresolvedTarget,
)


logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"
PID_FILE = "pid"
TARGET_FILE = "jack_target"


def default_programs_dir() -> Path:
    return Path.home() / ".jackstreamingmanager"


def _pid_alive(pid: int) -> bool:
    """An exited child nobody has reaped yet counts as dead."""
    if not psutil.pid_exists(pid):
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        return True


def _process_name(pid: int) -> Optional[str]:
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.ZombieProcess):
        return None
    except psutil.AccessDenied:
        return ""


class ManagedAudioProgram:
    def __init__(
        self,
        config: AudioProgramConfig,
        base_dir: Path,
        startup: StartupOptions = StartupOptions(),
        key: Optional[str] = None,
    ) -> None:
        self.config = config
        self.base_dir = Path(base_dir)
        self.startup = startup
        self.key = key or config.program_name
        self.process: Optional[subprocess.Popen] = None
        self.jack_node_name = ""

    @property
    def name(self) -> str:
        return self.config.program_name

    @property
    def dir_path(self) -> Path:
        return self.base_dir / self.key

    @property
    def config_file(self) -> Path:
        return self.dir_path / CONFIG_FILE

    @property
    def pid_file(self) -> Path:
        return self.dir_path / PID_FILE

    @property
    def target_file(self) -> Path:
        return self.dir_path / TARGET_FILE

    @classmethod
    def from_dir(cls, path: Path, startup: StartupOptions = StartupOptions()) -> "ManagedAudioProgram":
        raw = (path / CONFIG_FILE).read_text(encoding="utf-8")
        cfg = AudioProgramConfig.from_dict(json.loads(raw))
        prog = cls(cfg, path.parent, startup, key=path.name)
        try:
            prog.jack_node_name = prog.target_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            prog.jack_node_name = ""
        return prog

    # persistence

    def _write_artifact(self, filename: str, text: str) -> List[str]:
        try:
            self.dir_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return [f"Could not create directory {self.dir_path}: {e}"]
        try:
            (self.dir_path / filename).write_text(text, encoding="utf-8")
        except OSError as e:
            return [f"Could not write {filename} for '{self.name}': {e}"]
        return []

    def save_config(self) -> List[str]:
        return self._write_artifact(CONFIG_FILE, json.dumps(self.config.to_dict(), indent=2) + "\n")

    def save_jack_target(self) -> List[str]:
        return self._write_artifact(TARGET_FILE, self.jack_node_name)

    def save_pid(self) -> List[str]:
        if self.process is None:
            return ["No running process."]
        return self._write_artifact(PID_FILE, str(self.process.pid))

    def delete_config(self) -> List[str]:
        if not self.dir_path.exists():
            return []
        try:
            shutil.rmtree(self.dir_path)
        except OSError as e:
            return [f"Could not delete {self.dir_path}: {e}"]
        return []

    def rename(self, new_name: str) -> List[str]:
        new_name = new_name.strip()
        if not new_name:
            return ["Program name must not be empty."]
        if new_name == self.key:
            self.config.program_name = new_name
            return []

        dst = self.base_dir / new_name
        if dst.exists():
            return [f"A program named '{new_name}' already exists."]
        if self.dir_path.exists():
            try:
                os.replace(self.dir_path, dst)
            except OSError as e:
                return [f"Could not rename '{self.key}' to '{new_name}': {e}"]

        self.key = new_name
        self.config.program_name = new_name
        return []

    # liveness

    def read_pid(self) -> int:
        return int(self.pid_file.read_text(encoding="utf-8").strip())

    def _pid_is_ours(self, pid: int) -> bool:
        if not _pid_alive(pid):
            return False
        pname = _process_name(pid)
        if not pname:
            return False
        cmd = self.config.command_name
        return cmd in pname or Path(cmd).name in pname

    def is_running(self) -> bool:
        if self.process is not None and self.process.poll() is None:
            return True
        try:
            return self._pid_is_ours(self.read_pid())
        except (OSError, ValueError):
            return False

    def remove_dead_pids(self) -> List[str]:
        if not self.pid_file.exists():
            return [f"PID file {self.pid_file} does not exist."]
        try:
            pid = self.read_pid()
        except (OSError, ValueError) as e:
            return [f"Could not read PID file {self.pid_file}: {e}"]

        if _pid_alive(pid):
            return []
        try:
            self.pid_file.unlink()
        except OSError as e:
            return [f"Could not remove PID file {self.pid_file}: {e}"]
        logger.info("removed stale pid %d for %s", pid, self.name)
        return []

    def _wants_trigger(self) -> bool:
        return bool(self.startup.trigger_program) and self.config.command_name == self.startup.trigger_program

    def _reap(self) -> None:
        proc = self.process
        if proc is not None and proc.poll() is not None:
            logger.info("%s (pid %d) exited with %s", self.name, proc.pid, proc.returncode)
            self.process = None

    def launch(self) -> Tuple[bool, List[str]]:
        """
        I spawn the program unless it is already running. The grace period and
        the trigger byte are left to the caller (see `start`), so several
        programs can share one wait.
        """
        errors: List[str] = []
        cmd_name = self.config.command_name.strip()
        if not cmd_name:
            return False, [f"No command configured for '{self.name}'."]

        self._reap()
        if self.pid_file.exists():
            try:
                pid = self.read_pid()
            except (OSError, ValueError) as e:
                errors.append(f"Could not read PID file {self.pid_file}: {e}")
            else:
                if self._pid_is_ours(pid):
                    logger.info("%s already running as pid %d", self.name, pid)
                    return False, [f"Process with PID {pid} is already running."]

        cmd = [cmd_name, *self.config.start_params]
        try:
            self.process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE if self._wants_trigger() else None,
                close_fds=True,
            )
        except OSError as e:
            errors.append(f"Failed to start '{cmd_name}': {e}")
            logger.error("spawn of %s failed: %s", cmd, e)
            return False, errors

        logger.info("started %s (%s) as pid %d", self.name, " ".join(cmd), self.process.pid)
        errors.extend(self.save_pid())
        return True, errors

    def finish_launch(self) -> List[str]:
        if self._wants_trigger():
            return self._send_trigger()
        return []

    def start(self) -> List[str]:
        spawned, errors = self.launch()
        if spawned:
            time.sleep(self.startup.grace_ms / 1000.0)
            errors.extend(self.finish_launch())
        return errors

    def _send_trigger(self) -> List[str]:
        stdin = self.process.stdin if self.process is not None else None
        if stdin is None:
            return [f"{self.config.command_name} stdin is not available."]

        errors: List[str] = []
        try:
            stdin.write(self.startup.trigger_input.encode("utf-8"))
        except OSError as e:
            errors.append(f"Could not write to {self.config.command_name} stdin: {e}")
        try:
            stdin.flush()
        except OSError as e:
            errors.append(f"Could not flush {self.config.command_name} stdin: {e}")
        return errors

    def stop(self, timeout: float = 5.0) -> List[str]:
        errors: List[str] = []
        proc = self.process

        if proc is not None and proc.poll() is None:
            if proc.stdin is not None:
                try:
                    proc.stdin.close()
                except OSError as e:
                    logger.debug("closing stdin of %s: %s", self.name, e)
            proc.terminate()
            try:
                proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.wait(timeout=timeout)
            logger.info("stopped %s (pid %d)", self.name, proc.pid)
        else:
            try:
                pid = self.read_pid()
            except (OSError, ValueError):
                pid = None
            if pid is not None and self._pid_is_ours(pid):
                try:
                    p = psutil.Process(pid)
                    p.terminate()
                    try:
                        p.wait(timeout=timeout)
                    except psutil.TimeoutExpired:
                        p.kill()
                        p.wait(timeout=timeout)
                    logger.info("stopped %s (pid %d)", self.name, pid)
                except psutil.NoSuchProcess:
                    logger.info("%s (pid %d) exited before stop", self.name, pid)
                except psutil.Error as e:
                    errors.append(f"Could not stop PID {pid}: {e}")
            else:
                errors.append(f"'{self.name}' is not running.")

        self.process = None
        if self.pid_file.exists() and not errors:
            try:
                self.pid_file.unlink()
            except OSError as e:
                errors.append(f"Could not remove PID file {self.pid_file}: {e}")
        return errors

    # affinity

    def remember_target(self, intent: JackPortIntent, resolved: str) -> List[str]:
        """
        I pin this program to the node a pattern resolved to, after the connect
        went through.
        """
        node = node_of(resolved)
        if not node:
            return []

        errors: List[str] = []
        intent.target = ResolvedTarget(name=resolved)
        if self.jack_node_name != node:
            self.jack_node_name = node
            logger.info("%s bound to jack node %s", self.name, node)
            errors.extend(self.save_jack_target())
        errors.extend(self.save_config())
        return errors

    def reset_affinity(self) -> List[str]:
        self.jack_node_name = ""
        for p in self.config.jack_ports:
            if "*" in p.target_search_name:
                p.target = UnresolvedTarget(pattern=p.target_search_name)
        return self.save_jack_target() + self.save_config()


def load_all(
    base_dir: Path,
    startup: StartupOptions = StartupOptions(),
) -> Tuple[List[ManagedAudioProgram], List[str]]:
    programs: List[ManagedAudioProgram] = []
    errors: List[str] = []

    base_dir = Path(base_dir)
    if not base_dir.exists():
        return programs, errors

    try:
        entries = sorted(p for p in base_dir.iterdir() if p.is_dir())
    except OSError as e:
        return programs, [f"Could not read config directory {base_dir}: {e}"]

    for path in entries:
        try:
            prog = ManagedAudioProgram.from_dir(path, startup)
        except (OSError, ValueError, TypeError) as e:
            msg = f"Could not load configuration for '{path.name}': {e}"
            logger.warning(msg)
            errors.append(msg)
            continue
        if prog.pid_file.exists():
            errors.extend(prog.remove_dead_pids())
        programs.append(prog)

    return programs, errors
