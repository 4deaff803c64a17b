# jack_cli.py
from __future__ import annotations

import logging
import subprocess
from typing import Sequence

from jack_types import DEFAULT_COMMANDS, JackCommands


logger = logging.getLogger(__name__)


class JackCommandError(RuntimeError):
    def __init__(self, message: str, source: str = "", target: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.source = source
        self.target = target
        self.stderr = stderr


def _run(cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(list(cmd), capture_output=True, text=True)


def _invoke(cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
    try:
        return _run(cmd)
    except OSError as e:
        raise JackCommandError(f"{cmd[0]} could not be run: {e}") from e


def jack_lsp_text(*flags: str, cmds: JackCommands = DEFAULT_COMMANDS) -> str:
    p = _invoke([cmds.lsp, *flags])
    if p.returncode != 0:
        msg = (p.stderr or p.stdout).strip()
        raise JackCommandError(f"{cmds.lsp} failed: {msg}", stderr=msg)
    return p.stdout


def jack_connect(source: str, target: str, cmds: JackCommands = DEFAULT_COMMANDS) -> None:
    if not source or not target:
        raise JackCommandError("Invalid port names for connection.", source, target)

    p = _invoke([cmds.connect, source, target])
    if p.returncode == 0:
        logger.info("connected %s -> %s", source, target)
        return

    msg = (p.stderr or p.stdout).strip()
    if "already" in msg.lower():
        return

    raise JackCommandError(f"connect failed ({source} -> {target}): {msg}", source, target, msg)


def jack_disconnect(source: str, target: str, cmds: JackCommands = DEFAULT_COMMANDS) -> None:
    if not source or not target:
        raise JackCommandError("Invalid port names for disconnection.", source, target)

    p = _invoke([cmds.disconnect, source, target])
    if p.returncode == 0:
        logger.info("disconnected %s -> %s", source, target)
        return

    msg = (p.stderr or p.stdout).strip()
    raise JackCommandError(f"disconnect failed ({source} -> {target}): {msg}", source, target, msg)
