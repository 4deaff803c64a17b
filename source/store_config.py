# store_config.py
from __future__ import annotations

import configparser
import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path

from jack_types import JackCommands
from models import StartupOptions
from program import default_programs_dir


DEFAULT_CONFIG_TEXT = """\
[Programs]
config_dir =

[Jack]
lsp = jack_lsp
connect = jack_connect
disconnect = jack_disconnect

[Startup]
grace_ms = 300
trigger_program = baresip
trigger_input = D

[Session]
last_use_case =

[Logging]
level = INFO
"""

_DEFAULTS = {
    "Programs": {"config_dir": ""},
    "Jack": {"lsp": "jack_lsp", "connect": "jack_connect", "disconnect": "jack_disconnect"},
    "Startup": {"grace_ms": "300", "trigger_program": "baresip", "trigger_input": "D"},
    "Session": {"last_use_case": ""},
    "Logging": {"level": "INFO"},
}


def _windows_appdata_dir() -> Path:
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata)
    return Path.home() / "AppData" / "Roaming"


def _linux_xdg_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


def user_config_dir(app_name: str) -> Path:
    sysname = (platform.system() or "").lower()
    if sysname.startswith("windows"):
        return _windows_appdata_dir() / app_name
    if sysname.startswith("linux"):
        return _linux_xdg_config_dir() / app_name
    return Path.home() / ".config" / app_name


@dataclass(frozen=True)
class AppSettings:
    programs_dir: Path
    commands: JackCommands
    startup: StartupOptions
    last_use_case: str
    log_level: int


@dataclass(frozen=True)
class ConfigStore:
    app_name: str = "jackstreamingmanager"
    filename: str = "jackstreamingmanager.cfg"
    root: Path | None = None

    @property
    def dir_path(self) -> Path:
        return self.root if self.root is not None else user_config_dir(self.app_name)

    @property
    def file_path(self) -> Path:
        return self.dir_path / self.filename

    def ensure_exists(self) -> None:
        self.dir_path.mkdir(parents=True, exist_ok=True)
        if not self.file_path.exists():
            self.file_path.write_text(DEFAULT_CONFIG_TEXT, encoding="utf-8")

    def load(self) -> configparser.ConfigParser:
        self.ensure_exists()
        cfg = configparser.ConfigParser()
        cfg.read(self.file_path, encoding="utf-8")

        for section, values in _DEFAULTS.items():
            if not cfg.has_section(section):
                cfg.add_section(section)
            for k, v in values.items():
                cfg.set(section, k, cfg.get(section, k, fallback=v))

        return cfg

    def save(self, cfg: configparser.ConfigParser) -> None:
        self.ensure_exists()
        with self.file_path.open("w", encoding="utf-8") as f:
            cfg.write(f)

    def settings(self) -> AppSettings:
        cfg = self.load()

        d = cfg.get("Programs", "config_dir").strip()
        programs_dir = Path(d).expanduser() if d else default_programs_dir()

        commands = JackCommands(
            lsp=cfg.get("Jack", "lsp").strip() or "jack_lsp",
            connect=cfg.get("Jack", "connect").strip() or "jack_connect",
            disconnect=cfg.get("Jack", "disconnect").strip() or "jack_disconnect",
        )

        try:
            grace_ms = max(0, cfg.getint("Startup", "grace_ms"))
        except ValueError:
            grace_ms = 300
        startup = StartupOptions(
            grace_ms=grace_ms,
            trigger_program=cfg.get("Startup", "trigger_program").strip(),
            trigger_input=cfg.get("Startup", "trigger_input"),
        )

        level_name = cfg.get("Logging", "level").strip().upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.INFO

        return AppSettings(
            programs_dir=programs_dir,
            commands=commands,
            startup=startup,
            last_use_case=cfg.get("Session", "last_use_case").strip(),
            log_level=level,
        )

    def record_use_case(self, use_case: str) -> None:
        cfg = self.load()
        if cfg.get("Session", "last_use_case", fallback="").strip() != use_case:
            cfg.set("Session", "last_use_case", use_case)
            self.save(cfg)
