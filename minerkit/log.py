"""Coloured, channel-tagged log lines written to stderr or stdout."""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntFlag

__all__ = [
    "LOG_NEXT",
    "DEFAULT_CONFIG",
    "LogFlags",
    "LogConfig",
    "Channel",
    "strip_ansi",
    "set_thread_name",
    "get_thread_name",
    "format_prefix",
    "emit",
    "log",
]

_RESET = "\x1b[0m"
_GRAY = "\x1b[37m"
_RED = "\x1b[91m"
_GREEN = "\x1b[32m"
_BLUE = "\x1b[94m"
_VIOLET = "\x1b[35m"

LOG_NEXT = 512
"""First verbosity bit past the known ones; verbosity must stay below it."""


class LogFlags(IntFlag):
    """Verbosity bits selecting optional log output."""

    NONE = 0
    JSON = 1
    PER_GPU = 2
    CONNECT = 32
    SWITCH = 64
    SUBMIT = 128
    PROGRAMFLOW = 256


@dataclass
class LogConfig:
    """Logging switches."""

    options: int = 0
    no_color: bool = False
    syslog: bool = False
    stdout: bool = False


DEFAULT_CONFIG = LogConfig()


class Channel(Enum):
    """Log channels and their coloured tags."""

    LOG = _GRAY + ".."
    WARN = _RED + " X"
    NOTE = _BLUE + " i"
    MINING = _GREEN + " m"

    @property
    def tag(self) -> str:
        return self.value


def strip_ansi(text: str) -> str:
    """Remove escape sequences running from ESC up to the next 'm'."""
    out = []
    skip = False
    for char in text:
        if not skip and char == "\x1b":
            skip = True
        elif skip and char == "m":
            skip = False
        elif not skip:
            out.append(char)
    return "".join(out)


def set_thread_name(name: str) -> None:
    """Name the current thread for log lines."""
    threading.current_thread().name = name


def get_thread_name() -> str:
    """Name of the current thread."""
    return threading.current_thread().name


def format_prefix(
    channel: Channel,
    config: LogConfig | None = None,
    now: datetime | None = None,
) -> str:
    """The leading part of a log line: channel, time and thread name."""
    cfg = config or DEFAULT_CONFIG
    thread = get_thread_name().ljust(8)
    if cfg.syslog:
        return f"{thread} {_RESET}"
    moment = now or datetime.now()
    try:
        stamp = moment.strftime("%X")
    except (ValueError, OverflowError):
        stamp = ""
    return f"{channel.tag} {_VIOLET}{stamp} {_BLUE}{thread} {_RESET}"


def emit(line: str, config: LogConfig | None = None) -> str:
    """Write one line to the configured stream and return what was written."""
    cfg = config or DEFAULT_CONFIG
    text = (strip_ansi(line) if cfg.no_color else line) + "\n"
    stream = sys.stdout if cfg.stdout else sys.stderr
    try:
        stream.write(text)
        stream.flush()
    except (OSError, ValueError):
        pass
    return text


def log(channel: Channel, message: object, config: LogConfig | None = None) -> str:
    """Write ``message`` on ``channel`` and return the written text."""
    cfg = config or DEFAULT_CONFIG
    return emit(format_prefix(channel, cfg) + str(message), cfg)