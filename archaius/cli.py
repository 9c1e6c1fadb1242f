"""Configuration source built from command-line ``--key=value`` arguments."""

from __future__ import annotations

import logging
import sys
import threading
from typing import Any, Iterable, Mapping

NAME = "CommandlineSource"
COMMANDLINE_PRIORITY = 2

_log = logging.getLogger(__name__)


class KeyNotExistError(LookupError):
    """Raised when a configuration key is not present in a source."""


def parse_command_line(args: Iterable[str]) -> dict[str, str]:
    """Collect ``--key=value`` and ``-k=value`` arguments into a mapping.

    Long keys need at least two characters, short keys exactly one;
    every other argument is ignored.
    """
    config: dict[str, str] = {}
    for arg in args:
        pos = arg.find("=")
        if arg.startswith("--") and pos >= 4:
            config[arg[2:pos]] = arg[pos + 1 :]
        elif arg.startswith("-") and pos == 2:
            config[arg[1:pos]] = arg[pos + 1 :]
    return config


class CommandlineSource:
    """Read-only configuration taken from the process arguments."""

    name = NAME

    def __init__(self, args: Iterable[str] | None = None, priority: int = COMMANDLINE_PRIORITY) -> None:
        if args is None:
            args = sys.argv[1:]
        self.priority = priority
        self.handler: Any = None
        self.dimensions: dict[str, str] = {}
        self._lock = threading.Lock()
        self._configurations: dict[str, Any] = parse_command_line(args)

    def get_configurations(self) -> dict[str, Any]:
        """Return a copy of every key and value."""
        with self._lock:
            return dict(self._configurations)

    def get_configuration_by_key(self, key: str) -> Any:
        """Return the value of ``key``; raise ``KeyNotExistError`` if absent."""
        with self._lock:
            try:
                return self._configurations[key]
            except KeyError:
                raise KeyNotExistError(f"key does not exist: {key}") from None

    def watch(self, handler: Any) -> None:
        """Remember the handler; arguments never change, so no events follow."""
        self.handler = handler

    def cleanup(self) -> None:
        """Forget every configuration."""
        with self._lock:
            self._configurations = {}

    def add_dimension_info(self, dimension: Mapping[str, str]) -> None:
        """Record dimensions; they do not affect command-line values."""
        self.dimensions.update(dimension)

    def set(self, key: str, value: Any) -> bool:
        """Command-line configuration is read-only; returns False as nothing is stored."""
        _log.debug("ignoring set of %s on read-only command-line source", key)
        return False

    def delete(self, key: str) -> bool:
        """Command-line configuration is read-only; returns False as nothing is removed."""
        _log.debug("ignoring delete of %s on read-only command-line source", key)
        return False