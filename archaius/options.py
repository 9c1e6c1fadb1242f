"""Options for setting up configuration sources, and the remote source registry."""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

FileHandler = Callable[[str, bytes], "dict[str, Any]"]

APOLLO_SOURCE = "apollo"
CONFIG_CENTER_SOURCE = "config-center"
KIE_SOURCE = "kie"


@dataclass
class RemoteInfo:
    """Settings for a remote configuration source.

    ``refresh_mode`` 0 watches over a web socket, 1 polls every
    ``refresh_interval`` seconds.
    """

    default_dimension: dict[str, str] = field(default_factory=dict)
    refresh_mode: int = 0
    refresh_interval: int = 0
    url: str = ""
    tenant_name: str = ""
    enable_ssl: bool = False
    tls_config: ssl.SSLContext | None = None
    auto_discovery: bool = False
    api_version: str = ""
    refresh_port: str = ""
    project_id: str = ""


@dataclass
class Options:
    """Which sources to set up and how."""

    required_files: list[str] = field(default_factory=list)
    optional_files: list[str] = field(default_factory=list)
    file_handler: FileHandler | None = None
    remote_info: RemoteInfo | None = None
    remote_source: str = ""
    use_cli_source: bool = False
    use_env_source: bool = False
    use_mem_source: bool = False


@dataclass
class FileOptions:
    """Options for adding a single file."""

    handler: FileHandler | None = None


Option = Callable[[Options], None]
FileOption = Callable[[FileOptions], None]
RemoteSourceFactory = Callable[[RemoteInfo], Any]


class UnknownRemoteSourceError(LookupError):
    """Raised when no factory is installed for a remote source name."""


def with_required_files(files: Iterable[str]) -> Option:
    """Manage ``files``; each must exist."""

    def apply(options: Options) -> None:
        options.required_files = list(files)

    return apply


def with_optional_files(files: Iterable[str]) -> Option:
    """Manage ``files``; missing ones are skipped."""

    def apply(options: Options) -> None:
        options.optional_files = list(files)

    return apply


def with_remote_source(provider: str, info: RemoteInfo | None) -> Option:
    """Pull configuration from the remote source named ``provider``."""

    def apply(options: Options) -> None:
        options.remote_info = info
        options.remote_source = provider

    return apply


def with_env_source() -> Option:
    """Read environment variables as configuration."""

    def apply(options: Options) -> None:
        options.use_env_source = True

    return apply


def with_memory_source() -> Option:
    """Keep an in-memory source for values set at runtime."""

    def apply(options: Options) -> None:
        options.use_mem_source = True

    return apply


def with_file_handler(handler: FileHandler) -> FileOption:
    """Convert the added file with ``handler``."""

    def apply(options: FileOptions) -> None:
        options.handler = handler

    return apply


def build_options(*opts: Option) -> Options:
    """Apply ``opts`` in order to fresh default options."""
    options = Options()
    for opt in opts:
        opt(options)
    return options


def build_file_options(*opts: FileOption) -> FileOptions:
    """Apply ``opts`` in order to fresh default file options."""
    options = FileOptions()
    for opt in opts:
        opt(options)
    return options


_REMOTE_SOURCES: dict[str, RemoteSourceFactory] = {}


def install_remote_source(name: str, factory: RemoteSourceFactory) -> None:
    """Register ``factory`` as the builder of the remote source ``name``."""
    _REMOTE_SOURCES[name] = factory


def remote_source_factory(name: str) -> RemoteSourceFactory:
    """Return the factory installed for ``name``."""
    try:
        return _REMOTE_SOURCES[name]
    except KeyError:
        raise UnknownRemoteSourceError(f"do not support remote source: {name}") from None