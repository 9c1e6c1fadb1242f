"""Client for a config-center server: pull, push and watch key values."""

from __future__ import annotations

import logging
import os
import random
import ssl
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, NamedTuple

import requests
import websocket
from requests.adapters import HTTPAdapter

from archaius import serializers

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
KEEPALIVE_TIMEOUT = 15.0
NUMBER_SIGN = "%23"

HEADER_CONTENT_TYPE = "Content-Type"
HEADER_USER_AGENT = "User-Agent"
HEADER_ENVIRONMENT = "X-Environment"
HEADER_TENANT_NAME = "X-Tenant-Name"

DIMENSIONS_INFO = "dimensionsInfo"
DEFAULT_CONTENT_TYPE = "application/json"
DEFAULT_REFRESH_PORT = "30104"
ENV_PROJECT_ID = "CSE_PROJECT_ID"

_MEMBERS = "/configuration/members"
_DYNAMIC_CONFIG_API = "/configuration/refresh/items"
_GET_CONFIG_API = "/configuration/items"

EMPTY_CONFIG_SERVER_MEMBERS = "empty config server member"
EMPTY_CONFIG_SERVER_CONFIG = "empty config server passed"


class ConfigCenterError(Exception):
    """Raised when the config center cannot be reached or answers badly."""


@dataclass
class ConfigCenterOptions:
    """Settings of a config-center client."""

    default_dimension: str = ""
    service: str = ""
    app: str = ""
    version: str = ""
    env: str = ""
    config_server_addresses: list[str] = field(default_factory=list)
    refresh_port: str = ""
    api_version: str = ""
    tls_config: ssl.SSLContext | None = None
    tenant_name: str = ""
    enable_ssl: bool = False


@dataclass
class CreateConfigAPI:
    """Body of a request that adds configuration items."""

    dimension_info: str = ""
    items: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {DIMENSIONS_INFO: self.dimension_info, "items": dict(self.items)}


@dataclass
class DeleteConfigAPI:
    """Body of a request that deletes configuration keys."""

    dimension_info: str = ""
    keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {DIMENSIONS_INFO: self.dimension_info, "keys": list(self.keys)}


@dataclass
class ConfigCenterEvent:
    """A change notification pushed by the config center."""

    action: str = ""
    value: str = ""


class ApiPaths(NamedTuple):
    config: str
    refresh: str


def api_paths(api_version: str) -> ApiPaths:
    """Return the item and refresh paths for ``api_version`` (v2 or v3, default v3)."""
    version = "v2" if api_version in ("v2", "V2") else "v3"
    if version == "v2":
        return ApiPaths("/configuration/v2/items", "/configuration/v2/refresh/items")
    project_id = os.environ.get(ENV_PROJECT_ID, "default")
    return ApiPaths(
        f"/v3/{project_id}{_GET_CONFIG_API}",
        f"/v3/{project_id}{_DYNAMIC_CONFIG_API}",
    )


def default_headers(tenant_name: str) -> dict[str, str]:
    """Headers sent with every request."""
    return {
        HEADER_CONTENT_TYPE: DEFAULT_CONTENT_TYPE,
        HEADER_USER_AGENT: "cse-configcenter-client/1.0.0",
        HEADER_TENANT_NAME: tenant_name,
    }


def get_configs(action_data: bytes | str) -> dict[str, Any]:
    """Extract the key values carried by a pushed event."""
    try:
        decoded = serializers.decode(serializers.JSON_ENCODER, action_data)
        if not isinstance(decoded, dict):
            raise ConfigCenterError("event is not a JSON object")
        event = ConfigCenterEvent(action=str(decoded.get("action", "")), value=decoded.get("value", ""))
        if not isinstance(event.value, str):
            raise ConfigCenterError("event value is not a string")
        configs = serializers.decode(serializers.JSON_ENCODER, event.value)
    except serializers.SerializerError as exc:
        logger.error("error in unmarshalling event data: %s", exc)
        raise ConfigCenterError(f"invalid event data: {exc}") from exc
    if not isinstance(configs, dict):
        raise ConfigCenterError("event configuration is not a JSON object")
    return configs


class _SSLContextAdapter(HTTPAdapter):
    def __init__(self, context: ssl.SSLContext) -> None:
        self._context = context
        super().__init__()

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        kwargs["ssl_context"] = self._context
        super().init_poolmanager(*args, **kwargs)


def _is_status_success(code: int) -> bool:
    return 200 <= code < 400


class ConfigCenterClient:
    """Talks to a set of config-center servers over HTTP and web socket."""

    def __init__(self, options: ConfigCenterOptions) -> None:
        self._options = options
        self._addresses = list(options.config_server_addresses)
        self._lock = threading.RLock()
        self._paths = api_paths(options.api_version)
        self._session = requests.Session()
        if options.tls_config is not None:
            self._session.mount("https://", _SSLContextAdapter(options.tls_config))
        self._ws: websocket.WebSocket | None = None
        try:
            self.shuffle()
        except ConfigCenterError:
            pass

    @property
    def paths(self) -> ApiPaths:
        return self._paths

    def shuffle(self) -> None:
        """Put the server addresses in random order."""
        with self._lock:
            if not self._addresses:
                logger.error(EMPTY_CONFIG_SERVER_CONFIG)
                raise ConfigCenterError(EMPTY_CONFIG_SERVER_CONFIG)
            random.shuffle(self._addresses)
            logger.debug("shuffled members %s", self._addresses)

    def get_config_server(self) -> list[str]:
        """Return the server addresses, each with a scheme, in random order."""
        with self._lock:
            if not self._addresses:
                logger.error(EMPTY_CONFIG_SERVER_MEMBERS)
                raise ConfigCenterError(EMPTY_CONFIG_SERVER_MEMBERS)
            normalized = []
            for address in self._addresses:
                if "https" not in address and self._options.enable_ssl:
                    address = "https://" + address
                elif "http" not in address:
                    address = "http://" + address
                normalized.append(address)
            self._addresses = normalized
            self.shuffle()
            return list(self._addresses)

    def http_do(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None,
        body: bytes | None,
    ) -> requests.Response:
        """Send a request with the default headers added."""
        merged = dict(headers or {})
        merged.update(default_headers(self._options.tenant_name))
        try:
            return self._session.request(method, url, headers=merged, data=body, timeout=DEFAULT_TIMEOUT)
        except requests.RequestException as exc:
            raise ConfigCenterError(str(exc)) from exc

    def _call(self, method: str, api: str, body: bytes | None = None) -> Any:
        host = random.choice(self.get_config_server())
        raw_url = host + api
        prefix = f"Call {raw_url} failed: "
        try:
            response = self.http_do(method, raw_url, None, body)
        except ConfigCenterError as exc:
            logger.error("%s%s", prefix, exc)
            raise
        if not _is_status_success(response.status_code):
            message = f"statusCode: {response.status_code}, resp body: {response.text}"
            logger.error("%s%s", prefix, message)
            raise ConfigCenterError(message)
        content_type = response.headers.get("Content-Type", "")
        if content_type and DEFAULT_CONTENT_TYPE not in content_type:
            message = f"content type not {DEFAULT_CONTENT_TYPE}"
            logger.error("%s%s", prefix, message)
            raise ConfigCenterError(message)
        try:
            return serializers.decode(DEFAULT_CONTENT_TYPE, response.content)
        except serializers.SerializerError as exc:
            logger.error("Decode failed: %s", exc)
            raise ConfigCenterError(f"decode failed: {exc}") from exc

    def pull_group_by_dimension(self, dimension_info: str) -> dict[str, dict[str, Any]]:
        """Pull every configuration, grouped by dimension."""
        parsed = dimension_info.replace("#", NUMBER_SIGN)
        result = self._call("GET", f"{self._paths.config}?{DIMENSIONS_INFO}={parsed}")
        if not isinstance(result, dict) or not all(isinstance(v, dict) for v in result.values()):
            raise ConfigCenterError("unexpected configuration layout")
        return result

    def flatten(self, dimension_info: str) -> dict[str, Any]:
        """Pull every configuration and merge the dimensions into one mapping."""
        config: dict[str, Any] = {}
        for group in self.pull_group_by_dimension(dimension_info).values():
            config.update(group)
        return config

    def do(self, method: str, data: Any) -> dict[str, Any]:
        """Send ``data`` as JSON to the items endpoint."""
        payload = data.to_dict() if hasattr(data, "to_dict") else data
        try:
            body = serializers.encode(serializers.JSON_ENCODER, payload)
        except serializers.SerializerError as exc:
            logger.error("serializer data failed: %s", exc)
            raise ConfigCenterError(str(exc)) from exc
        result = self._call(method, self._paths.config, body)
        if not isinstance(result, dict):
            raise ConfigCenterError("unexpected response layout")
        return result

    def add_config(self, data: CreateConfigAPI) -> dict[str, Any]:
        """Create configuration items."""
        return self.do("POST", data)

    def delete_config(self, data: DeleteConfigAPI) -> dict[str, Any]:
        """Delete configuration keys."""
        return self.do("DELETE", data)

    def _web_socket_url(self) -> str:
        host = ""
        for server in self.get_config_server():
            parts = server.split("://")
            if len(parts) < 2:
                raise ConfigCenterError(f"host must be a URL or a host:port pair: {server!r}")
            port = self._options.refresh_port or DEFAULT_REFRESH_PORT
            host = parts[1].split(":")[0] + ":" + port
        if not host:
            raise ConfigCenterError("host must be a URL or a host:port pair")
        scheme = "wss://" if self._options.tls_config is not None else "ws://"
        return scheme + host

    def watch(
        self,
        on_change: Callable[[dict[str, Any]], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        """Open a web socket and call ``on_change`` with every pushed configuration."""
        parsed = self._options.default_dimension.replace("#", NUMBER_SIGN)
        refresh_path = f"{self._paths.refresh}?{DIMENSIONS_INFO}={parsed}"
        base_url = self._web_socket_url()
        sslopt = {"context": self._options.tls_config} if self._options.tls_config is not None else None
        try:
            ws = websocket.create_connection(base_url + refresh_path, timeout=DEFAULT_TIMEOUT, sslopt=sslopt)
        except (websocket.WebSocketException, OSError) as exc:
            raise ConfigCenterError(f"watching config-center dial catch an exception error: {exc}") from exc
        ws.settimeout(None)
        self._ws = ws
        last_response = [time.monotonic()]

        def keep_alive() -> None:
            while True:
                try:
                    ws.ping("keepalive")
                except (websocket.WebSocketException, OSError):
                    return
                time.sleep(KEEPALIVE_TIMEOUT / 2)
                if time.monotonic() - last_response[0] > KEEPALIVE_TIMEOUT:
                    ws.close()
                    return

        def read() -> None:
            while True:
                try:
                    opcode, data = ws.recv_data(control_frame=True)
                except (websocket.WebSocketException, OSError):
                    break
                if opcode == websocket.ABNF.OPCODE_PONG:
                    last_response[0] = time.monotonic()
                elif opcode == websocket.ABNF.OPCODE_CLOSE:
                    break
                elif opcode == websocket.ABNF.OPCODE_TEXT:
                    try:
                        configs = get_configs(data)
                    except ConfigCenterError as exc:
                        on_error(exc)
                        continue
                    on_change(configs)
            try:
                ws.close()
            except (websocket.WebSocketException, OSError) as exc:
                logger.error("watch connection close failed: %s", exc)

        threading.Thread(target=keep_alive, daemon=True).start()
        threading.Thread(target=read, daemon=True).start()