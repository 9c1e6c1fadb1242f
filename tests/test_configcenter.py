import json

import pytest
import responses
from responses import matchers

from archaius.configcenter import (
    ConfigCenterClient,
    ConfigCenterError,
    ConfigCenterOptions,
    CreateConfigAPI,
    DeleteConfigAPI,
    api_paths,
    default_headers,
    get_configs,
)

HOST = "http://127.0.0.1:30103"
ITEMS_URL = HOST + "/v3/default/configuration/items"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("CSE_PROJECT_ID", raising=False)
    return ConfigCenterClient(ConfigCenterOptions(config_server_addresses=["127.0.0.1:30103"], tenant_name="default"))


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


def test_new_with_empty_options_has_no_servers():
    client = ConfigCenterClient(ConfigCenterOptions())
    with pytest.raises(ConfigCenterError):
        client.get_config_server()
    with pytest.raises(ConfigCenterError):
        client.shuffle()


def test_get_configs_from_event():
    value = json.dumps({"a": "b", "c": "d"})
    data = json.dumps({"action": "delete", "value": value}, indent=2).encode()
    configs = get_configs(data)
    assert configs["a"] == "b"
    assert configs == {"a": "b", "c": "d"}


@pytest.mark.parametrize("data", [b"not json", b"[1, 2]", b'{"action": "x", "value": "nope"}'])
def test_get_configs_invalid(data):
    with pytest.raises(ConfigCenterError):
        get_configs(data)


def test_default_headers():
    headers = default_headers("tenant")
    assert headers == {
        "Content-Type": "application/json",
        "User-Agent": "cse-configcenter-client/1.0.0",
        "X-Tenant-Name": "tenant",
    }


@pytest.mark.parametrize("version", ["v2", "V2"])
def test_api_paths_v2(version):
    paths = api_paths(version)
    assert paths.config == "/configuration/v2/items"
    assert paths.refresh == "/configuration/v2/refresh/items"


def test_api_paths_v3_default_project(monkeypatch):
    monkeypatch.delenv("CSE_PROJECT_ID", raising=False)
    paths = api_paths("")
    assert paths.config == "/v3/default/configuration/items"
    assert paths.refresh == "/v3/default/configuration/refresh/items"


def test_api_paths_v3_project_from_env(monkeypatch):
    monkeypatch.setenv("CSE_PROJECT_ID", "proj")
    assert api_paths("V3").config == "/v3/proj/configuration/items"


def test_get_config_server_adds_scheme(client):
    assert client.get_config_server() == [HOST]


def test_get_config_server_ssl():
    client = ConfigCenterClient(ConfigCenterOptions(config_server_addresses=["10.0.0.1:30103"], enable_ssl=True))
    assert client.get_config_server() == ["https://10.0.0.1:30103"]


def test_shuffle_keeps_members():
    addresses = ["http://a:1", "http://b:2", "http://c:3"]
    client = ConfigCenterClient(ConfigCenterOptions(config_server_addresses=list(addresses)))
    client.shuffle()
    assert sorted(client.get_config_server()) == addresses


def test_flatten_merges_dimensions(client, mocked):
    mocked.add(
        responses.GET,
        ITEMS_URL,
        json={"svc": {"a": 1}, "app": {"b": 2}},
        match=[matchers.query_param_matcher({"dimensionsInfo": "svc#1.0"})],
    )
    assert client.flatten("svc#1.0") == {"a": 1, "b": 2}
    assert "%23" in mocked.calls[0].request.url


def test_pull_group_by_dimension(client, mocked):
    mocked.add(responses.GET, ITEMS_URL, json={"svc": {"a": 1}})
    assert client.pull_group_by_dimension("svc") == {"svc": {"a": 1}}
    request = mocked.calls[0].request
    assert request.headers["User-Agent"] == "cse-configcenter-client/1.0.0"
    assert request.headers["X-Tenant-Name"] == "default"


def test_error_status_raises(client, mocked):
    mocked.add(responses.GET, ITEMS_URL, json={"error": "boom"}, status=500)
    with pytest.raises(ConfigCenterError, match="statusCode: 500"):
        client.flatten("svc")


def test_wrong_content_type_raises(client, mocked):
    mocked.add(responses.GET, ITEMS_URL, body="<html/>", content_type="text/html")
    with pytest.raises(ConfigCenterError, match="content type"):
        client.flatten("svc")


def test_add_config_posts_body(client, mocked):
    mocked.add(responses.POST, ITEMS_URL, json={"result": "ok"})
    result = client.add_config(CreateConfigAPI(dimension_info="svc", items={"k": "v"}))
    assert result == {"result": "ok"}
    assert json.loads(mocked.calls[0].request.body) == {"dimensionsInfo": "svc", "items": {"k": "v"}}


def test_delete_config_sends_keys(client, mocked):
    mocked.add(responses.DELETE, ITEMS_URL, json={"deleted": ["k"]})
    result = client.delete_config(DeleteConfigAPI(dimension_info="svc", keys=["k"]))
    assert result == {"deleted": ["k"]}
    request = mocked.calls[0].request
    assert request.method == "DELETE"
    assert json.loads(request.body) == {"dimensionsInfo": "svc", "keys": ["k"]}


def test_watch_without_server_raises():
    client = ConfigCenterClient(
        ConfigCenterOptions(config_server_addresses=["127.0.0.1:30103"], refresh_port="1", default_dimension="svc")
    )
    with pytest.raises(ConfigCenterError, match="dial"):
        client.watch(lambda configs: None, lambda exc: None)