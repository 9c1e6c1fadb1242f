import sys

import pytest

from archaius.cli import CommandlineSource, KeyNotExistError, parse_command_line

ARGS = [
    "--testcmdkey1=cmdkey1",
    "--testcmdkey2=cmdkey2",
    "-A=cmdkey3",
    "--testcmdkey1=cmdkey1",
    "--testcmdkey2=cmdkey2",
    "--env k=v --env b=c",
]


class RecordingHandler:
    def __init__(self):
        self.events = []

    def on_event(self, event):
        self.events.append(event)

    def on_module_event(self, events):
        self.events.extend(events)


def test_values_by_key():
    source = CommandlineSource(ARGS)
    assert source.get_configuration_by_key("testcmdkey1") == "cmdkey1"
    assert source.get_configuration_by_key("A") == "cmdkey3"


def test_get_configurations():
    configs = CommandlineSource(ARGS).get_configurations()
    assert configs["testcmdkey2"] == "cmdkey2"
    assert configs["env k"] == "v --env b=c"


def test_priority_and_name():
    source = CommandlineSource(ARGS)
    assert source.priority == 2
    assert source.name == "CommandlineSource"


def test_watch_leaves_configuration_unchanged():
    source = CommandlineSource(ARGS)
    before = source.get_configurations()
    handler = RecordingHandler()
    assert source.watch(handler) is None
    assert source.get_configurations() == before
    assert handler.events == []


def test_cleanup_removes_keys():
    source = CommandlineSource(ARGS)
    source.cleanup()
    with pytest.raises(KeyNotExistError):
        source.get_configuration_by_key("testcmdkey1")
    with pytest.raises(KeyNotExistError):
        source.get_configuration_by_key("testcmdkey2")


def test_missing_key_raises():
    with pytest.raises(KeyNotExistError):
        CommandlineSource(ARGS).get_configuration_by_key("absent")


def test_set_and_delete_have_no_effect():
    source = CommandlineSource(ARGS)
    before = source.get_configurations()
    source.set("testcmdkey1", "other")
    source.delete("A")
    source.add_dimension_info({"app": "demo"})
    assert source.get_configurations() == before


def test_get_configurations_returns_copy():
    source = CommandlineSource(ARGS)
    configs = source.get_configurations()
    configs["testcmdkey1"] = "changed"
    assert source.get_configuration_by_key("testcmdkey1") == "cmdkey1"


@pytest.mark.parametrize(
    "arg",
    ["--a=c", "-AB=x", "plain=value", "", "-", "--noequals"],
)
def test_parse_ignores_malformed(arg):
    assert parse_command_line([arg]) == {}


def test_parse_accepts_long_and_short():
    assert parse_command_line(["--ab=c", "-A=cmdkey3"]) == {"ab": "c", "A": "cmdkey3"}


def test_defaults_to_process_arguments(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["prog", "--testcmdkey1=cmdkey1", "-A=cmdkey3"])
    source = CommandlineSource()
    assert source.get_configurations() == {"testcmdkey1": "cmdkey1", "A": "cmdkey3"}