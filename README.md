# archaius

Building blocks for application configuration. The package provides change events and a dispatcher for them. It converts looked-up values to concrete types, reads configuration from command-line arguments, and holds option builders for setting sources up. It also includes a client for a config-center server.

## Installation

```
pip install archaius
```

To run the tests, install the `test` extra:

```
pip install "archaius[test]"
```

## Modules

### `archaius.event`

- `EventType` lists the kinds of change: `CREATE`, `UPDATE` and `DELETE`.
- `Event` is a dataclass with the fields `key`, `value`, `event_type`, `event_source` and `has_updated`.
- `Dispatcher` keeps two kinds of listener:
  - Listeners registered with `register_listener(listener, *patterns)`. Each pattern is a regular expression, and it is matched against the key with `re.search`. `dispatch_event(event)` calls `listener.event(event)` for every pattern that matches.
  - Module listeners registered with `register_module_listener(listener, *prefixes)` under dotted key prefixes. `dispatch_module_event(events)` groups the events under the shortest registered prefix that covers each key. It then calls each module listener once with the events of its group.
- Each listener call runs on its own daemon thread. If you pass an `executor` to `Dispatcher`, the calls are submitted to it instead.
- A listener of `None` raises `NilListenerError`. A `None` event, or an empty list of events, raises `ValueError`.
- `PrefixIndex` is the trie of dotted prefixes that the dispatcher uses for module listeners.
- `populate_events(source_name, current, updated)` compares two dictionaries and returns the create, update and delete events between them.

### `archaius.cast`

`Value(value, error=None)` wraps a looked-up value. It converts that value with the following methods:

- `to_int`, `to_int64`, `to_int32`, `to_int16` and `to_int8`
- `to_uint`, `to_uint64`, `to_uint32`, `to_uint16` and `to_uint8`
- `to_float64`, `to_bool` and `to_string`
- `to_string_map`, `to_string_map_bool` and `to_string_map_string_slice`
- `to_slice`, `to_bool_slice`, `to_string_slice` and `to_int_slice`

If the `Value` holds an error, every conversion raises that error. A conversion that is not possible raises `CastError`.

### `archaius.cli`

- `parse_command_line(args)` collects `--key=value` arguments, where the key has at least two characters. It also collects `-k=value` arguments, where the key is one character. It ignores every other argument.
- `CommandlineSource(args=None, priority=2)` is a read-only source built from those arguments. When `args` is not given, it reads `sys.argv[1:]`.
  - Its `name` is `"CommandlineSource"`.
  - `get_configuration_by_key` raises `KeyNotExistError` for a missing key.
  - `set` and `delete` change nothing and return `False`.
  - `cleanup` forgets every value.

### `archaius.options`

- `RemoteInfo`, `Options` and `FileOptions` are dataclasses that hold settings.
- Each builder returns a function that updates the settings:
  - `with_required_files`
  - `with_optional_files`
  - `with_remote_source`
  - `with_env_source`
  - `with_memory_source`
  - `with_file_handler`
- `build_options(*opts)` and `build_file_options(*opts)` apply the builders in order to fresh default settings.
- `install_remote_source(name, factory)` registers the factory of a remote source. `remote_source_factory(name)` returns it, or raises `UnknownRemoteSourceError`. The constants `APOLLO_SOURCE`, `CONFIG_CENTER_SOURCE` and `KIE_SOURCE` name the usual providers, but no factory is installed for them by default.

### `archaius.serializers`

- `encode(serializer_type, obj)` and `decode(serializer_type, data)` use the serializer registered under `serializer_type` in `AVAILABLE_SERIALIZERS`.
- `JSON_ENCODER` (`"application/json"`) names the one serializer registered by default, a `JSONSerializer`. It writes compact JSON and encodes dataclass instances as objects.
- Any failure, including an unknown serializer type, raises `SerializerError`.

### `archaius.configcenter`

`ConfigCenterClient(ConfigCenterOptions(...))` talks to one or more config-center servers:

- `flatten(dimension_info)` pulls the items and merges every dimension into one dictionary. `pull_group_by_dimension(dimension_info)` pulls them grouped by dimension.
- `add_config(CreateConfigAPI(...))` and `delete_config(DeleteConfigAPI(...))` post changes. `do(method, data)` sends any JSON body to the items endpoint.
- `watch(on_change, on_error)` opens a websocket and calls `on_change` with the configuration from every pushed event. It sends keepalive pings and closes the connection when no pong arrives in time.
- `get_config_server()` returns the server addresses in random order, each with a scheme added. `shuffle()` puts the addresses in random order.
- `api_paths(api_version)` returns the item and refresh paths for API `v2` or `v3`. The default is `v3`, and its project id comes from the `CSE_PROJECT_ID` environment variable, or `default` when that is not set.
- `default_headers(tenant_name)` returns the headers sent with every request.
- `get_configs(data)` decodes the key values carried by a pushed event.
- Failures raise `ConfigCenterError`.

## Example

```python
from archaius.event import Dispatcher, populate_events


class Printer:
    def event(self, ev):
        print(ev.event_type, ev.key, ev.value)


dispatcher = Dispatcher()
dispatcher.register_listener(Printer(), "db.*")

for ev in populate_events("file", {"db.host": "a"}, {"db.host": "b", "db.port": 5432}):
    dispatcher.dispatch_event(ev)
```

Listeners run on background threads. A short script may exit before they print. To run the listeners in a controlled way, pass an executor such as `concurrent.futures.ThreadPoolExecutor` and shut it down when you are done.

```python
from archaius.cast import Value

port = Value("8080").to_int()
debug = Value("true").to_bool()
```

## What it does not do

The package has no file source, environment source or in-memory source. It has no manager that layers sources by priority and answers lookups across them. The option builders only record settings such as `use_env_source` and `required_files`; nothing in the package acts on them. No remote source is registered out of the box. `ConfigCenterClient` is a client only, and it is not wired into a source or a dispatcher.