"""Configuration change events and the dispatcher that delivers them to listeners."""

from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import Executor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Protocol, Sequence

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Kind of change a configuration event describes."""

    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CREATE = "CREATE"


@dataclass
class Event:
    """A change to a single configuration key."""

    key: str = ""
    value: Any = None
    event_type: EventType | str = ""
    event_source: str = ""
    has_updated: bool = False


class NilListenerError(ValueError):
    """Raised when ``None`` is supplied where a listener is required."""

    def __init__(self, message: str = "nil listener") -> None:
        super().__init__(message)


class Listener(Protocol):
    """Receives events for keys matching a registered pattern."""

    def event(self, event: Event) -> None: ...


class ModuleListener(Protocol):
    """Receives batches of events whose keys share a registered prefix."""

    def event(self, events: list[Event]) -> None: ...


@dataclass
class PrefixIndex:
    """A trie of dotted prefixes, used to find the registered module of a key."""

    prefix: str = ""
    next_parts: dict[str, PrefixIndex] = field(default_factory=dict)

    def add_prefix(self, prefix: str) -> None:
        """Index ``prefix`` so that keys below it resolve to it."""
        node = self
        for part in prefix.split("."):
            node = node.next_parts.setdefault(part, PrefixIndex())
        node.prefix = prefix

    def remove_prefix(self, prefix: str) -> None:
        """Drop ``prefix`` and prune branches that no longer lead anywhere."""
        parts = prefix.split(".")
        path = [self]
        node = self
        for part in parts:
            child = node.next_parts.get(part)
            if child is None:
                return
            node = child
            path.append(node)
        node.prefix = ""

        child_key: str | None = None
        for node, key in zip(reversed(path), reversed([None, *parts])):
            if child_key is not None:
                node.next_parts.pop(child_key, None)
            if node.next_parts or node.prefix:
                break
            child_key = key

    def find_prefix(self, key: str) -> str:
        """Return the shortest indexed prefix covering ``key``, or ``""``."""
        node = self
        for part in key.split("."):
            if node.prefix:
                return node.prefix
            child = node.next_parts.get(part)
            if child is None:
                return ""
            node = child
        return node.prefix


class Dispatcher:
    """Keeps listeners and delivers events to them asynchronously.

    Listeners are called on a new daemon thread each, or through ``executor``
    when one is given.
    """

    def __init__(self, executor: Executor | None = None) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self._module_listeners: dict[str, list[ModuleListener]] = {}
        self._prefix_index = PrefixIndex()
        self._executor = executor

    def _deliver(self, callback: Callable[[Any], None], payload: Any) -> None:
        if self._executor is None:
            threading.Thread(target=callback, args=(payload,), daemon=True).start()
        else:
            self._executor.submit(callback, payload)

    def register_listener(self, listener: Listener, *keys: str) -> None:
        """Register ``listener`` for every key pattern (a regular expression).

        Registration stops at the first pattern the listener already holds.
        """
        if listener is None:
            logger.error("nil listener supplied")
            raise NilListenerError()
        for key in keys:
            registered = self._listeners.setdefault(key, [])
            if any(existing is listener for existing in registered):
                return
            registered.append(listener)

    def unregister_listener(self, listener: Listener, *keys: str) -> None:
        """Remove ``listener`` from the given key patterns."""
        if listener is None:
            raise NilListenerError()
        for key in keys:
            registered = self._listeners.get(key)
            if registered is None:
                continue
            self._listeners[key] = [item for item in registered if item is not listener]

    def dispatch_event(self, event: Event) -> None:
        """Send ``event`` to every listener whose pattern matches its key."""
        if event is None:
            raise ValueError("empty event provided")
        for pattern, listeners in list(self._listeners.items()):
            try:
                matched = re.search(pattern, event.key) is not None
            except re.error as exc:
                logger.error("regular expression for key %s failed: %s", pattern, exc)
                continue
            if matched:
                for listener in listeners:
                    logger.info("event generated for %s", pattern)
                    self._deliver(listener.event, event)

    def register_module_listener(self, listener: ModuleListener, *prefixes: str) -> None:
        """Register ``listener`` for every dotted module prefix.

        Registration stops at the first prefix the listener already holds.
        """
        if listener is None:
            logger.error("nil moduleListener supplied")
            raise NilListenerError()
        for prefix in prefixes:
            registered = self._module_listeners.get(prefix)
            if registered is None:
                registered = self._module_listeners[prefix] = []
                self._prefix_index.add_prefix(prefix)
            if any(existing is listener for existing in registered):
                return
            registered.append(listener)

    def unregister_module_listener(self, listener: ModuleListener, *prefixes: str) -> None:
        """Remove ``listener`` from the given prefixes."""
        if listener is None:
            raise NilListenerError()
        for prefix in prefixes:
            registered = self._module_listeners.get(prefix)
            if registered is None:
                continue
            remaining = [item for item in registered if item is not listener]
            if remaining:
                self._module_listeners[prefix] = remaining
            else:
                del self._module_listeners[prefix]
                self._prefix_index.remove_prefix(prefix)

    def dispatch_module_event(self, events: Sequence[Event]) -> None:
        """Group ``events`` by registered prefix and call each module listener once."""
        if not events:
            raise ValueError("empty events provided")
        for prefix, group in self._group_by_prefix(events).items():
            for listener in list(self._module_listeners.get(prefix, ())):
                logger.info("events generated for %s", prefix)
                self._deliver(listener.event, group)

    def _group_by_prefix(self, events: Sequence[Event]) -> dict[str, list[Event]]:
        grouped: dict[str, list[Event]] = {}
        for event in events:
            prefix = self._prefix_index.find_prefix(event.key)
            if prefix:
                grouped.setdefault(prefix, []).append(event)
        return grouped


def populate_events(
    source_name: str,
    current_config: Mapping[str, Any] | None,
    updated_config: Mapping[str, Any] | None,
) -> list[Event]:
    """Compare two configurations and return the create, update and delete events."""
    current = current_config or {}
    updated = updated_config or {}
    events: list[Event] = []
    for key, value in updated.items():
        if key not in current:
            events.append(Event(key=key, value=value, event_type=EventType.CREATE, event_source=source_name))
        elif current[key] != value:
            events.append(Event(key=key, value=value, event_type=EventType.UPDATE, event_source=source_name))
    for key, value in current.items():
        if key not in updated:
            events.append(Event(key=key, value=value, event_type=EventType.DELETE, event_source=source_name))
    return events