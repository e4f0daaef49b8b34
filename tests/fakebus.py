"""In-memory Secret Service daemon speaking the ``Connection`` surface.

The fake stores collections and items in dictionaries, stamps every change
with a strictly increasing clock and can gate any method behind a prompt.
Prompts emit a decoy ``Completed`` signal for an unrelated prompt before the
real one. Streams opened for a path only receive that path's signals unless
``honor_path_filter`` is switched off, which forces callers to filter too.
"""

from __future__ import annotations

import collections
import itertools
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from secretproxy import constants
from secretproxy.bus import Signal
from secretproxy.errors import error_from_bus

COLLECTION_PREFIX = constants.DBUS_PATH + "/collection/"
SESSION_PREFIX = constants.DBUS_PATH + "/session/"


@dataclass
class FakeItem:
    label: str
    attributes: Dict[str, str]
    value: bytes
    content_type: str
    item_type: str
    created: int
    modified: int
    parameters: bytes = b""
    locked: bool = False


@dataclass
class FakeCollection:
    label: str
    created: int
    modified: int
    locked: bool = False
    items: Dict[str, FakeItem] = field(default_factory=dict)
    counter: Any = field(default_factory=lambda: itertools.count(1))


class FakeStream:
    def __init__(self, owner: "FakeSecretService", interface: str, member: str, path: Optional[str] = None) -> None:
        self.owner = owner
        self.interface = interface
        self.member = member
        self.path = path
        self.queue: "collections.deque[Signal]" = collections.deque()
        self.closed = False

    def push(self, signal: Signal) -> None:
        if self.closed or signal.interface != self.interface or signal.member != self.member:
            return
        if self.path is not None and self.owner.honor_path_filter and signal.path != self.path:
            return
        self.queue.append(signal)

    def get(self, timeout: Optional[float] = None) -> Optional[Signal]:
        if self.queue:
            return self.queue.popleft()
        if timeout:
            time.sleep(min(timeout, 0.005))
        return None

    def close(self) -> None:
        self.closed = True
        if self in self.owner.streams:
            self.owner.streams.remove(self)

    def __enter__(self) -> "FakeStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _slug(label: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]", "_", label.lower()) or "collection"


class FakeSecretService:
    """A daemon double recording every call it receives.

    ``gated`` holds ``(interface, method)`` pairs answered with a prompt.
    ``prompt_mode`` decides what ``Prompt`` does: ``"complete"`` (default),
    ``"dismiss"``, ``"silent"`` (never signals) or ``"close"`` (drops every
    subscription without signalling).
    """

    def __init__(self) -> None:
        self.clock = itertools.count(1_700_000_000)
        self.collections: Dict[str, FakeCollection] = {}
        self.aliases: Dict[str, str] = {}
        self.sessions: Set[str] = set()
        self.session_counter = itertools.count(1)
        self.prompt_counter = itertools.count(1)
        self.pending_prompts: Dict[str, Callable[[], Tuple[str, Any]]] = {}
        self.gated: Set[Tuple[str, str]] = set()
        self.prompt_mode = "complete"
        self.alias_error = False
        # False delivers every signal to every stream, like a bus ignoring path rules
        self.honor_path_filter = True
        self.property_failures: Dict[Tuple[str, str], Exception] = {}
        self.streams: List[FakeStream] = []
        self.calls: List[Tuple[str, str, str, Tuple[Any, ...]]] = []
        self.property_writes: List[Tuple[str, str, Any]] = []
        self.closed = False

    # -- helpers for tests ----------------------------------------------
    def tick(self) -> int:
        return next(self.clock)

    def add_collection(self, label: str, alias: str = "", locked: bool = False) -> str:
        base = COLLECTION_PREFIX + _slug(label)
        path = base
        suffix = itertools.count(1)
        while path in self.collections:
            path = f"{base}{next(suffix)}"
        stamp = self.tick()
        self.collections[path] = FakeCollection(label=label, created=stamp, modified=stamp, locked=locked)
        if alias:
            self.aliases[alias] = path
        return path

    def add_item(
        self,
        collection_path: str,
        label: str,
        attributes: Dict[str, str],
        value: bytes = b"",
        content_type: str = constants.DEFAULT_CONTENT_TYPE,
        item_type: str = constants.DEFAULT_ITEM_TYPE,
        locked: bool = False,
    ) -> str:
        collection = self.collections[collection_path]
        path = f"{collection_path}/{next(collection.counter)}"
        stamp = self.tick()
        collection.items[path] = FakeItem(
            label=label,
            attributes=dict(attributes),
            value=bytes(value),
            content_type=content_type,
            item_type=item_type,
            created=stamp,
            modified=stamp,
            locked=locked,
        )
        collection.modified = stamp
        return path

    def touch(self, path: str) -> None:
        """Bump the modification stamp of *path* behind the client's back."""

        self._object(path).modified = self.tick()

    def fail_property(self, path: str, name: str, exc: Exception) -> None:
        self.property_failures[(path, name)] = exc

    def calls_to(self, method: str) -> List[Tuple[str, str, str, Tuple[Any, ...]]]:
        return [call for call in self.calls if call[2] == method]

    def gate(self, interface: str, method: str) -> None:
        self.gated.add((interface, method))

    # -- Connection surface ---------------------------------------------
    def names(self) -> List[str]:
        return [] if self.closed else [":1.42"]

    def subscribe(self, interface: str, member: str, path: Optional[str] = None) -> FakeStream:
        stream = FakeStream(self, interface, member, path)
        self.streams.append(stream)
        return stream

    def close(self) -> None:
        self.closed = True
        for stream in list(self.streams):
            stream.close()

    def call(self, path: str, interface: str, method: str, signature: str = "", *args: Any) -> Tuple[Any, ...]:
        path = str(path)
        self.calls.append((path, interface, method, args))
        handler = getattr(self, "_" + interface.rsplit(".", 1)[-1].lower() + "_" + method, None)
        if handler is None:
            raise error_from_bus(constants.DBUS_UNKNOWN_METHOD, f"no method {method} on {interface}")
        return handler(path, *args)

    def get_property(self, path: str, interface: str, name: str) -> Any:
        path = str(path)
        failure = self.property_failures.get((path, name))
        if failure is not None:
            raise failure
        if path == constants.DBUS_PATH and interface == constants.SERVICE_INTERFACE:
            if name == "Collections":
                return list(self.collections)
            raise error_from_bus(constants.DBUS_UNKNOWN_OBJECT, name)
        obj = self._object(path)
        if isinstance(obj, FakeCollection):
            values = {
                "Items": list(obj.items),
                "Label": obj.label,
                "Locked": obj.locked,
                "Created": obj.created,
                "Modified": obj.modified,
            }
        else:
            values = {
                "Attributes": dict(obj.attributes),
                "Label": obj.label,
                "Type": obj.item_type,
                "Locked": obj.locked or self._parent(path).locked,
                "Created": obj.created,
                "Modified": obj.modified,
            }
        if name not in values:
            raise error_from_bus(constants.DBUS_UNKNOWN_OBJECT, name)
        return values[name]

    def set_property(self, path: str, interface: str, name: str, signature: str, value: Any) -> None:
        path = str(path)
        self.property_writes.append((path, name, value))
        obj = self._object(path)
        if name == "Label":
            obj.label = value
        elif name == "Attributes" and isinstance(obj, FakeItem):
            obj.attributes = dict(value)
        elif name == "Type" and isinstance(obj, FakeItem):
            obj.item_type = value
        else:
            raise error_from_bus(constants.DBUS_UNKNOWN_OBJECT, name)
        obj.modified = self.tick()

    # -- object lookup --------------------------------------------------
    def _object(self, path: str) -> Any:
        if path in self.collections:
            return self.collections[path]
        parent = self.collections.get(path.rsplit("/", 1)[0])
        if parent is not None and path in parent.items:
            return parent.items[path]
        raise error_from_bus(constants.ERROR_NO_SUCH_OBJECT, f"no object at {path}")

    def _parent(self, item_path: str) -> FakeCollection:
        return self.collections[item_path.rsplit("/", 1)[0]]

    def _is_locked(self, path: str) -> bool:
        obj = self._object(path)
        if isinstance(obj, FakeItem):
            return obj.locked or self._parent(path).locked
        return obj.locked

    def _gated(self, interface: str, method: str, action: Callable[[], Tuple[str, Any]]) -> Optional[str]:
        if (interface, method) not in self.gated:
            return None
        prompt_path = f"{constants.PROMPT_PREFIX}p{next(self.prompt_counter)}"
        self.pending_prompts[prompt_path] = action
        return prompt_path

    def _emit(self, prompt_path: str, dismissed: bool, result: Tuple[str, Any]) -> None:
        signal = Signal(prompt_path, constants.PROMPT_INTERFACE, constants.PROMPT_COMPLETED, (dismissed, result))
        for stream in list(self.streams):
            stream.push(signal)

    def _secret_struct(self, session: str, item: FakeItem) -> Tuple[str, bytes, bytes, str]:
        return (session, item.parameters, item.value, item.content_type)

    # -- org.freedesktop.Secret.Service ---------------------------------
    def _service_OpenSession(self, path: str, algorithm: str, variant: Any) -> Tuple[Any, ...]:
        if algorithm != constants.ALGORITHM_PLAIN:
            raise error_from_bus("org.freedesktop.DBus.Error.NotSupported", algorithm)
        session = f"{SESSION_PREFIX}s{next(self.session_counter)}"
        self.sessions.add(session)
        return ("s", ""), session

    def _service_CreateCollection(self, path: str, properties: Dict[str, Any], alias: str) -> Tuple[Any, ...]:
        label = properties.get(constants.COLLECTION_LABEL, ("s", ""))[1]

        def create() -> Tuple[str, Any]:
            return "o", self.add_collection(label, alias)

        prompt_path = self._gated(constants.SERVICE_INTERFACE, "CreateCollection", create)
        if prompt_path is not None:
            return constants.ROOT_PATH, prompt_path
        return create()[1], constants.ROOT_PATH

    def _search(self, attributes: Dict[str, str], paths: List[str]) -> List[str]:
        found = []
        for collection_path in paths:
            for item_path, item in self.collections[collection_path].items.items():
                if all(item.attributes.get(k) == v for k, v in attributes.items()):
                    found.append(item_path)
        return found

    def _service_SearchItems(self, path: str, attributes: Dict[str, str]) -> Tuple[Any, ...]:
        found = self._search(attributes, list(self.collections))
        unlocked = [p for p in found if not self._is_locked(p)]
        locked = [p for p in found if self._is_locked(p)]
        return unlocked, locked

    def _set_locks(self, paths: List[str], locked: bool) -> List[str]:
        for target in paths:
            self._object(target).locked = locked
        return list(paths)

    def _service_Unlock(self, path: str, paths: List[str]) -> Tuple[Any, ...]:
        def unlock() -> Tuple[str, Any]:
            return "ao", self._set_locks(paths, False)

        prompt_path = self._gated(constants.SERVICE_INTERFACE, "Unlock", unlock)
        if prompt_path is not None:
            return [], prompt_path
        return unlock()[1], constants.ROOT_PATH

    def _service_Lock(self, path: str, paths: List[str]) -> Tuple[Any, ...]:
        def lock() -> Tuple[str, Any]:
            return "ao", self._set_locks(paths, True)

        prompt_path = self._gated(constants.SERVICE_INTERFACE, "Lock", lock)
        if prompt_path is not None:
            return [], prompt_path
        return lock()[1], constants.ROOT_PATH

    def _service_GetSecrets(self, path: str, paths: List[str], session: str) -> Tuple[Any, ...]:
        if session not in self.sessions:
            raise error_from_bus(constants.ERROR_NO_SESSION, session)
        result = {}
        for item_path in paths:
            if self._is_locked(item_path):
                continue
            result[item_path] = self._secret_struct(session, self._object(item_path))
        return (result,)

    def _service_ReadAlias(self, path: str, alias: str) -> Tuple[Any, ...]:
        if alias in self.aliases:
            return (self.aliases[alias],)
        if self.alias_error:
            raise error_from_bus(constants.ERROR_NO_SUCH_OBJECT, f"no alias {alias}")
        return (constants.ROOT_PATH,)

    def _service_SetAlias(self, path: str, alias: str, target: str) -> Tuple[Any, ...]:
        if target == constants.REMOVE_ALIAS_PATH:
            self.aliases.pop(alias, None)
        else:
            self._object(target)
            self.aliases[alias] = target
        return ()

    # -- org.freedesktop.Secret.Session ---------------------------------
    def _session_Close(self, path: str) -> Tuple[Any, ...]:
        self.sessions.discard(path)
        return ()

    # -- org.freedesktop.Secret.Collection ------------------------------
    def _collection_Delete(self, path: str) -> Tuple[Any, ...]:
        self._object(path)

        def delete() -> Tuple[str, Any]:
            del self.collections[path]
            for alias, target in list(self.aliases.items()):
                if target == path:
                    del self.aliases[alias]
            return "s", ""

        prompt_path = self._gated(constants.COLLECTION_INTERFACE, "Delete", delete)
        if prompt_path is not None:
            return (prompt_path,)
        delete()
        return (constants.ROOT_PATH,)

    def _collection_SearchItems(self, path: str, attributes: Dict[str, str]) -> Tuple[Any, ...]:
        self._object(path)
        return (self._search(attributes, [path]),)

    def _collection_CreateItem(
        self, path: str, properties: Dict[str, Any], secret: Tuple[Any, ...], replace: bool
    ) -> Tuple[Any, ...]:
        collection = self._object(path)
        if collection.locked:
            raise error_from_bus(constants.ERROR_IS_LOCKED, path)
        session, parameters, value, content_type = secret
        if session not in self.sessions:
            raise error_from_bus(constants.ERROR_NO_SESSION, session)
        label = properties.get(constants.ITEM_LABEL, ("s", ""))[1]
        attributes = properties.get(constants.ITEM_ATTRIBUTES, ("a{ss}", {}))[1]
        item_type = properties.get(constants.ITEM_TYPE, ("s", constants.DEFAULT_ITEM_TYPE))[1]

        def create() -> Tuple[str, Any]:
            if replace:
                for item_path, item in collection.items.items():
                    if item.attributes == attributes:
                        item.label = label
                        item.value = bytes(value)
                        item.content_type = content_type
                        item.modified = self.tick()
                        return "o", item_path
            return "o", self.add_item(path, label, attributes, bytes(value), content_type, item_type)

        prompt_path = self._gated(constants.COLLECTION_INTERFACE, "CreateItem", create)
        if prompt_path is not None:
            return constants.ROOT_PATH, prompt_path
        return create()[1], constants.ROOT_PATH

    # -- org.freedesktop.Secret.Item ------------------------------------
    def _item_Delete(self, path: str) -> Tuple[Any, ...]:
        self._object(path)

        def delete() -> Tuple[str, Any]:
            parent = self._parent(path)
            del parent.items[path]
            parent.modified = self.tick()
            return "s", ""

        prompt_path = self._gated(constants.ITEM_INTERFACE, "Delete", delete)
        if prompt_path is not None:
            return (prompt_path,)
        delete()
        return (constants.ROOT_PATH,)

    def _item_GetSecret(self, path: str, session: str) -> Tuple[Any, ...]:
        if session not in self.sessions:
            raise error_from_bus(constants.ERROR_NO_SESSION, session)
        if self._is_locked(path):
            raise error_from_bus(constants.ERROR_IS_LOCKED, path)
        return (self._secret_struct(session, self._object(path)),)

    def _item_SetSecret(self, path: str, secret: Tuple[Any, ...]) -> Tuple[Any, ...]:
        if self._is_locked(path):
            raise error_from_bus(constants.ERROR_IS_LOCKED, path)
        session, parameters, value, content_type = secret
        item = self._object(path)
        item.parameters = bytes(parameters)
        item.value = bytes(value)
        item.content_type = content_type
        item.modified = self.tick()
        return ()

    # -- org.freedesktop.Secret.Prompt ----------------------------------
    def _prompt_Prompt(self, path: str, window_id: str) -> Tuple[Any, ...]:
        action = self.pending_prompts.pop(path, None)
        if action is None:
            raise error_from_bus(constants.ERROR_NO_SUCH_OBJECT, f"no prompt at {path}")
        if self.prompt_mode == "silent":
            return ()
        if self.prompt_mode == "close":
            for stream in list(self.streams):
                stream.close()
            return ()
        self._emit(constants.PROMPT_PREFIX + "decoy", False, ("o", COLLECTION_PREFIX + "decoy"))
        if self.prompt_mode == "dismiss":
            self._emit(path, True, ("s", ""))
        else:
            self._emit(path, False, action())
        return ()
