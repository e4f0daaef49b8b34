"""The root Secret Service object.

A :class:`Service` owns the bus connection it opened (or borrows the one it
was given) together with a default :class:`~secretproxy.session.Session`.
Everything else (collections, items, secrets) is reached from here::

    with Service.open() as service:
        collection = service.get_collection("default")
        unlocked, locked = service.search_items({"application": "myapp"})
"""

from __future__ import annotations

import logging
import posixpath
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from . import constants
from .bus import BusConnection, Connection
from .collection import Collection
from .config import ClientSettings, load_settings
from .dbus_object import DbusObject, LockableObject
from .errors import (
    DoesNotExistError,
    MissingAttributesError,
    MissingObjectsError,
    MissingPathsError,
    MultiError,
    NoConnectionError,
    SecretServiceError,
    is_no_such_object,
)
from .item import Item
from .prompt import PromptResult, resolve_prompt
from .secret import Secret
from .session import Session
from .utils.logbook import get_logger
from .utils.validation import conn_is_valid, name_from_path, path_is_valid

logger = logging.getLogger(__name__)


class Service(DbusObject):
    """Entry point to the daemon at ``/org/freedesktop/secrets``."""

    interface = constants.SERVICE_INTERFACE

    def __init__(
        self,
        conn: Connection,
        settings: Optional[ClientSettings] = None,
        *,
        owns_connection: bool = False,
    ) -> None:
        conn_is_valid(conn)
        super().__init__(conn, constants.DBUS_PATH)
        self.settings = settings or load_settings()
        self.legacy = self.settings.legacy
        self._owns_connection = owns_connection
        self.session: Optional[Session] = None
        self.session = self.get_session()

    @classmethod
    def open(
        cls,
        conn: Optional[Connection] = None,
        settings: Optional[ClientSettings] = None,
    ) -> "Service":
        """Connect (unless *conn* is given) and open the default session."""

        settings = settings or load_settings()
        owns = conn is None
        if conn is None:
            conn = BusConnection.open(settings.bus, call_timeout=settings.call_timeout)
        try:
            return cls(conn, settings, owns_connection=owns)
        except Exception:
            if owns:
                conn.close()
            raise

    def close(self) -> None:
        """Close the default session and, if this Service opened it, the connection."""

        try:
            if self.session is not None:
                self.session.close()
                self.session = None
        finally:
            if self._owns_connection:
                self.conn.close()

    def __enter__(self) -> "Service":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- sessions -------------------------------------------------------
    def open_session(self, algorithm: str = constants.ALGORITHM_PLAIN, input: str = "") -> Tuple[Session, Any]:
        """Open a new session, returning it with the daemon's algorithm output.

        Only the ``plain`` algorithm is used in practice; a blank algorithm
        means ``plain``.
        """

        if not algorithm.strip():
            algorithm = constants.ALGORITHM_PLAIN
        output, path = self._call("OpenSession", "sv", algorithm, ("s", input))
        session = Session(self, path)
        logger.debug("Opened %s session %s", algorithm, session.path)
        return session, output

    def get_session(self) -> Session:
        session, _ = self.open_session()
        return session

    # -- collections ----------------------------------------------------
    def _prompt(self, path: Optional[str]) -> Optional[PromptResult]:
        return resolve_prompt(
            self.conn,
            path,
            timeout=self.settings.prompt_timeout,
            poll_interval=self.settings.prompt_poll_interval,
        )

    def collections(self) -> List[Collection]:
        """Return every collection known to the daemon.

        Collections that fail to build are collected into a
        :class:`MultiError` raised after the loop; its ``results`` holds the
        collections that were built.
        """

        paths = self._get("Collections", list)
        collections: List[Collection] = []
        errors = MultiError()
        for path in paths:
            try:
                collections.append(Collection(self, path))
            except Exception as exc:
                logger.debug("Could not build collection %s: %s", path, exc)
                errors.add_error(exc)
        if not errors.is_empty():
            errors.results = collections
            raise errors
        return collections

    def create_aliased_collection(self, label: str, alias: str) -> Collection:
        """Create a collection named *label*, reachable as *alias*."""

        properties = {constants.COLLECTION_LABEL: ("s", label)}
        path, prompt_path = self._call("CreateCollection", "a{sv}s", properties, alias)
        result = self._prompt(prompt_path)
        if result is not None:
            path = result.path
        if not path or path == constants.ROOT_PATH:
            raise DoesNotExistError(f"daemon did not return a path for new collection {label!r}")
        collection = Collection(self, path)
        collection.alias = alias
        get_logger().log("COLLECTION", "create", path=str(collection.path), label=label, alias=alias)
        return collection

    def create_collection(self, label: str, alias: str = "") -> Collection:
        return self.create_aliased_collection(label, alias)

    def read_alias(self, alias: str) -> Collection:
        """Return the collection *alias* points at.

        Daemons report an unknown alias either with the root path ``/`` or
        with a ``NoSuchObject`` error; both raise :class:`DoesNotExistError`.
        """

        try:
            (path,) = self._call("ReadAlias", "s", alias)
        except SecretServiceError as exc:
            if is_no_such_object(exc):
                raise DoesNotExistError(f"no collection with alias {alias!r}") from exc
            raise
        if not path or path == constants.ROOT_PATH:
            raise DoesNotExistError(f"no collection with alias {alias!r}")
        collection = Collection(self, path)
        collection.alias = alias
        return collection

    def get_collection(self, name: str) -> Collection:
        """Return a collection by alias, path name or label, in that order.

        Raises :class:`DoesNotExistError` when nothing matches; any errors met
        along the way are chained to it as a :class:`MultiError`.
        """

        try:
            return self.read_alias(name)
        except DoesNotExistError:
            pass

        errors = MultiError()
        try:
            collections = self.collections()
        except MultiError as exc:
            collections = exc.results or []
            for error in exc:
                errors.add_error(error)

        for collection in collections:
            try:
                if name_from_path(collection.path) == name:
                    return collection
            except Exception as exc:
                errors.add_error(exc)

        for collection in collections:
            if collection.label_name == name:
                return collection

        if not errors.is_empty():
            raise DoesNotExistError(f"no collection named {name!r}") from errors
        raise DoesNotExistError(f"no collection named {name!r}")

    def set_alias(self, alias: str, path: str) -> None:
        """Point *alias* at the object at *path*; ``/`` removes the alias."""

        path_is_valid(path)
        self._call("SetAlias", "so", alias, str(path))
        action = "remove-alias" if path == constants.REMOVE_ALIAS_PATH else "set-alias"
        get_logger().log("SERVICE", action, alias=alias, path=str(path))

    def remove_alias(self, alias: str) -> None:
        self.set_alias(alias, constants.REMOVE_ALIAS_PATH)

    # -- items ----------------------------------------------------------
    def search_items(self, attributes: Mapping[str, str]) -> Tuple[List[Item], List[Item]]:
        """Search every collection, returning ``(unlocked, locked)`` items.

        Each item is attached to the collection whose path is the item
        path's parent. Items whose collection cannot be found or that fail to
        build are collected into a :class:`MultiError` raised at the end; its
        ``results`` holds the ``(unlocked, locked)`` lists that were built.
        """

        if not attributes:
            raise MissingAttributesError()
        unlocked_paths, locked_paths = self._call("SearchItems", "a{ss}", dict(attributes))

        errors = MultiError()
        try:
            collection_objs = self.collections()
        except MultiError as exc:
            collection_objs = exc.results or []
            for error in exc:
                errors.add_error(error)
        by_path: Dict[str, Collection] = {}
        for collection in collection_objs:
            by_path.setdefault(str(collection.path), collection)

        def _materialise(paths: Sequence[str], kind: str) -> List[Item]:
            items: List[Item] = []
            for path in paths:
                parent = by_path.get(posixpath.dirname(str(path)))
                if parent is None:
                    errors.add_error(DoesNotExistError(f"could not find matching Collection for {kind} item {path}"))
                    continue
                try:
                    items.append(Item(parent, path))
                except Exception as exc:
                    errors.add_error(exc)
            return items

        unlocked = _materialise(unlocked_paths, "unlocked")
        locked = _materialise(locked_paths, "locked")
        if not errors.is_empty():
            errors.results = (unlocked, locked)
            raise errors
        return unlocked, locked

    def get_secrets(self, *item_paths: str) -> Dict[str, Secret]:
        """Fetch the secrets of several items in one call using the default session.

        If the collection of an item is known, iterating over
        :meth:`Collection.items` and calling :meth:`Item.get_secret` gives
        fully featured objects instead.
        """

        if not item_paths:
            raise MissingPathsError()
        for path in item_paths:
            path_is_valid(path)
        if self.session is None:
            raise NoConnectionError("the default session is closed")
        (results,) = self._call("GetSecrets", "aoo", [str(p) for p in item_paths], self.session.path)
        return {str(path): Secret.from_struct(struct) for path, struct in results.items()}

    # -- locking --------------------------------------------------------
    def _change_lock(self, method: str, objects: Sequence[LockableObject]) -> None:
        if not objects:
            raise MissingObjectsError()
        paths = [str(obj.path) for obj in objects]
        _, prompt_path = self._call(method, "ao", paths)
        self._prompt(prompt_path)
        get_logger().log("SERVICE", method.lower(), paths=paths)
        for obj in objects:
            obj.locked()

    def lock(self, *objects: LockableObject) -> None:
        """Lock collections and/or items, then refresh their cached lock state."""

        self._change_lock("Lock", objects)

    def unlock(self, *objects: LockableObject) -> None:
        """Unlock collections and/or items, prompting if needed, then refresh their lock state."""

        self._change_lock("Unlock", objects)


__all__ = ["Service"]
