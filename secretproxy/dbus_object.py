"""Shared base for every proxy: a connection plus a target object path."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, Tuple

from .bus import Connection
from .errors import InvalidPropertyError
from .utils.validation import ObjectPath

if TYPE_CHECKING:  # pragma: no cover
    from .service import Service


class DbusObject:
    """A remote object reachable at :attr:`path` through :attr:`conn`.

    The connection is shared by every proxy created from one Service and is
    never owned by an individual proxy.
    """

    interface: str = ""

    def __init__(self, conn: Connection, path: str) -> None:
        self.conn = conn
        self._path = ObjectPath(path)

    @property
    def path(self) -> ObjectPath:
        return self._path

    def _call(self, method: str, signature: str = "", *args: Any) -> Tuple[Any, ...]:
        return self.conn.call(self._path, self.interface, method, signature, *args)

    def _get(self, name: str, expected: Any = None) -> Any:
        value = self.conn.get_property(self._path, self.interface, name)
        if expected is not None and not isinstance(value, expected):
            raise InvalidPropertyError(
                f"{self.interface}.{name} on {self._path} is {type(value).__name__}, "
                f"expected {getattr(expected, '__name__', expected)}"
            )
        return value

    def _set(self, name: str, signature: str, value: Any) -> None:
        self.conn.set_property(self._path, self.interface, name, signature, value)

    def _get_time(self, name: str) -> datetime:
        return from_timestamp(self._get(name, int))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DbusObject):
            return NotImplemented
        return type(self) is type(other) and self._path == other._path

    def __hash__(self) -> int:
        return hash((type(self).__name__, str(self._path)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self._path)!r})"


class LockableObject(DbusObject):
    """Common state of collections and items.

    Both carry a lock flag and created/modified timestamps. The read
    accessors (:meth:`locked`, :meth:`created`, :meth:`modified`) always go
    to the daemon and refresh the cached attributes as a side effect.
    """

    def __init__(self, conn: Connection, path: str) -> None:
        super().__init__(conn, path)
        self.is_locked = True
        self.created_at: Optional[datetime] = None
        self.last_modified: Optional[datetime] = None
        self._last_modified_set = False

    @property
    def service(self) -> "Service":
        raise NotImplementedError

    def locked(self) -> bool:
        """Return whether the object is locked, refreshing :attr:`is_locked`."""

        self.is_locked = bool(self._get("Locked", bool))
        return self.is_locked

    def created(self) -> datetime:
        self.created_at = self._get_time("Created")
        return self.created_at

    def modified(self) -> Tuple[datetime, bool]:
        """Return the daemon's modification time and whether it moved.

        The first call on an instance only seeds :attr:`last_modified` and
        reports ``False``. Later calls report ``True`` when the daemon's value
        is strictly later than :attr:`last_modified`, which then advances.
        The tracked value never moves backwards.
        """

        modified = self._get_time("Modified")
        if not self._last_modified_set or self.last_modified is None:
            self.last_modified = modified
            self._last_modified_set = True
            return modified, False
        changed = modified > self.last_modified
        if changed:
            self.last_modified = modified
        return modified, changed

    def set_create(self) -> None:
        """Refresh the cached creation time after a create call."""

        self.created()

    def set_modify(self) -> None:
        """Refresh the modification high-water mark after a mutating call."""

        self.modified()

    def lock(self) -> None:
        """Lock the object. Does nothing if it is already locked."""

        if self.locked():
            return
        self.service.lock(self)
        self.set_modify()

    def unlock(self) -> None:
        """Unlock the object, prompting if the daemon asks to. Does nothing if already unlocked."""

        if not self.locked():
            return
        self.service.unlock(self)
        self.set_modify()


def from_timestamp(value: int) -> datetime:
    """Convert a UNIX epoch (as the daemon reports it) into an aware UTC datetime."""

    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def to_timestamp(value: datetime) -> int:
    return int(value.timestamp())


__all__ = ["DbusObject", "LockableObject", "from_timestamp", "to_timestamp"]
