"""Connection and object path checks run before any proxy is built."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from .. import constants
from ..errors import BadPathError, MultiError, NoConnectionError

_PATH_RE = re.compile(r"^/([A-Za-z0-9_]+(/[A-Za-z0-9_]+)*)?$")


class ObjectPath(str):
    """A D-Bus object path."""

    def is_valid(self) -> bool:
        return bool(_PATH_RE.match(self))


@dataclass
class ConnPathCheckResult:
    conn_ok: bool = False
    path_ok: bool = False


def conn_is_valid(conn: Any) -> bool:
    """Return ``True`` for a live connection, raise :class:`NoConnectionError` otherwise.

    A connected bus client always owns at least its unique name, so an empty
    name list means the connection is gone.
    """

    if conn is None:
        raise NoConnectionError()
    try:
        names = conn.names()
    except Exception as exc:
        raise NoConnectionError(f"no valid dbus connection: {exc}") from exc
    if not names:
        raise NoConnectionError()
    return True


def path_is_valid(path: Any) -> bool:
    """Return ``True`` for a usable object path, raise :class:`BadPathError` otherwise.

    *path* may be a plain ``str`` or an :class:`ObjectPath`.
    """

    if not isinstance(path, str):
        raise BadPathError(path)
    if not path.strip():
        raise BadPathError(path)
    if not ObjectPath(path).is_valid():
        raise BadPathError(path)
    return True


def valid_conn_path(conn: Any, path: Any) -> ConnPathCheckResult:
    """Run both checks, reporting every failure at once in a :class:`MultiError`."""

    result = ConnPathCheckResult()
    errors = MultiError()
    try:
        result.conn_ok = conn_is_valid(conn)
    except NoConnectionError as exc:
        errors.add_error(exc)
    try:
        result.path_ok = path_is_valid(path)
    except BadPathError as exc:
        errors.add_error(exc)
    if not errors.is_empty():
        errors.results = result
        raise errors
    return result


def is_prompt(path: Optional[str]) -> bool:
    """Whether *path* names a prompt object that must be completed."""

    return bool(path) and str(path).startswith(constants.PROMPT_PREFIX)


def name_from_path(path: Any) -> str:
    """Return the trailing segment of *path*, i.e. the name D-Bus shows for it."""

    path_is_valid(path)
    name = str(path).rstrip("/").rsplit("/", 1)[-1]
    if not name:
        raise BadPathError(path)
    return name


__all__ = [
    "ConnPathCheckResult",
    "ObjectPath",
    "conn_is_valid",
    "is_prompt",
    "name_from_path",
    "path_is_valid",
    "valid_conn_path",
]
