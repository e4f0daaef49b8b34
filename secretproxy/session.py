"""Sessions: the decode context needed to read secrets from items."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from . import constants
from .dbus_object import DbusObject
from .utils.validation import valid_conn_path

if TYPE_CHECKING:  # pragma: no cover
    from .service import Service

logger = logging.getLogger(__name__)


class Session(DbusObject):
    """A session opened with ``OpenSession``.

    You will almost always want :meth:`Service.open_session` or the default
    :attr:`Service.session` rather than building one directly.
    """

    interface = constants.SESSION_INTERFACE

    def __init__(self, service: "Service", path: str) -> None:
        valid_conn_path(service.conn, path)
        super().__init__(service.conn, path)
        self.service = service

    def close(self) -> None:
        """Close the session on the daemon side."""

        self._call("Close")
        logger.debug("Closed session %s", self.path)


__all__ = ["Session"]
