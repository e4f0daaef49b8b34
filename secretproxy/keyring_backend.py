"""A :mod:`keyring` backend storing passwords through secretproxy.

Passwords become items of the collection behind the ``default`` alias,
identified by their ``service`` and ``username`` attributes::

    import keyring
    from secretproxy.keyring_backend import SecretProxyKeyring

    keyring.set_keyring(SecretProxyKeyring())
    keyring.set_password("example.com", "alice", "hunter2")
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

import keyring.backend
from keyring.compat import properties
from keyring.errors import PasswordDeleteError

from . import constants
from .bus import BusConnection
from .collection import Collection
from .config import load_settings
from .errors import NoConnectionError
from .item import Item
from .secret import Secret
from .service import Service

logger = logging.getLogger(__name__)


class SecretProxyKeyring(keyring.backend.KeyringBackend):
    """Keyring backend talking to the Secret Service daemon."""

    appid = "secretproxy"

    @properties.classproperty
    def priority(cls) -> float:
        """Rank below the stock SecretService backend; unusable without a daemon.

        Raises :class:`RuntimeError` when the bus cannot be reached or no
        Secret Service daemon is running or activatable on it, which makes
        :mod:`keyring` skip this backend.
        """

        settings = load_settings()
        try:
            connection = BusConnection.open(settings.bus, call_timeout=settings.call_timeout)
        except NoConnectionError as exc:
            raise RuntimeError(str(exc)) from exc
        try:
            if not connection.service_available():
                raise RuntimeError(f"no {constants.DBUS_SERVICE} daemon on the {settings.bus.lower()} bus")
        finally:
            connection.close()
        return 1

    def __init__(
        self,
        service: Optional[Service] = None,
        collection_name: str = constants.DEFAULT_COLLECTION_ALIAS,
    ) -> None:
        super().__init__()
        self._service = service
        self.collection_name = collection_name

    # -- internal utilities -------------------------------------------------
    def _get_service(self) -> Service:
        if self._service is None:
            self._service = Service.open()
        return self._service

    def _collection(self) -> Collection:
        collection = self._get_service().get_collection(self.collection_name)
        if collection.locked():
            collection.unlock()
        return collection

    def _attributes(self, service: str, username: str) -> Dict[str, str]:
        return {"application": self.appid, "service": service, "username": username}

    def _find(self, service: str, username: str) -> Optional[Item]:
        items = self._collection().search_items(self._attributes(service, username))
        if not items:
            return None
        return items[0]

    # -- public API ---------------------------------------------------------
    def get_password(self, service: str, username: str) -> Optional[str]:
        item = self._find(service, username)
        if item is None:
            return None
        return item.get_secret().text()

    def set_password(self, service: str, username: str, password: str) -> None:
        collection = self._collection()
        session = self._get_service().session
        secret = Secret.new(session, password)
        collection.create_item(
            f"Password for '{username}' on '{service}'",
            self._attributes(service, username),
            secret,
            replace=True,
        )
        logger.debug("Stored password for %s/%s", service, username)

    def delete_password(self, service: str, username: str) -> None:
        item = self._find(service, username)
        if item is None:
            raise PasswordDeleteError("Password not found")
        item.delete()


__all__ = ["SecretProxyKeyring"]
