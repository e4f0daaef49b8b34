"""Items: single labelled secrets with searchable attributes.

Reading or changing anything but the lock state generally requires the
collection holding the item to be unlocked; see :meth:`Item.unlock`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Mapping, Optional

from . import constants
from .dbus_object import LockableObject
from .errors import InvalidPropertyError, NoConnectionError
from .prompt import resolve_prompt
from .secret import Secret
from .utils.logbook import get_logger
from .utils.validation import path_is_valid, valid_conn_path

if TYPE_CHECKING:  # pragma: no cover
    from .collection import Collection
    from .service import Service
    from .session import Session

logger = logging.getLogger(__name__)


class Item(LockableObject):
    """An entry of a :class:`~secretproxy.collection.Collection`.

    Construction reads every property once to fill the caches
    (:attr:`attrs`, :attr:`label_name`, :attr:`item_type`, :attr:`is_locked`,
    :attr:`created_at`, :attr:`last_modified`). Use
    :meth:`Collection.items`, :meth:`Collection.search_items` or
    :meth:`Service.search_items` to obtain items instead of building them
    directly.
    """

    interface = constants.ITEM_INTERFACE

    def __init__(self, collection: "Collection", path: str) -> None:
        if collection is None:
            raise NoConnectionError()
        valid_conn_path(collection.conn, path)
        super().__init__(collection.conn, path)
        self.collection = collection
        self.attrs: Dict[str, str] = {}
        self.label_name = ""
        self.item_type = ""
        self.secret: Optional[Secret] = None

        self.locked()
        self.attributes()
        self.label()
        if not self.service.legacy:
            self.type()
        self.created()
        self.modified()

    @property
    def service(self) -> "Service":
        return self.collection.service

    # -- properties -----------------------------------------------------
    def attributes(self) -> Dict[str, str]:
        """Return the attribute map, refreshing :attr:`attrs`."""

        raw = self._get("Attributes", dict)
        self.attrs = {str(key): str(value) for key, value in raw.items()}
        return dict(self.attrs)

    def label(self) -> str:
        self.label_name = str(self._get("Label", str))
        return self.label_name

    def type(self) -> str:
        """Return the item type (a libsecret schema name such as ``org.freedesktop.Secret.Generic``)."""

        self.item_type = str(self._get("Type", str))
        return self.item_type

    # -- mutation -------------------------------------------------------
    def replace_attributes(self, attributes: Mapping[str, str]) -> None:
        """Overwrite the whole attribute map with *attributes*."""

        new_attrs = {str(key): str(value) for key, value in attributes.items()}
        self._set("Attributes", "a{ss}", new_attrs)
        self.attrs = new_attrs
        self.set_modify()

    def modify_attributes(self, changes: Mapping[str, str]) -> bool:
        """Merge *changes* into the current attributes.

        For each key of *changes*: keys the item does not have are ignored,
        identical values are left alone, :data:`EXPLICIT_ATTR_EMPTY_VALUE`
        removes the key and any other value overwrites it. The merged map is
        written with :meth:`replace_attributes` only when something actually
        changed. Returns whether a write happened.

        Use ``{"key": EXPLICIT_ATTR_EMPTY_VALUE}`` to delete a key; an empty
        string is stored as an empty string.
        """

        current = self.attributes()
        merged = dict(current)
        changed = False
        for key, value in changes.items():
            if key not in current:
                continue
            if value == current[key]:
                continue
            if value == constants.EXPLICIT_ATTR_EMPTY_VALUE:
                del merged[key]
            else:
                merged[key] = value
            changed = True
        if not changed:
            return False
        self.replace_attributes(merged)
        return True

    def relabel(self, label: str) -> None:
        self._set("Label", "s", label)
        self.label_name = label
        get_logger().log("ITEM", "relabel", path=str(self.path), label=label)
        self.set_modify()

    def change_item_type(self, item_type: str) -> None:
        """Change the item type. Legacy daemons have no type property."""

        if self.service.legacy:
            raise InvalidPropertyError("legacy Secret Service daemons do not support item types")
        self._set("Type", "s", item_type)
        self.item_type = item_type
        self.set_modify()

    # -- secrets --------------------------------------------------------
    def get_secret(self, session: Optional["Session"] = None) -> Secret:
        """Fetch the secret through *session* (the Service's default session if omitted).

        The result is cached on :attr:`secret` and points back at this item.
        """

        session = session or self.service.session
        if session is None:
            raise NoConnectionError("a session is required to read secrets")
        path_is_valid(session.path)
        (struct,) = self._call("GetSecret", "o", session.path)
        secret = Secret.from_struct(struct)
        secret.item = self
        self.secret = secret
        return secret

    def set_secret(self, secret: Secret) -> None:
        path_is_valid(secret.session)
        self._call("SetSecret", constants.SECRET_SIGNATURE, secret.to_struct())
        secret.item = self
        self.secret = secret
        get_logger().log("ITEM", "set-secret", path=str(self.path), content_type=secret.content_type)
        self.set_modify()

    # -- lifecycle ------------------------------------------------------
    def delete(self) -> None:
        """Delete the item, completing a prompt if the daemon asks for one."""

        (prompt_path,) = self._call("Delete")
        settings = self.service.settings
        resolve_prompt(
            self.conn,
            prompt_path,
            timeout=settings.prompt_timeout,
            poll_interval=settings.prompt_poll_interval,
        )
        self.secret = None
        logger.debug("Deleted item %s", self.path)
        get_logger().log("ITEM", "delete", path=str(self.path))


__all__ = ["Item"]
