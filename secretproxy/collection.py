"""Collections (keyrings) and the items they contain."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Iterable, List, Mapping

from . import constants
from .dbus_object import LockableObject
from .errors import DoesNotExistError, MultiError, NoConnectionError
from .item import Item
from .prompt import resolve_prompt
from .secret import Secret
from .utils.logbook import get_logger
from .utils.validation import path_is_valid, valid_conn_path

if TYPE_CHECKING:  # pragma: no cover
    from .service import Service

logger = logging.getLogger(__name__)


class Collection(LockableObject):
    """A keyring holding :class:`~secretproxy.item.Item` objects.

    Construction reads the lock state, label, creation time and modification
    time, so :attr:`is_locked`, :attr:`label_name`, :attr:`created_at` and
    :attr:`last_modified` are populated as soon as the object exists. Use
    :meth:`Service.get_collection` or :meth:`Service.collections` rather
    than building one directly.
    """

    interface = constants.COLLECTION_INTERFACE

    def __init__(self, service: "Service", path: str) -> None:
        if service is None:
            raise NoConnectionError()
        valid_conn_path(service.conn, path)
        super().__init__(service.conn, path)
        self._service = service
        self.label_name = ""
        self.alias = ""

        self.locked()
        self.label()
        self.created()
        self.modified()

    @property
    def service(self) -> "Service":
        return self._service

    def label(self) -> str:
        """Return the collection label, refreshing :attr:`label_name`."""

        self.label_name = str(self._get("Label", str))
        return self.label_name

    def _build_items(self, paths: Iterable[str]) -> List[Item]:
        items: List[Item] = []
        errors = MultiError()
        for path in paths:
            try:
                items.append(Item(self, path))
            except Exception as exc:
                logger.debug("Could not build item %s: %s", path, exc)
                errors.add_error(exc)
        if not errors.is_empty():
            errors.results = items
            raise errors
        return items

    def items(self) -> List[Item]:
        """Return every item of the collection.

        Items that fail to build are collected into a :class:`MultiError`
        raised after the loop; its ``results`` holds the items that were
        built.
        """

        return self._build_items(self._get("Items", list))

    def search_items(self, attributes: Mapping[str, str]) -> List[Item]:
        """Return the items of this collection matching every pair in *attributes*.

        Errors are aggregated as for :meth:`items`.
        """

        (paths,) = self._call("SearchItems", "a{ss}", dict(attributes))
        return self._build_items(paths)

    def create_item(
        self,
        label: str,
        attributes: Mapping[str, str],
        secret: Secret,
        replace: bool = False,
        item_type: str = constants.DEFAULT_ITEM_TYPE,
    ) -> Item:
        """Create an item holding *secret* and return it.

        When *replace* is true an existing item with the same attributes is
        overwritten instead of duplicated. *item_type* is ignored on legacy
        daemons, which have no type property. Common types besides the
        default are ``org.gnome.keyring.NetworkPassword`` and
        ``org.gnome.keyring.Note``.

        The daemon owns the Created and Modified properties, so the new
        item's cached timestamps are re-read from it rather than stamped
        locally.
        """

        path_is_valid(secret.session)
        properties = {
            constants.ITEM_LABEL: ("s", label),
            constants.ITEM_ATTRIBUTES: ("a{ss}", {str(k): str(v) for k, v in attributes.items()}),
            constants.ITEM_CREATED: ("t", int(time.time())),
        }
        if not self.service.legacy:
            properties[constants.ITEM_TYPE] = ("s", item_type)

        path, prompt_path = self._call(
            "CreateItem",
            "a{sv}" + constants.SECRET_SIGNATURE + "b",
            properties,
            secret.to_struct(),
            bool(replace),
        )
        result = resolve_prompt(
            self.conn,
            prompt_path,
            timeout=self.service.settings.prompt_timeout,
            poll_interval=self.service.settings.prompt_poll_interval,
        )
        if result is not None:
            path = result.path
        if not path or path == constants.ROOT_PATH:
            raise DoesNotExistError(f"daemon did not return a path for new item {label!r}")

        item = Item(self, path)
        item.set_create()
        item.set_modify()
        get_logger().log("ITEM", "create", path=str(item.path), collection=str(self.path), label=label)
        return item

    def delete(self) -> None:
        """Delete the collection.

        Items still in the collection are not detached from the daemon's
        in-memory structures until it restarts; delete them first with
        :meth:`Item.delete` if that matters. Item proxies obtained from this
        collection are dangling afterwards.
        """

        (prompt_path,) = self._call("Delete")
        resolve_prompt(
            self.conn,
            prompt_path,
            timeout=self.service.settings.prompt_timeout,
            poll_interval=self.service.settings.prompt_poll_interval,
        )
        logger.debug("Deleted collection %s", self.path)
        get_logger().log("COLLECTION", "delete", path=str(self.path), label=self.label_name)

    def relabel(self, label: str) -> None:
        self._set("Label", "s", label)
        self.label_name = label
        get_logger().log("COLLECTION", "relabel", path=str(self.path), label=label)
        self.set_modify()

    def set_alias(self, alias: str) -> None:
        """Point *alias* at this collection."""

        self.service.set_alias(alias, self.path)
        self.alias = alias
        self.set_modify()


__all__ = ["Collection"]
