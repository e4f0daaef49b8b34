"""The secret payload exchanged with the daemon."""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Sequence, Tuple, Union

from . import constants
from .errors import InvalidPropertyError

if TYPE_CHECKING:  # pragma: no cover
    from .item import Item
    from .session import Session


@dataclass
class Secret:
    """Value bytes plus the context needed to interpret them.

    Under the ``plain`` algorithm :attr:`parameters` is empty and
    :attr:`value` is the cleartext. The item a secret was fetched through is
    kept as a weak reference; the :class:`~secretproxy.item.Item` holds the
    strong one.
    """

    session: str
    value: bytes
    content_type: str = constants.DEFAULT_CONTENT_TYPE
    parameters: bytes = b""
    _item_ref: Optional["weakref.ReferenceType[Item]"] = field(
        default=None, init=False, repr=False, compare=False
    )

    @classmethod
    def new(
        cls,
        session: "Session",
        value: Union[bytes, str],
        content_type: str = constants.DEFAULT_CONTENT_TYPE,
        parameters: bytes = b"",
    ) -> "Secret":
        """Build a secret bound to *session*; ``str`` values are UTF-8 encoded."""

        if isinstance(value, str):
            value = value.encode("utf-8")
        elif not isinstance(value, (bytes, bytearray)):
            raise TypeError("secret value must be bytes or str")
        return cls(
            session=str(session.path),
            value=bytes(value),
            content_type=content_type,
            parameters=bytes(parameters),
        )

    @classmethod
    def from_struct(cls, struct: Sequence[Any]) -> "Secret":
        """Build a secret from the ``(oayays)`` wire struct."""

        try:
            session, parameters, value, content_type = struct
        except (TypeError, ValueError) as exc:
            raise InvalidPropertyError(f"malformed secret struct: {struct!r}") from exc
        return cls(
            session=str(session),
            value=bytes(value),
            content_type=str(content_type),
            parameters=bytes(parameters),
        )

    def to_struct(self) -> Tuple[str, bytes, bytes, str]:
        return (self.session, self.parameters, self.value, self.content_type)

    @property
    def item(self) -> Optional["Item"]:
        if self._item_ref is None:
            return None
        return self._item_ref()

    @item.setter
    def item(self, item: Optional["Item"]) -> None:
        self._item_ref = weakref.ref(item) if item is not None else None

    def text(self, encoding: str = "utf-8") -> str:
        return self.value.decode(encoding)


__all__ = ["Secret"]
