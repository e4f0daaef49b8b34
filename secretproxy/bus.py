"""Thin adapter over :mod:`jeepney` exposing the calls the proxies need.

The proxies only ever talk to a :class:`BusConnection`: method calls,
property reads/writes, signal subscriptions and the list of names the
connection owns. Tests substitute an in-memory object with the same
surface.
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Tuple

from jeepney import (
    DBusAddress,
    HeaderFields,
    MatchRule,
    MessageType,
    Properties,
    message_bus,
    new_method_call,
)
from jeepney.io.threading import DBusConnection, DBusRouter, Proxy, open_dbus_connection
from jeepney.wrappers import DBusErrorResponse

from . import constants
from .errors import NoConnectionError, error_from_bus

logger = logging.getLogger(__name__)

SIGNAL_BUFFER = 16


@dataclass(frozen=True)
class Signal:
    path: str
    interface: str
    member: str
    body: Tuple[Any, ...]


class SignalStream(Protocol):
    """Buffered stream of signals matching one subscription."""

    closed: bool

    def get(self, timeout: Optional[float] = None) -> Optional[Signal]:
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> "SignalStream":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...


class Connection(Protocol):
    """Surface every proxy relies on."""

    def names(self) -> List[str]:
        ...

    def call(self, path: str, interface: str, method: str, signature: str = "", *args: Any) -> Tuple[Any, ...]:
        ...

    def get_property(self, path: str, interface: str, name: str) -> Any:
        ...

    def set_property(self, path: str, interface: str, name: str, signature: str, value: Any) -> None:
        ...

    def subscribe(self, interface: str, member: str, path: Optional[str] = None) -> SignalStream:
        ...

    def close(self) -> None:
        ...


class SignalSubscription:
    """Signals delivered to one jeepney filter, buffered from creation on."""

    def __init__(self, connection: "BusConnection", rule: MatchRule) -> None:
        self._connection = connection
        self._handle = connection.router.filter(rule, bufsize=SIGNAL_BUFFER)
        self._open = True

    @property
    def closed(self) -> bool:
        return not self._open or self._connection.closed

    def get(self, timeout: Optional[float] = None) -> Optional[Signal]:
        """Return the next signal, or ``None`` if nothing arrived within *timeout*."""

        try:
            message = self._handle.queue.get(timeout=timeout)
        except queue.Empty:
            return None
        header = message.header.fields
        return Signal(
            path=str(header.get(HeaderFields.path, "")),
            interface=str(header.get(HeaderFields.interface, "")),
            member=str(header.get(HeaderFields.member, "")),
            body=tuple(message.body),
        )

    def close(self) -> None:
        if self._open:
            self._open = False
            self._handle.close()

    def __enter__(self) -> "SignalSubscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class BusConnection:
    """A shared, thread-safe connection to the Secret Service daemon."""

    def __init__(
        self,
        router: DBusRouter,
        dbus_conn: Optional[DBusConnection] = None,
        *,
        call_timeout: Optional[float] = None,
    ) -> None:
        self.router = router
        self.dbus_conn = dbus_conn
        self.call_timeout = call_timeout
        self.closed = False

    @classmethod
    def open(cls, bus: str = "SESSION", *, call_timeout: Optional[float] = None) -> "BusConnection":
        """Connect to *bus* and register interest in prompt completion signals."""

        try:
            dbus_conn = open_dbus_connection(bus=bus)
        except (KeyError, OSError, ValueError) as exc:
            # KeyError: DBUS_SESSION_BUS_ADDRESS is unset
            raise NoConnectionError(f"could not connect to the {bus.lower()} bus: {exc}") from exc
        router = DBusRouter(dbus_conn)
        connection = cls(router, dbus_conn, call_timeout=call_timeout)
        rule = MatchRule(
            type="signal",
            interface=constants.PROMPT_INTERFACE,
            member=constants.PROMPT_COMPLETED,
        )
        try:
            Proxy(message_bus, router, timeout=call_timeout).AddMatch(rule)
        except Exception:
            connection.close()
            raise
        logger.debug("Connected to %s bus as %s", bus, router.unique_name)
        return connection

    def service_available(self) -> bool:
        """Whether a Secret Service daemon owns, or can be activated for, its bus name."""

        bus_proxy = Proxy(message_bus, self.router, timeout=self.call_timeout)
        (owned,) = bus_proxy.NameHasOwner(constants.DBUS_SERVICE)
        if owned:
            return True
        (activatable,) = bus_proxy.ListActivatableNames()
        return constants.DBUS_SERVICE in activatable

    def names(self) -> List[str]:
        if self.closed:
            return []
        unique = self.router.unique_name
        return [unique] if unique else []

    def _address(self, path: str, interface: str) -> DBusAddress:
        return DBusAddress(str(path), bus_name=constants.DBUS_SERVICE, interface=interface)

    def _send(self, message) -> Tuple[Any, ...]:
        if self.closed:
            raise NoConnectionError()
        reply = self.router.send_and_get_reply(message, timeout=self.call_timeout)
        if reply.header.message_type == MessageType.error:
            error = DBusErrorResponse(reply)
            detail = error.data[0] if error.data else ""
            raise error_from_bus(error.name, str(detail)) from error
        return tuple(reply.body)

    def call(self, path: str, interface: str, method: str, signature: str = "", *args: Any) -> Tuple[Any, ...]:
        logger.debug("Calling %s.%s on %s", interface, method, path)
        message = new_method_call(self._address(path, interface), method, signature or None, args)
        return self._send(message)

    def get_property(self, path: str, interface: str, name: str) -> Any:
        message = Properties(self._address(path, interface)).get(name)
        # Properties.Get replies with a single variant: (signature, value)
        (variant,) = self._send(message)
        return variant[1]

    def set_property(self, path: str, interface: str, name: str, signature: str, value: Any) -> None:
        logger.debug("Setting %s.%s on %s", interface, name, path)
        message = Properties(self._address(path, interface)).set(name, signature, value)
        self._send(message)

    def subscribe(self, interface: str, member: str, path: Optional[str] = None) -> SignalSubscription:
        """Buffer signals of *interface*.*member*, only those emitted by *path* if given."""

        rule = MatchRule(type="signal", interface=interface, member=member, path=path)
        return SignalSubscription(self, rule)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            try:
                self.router.close()
            finally:
                # closing the router leaves the socket open
                if self.dbus_conn is not None:
                    self.dbus_conn.close()


__all__ = ["BusConnection", "Connection", "Signal", "SignalStream", "SignalSubscription"]
