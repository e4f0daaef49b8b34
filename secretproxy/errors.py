"""Exceptions raised by secretproxy.

Every exception derives from :class:`SecretProxyError`. Errors coming back
from the daemon are translated into :class:`SecretServiceError` when the
Secret Service defines them and into :class:`BusCallError` otherwise.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Iterable, Iterator, List, Optional

from . import constants


class SecretProxyError(Exception):
    """Base class for every secretproxy failure."""


class NoConnectionError(SecretProxyError):
    """Raised when no usable bus connection is available."""

    def __init__(self, message: str = "no valid dbus connection") -> None:
        super().__init__(message)


class BadPathError(SecretProxyError, ValueError):
    """Raised for empty or malformed object paths."""

    def __init__(self, path: Any = None, message: str = "invalid dbus path") -> None:
        if path is not None:
            message = f"{message}: {path!r}"
        super().__init__(message)
        self.path = path


class InvalidPropertyError(SecretProxyError, TypeError):
    """Raised when a property value does not have the expected type."""


class DoesNotExistError(SecretProxyError, LookupError):
    """Raised when a collection, alias or item cannot be found."""


class MissingAttributesError(SecretProxyError, ValueError):
    """Raised when a search is attempted without attributes."""

    def __init__(self, message: str = "at least one attribute must be given") -> None:
        super().__init__(message)


class MissingPathsError(SecretProxyError, ValueError):
    """Raised when no item paths are passed to a batch secret fetch."""

    def __init__(self, message: str = "at least one item path must be given") -> None:
        super().__init__(message)


class MissingObjectsError(SecretProxyError, ValueError):
    """Raised when lock/unlock is called without any target."""

    def __init__(self, message: str = "at least one lockable object must be given") -> None:
        super().__init__(message)


class PromptError(SecretProxyError):
    """Raised when a prompt could not be completed."""


class PromptDismissedError(PromptError):
    """Raised when the user dismissed the prompt."""


class PromptTimeoutError(PromptError, TimeoutError):
    """Raised when the daemon never signalled prompt completion."""


class ConfigError(SecretProxyError, ValueError):
    """Raised when an environment override cannot be parsed."""


class BusCallError(SecretProxyError):
    """A D-Bus error reply that has no Secret Service translation."""

    def __init__(self, name: str, message: str = "") -> None:
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}" if message else name)


class SecretServiceErrorCode(IntEnum):
    PROTOCOL = 0
    IS_LOCKED = 1
    NO_SUCH_OBJECT = 2
    ALREADY_EXISTS = 3
    INVALID_FILE_FORMAT = 4


class SecretServiceError(SecretProxyError):
    """A translated Secret Service error.

    ``str()`` of the error is the description, which is what should be shown
    to users. ``code`` is ``None`` only for the unknown-error sentinel.
    """

    def __init__(
        self,
        code: Optional[SecretServiceErrorCode],
        name: str,
        description: str,
        bus_message: str = "",
    ) -> None:
        super().__init__(description)
        self.code = code
        self.name = name
        self.description = description
        self.bus_message = bus_message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretServiceError):
            return NotImplemented
        return (self.code, self.name) == (other.code, other.name)

    def __hash__(self) -> int:
        return hash((self.code, self.name))

    def __repr__(self) -> str:
        return f"SecretServiceError(code={self.code!r}, name={self.name!r})"


_DESCRIPTIONS = {
    SecretServiceErrorCode.PROTOCOL: (
        "SECRET_ERROR_PROTOCOL",
        "an invalid message or data was received from SecretService",
    ),
    SecretServiceErrorCode.IS_LOCKED: (
        "SECRET_ERROR_IS_LOCKED",
        "the item/collection is locked; the specified operation cannot be performed",
    ),
    SecretServiceErrorCode.NO_SUCH_OBJECT: (
        "SECRET_ERROR_NO_SUCH_OBJECT",
        "no such item/collection was found in SecretService",
    ),
    SecretServiceErrorCode.ALREADY_EXISTS: (
        "SECRET_ERROR_ALREADY_EXISTS",
        "a relevant item/collection already exists",
    ),
    SecretServiceErrorCode.INVALID_FILE_FORMAT: (
        "SECRET_ERROR_INVALID_FILE_FORMAT",
        "the file/content format is invalid",
    ),
}

UNKNOWN_SECRET_SERVICE_ERROR = SecretServiceError(
    None,
    "SECRET_ERROR_UNKNOWN",
    "cannot find matching SecretService error",
)

_BUS_ERROR_CODES = {
    constants.ERROR_PROTOCOL: SecretServiceErrorCode.PROTOCOL,
    constants.ERROR_IS_LOCKED: SecretServiceErrorCode.IS_LOCKED,
    constants.ERROR_NO_SUCH_OBJECT: SecretServiceErrorCode.NO_SUCH_OBJECT,
    constants.DBUS_UNKNOWN_OBJECT: SecretServiceErrorCode.NO_SUCH_OBJECT,
    constants.DBUS_UNKNOWN_METHOD: SecretServiceErrorCode.NO_SUCH_OBJECT,
    constants.ERROR_ALREADY_EXISTS: SecretServiceErrorCode.ALREADY_EXISTS,
    constants.ERROR_INVALID_FILE_FORMAT: SecretServiceErrorCode.INVALID_FILE_FORMAT,
}


def translate_error(code: Any) -> SecretServiceError:
    """Return the :class:`SecretServiceError` registered for *code*.

    Unrecognised codes yield :data:`UNKNOWN_SECRET_SERVICE_ERROR` instead of
    raising.
    """

    try:
        member = SecretServiceErrorCode(code)
    except (ValueError, TypeError):
        return UNKNOWN_SECRET_SERVICE_ERROR
    name, description = _DESCRIPTIONS[member]
    return SecretServiceError(member, name, description)


def error_from_bus(name: str, message: str = "") -> SecretProxyError:
    """Translate a D-Bus error reply into the matching exception."""

    code = _BUS_ERROR_CODES.get(name)
    if code is None:
        return BusCallError(name, message)
    translated = translate_error(code)
    translated.bus_message = message
    return translated


def is_no_such_object(exc: BaseException) -> bool:
    return (
        isinstance(exc, SecretServiceError)
        and exc.code == SecretServiceErrorCode.NO_SUCH_OBJECT
    )


class MultiError(SecretProxyError):
    """Aggregate of several failures collected during a batch operation.

    Batch calls raise a ``MultiError`` only after finishing the whole batch;
    whatever did succeed is attached as :attr:`results` so callers can carry
    on with the partial result.
    """

    def __init__(
        self,
        errors: Optional[Iterable[BaseException]] = None,
        *,
        separator: str = "\n",
        results: Any = None,
    ) -> None:
        self.errors: List[BaseException] = list(errors or [])
        self.separator = separator
        self.results = results
        super().__init__()

    def add_error(self, error: BaseException) -> None:
        self.errors.append(error)

    def is_empty(self) -> bool:
        return not self.errors

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)

    def __str__(self) -> str:
        return self.separator.join(str(error) for error in self.errors)

    def __repr__(self) -> str:
        return f"MultiError({self.errors!r})"


__all__ = [
    "BadPathError",
    "BusCallError",
    "ConfigError",
    "DoesNotExistError",
    "InvalidPropertyError",
    "MissingAttributesError",
    "MissingObjectsError",
    "MissingPathsError",
    "MultiError",
    "NoConnectionError",
    "PromptDismissedError",
    "PromptError",
    "PromptTimeoutError",
    "SecretProxyError",
    "SecretServiceError",
    "SecretServiceErrorCode",
    "UNKNOWN_SECRET_SERVICE_ERROR",
    "error_from_bus",
    "is_no_such_object",
    "translate_error",
]
