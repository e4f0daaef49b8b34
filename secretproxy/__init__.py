"""Typed access to the freedesktop.org Secret Service over D-Bus.

The object hierarchy mirrors the protocol: a :class:`Service` opens
:class:`Session` objects and exposes :class:`Collection` keyrings, which
hold :class:`Item` entries, each backed by a :class:`Secret`. Operations the
daemon gates behind user confirmation are completed through
:class:`Prompt` objects transparently.
"""

from .bus import BusConnection
from .collection import Collection
from .config import ClientSettings, load_settings
from .constants import DEFAULT_ITEM_TYPE, EXPLICIT_ATTR_EMPTY_VALUE
from .errors import (
    BadPathError,
    BusCallError,
    ConfigError,
    DoesNotExistError,
    InvalidPropertyError,
    MissingAttributesError,
    MissingObjectsError,
    MissingPathsError,
    MultiError,
    NoConnectionError,
    PromptDismissedError,
    PromptError,
    PromptTimeoutError,
    SecretProxyError,
    SecretServiceError,
    SecretServiceErrorCode,
    translate_error,
)
from .item import Item
from .prompt import Prompt, PromptResult, PromptState
from .secret import Secret
from .service import Service
from .session import Session

__version__ = "1.0.0"

__all__ = [
    "BadPathError",
    "BusCallError",
    "BusConnection",
    "ClientSettings",
    "Collection",
    "ConfigError",
    "DEFAULT_ITEM_TYPE",
    "DoesNotExistError",
    "EXPLICIT_ATTR_EMPTY_VALUE",
    "InvalidPropertyError",
    "Item",
    "MissingAttributesError",
    "MissingObjectsError",
    "MissingPathsError",
    "MultiError",
    "NoConnectionError",
    "Prompt",
    "PromptDismissedError",
    "PromptError",
    "PromptResult",
    "PromptState",
    "PromptTimeoutError",
    "Secret",
    "SecretProxyError",
    "SecretServiceError",
    "SecretServiceErrorCode",
    "Service",
    "Session",
    "load_settings",
    "translate_error",
]
