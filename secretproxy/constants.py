"""Fixed identifiers of the freedesktop.org Secret Service D-Bus API."""

from __future__ import annotations

DBUS_SERVICE = "org.freedesktop.secrets"
DBUS_SERVICE_BASE = "org.freedesktop.Secret"

# Interfaces
SERVICE_INTERFACE = DBUS_SERVICE_BASE + ".Service"
SESSION_INTERFACE = DBUS_SERVICE_BASE + ".Session"
COLLECTION_INTERFACE = DBUS_SERVICE_BASE + ".Collection"
ITEM_INTERFACE = DBUS_SERVICE_BASE + ".Item"
PROMPT_INTERFACE = DBUS_SERVICE_BASE + ".Prompt"

# Property names as used in creation property maps
COLLECTION_LABEL = COLLECTION_INTERFACE + ".Label"
COLLECTION_CREATED = COLLECTION_INTERFACE + ".Created"
COLLECTION_MODIFIED = COLLECTION_INTERFACE + ".Modified"

ITEM_LABEL = ITEM_INTERFACE + ".Label"
ITEM_ATTRIBUTES = ITEM_INTERFACE + ".Attributes"
ITEM_TYPE = ITEM_INTERFACE + ".Type"
ITEM_CREATED = ITEM_INTERFACE + ".Created"
ITEM_MODIFIED = ITEM_INTERFACE + ".Modified"

# Signals
PROMPT_COMPLETED = "Completed"

# Paths
DBUS_PATH = "/org/freedesktop/secrets"
PROMPT_PREFIX = DBUS_PATH + "/prompt/"
# Returned by ReadAlias for unknown aliases and by gated calls that need no prompt.
ROOT_PATH = "/"
REMOVE_ALIAS_PATH = ROOT_PATH

# Session algorithms
ALGORITHM_PLAIN = "plain"

# Secret wire struct: (session, parameters, value, content type)
SECRET_SIGNATURE = "(oayays)"
DEFAULT_CONTENT_TYPE = "text/plain"

# libsecret schemas; the generic one is the recommended default.
DEFAULT_ITEM_TYPE = "org.freedesktop.Secret.Generic"
NETWORK_PASSWORD_ITEM_TYPE = "org.gnome.keyring.NetworkPassword"
NOTE_ITEM_TYPE = "org.gnome.keyring.Note"

DEFAULT_COLLECTION_ALIAS = "default"

# Passed to Item.modify_attributes to delete a key. A plain empty string is a
# legitimate attribute value and cannot double as a deletion marker.
EXPLICIT_ATTR_EMPTY_VALUE = "__SECRETPROXY_EMPTY_VALUE_DO_NOT_USE__"

# D-Bus error names
DBUS_UNKNOWN_METHOD = "org.freedesktop.DBus.Error.UnknownMethod"
DBUS_UNKNOWN_OBJECT = "org.freedesktop.DBus.Error.UnknownObject"
DBUS_SERVICE_UNKNOWN = "org.freedesktop.DBus.Error.ServiceUnknown"
ERROR_IS_LOCKED = DBUS_SERVICE_BASE + ".Error.IsLocked"
ERROR_NO_SESSION = DBUS_SERVICE_BASE + ".Error.NoSession"
ERROR_NO_SUCH_OBJECT = DBUS_SERVICE_BASE + ".Error.NoSuchObject"
ERROR_ALREADY_EXISTS = DBUS_SERVICE_BASE + ".Error.AlreadyExists"
ERROR_INVALID_FILE_FORMAT = DBUS_SERVICE_BASE + ".Error.InvalidFileFormat"
ERROR_PROTOCOL = DBUS_SERVICE_BASE + ".Error.Protocol"
