"""Utility helpers exposed by secretproxy."""

from .logbook import EventLogger, get_logger
from .validation import (
    ConnPathCheckResult,
    ObjectPath,
    conn_is_valid,
    is_prompt,
    name_from_path,
    path_is_valid,
    valid_conn_path,
)

__all__ = [
    "ConnPathCheckResult",
    "EventLogger",
    "ObjectPath",
    "conn_is_valid",
    "get_logger",
    "is_prompt",
    "name_from_path",
    "path_is_valid",
    "valid_conn_path",
]
