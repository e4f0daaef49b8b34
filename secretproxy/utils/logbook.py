"""Structured event log for state-changing Secret Service calls.

Every create/delete/lock/unlock/relabel/alias call leaves one line on the
``secretproxy.events`` logger. Nothing is written to disk unless
:env:`SECRETPROXY_LOG_PATH` is set, in which case a rotating file handler is
attached. Secret values never reach this log.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import log_path

__all__ = ["EventLogger", "get_logger"]


class EventLogger:
    """Emit ``<timestamp> | [CATEGORY] {json}`` lines for client actions."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self._logger = logging.getLogger("secretproxy.events")
        self._drop_stale_handlers(path)
        if path is not None and not self._has_file_handler(path):
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                path,
                maxBytes=2_000_000,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(file_handler)
            self._logger.setLevel(logging.INFO)

    def _drop_stale_handlers(self, path: Optional[Path]) -> None:
        # one file sink at a time; the path follows SECRETPROXY_LOG_PATH
        for handler in list(self._logger.handlers):
            if isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename) != path:
                self._logger.removeHandler(handler)
                handler.close()

    def _has_file_handler(self, path: Path) -> bool:
        for handler in self._logger.handlers:
            if isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename) == path:
                return True
        return False

    def log(self, category: str, action: str, status: str = "success", **fields: Any) -> None:
        """Record an event.

        Parameters
        ----------
        category:
            Entity the action applied to (``"SERVICE"``, ``"COLLECTION"``,
            ``"ITEM"``, ``"PROMPT"``).
        action:
            Short verb describing what happened.
        status:
            ``"success"``, ``"failure"``, ``"dismissed"`` etc.
        **fields:
            Additional context such as object paths or labels.
        """

        timestamp = datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()
        payload: Dict[str, Any] = {"action": action, "status": status, **fields}
        serialized = json.dumps(payload, sort_keys=True, default=str)
        self._logger.info("%s | [%s] %s", timestamp, category.upper(), serialized)


_shared_logger: Optional[EventLogger] = None


def get_logger() -> EventLogger:
    global _shared_logger
    path = log_path()
    if _shared_logger is None or _shared_logger.path != path:
        _shared_logger = EventLogger(path)
    return _shared_logger
