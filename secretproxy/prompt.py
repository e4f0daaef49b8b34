"""Completion of daemon prompts.

Some calls (creating or deleting collections and items, unlocking, ...)
may answer with the path of a prompt object instead of a result. The
client then has to call ``Prompt`` on that object and wait for its
``Completed`` signal, whose payload carries the real result of the original
call, usually the path of the object that was created.

The subscription to ``Completed`` signals is scoped to the prompt path,
opened *before* ``Prompt`` is called and buffers what it sees, so a daemon
that completes immediately cannot slip the signal past us. The wait is
bounded and wakes up every ``poll_interval`` seconds to notice a closed
connection.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from . import constants
from .bus import Connection
from .config import DEFAULT_PROMPT_POLL, DEFAULT_PROMPT_TIMEOUT
from .dbus_object import DbusObject
from .errors import PromptDismissedError, PromptError, PromptTimeoutError
from .utils.logbook import get_logger
from .utils.validation import is_prompt

logger = logging.getLogger(__name__)


class PromptState(Enum):
    ISSUED = "issued"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class PromptResult:
    """Payload of a ``Completed`` signal."""

    dismissed: bool
    signature: str
    value: Any

    @property
    def path(self) -> Optional[str]:
        """The object path carried by the result, if it carries one."""

        if self.signature == "o" and self.value:
            return str(self.value)
        return None


def _unpack_variant(variant: Any) -> Tuple[str, Any]:
    # jeepney represents variants as (signature, value) pairs
    if isinstance(variant, tuple) and len(variant) == 2 and isinstance(variant[0], str):
        return variant[0], variant[1]
    return "", variant


class Prompt(DbusObject):
    """One prompt object, valid for a single ``Prompt`` call."""

    interface = constants.PROMPT_INTERFACE

    def __init__(
        self,
        conn: Connection,
        path: str,
        *,
        timeout: Optional[float] = DEFAULT_PROMPT_TIMEOUT,
        poll_interval: float = DEFAULT_PROMPT_POLL,
    ) -> None:
        super().__init__(conn, path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.state: Optional[PromptState] = None
        self.result: Optional[PromptResult] = None

    def prompt(self, window_id: str = "") -> PromptResult:
        """Issue the prompt and block until the daemon reports completion.

        Raises :class:`PromptTimeoutError` when no matching signal arrives in
        time, :class:`PromptError` when the signal stream closes first and
        :class:`PromptDismissedError` when the user dismissed the prompt.
        Errors from the ``Prompt`` call itself propagate unchanged.
        """

        if self.state is not None:
            raise PromptError(f"prompt {self.path} was already issued")
        events = get_logger()
        with self.conn.subscribe(self.interface, constants.PROMPT_COMPLETED, self.path) as signals:
            self._call("Prompt", "s", window_id)
            self.state = PromptState.ISSUED
            deadline = None if self.timeout is None else time.monotonic() + self.timeout
            while True:
                wait = self.poll_interval
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        events.log("PROMPT", "wait", "timeout", path=str(self.path))
                        raise PromptTimeoutError(
                            f"no completion signal for prompt {self.path} within {self.timeout}s"
                        )
                    wait = min(wait, remaining)
                signal = signals.get(timeout=wait)
                if signal is None:
                    if signals.closed:
                        raise PromptError(f"signal stream closed while waiting for prompt {self.path}")
                    continue
                if signal.path != self.path:
                    logger.debug("Ignoring completion of unrelated prompt %s", signal.path)
                    continue
                break

        dismissed, variant = signal.body[0], signal.body[1]
        signature, value = _unpack_variant(variant)
        self.result = PromptResult(dismissed=bool(dismissed), signature=signature, value=value)
        self.state = PromptState.RESOLVED
        if self.result.dismissed:
            events.log("PROMPT", "wait", "dismissed", path=str(self.path))
            raise PromptDismissedError(f"prompt {self.path} was dismissed")
        events.log("PROMPT", "wait", path=str(self.path))
        return self.result


def resolve_prompt(
    conn: Connection,
    path: Optional[str],
    *,
    timeout: Optional[float] = DEFAULT_PROMPT_TIMEOUT,
    poll_interval: float = DEFAULT_PROMPT_POLL,
) -> Optional[PromptResult]:
    """Run the prompt at *path*, or return ``None`` when *path* is not a prompt."""

    if not is_prompt(path):
        return None
    return Prompt(conn, str(path), timeout=timeout, poll_interval=poll_interval).prompt()


__all__ = ["Prompt", "PromptResult", "PromptState", "resolve_prompt"]
