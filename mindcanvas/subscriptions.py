"""Scoped signal connections.

The component that connects is the one that disconnects, and it does so
deterministically through ``close()`` or a ``with`` block.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Tuple

logger = logging.getLogger(__name__)


class SignalSubscriptions:
    """Tracks (signal, slot) pairs and disconnects all of them on close."""

    def __init__(self) -> None:
        self._connections: List[Tuple[Any, Callable[..., Any]]] = []
        self._closed = False

    def subscribe(self, signal: Any, slot: Callable[..., Any]) -> None:
        if self._closed:
            raise RuntimeError("subscriptions already closed")
        signal.connect(slot)
        self._connections.append((signal, slot))

    def __len__(self) -> int:
        return len(self._connections)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        while self._connections:
            signal, slot = self._connections.pop()
            try:
                signal.disconnect(slot)
            except (RuntimeError, TypeError) as exc:
                # Sender already destroyed.
                logger.debug("Disconnect skipped: %s", exc)
        self._closed = True

    def __enter__(self) -> "SignalSubscriptions":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
