"""Error taxonomy for the scene engine.

None of these are fatal: the Qt-facing slots catch them, log them and turn
them into notices or error signals.
"""

from __future__ import annotations


class SceneError(Exception):
    """Base class for recoverable scene errors."""

    kind = "SceneError"


class NotFound(SceneError):
    """An id is no longer present in the scene."""

    kind = "NotFound"

    def __init__(self, what: str, item_id: str) -> None:
        super().__init__(f"{what} not found: {item_id}")
        self.what = what
        self.item_id = item_id


class CapacityExceeded(SceneError):
    """A control point cap or a node/connection ceiling was reached."""

    kind = "CapacityExceeded"


class InvalidGeometry(SceneError):
    """Degenerate geometry, such as coincident endpoints or a zero size."""

    kind = "InvalidGeometry"


class PersistenceFailure(SceneError):
    """Serialization or storage failed; in-memory state is untouched."""

    kind = "PersistenceFailure"
