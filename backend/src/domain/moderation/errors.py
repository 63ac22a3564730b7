"""Error taxonomy for moderation operations.

Every error carries a machine-readable ``kind``, a human message and a
``context`` dict with the state needed to render a precise message to the
user (for example the file's current status on a conflict).
"""

from typing import Any, Dict, Optional


class ModerationError(Exception):
    """Base class for all moderation failures."""

    kind = "moderation_error"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
            "context": self.context,
        }


class NotFoundError(ModerationError):
    """Target entity does not exist."""
    kind = "not_found"


class ForbiddenError(ModerationError):
    """Access policy denied the request."""
    kind = "forbidden"


class ConflictError(ModerationError):
    """Requested transition is illegal for the entity's current state."""
    kind = "conflict"


class ValidationError(ModerationError):
    """Malformed input such as an oversized remark or unknown role."""
    kind = "validation_error"


class StorageError(ModerationError):
    """Underlying persistence failed; the unit of work was rolled back."""
    kind = "storage_error"
