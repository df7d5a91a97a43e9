# ─────────────────────────────────────────────────────────────────
# errors.py: Error Taxonomy
#
# Every failure the relay core can report lives here.
# Core modules raise these; only main.py knows how they map to
# HTTP status codes. A caller can tell from `retryable` whether
# sending the same request again might succeed.
# ─────────────────────────────────────────────────────────────────

from typing import Optional


class RelayError(Exception):
    """Base class for every error the relay core raises."""

    retryable = False

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        return {
            "error": self.message,
            "field": self.field,
            "retryable": self.retryable,
        }


class InvalidArgument(RelayError):
    """
    Bad input from the caller: missing device_id, unknown signal,
    malformed force value, non-integer slot.
    Raised BEFORE any mutation, so the store is never half-written.
    """


class NotFound(RelayError):
    """A device that has never been seen was asked for by id."""


class StorageUnavailable(RelayError):
    """The persistence layer is unreachable or did not answer in time."""

    retryable = True


class Conflict(RelayError):
    """
    An optimistic write carried an expected_version that no longer
    matches. The caller should re-read the config and try again.
    """

    retryable = True
