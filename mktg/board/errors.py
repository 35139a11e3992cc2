"""
Error taxonomy for the scheduling surface.

Recoverable errors (MoveFailed, MoveInFlightError, InvalidMoveError) are
handled by the board store or the server and never leave the board view.
InvariantViolation is a programming error and is never caught.
"""
from typing import Optional


class BoardError(Exception):
    """Base class for scheduling surface errors."""
    pass


class InvalidItemError(BoardError):
    """Raised when a feed record or item field is malformed."""
    pass


class InvalidMoveError(BoardError):
    """Raised when a move names an item that is not in its origin container."""
    pass


class MoveInFlightError(BoardError):
    """Raised when an item already has an unconfirmed move pending."""

    def __init__(self, item_id: str):
        super().__init__(f"Item {item_id} already has a move in flight")
        self.item_id = item_id


class PersistError(BoardError):
    """
    Raised by a sync adapter when the backend did not accept a move.

    retryable=True  — network trouble, timeouts, 5xx: trying again may work
    retryable=False — the backend rejected the change outright
    """

    def __init__(self, reason: str, retryable: bool = False, status_code: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.retryable = retryable
        self.status_code = status_code


class MoveFailed(BoardError):
    """A move that was rolled back. The message is safe to show to the user."""

    def __init__(self, item_id: str, message: str, retryable: bool = False):
        super().__init__(message)
        self.item_id = item_id
        self.message = message
        self.retryable = retryable


class InvariantViolation(BoardError):
    """An item sits in two containers, or in none. Fatal."""
    pass
