"""
Booking engine error taxonomy.

Every error is terminal for the single operation that raised it. The HTTP
layer maps ``status_code`` onto the response; nothing here knows about HTTP
objects.
"""

from typing import Any, Dict, List, Optional


class BookingError(Exception):
    """Base exception for booking engine errors"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


class BookingValidationError(BookingError):
    """Malformed input, rejected before any availability check"""

    status_code = 422


class NotFoundError(BookingError):
    """Referenced entity is missing or belongs to another tenant"""

    status_code = 404


class AuthorizationError(BookingError):
    """Actor lacks the capability for the requested action"""

    status_code = 403


class SlotOccupiedError(BookingError):
    """
    Candidate interval collides with one or more active reservations.

    ``conflicts`` lists the colliding reservations so callers can suggest
    alternatives. ``race_lost`` is set when the collision was only detected
    at insert time (a concurrent booking committed first); retrying once with
    a fresh availability read is safe.
    """

    status_code = 409

    def __init__(self, message: str, conflicts: Optional[List[Dict[str, Any]]] = None, race_lost: bool = False):
        super().__init__(message)
        self.conflicts = conflicts or []
        self.race_lost = race_lost

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "conflicts": self.conflicts, "race_lost": self.race_lost}
