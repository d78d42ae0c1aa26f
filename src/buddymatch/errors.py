"""Typed error taxonomy for the matching engine."""

from __future__ import annotations


class BuddyMatchError(RuntimeError):
    """Base class for every error raised by the matching engine."""

    code: str = "buddymatch_error"
    status_code: int = 500
    retryable: bool = False


class InvalidCoordinate(BuddyMatchError, ValueError):
    """Raised when a latitude or longitude falls outside its valid range."""

    code = "invalid_coordinate"
    status_code = 422


class MissingLocation(BuddyMatchError):
    """Raised when discovery needs the requester's location and none is set."""

    code = "missing_location"
    status_code = 422

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} has no location set")
        self.user_id = user_id


class InvalidPage(BuddyMatchError, ValueError):
    """Raised for page numbers below 1."""

    code = "invalid_page"
    status_code = 422


class ProfileNotFound(BuddyMatchError):
    code = "profile_not_found"
    status_code = 404

    def __init__(self, user_id: str) -> None:
        super().__init__(f"Profile not found for user {user_id}")
        self.user_id = user_id


class MatchNotFound(BuddyMatchError):
    code = "match_not_found"
    status_code = 404

    def __init__(self, match_id: str) -> None:
        super().__init__(f"Match request not found with ID: {match_id}")
        self.match_id = match_id


class SportNotFound(BuddyMatchError):
    code = "sport_not_found"
    status_code = 404

    def __init__(self, sport_id: str) -> None:
        super().__init__(f"Sport not found with ID: {sport_id}")
        self.sport_id = sport_id


class SportNotPracticed(BuddyMatchError):
    """Raised when a party to a request does not hold the requested sport."""

    code = "sport_not_practiced"
    status_code = 400

    def __init__(self, user_id: str, sport_id: str) -> None:
        super().__init__(f"User {user_id} does not have sport with ID: {sport_id}")
        self.user_id = user_id
        self.sport_id = sport_id


class SelfMatchNotAllowed(BuddyMatchError):
    """Raised when a user sends a match request to themselves."""

    code = "self_match_not_allowed"
    status_code = 400


class DuplicateActiveRequest(BuddyMatchError):
    """Raised when a pending request already exists for the same ordered triple."""

    code = "duplicate_active_request"
    status_code = 409

    def __init__(self, requester_id: str, recipient_id: str, sport_id: str | None) -> None:
        super().__init__(
            f"A pending match request from {requester_id} to {recipient_id} "
            f"already exists for sport {sport_id or 'any'}"
        )
        self.requester_id = requester_id
        self.recipient_id = recipient_id
        self.sport_id = sport_id


class NotAuthorized(BuddyMatchError):
    code = "not_authorized"
    status_code = 403


class InvalidTransition(BuddyMatchError):
    """Raised when a match request is not in the state an operation expects."""

    code = "invalid_transition"
    status_code = 409


class StoreUnavailable(BuddyMatchError):
    """Raised when the backing store fails; callers may retry with backoff."""

    code = "store_unavailable"
    status_code = 503
    retryable = True


__all__ = [
    "BuddyMatchError",
    "DuplicateActiveRequest",
    "InvalidCoordinate",
    "InvalidPage",
    "InvalidTransition",
    "MatchNotFound",
    "MissingLocation",
    "NotAuthorized",
    "ProfileNotFound",
    "SelfMatchNotAllowed",
    "SportNotFound",
    "SportNotPracticed",
    "StoreUnavailable",
]
