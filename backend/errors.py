class HealthTrackError(Exception):
    """Base class for errors raised by the scheduling, lifecycle and analytics core."""


class NotFound(HealthTrackError):
    """Session or plan is absent or not owned by the caller.

    Both cases raise the same error so callers cannot probe for records
    belonging to someone else.
    """

    def __init__(self, what: str = "Resource"):
        super().__init__(f"{what} not found")
        self.what = what


class InvalidState(HealthTrackError):
    """A status change the session lifecycle does not allow."""

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move a {current} session to {requested}")
        self.current = current
        self.requested = requested


class DuplicateSession(HealthTrackError):
    """The store already holds a session for this (user, date)."""


class RetrievalError(HealthTrackError):
    """Reading history for analytics failed upstream."""


class InvalidInput(HealthTrackError):
    """Request fields the core cannot act on (e.g. a new session without a name)."""
