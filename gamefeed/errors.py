"""
Domain errors raised by the core services.

Routers never build HTTP errors for these themselves; `main.py` maps each
class to a status code through a single exception handler.
"""


class GameFeedError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GameFeedError):
    status_code = 400


class ForbiddenError(GameFeedError):
    status_code = 403


class NotFoundError(GameFeedError):
    status_code = 404


class ConflictError(GameFeedError):
    status_code = 409


class ConsistencyError(GameFeedError):
    """The rating aggregate could not be written with its triggering change."""

    status_code = 500


class PartialDataError(GameFeedError):
    """An activity source missed its deadline; the feed carries on without it."""

    status_code = 503

    def __init__(self, source: str, message: str) -> None:
        super().__init__(message)
        self.source = source


# ── Follow graph outcomes ─────────────────────────────────────────────────

class SelfFollowError(ValidationError):
    pass


class AlreadyFollowingError(ConflictError):
    pass


class NotFollowingError(ConflictError):
    pass


class TargetNotFoundError(NotFoundError):
    pass
