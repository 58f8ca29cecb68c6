"""Domain exceptions shared by the service layer and the HTTP layer."""


class FeedError(Exception):
    """Base class for all FetchFeed domain errors."""

    status_code = 500


class NotFoundError(FeedError):
    """Raised when a post, comment, user or challenge does not exist."""

    status_code = 404


class ValidationError(FeedError):
    """Raised when a request body or argument is malformed."""

    status_code = 400


class DatabaseUnavailableError(FeedError):
    """Raised when the user/challenge database cannot be reached or written."""

    status_code = 503
