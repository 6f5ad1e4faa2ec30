class MatchingError(Exception):
    """Base class for errors raised by the matching engine."""

    status_code = 500

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class NotFoundError(MatchingError):
    """A requester or target id could not be resolved."""

    status_code = 404


class InvalidDecisionError(MatchingError):
    """Self-targeting or an unknown decision type."""

    status_code = 400


class TransientLookupError(MatchingError):
    """One person's data failed to load; callers skip that person and continue."""

    status_code = 503
