class CreaseError(Exception):
    """Base exception for settlement errors."""

    pass


class NotFoundError(CreaseError):
    """Referenced match, bet or fancy market does not exist."""

    pass


class AlreadySettledError(CreaseError):
    """Settlement requested for a match or market that is already settled."""

    pass


class LedgerIntegrityError(CreaseError):
    """Balance mutation and ledger write could not both be applied."""

    pass


class ResultSourceError(CreaseError):
    """Base exception for external result source failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ResultSourceRateLimitError(ResultSourceError):
    """Rate limit exceeded."""

    pass


class InvalidResultError(CreaseError):
    """Declared result does not fit the match or market."""

    pass
