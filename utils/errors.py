"""Exception hierarchy for the relay."""


class RelayError(Exception):
    """Base exception for all relay errors.

    Keyword arguments are kept in ``context`` so route handlers can echo
    request-scoped details (such as search sources) in error responses.
    """

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.context = context


class ModelUnavailableError(RelayError):
    """Raised when the local model runner is not initialised or unreachable."""


class GenerationError(RelayError):
    """Raised when the model runner fails while generating."""


class SearchUnavailableError(RelayError):
    """Raised by search providers on failure. Always absorbed by the search service."""
