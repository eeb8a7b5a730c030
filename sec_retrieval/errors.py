"""Exceptions raised by the retrieval layer."""


class SECRetrievalError(Exception):
    """Base class for retrieval errors."""


class NotFoundError(SECRetrievalError):
    """No company matches the given identifier."""


class FetchError(SECRetrievalError):
    """A document could not be downloaded."""


class IndexUnavailableError(SECRetrievalError):
    """A quarterly master index is missing or malformed."""


class RetrievalTimeoutError(SECRetrievalError):
    """The request budget expired before all filings were fetched."""


class GuardrailViolation(SECRetrievalError):
    """
    A request exceeds one of the retrieval caps.

    The message is written for the calling agent: it names the limit that
    was hit and the corrective request to issue next.
    """

    def __init__(self, kind: str, message: str, suggestions: list[dict] | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.suggestions = suggestions or []
