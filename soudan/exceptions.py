"""
Custom Exception Classes for Soudan

Every fault raised while serving a request derives from SoudanError and
carries a short, machine-oriented reason string plus the HTTP status code it
maps to. Faults are split into two severities:

- ClientError (400): the request itself is unacceptable
- UpstreamError (500): the sanitizer, the page fetch or the storage layer failed

No internal detail travels beyond the reason string.
"""

from fastapi import status


class SoudanError(Exception):
    """Base exception class for all request faults"""

    def __init__(self, reason: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        self.reason = reason
        self.status_code = status_code
        super().__init__(self.reason)

    @property
    def is_client_error(self) -> bool:
        return self.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR


class ConfigurationError(Exception):
    """Raised at startup when the service cannot be configured (e.g. no tenant domains)"""


# ============================================================================
# Client Faults
# ============================================================================


class ClientError(SoudanError):
    """Base class for faults caused by the request"""

    def __init__(self, reason: str):
        super().__init__(reason=reason, status_code=status.HTTP_400_BAD_REQUEST)


class MalformedRequestError(ClientError):
    """Raised when the request body cannot be decoded"""

    def __init__(self, reason: str = "invalid request body"):
        super().__init__(reason)


class InvalidFieldError(ClientError):
    """Raised when a comment field fails validation (empty text, bad email)"""

    def __init__(self, reason: str = "invalid comment field(s)"):
        super().__init__(reason)


class BadOriginError(ClientError):
    """Raised when the Origin header is missing, not ASCII, or not a registered tenant"""

    def __init__(self, reason: str = "bad origin"):
        super().__init__(reason)


class OutOfScopeError(ClientError):
    """Raised when the submitted URL lies outside every tenant domain"""

    def __init__(self, reason: str = "url out of scope"):
        super().__init__(reason)


class InvalidUrlError(ClientError):
    """Raised when the target page is unreachable or lacks the content id marker"""

    def __init__(self, reason: str = "url invalid"):
        super().__init__(reason)


class ContentMismatchError(ClientError):
    """Raised when the page's content id disagrees with the submitted one"""

    def __init__(self, reason: str = "content ids don't match"):
        super().__init__(reason)


class InvalidParentError(ClientError):
    """Raised when a reply's parent is missing or is itself a reply"""

    def __init__(self, reason: str = "invalid comment parent"):
        super().__init__(reason)


# ============================================================================
# Upstream Faults
# ============================================================================


class UpstreamError(SoudanError):
    """Base class for faults caused by a collaborator of the pipeline"""

    def __init__(self, reason: str):
        super().__init__(reason=reason, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


class SanitizeError(UpstreamError):
    """Raised when the HTML sanitizer fails"""

    def __init__(self, reason: str = "failed to sanitize request"):
        super().__init__(reason)


class PageFetchError(UpstreamError):
    """Raised when the target page cannot be fetched or parsed"""

    def __init__(self, reason: str = "failed to get page data"):
        super().__init__(reason)


class StorageError(UpstreamError):
    """Raised when a comment store operation fails"""

    def __init__(self, reason: str = "database error"):
        super().__init__(reason)
