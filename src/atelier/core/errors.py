"""Error taxonomy shared by the Gallery API and the Credential Vault.

Every error carries the HTTP status it maps to and a message that is safe to
show to the caller.  Provider and CMS details are logged server-side and never
copied into these messages.
"""

from __future__ import annotations


class AtelierError(Exception):
    """Base class for all caller-visible failures."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(AtelierError):
    """The request is malformed and can be corrected by the caller."""

    status_code = 400


class RateLimited(AtelierError):
    """The caller exceeded its request budget for the current window.

    Attributes:
        retry_after: Whole seconds until the caller's window resets.
    """

    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__(f"Too many requests, retry in {retry_after} seconds")
        self.retry_after = retry_after


class UpstreamUnavailable(AtelierError):
    """The vault, provider or CMS could not be reached or is not configured."""

    status_code = 503


class UpstreamRejected(AtelierError):
    """The provider or CMS answered with an error."""

    status_code = 500


class StorageFailure(AtelierError):
    """A local read or write failed."""

    status_code = 500
