"""Failure taxonomy for the download pipeline.

Every way a download attempt can end badly is a ``DownloadError``
subclass carrying a human-readable ``reason`` and the HTTP status class
the boundary layer should answer with. The reason is also the error text
written to the download log.
"""

from __future__ import annotations


class DownloadError(Exception):
    status_code: int = 403
    reason: str = "Unknown error when downloading file."

    def __init__(self, reason: str | None = None) -> None:
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)


class MissingToken(DownloadError):
    status_code = 400
    reason = "no download token provided"


class TokenNotFound(DownloadError):
    status_code = 404
    reason = "no data is associated with this token"


class LinkDisabled(DownloadError):
    reason = "link disabled"


class LinkExpired(DownloadError):
    reason = "link expired"


class QuotaExceeded(DownloadError):
    reason = "maximum downloads reached"


class AuthenticationRequired(DownloadError):
    """The link needs an identity and the caller has none.

    Kept apart from ``UserNotAuthorized`` so routes can send the caller
    to a login page instead of answering with a flat denial.
    """

    status_code = 401
    reason = "authentication required"


class UserNotAuthorized(DownloadError):
    reason = "user not authorized"


class AssetMissing(DownloadError):
    reason = "link is missing an associated asset"


class CloudUrlMissing(DownloadError):
    reason = "cloud asset missing public URL"


class ResourceUnreadable(DownloadError):
    status_code = 500
    reason = "the file you are looking for does not exist"


class TransferAborted(DownloadError):
    status_code = 500
    reason = "transfer aborted before completion"


class UnknownFailure(DownloadError):
    pass
