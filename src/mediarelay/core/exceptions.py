"""Error taxonomy shared by the relay service and the transfer client."""

from typing import Any


class UploadError(Exception):
    """Base exception for upload failures.

    Every failure that leaves the relay or the transfer orchestrator is one of
    these subclasses, so callers only ever handle a small set of categories.
    """

    status_code: int = 500
    category: str = "internal"
    user_message: str = "The upload failed because of an unexpected error."

    def __init__(self, message: str | None = None, *, upstream_status: int | None = None):
        self.message = message or self.user_message
        self.upstream_status = upstream_status
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Render the error for an API response body."""
        return {"detail": self.message, "category": self.category}


class ValidationError(UploadError):
    """Raised when request metadata or a chunk is malformed."""

    status_code = 400
    category = "validation"
    user_message = "The upload request was invalid."


class AuthError(UploadError):
    """Raised when the caller or the upstream credential is not authenticated."""

    status_code = 401
    category = "auth"
    user_message = "Your sign-in has expired. Please sign in again and grant upload permission."


class ForbiddenError(UploadError):
    """Raised when the remote host refuses the upload for a non-quota reason."""

    status_code = 403
    category = "forbidden"
    user_message = "Upload permission was not granted. Please sign in again and grant upload access."


class QuotaError(UploadError):
    """Raised when the upstream account-level quota is exhausted."""

    status_code = 403
    category = "quota"
    user_message = "The upload quota has been exceeded. Please try again later."


class NotFoundError(UploadError):
    """Raised when the remote upload session expired or never existed."""

    status_code = 404
    category = "not_found"
    user_message = "The upload session has expired. Please start the upload again."


class RateLimited(UploadError):
    """Raised when the remote host rate-limits the caller."""

    status_code = 429
    category = "rate_limited"
    user_message = "Too many requests. Please wait a few minutes and try again."


class UpstreamUnavailable(UploadError):
    """Raised when the remote host stays unreachable after all retries."""

    status_code = 503
    category = "upstream_unavailable"
    user_message = "The video service is temporarily unavailable. Please try again in a few minutes."


class TransientNetworkError(UploadError):
    """Raised for a retryable failure: no response at all, or a 5xx.

    Never surfaces to callers; retry loops resolve it into
    UpstreamUnavailable once the attempt budget is spent.
    """

    status_code = 503
    category = "transient"
    user_message = "A network error interrupted the upload."


class InternalError(UploadError):
    """Raised for misconfiguration and remote protocol violations."""

    status_code = 500
    category = "internal"


ERROR_CATEGORIES: dict[str, type[UploadError]] = {
    cls.category: cls
    for cls in (
        ValidationError,
        AuthError,
        ForbiddenError,
        QuotaError,
        NotFoundError,
        RateLimited,
        UpstreamUnavailable,
        InternalError,
    )
}
