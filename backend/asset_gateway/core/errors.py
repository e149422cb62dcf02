from fastapi import status


class GatewayError(Exception):
    """Base error for the asset gateway; carries a client-safe message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class MissingParameter(GatewayError):
    """Raised when a required key or field is absent."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidKey(GatewayError):
    """Raised when a resolved object key escapes the bucket namespace."""

    status_code = status.HTTP_400_BAD_REQUEST


class ObjectNotFound(GatewayError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, key: str, reason: str, *, code: str | None = None) -> None:
        super().__init__(f"Object not found: {reason}", code=code)
        self.key = key
        self.reason = reason


class BackingStoreError(GatewayError):
    """Transient or permission failure talking to the object store."""


class SigningFailure(GatewayError):
    """Raised when a signed URL cannot be computed."""


class UploadFailure(GatewayError):
    """Raised when writing an object to the store fails."""


class UploadTooLarge(GatewayError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE


class AuthenticationRequired(GatewayError):
    status_code = status.HTTP_401_UNAUTHORIZED
