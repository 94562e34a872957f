"""Error taxonomy for the diagnosis pipeline."""


class LeafCareError(Exception):
    """Base class for recoverable pipeline errors."""


class PermissionDenied(LeafCareError):
    """Camera access has not been granted."""


class CaptureFailure(LeafCareError):
    """The camera session did not produce a usable frame."""


class IdentificationFailed(LeafCareError):
    """The inference call did not complete."""


class NetworkFailure(IdentificationFailed):
    """No response from the inference service (transport error)."""


class ServiceError(IdentificationFailed):
    """The inference service answered with an error or an unreadable body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class WriteFailure(LeafCareError):
    """The document store rejected or could not complete a write."""


class NotAuthenticated(LeafCareError):
    """No identity is signed in."""
