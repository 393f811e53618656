"""Error taxonomy for the image DB pipelines"""

from typing import Optional


class ImageDBError(Exception):
    """Base class for pipeline errors; carries a machine-readable error code."""

    error_code = "E_INTERNAL"

    def __init__(self, message: str, *, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class NoFileError(ImageDBError):
    """Upload payload is missing or empty"""

    error_code = "E_NO_FILE"


class PayloadTooLargeError(ImageDBError):
    """Upload payload exceeds the configured byte limit"""

    error_code = "E_TOO_LARGE"


class InvalidIdError(ImageDBError):
    """Delete target id is missing or blank"""

    error_code = "E_INVALID_ID"


class NotFoundError(ImageDBError):
    """Registry answered 404 for the requested record"""

    error_code = "E_NOT_FOUND"


class RegistrationError(ImageDBError):
    """Registry did not confirm creation of a metadata record"""

    error_code = "E_REGISTRATION_FAILED"


class TransportError(ImageDBError):
    """Network or HTTP-level failure talking to the registry"""

    error_code = "E_TRANSPORT"


class StorageError(ImageDBError):
    """Filesystem failure while saving, listing or deleting assets"""

    error_code = "E_STORAGE"


class LocalCleanupError(StorageError):
    """Local files could not be removed after the registry cascade ran"""

    error_code = "E_LOCAL_CLEANUP"
