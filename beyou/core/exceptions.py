"""
Domain errors raised by services and translated to HTTP responses by the API layer
"""
from typing import Optional


class BeYouError(Exception):
    """Base error; status_code is the HTTP status the API layer responds with"""
    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidInputError(BeYouError):
    status_code = 400


class NotFoundError(BeYouError):
    status_code = 404


class AuthenticationError(BeYouError):
    status_code = 401


class InsufficientStockError(BeYouError):
    """Requested quantity exceeds the stock available at sale time"""
    status_code = 400

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}"
        )
        self.available = available
        self.requested = requested


class UploadSessionConflictError(BeYouError):
    status_code = 409


class UploadAssemblyError(BeYouError):
    """Decoding or persisting a fully received chunked upload failed"""
    status_code = 500


class ImageStorageError(BeYouError):
    status_code = 500
