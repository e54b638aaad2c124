"""
Custom exceptions for the FileShare uploader.
Provides specific error types for different failure scenarios.
"""


class FileShareException(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationException(FileShareException):
    """Raised when a selection, path or request header is invalid."""
    pass


class TransferError(FileShareException):
    """Raised when a chunk or final-marker request gets a non-2xx response or the transport fails."""
    pass


class TransferCancelledError(FileShareException):
    """Raised when a request is issued or settles after the task was cancelled."""
    def __init__(self, message: str = "Upload cancelled"):
        super().__init__(message)


class StorageException(FileShareException):
    """Raised when the receiver fails to write or finalize a file."""
    pass


class ForbiddenPathException(FileShareException):
    """Raised when a destination directory or file name tries to leave the upload root."""
    pass
