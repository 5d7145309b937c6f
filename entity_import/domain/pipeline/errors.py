"""
Errors raised by the import pipeline.

The session controller catches these and reports them as transient
notifications; none of them end the session.
"""


class ImportPipelineError(Exception):
    """Base exception for import pipeline operations."""
    pass


class UnsupportedFileType(ImportPipelineError):
    """Raised when a file's MIME type is not accepted for the import subject."""

    def __init__(self, mime_type: str, accepted: tuple, message: str = None):
        self.mime_type = mime_type
        self.accepted = accepted
        self.message = message or f"Unsupported file type '{mime_type}'; expected one of: {', '.join(accepted)}"
        super().__init__(self.message)


class DecodeError(ImportPipelineError):
    """Raised when a JSON file cannot be decoded into an object graph."""
    pass


class RemoteUnavailable(ImportPipelineError):
    """Raised when a remote import operation fails or returns an unusable reply."""

    def __init__(self, operation: str, message: str = None):
        self.operation = operation
        self.message = message or f"Remote operation '{operation}' failed"
        super().__init__(self.message)


class InvalidTransition(ImportPipelineError):
    """Raised when an event is not allowed in the current session state."""
    pass
