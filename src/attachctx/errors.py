"""Typed errors for attachctx."""


class AttachctxError(Exception):
    """Base exception for all attachctx errors."""


class BlobNotFoundError(AttachctxError):
    """Raised when a BlobReference cannot be resolved in a BlobStore."""

    def __init__(self, blob_id: str) -> None:
        """Initialize with the missing blob's ID."""
        self.blob_id = blob_id
        super().__init__(f"Blob not found: {blob_id}")


class BlobIntegrityError(AttachctxError):
    """Raised when blob data does not match its expected SHA-256 digest."""

    def __init__(self, blob_id: str, expected: str, actual: str) -> None:
        """Initialize with the blob ID and mismatched digests."""
        self.blob_id = blob_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"Blob integrity check failed for {blob_id}: expected sha256={expected}, got {actual}")


class ResourceNotFoundError(AttachctxError):
    """Raised by store lookups when a resource or its revision does not exist."""

    def __init__(self, resource_id: str) -> None:
        """Initialize with the unresolved resource ID."""
        self.resource_id = resource_id
        super().__init__(f"Resource not found: {resource_id}")


class TransformUnavailableError(AttachctxError):
    """Raised when a representation cannot be produced for a resource."""

    def __init__(self, kind: str, reason: str) -> None:
        """Initialize with the transform kind and a short reason."""
        self.kind = kind
        self.reason = reason
        super().__init__(f"Transform {kind} unavailable: {reason}")


class StreamReadError(AttachctxError):
    """Raised when reading a byte stream fails part-way."""

    def __init__(self, source: str, reason: str) -> None:
        """Initialize with the stream source (blob ID or URL) and a short reason."""
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to read {source}: {reason}")


class EncodingError(AttachctxError):
    """Raised when image bytes cannot be decoded or re-encoded."""

    def __init__(self, mime_type: str, reason: str) -> None:
        """Initialize with the declared MIME type and a short reason."""
        self.mime_type = mime_type
        self.reason = reason
        super().__init__(f"Cannot encode {mime_type} payload: {reason}")


class UploadValidationError(AttachctxError):
    """Raised when an uploaded file is rejected."""


class ConfigurationError(AttachctxError):
    """Raised for invalid configuration values."""

    def __init__(self, key: str, message: str) -> None:
        """Initialize with the offending configuration key."""
        self.key = key
        super().__init__(f"{key}: {message}")
