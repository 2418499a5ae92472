class ConversionError(ValueError):
    """Upstream record could not be converted into a domain entity."""


class MissingTrackData(ConversionError):
    """Required nested payload is absent from an upstream record."""

    def __init__(self, field_name: str, message: str = "") -> None:
        super().__init__(message or f"Upstream record is missing required field '{field_name}'")
        self.field_name = field_name


class ReadOnlyStateError(AttributeError):
    """State was mutated through a read handle."""


class RateLimited(Exception):
    """Operation was rate limited by provider. Includes suggested wait time in milliseconds."""

    def __init__(self, retry_after_ms: int, message: str = "Rate limited") -> None:
        super().__init__(message)
        self.retry_after_ms = retry_after_ms


class TemporaryFailure(Exception):
    """Transient provider or network failure. Retrying may succeed."""


class PermanentFailure(Exception):
    """Non-retriable failure due to invalid input or authorization issues."""


class NotFound(Exception):
    """Requested resource was not found."""
