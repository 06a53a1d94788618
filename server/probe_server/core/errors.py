"""Error taxonomy shared by the core and the HTTP layer."""

from __future__ import annotations


class ValidationError(Exception):
    """An inbound payload that cannot become a Reading."""

    kind = "invalid_format"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingField(ValidationError):
    kind = "missing_field"

    def __init__(self, field_name: str) -> None:
        super().__init__("Required fields: device_id, timestamp")
        self.field_name = field_name


class EmptyPayload(ValidationError):
    kind = "empty_payload"

    def __init__(self) -> None:
        super().__init__("No SSID data found in payload")


class InvalidBody(ValidationError):
    kind = "invalid_body"


class RateLimitExceeded(Exception):
    def __init__(self, source_key: str, max_requests: int, window_ms: int) -> None:
        self.source_key = source_key
        self.max_requests = max_requests
        self.window_ms = window_ms
        per = "minute" if window_ms == 60_000 else f"{int(window_ms) // 1000}s"
        super().__init__(f"Rate limit exceeded. Max {max_requests} requests per {per}.")

    @property
    def retry_after_seconds(self) -> int:
        return max(1, int(self.window_ms) // 1000)


class StorageUnavailable(Exception):
    """The persistence backend could not complete an operation.

    Returned by the probe store as a signal; the request path never sees it
    raised.
    """

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        reason = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown"
        super().__init__(f"storage {operation} failed ({reason})")
