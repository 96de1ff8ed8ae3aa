"""Custom exception hierarchy for pygpxreplay."""

from __future__ import annotations


class ReplayError(Exception):
    """Base exception for all pygpxreplay errors."""


class ReplayConfigError(ReplayError):
    """Invalid or missing configuration."""


class IngestionError(ReplayError):
    """Route document could not be read or parsed.

    Never escapes the ingestion task; the controller reports it as a
    ``fileError`` status and delivers nothing for that load.
    """

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class TimeParseError(ReplayError):
    """A track point timestamp could not be parsed.

    Non-fatal: the point is still scheduled using the fallback delay.
    """

    def __init__(self, message: str, *, value: str = "") -> None:
        self.value = value
        super().__init__(message)


class SinkDeliveryError(ReplayError):
    """A location sink failed to apply a point (network, non-2xx, ...)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        provider_id: str = "",
    ) -> None:
        self.status_code = status_code
        self.provider_id = provider_id
        super().__init__(message)
