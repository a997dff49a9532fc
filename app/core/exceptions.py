"""Studio exception hierarchy.

Endpoints map these onto HTTP status codes; the message is what the merchant sees.
"""
from __future__ import annotations


class StudioError(RuntimeError):
    """Base class for every error raised by the studio services."""

    status_code: int = 500


class InputValidationError(StudioError):
    """The request cannot be attempted, e.g. analysis without a product photo."""

    status_code = 400


class SessionNotFoundError(StudioError):
    status_code = 404


class BusyError(StudioError):
    """Another action of the same category is already running for the session."""

    status_code = 409


class GeminiClientError(StudioError):
    """Raised when the Gemini API call fails (transport, HTTP status or provider error)."""

    status_code = 502


class ProviderResponseError(GeminiClientError):
    """The provider answered but the payload is unusable (bad JSON, no image, no video)."""


class VideoJobTimeoutError(StudioError):
    """The video job did not finish within the configured poll attempts."""

    status_code = 504


class VideoJobCancelledError(StudioError):
    status_code = 409


class AssetNotFoundError(StudioError):
    """Unknown upload slot, image index or video id within a session."""

    status_code = 404


class SessionResetError(StudioError):
    """The session was reset while the action was running; its result is discarded."""

    status_code = 409
