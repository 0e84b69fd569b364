"""
Error taxonomy for QuranIQ.
Each error carries the HTTP status the API answers with.
"""


class QuranIQError(Exception):
    """Base class for all application errors."""

    status_code = 500
    public_message = None

    def __init__(self, message: str = ""):
        super().__init__(message or self.public_message or self.__class__.__name__)
        self.message = message or self.public_message or self.__class__.__name__

    def client_message(self) -> str:
        """Message that is safe to return to an end user."""
        return self.public_message or self.message


class ValidationError(QuranIQError):
    """Missing or malformed input."""
    status_code = 400


class Unauthorized(QuranIQError):
    """Missing, invalid or expired credential."""
    status_code = 401


class NotFound(QuranIQError):
    status_code = 404


class Conflict(QuranIQError):
    """Duplicate registration."""
    status_code = 409


class RateLimited(QuranIQError):
    status_code = 429
    public_message = "AI service is currently busy. Please try again in a moment."


class UpstreamFailure(QuranIQError):
    """Provider availability problem. Details are for operators only."""
    status_code = 500
    public_message = "Failed to generate response. Please try again."


class UpstreamAuthFailure(UpstreamFailure):
    """Provider rejected our credentials. Not retryable."""


class ConnectionFailure(QuranIQError):
    """Upstream call timed out or could not connect."""
    status_code = 503
    public_message = "Connection issue detected. Please check your internet and try again."


class EmptyOutput(QuranIQError):
    """Provider returned a blank answer."""
    status_code = 502
    public_message = "The AI service returned an empty answer."
