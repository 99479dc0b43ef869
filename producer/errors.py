"""Exit-code contract and exception types for the producer assistant."""
from __future__ import annotations

import enum


class ExitCode(enum.IntEnum):
    """Standardised CLI exit codes.

    0: success
    1: user error (bad arguments, invalid input)
    2: configuration missing (no API key)
    3: network / internal error
    """

    SUCCESS = 0
    USER_ERROR = 1
    NOT_CONFIGURED = 2
    INTERNAL_ERROR = 3


class ProducerError(Exception):
    """Base exception for producer errors."""

    def __init__(self, message: str, exit_code: ExitCode = ExitCode.INTERNAL_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code


API_KEY_MISSING_MESSAGE = "api key not set up... please set your openrouter api key."


class ConfigurationError(ProducerError):
    """Raised when the OpenRouter API key has not been set up."""

    def __init__(self, message: str = API_KEY_MISSING_MESSAGE) -> None:
        super().__init__(message, exit_code=ExitCode.NOT_CONFIGURED)


class TransportError(ProducerError):
    """Raised when the provider answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        detail = f"HTTP {status_code}"
        if body:
            detail = f"{detail}: {body}"
        super().__init__(detail)
        self.status_code = status_code
        self.body = body


class ToolRejected(ProducerError):
    """Raised by a tool handler to fail with a message the model should see verbatim."""

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=ExitCode.USER_ERROR)
        self.message = message


class TranscriptError(ProducerError):
    """Raised when an append would break tool-message ordering."""
