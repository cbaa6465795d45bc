"""Service error hierarchy for generation, transport and persistence.

This module defines the exception hierarchy for engine-level errors:
- IllustrateError: Base for all service errors, carries a canonical ErrorCode
- UnknownModel: Model id not registered (raised before any network call)
- TransportError / ModelError / TransformResponseError: backend failures,
  converted into failed results at the adapter boundary
- DecodeError / StorageError: artifact pipeline and persistence failures
- PollTimeout: submit-then-poll exceeded its attempt budget
- GeneratorError: uncategorized failure, e.g. a success reply without media
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Canonical error codes carried by failed results and jobs."""

    GENERATOR_ERROR = "GENERATOR_ERROR"
    MODEL_ERROR = "MODEL_ERROR"
    TRANSFORM_RESPONSE_ERROR = "TRANSFORM_RESPONSE_ERROR"
    POLL_TIMEOUT = "POLL_TIMEOUT"
    DECODE_ERROR = "DECODE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    UNKNOWN_MODEL = "UNKNOWN_MODEL"
    INVALID_URL = "INVALID_URL"


class IllustrateError(Exception):
    """Base exception for all service errors."""

    code: ErrorCode = ErrorCode.GENERATOR_ERROR


class UnknownModel(IllustrateError):
    """Model id is not in the registry or has no adapter."""

    code = ErrorCode.UNKNOWN_MODEL

    def __init__(self, model_id: str):
        super().__init__(f"Unknown model: {model_id}")
        self.model_id = model_id


class InvalidURL(IllustrateError):
    """A request or download URL could not be built."""

    code = ErrorCode.INVALID_URL


class TransportError(IllustrateError):
    """Network failure, timeout, or a rejected HTTP status.

    Examples:
    - Connection refused / DNS failure
    - Rate limit exceeded (429)
    - Service unavailable (503)
    """

    code = ErrorCode.MODEL_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ModelError(IllustrateError):
    """Backend reported a business error (invalid prompt, quota, moderation)."""

    code = ErrorCode.MODEL_ERROR


class TransformResponseError(IllustrateError):
    """Backend response shape was unrecognized or unparseable."""

    code = ErrorCode.TRANSFORM_RESPONSE_ERROR


class DecodeError(IllustrateError):
    """Generated media was not valid base64."""

    code = ErrorCode.DECODE_ERROR


class StorageError(IllustrateError):
    """Persisting media or records failed."""

    code = ErrorCode.STORAGE_ERROR


class PollTimeout(IllustrateError):
    """Status endpoint never reached a terminal state within the attempt budget."""

    code = ErrorCode.POLL_TIMEOUT

    def __init__(self, attempts: int):
        super().__init__(f"Polling timed out after {attempts} attempts")
        self.attempts = attempts


class GeneratorError(IllustrateError):
    """Uncategorized generation failure."""

    code = ErrorCode.GENERATOR_ERROR
