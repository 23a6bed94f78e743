"""
Custom exceptions for the amo-submit application.

This module defines the error taxonomy used by the transport, the pollers and the
submission workflows, so the CLI can report a failure with enough context (status
text, response body or validation report URL) to investigate it.
"""

from typing import Any, Optional


class AmoSubmitError(Exception):
    """
    Base exception for all amo-submit errors.

    All custom exceptions should inherit from this class so callers can catch
    every application-specific failure at once.
    """

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(AmoSubmitError):
    """Exception raised when configuration is invalid or missing."""

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when a required setting is missing or invalid."""

    pass


# =============================================================================
# API Errors
# =============================================================================


class APIError(AmoSubmitError):
    """
    Exception raised for errors reported by, or about, the review service API.

    Attributes:
        endpoint: The URL that was being accessed.
        status_code: The HTTP status code returned, when there was one.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class TransportFailure(APIError):
    """Exception raised when a response status is outside the usable range."""

    pass


class ServiceUnavailable(TransportFailure):
    """Exception raised for responses with a status below 100 or of 500 and above."""

    pass


class BadRequest(APIError):
    """
    Exception raised when the API rejects a request with a 4xx status.

    Attributes:
        body: The parsed response body describing the problem.
    """

    def __init__(
        self,
        message: str = "Bad Request",
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Any = None,
    ) -> None:
        super().__init__(
            message,
            endpoint=endpoint,
            status_code=status_code,
            details=str(body) if body is not None else None,
        )
        self.body = body


class MalformedResponse(APIError):
    """
    Exception raised when a response lacks a field a later stage depends on.

    Attributes:
        body: The raw response body, kept for diagnostics.
    """

    def __init__(
        self,
        message: str,
        body: Any = None,
        endpoint: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            endpoint=endpoint,
            details=repr(body) if body is not None else None,
        )
        self.body = body


class DetailFetchError(APIError):
    """Exception raised when fetching a detail record during polling fails."""

    pass


class DownloadFailed(APIError):
    """Exception raised when the signed package cannot be downloaded."""

    pass


# =============================================================================
# Submission Errors
# =============================================================================


class SubmissionError(AmoSubmitError):
    """Base exception for failures of the review process itself."""

    pass


class ValidationFailed(SubmissionError):
    """
    Exception raised when the service marks an uploaded package invalid.

    Attributes:
        report_url: Service URL of the upload, where the validation report can be inspected.
    """

    def __init__(self, report_url: Optional[str], message: str = "Validation failed") -> None:
        super().__init__(message, details=report_url)
        self.report_url = report_url


class PollTimeout(SubmissionError):
    """
    Exception raised when a poller gives up waiting.

    Attributes:
        url: The detail URL that was being polled.
        timeout: The configured timeout in seconds.
        attempts: Number of polls issued before giving up.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        attempts: int = 0,
    ) -> None:
        details = None
        if url is not None:
            details = f"{url} after {timeout}s and {attempts} checks"
        super().__init__(message, details)
        self.url = url
        self.timeout = timeout
        self.attempts = attempts


class ValidationTimeout(PollTimeout):
    """Exception raised when validation does not finish in time."""

    def __init__(self, message: str = "Validation Timeout.", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ApprovalTimeout(PollTimeout):
    """Exception raised when the file is not approved in time."""

    def __init__(self, message: str = "Approval Timeout.", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


# =============================================================================
# File System Errors
# =============================================================================


class FileSystemError(AmoSubmitError):
    """
    Exception raised for local file errors (missing package, unwritable download dir).

    Attributes:
        path: The file path that caused the error.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path
