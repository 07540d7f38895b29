"""
Custom Exceptions
=================

Unified exception hierarchy for the storyboard pipeline.

Per-scene generation failures are never raised past the scene generator;
they are recorded on the scene result. Everything here is raised either
before any external call (validation) or once generation is over and no
recovery path exists (total failure, assembly).
"""

from typing import Optional, Dict, Any


class StoryboardError(Exception):
    """Root of the hierarchy for everything the pipeline raises."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for logs and JSON output."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ConfigurationError(StoryboardError):
    """A configuration file or value is missing or out of range."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type
        super().__init__(message, details=details, **kwargs)


class ValidationError(StoryboardError):
    """Input validation errors, raised before any external call is made."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]
        if constraint:
            details["constraint"] = constraint
        super().__init__(message, details=details, **kwargs)


class ProviderError(StoryboardError):
    """The video service returned an error or could not be reached."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider
        if status_code:
            details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body[:500]

        # Throttling and server-side errors are worth another attempt
        recoverable = kwargs.pop(
            "recoverable",
            status_code in (429, 500, 502, 503, 504) if status_code else False,
        )
        super().__init__(message, recoverable=recoverable, details=details, **kwargs)


class RateLimitError(ProviderError):
    """The service answered 429; always worth retrying."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if retry_after:
            details["retry_after_seconds"] = retry_after
        super().__init__(message, status_code=429, recoverable=True, details=details, **kwargs)


class GenerationError(StoryboardError):
    """A scene finished without a usable clip."""

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        stage: Optional[str] = None,
        prompt: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if job_id:
            details["job_id"] = job_id
        if stage:
            details["stage"] = stage
        if prompt:
            details["prompt"] = prompt[:200]
        super().__init__(message, details=details, **kwargs)


class AllScenesFailedError(GenerationError):
    """Every scene of a storyboard failed; there is nothing to assemble."""

    def __init__(
        self,
        message: str = "All scenes failed to generate. No video to stitch.",
        failures: Optional[Dict[int, str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        self.failures = dict(failures or {})
        details["failures"] = {str(index): error for index, error in self.failures.items()}
        super().__init__(message, stage="generation", details=details, **kwargs)


class AssemblyError(StoryboardError):
    """The media tool failed while stitching clips or mixing audio."""

    def __init__(
        self,
        message: str,
        tool: Optional[str] = None,
        stage: Optional[str] = None,
        stderr: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if tool:
            details["tool"] = tool
        if stage:
            details["stage"] = stage
        if stderr:
            # ffmpeg puts the actual error at the end of its output
            details["stderr"] = stderr[-1000:]
        super().__init__(message, recoverable=False, details=details, **kwargs)


class SecurityError(StoryboardError):
    """A clip path escaped its run directory or had the wrong type; the path itself is never echoed."""

    def __init__(
        self,
        message: str,
        attempted_path: Optional[str] = None,
        security_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if attempted_path:
            details["attempted_path"] = "***REDACTED***"
        if security_type:
            details["security_type"] = security_type
        super().__init__(message, recoverable=False, details=details, **kwargs)


class TimeoutError(StoryboardError):
    """A job or download ran past its time limit."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(message, recoverable=True, details=details, **kwargs)
