"""Candid exceptions."""


class CandidError(Exception):
    """Base exception for all Candid errors."""


class LoaderError(CandidError):
    """Base exception for job file loader errors."""


class ValidationError(LoaderError):
    """Validation error with line number information."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        file_path: str | None = None,
    ):
        self.message = message
        self.line = line
        self.column = column
        self.file_path = file_path

        location_parts = []
        if file_path:
            location_parts.append(f"File: {file_path}")
        if line is not None:
            location_parts.append(f"Line: {line}")
        if column is not None:
            location_parts.append(f"Column: {column}")

        if location_parts:
            full_message = f"{', '.join(location_parts)}: {message}"
        else:
            full_message = message

        super().__init__(full_message)


class ParseError(LoaderError):
    """YAML parsing error."""


class EvaluatorStateError(CandidError):
    """Raised when an evaluator transition is not allowed from its state."""

    def __init__(self, message: str, evaluator_id: str | None = None) -> None:
        self.evaluator_id = evaluator_id
        super().__init__(message)


class JobServiceError(CandidError):
    """Base exception for job service failures.

    ``retryable`` tells the caller whether repeating the same request can
    reasonably succeed (timeouts, dropped connections, 5xx responses).
    """

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        cause: Exception | None = None,
    ) -> None:
        self.retryable = retryable
        self.cause = cause
        super().__init__(message)


class JobServiceTimeoutError(JobServiceError):
    """Raised when a job service request times out."""

    def __init__(
        self,
        message: str = "Job service request timed out",
        timeout_seconds: float | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(message, retryable=True, cause=cause)


class JobServiceConnectionError(JobServiceError):
    """Raised when the job service cannot be reached."""

    def __init__(
        self,
        message: str = "Connection failed",
        base_url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.base_url = base_url
        super().__init__(message, retryable=True, cause=cause)


class JobServiceResponseError(JobServiceError):
    """Raised when the job service answers with an error or a bad payload."""

    def __init__(
        self,
        message: str = "Invalid response",
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        retryable = status_code is not None and status_code >= 500
        super().__init__(message, retryable=retryable)
