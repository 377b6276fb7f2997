"""Custom exception hierarchy for the start/stop plugin.

Exception Hierarchy:
    StartStopError (base)
    ├── ConfigurationError
    ├── EligibilityError
    └── ExternalServiceError

Precondition failures raised by the eligibility rules are ``EligibilityError``
and carry the exact message shown to the user. They are meant to propagate
to the caller so the host can report them.

Example Usage:
    >>> from start_stop.exceptions import EligibilityError
    >>> try:
    ...     await start(context, issue, sender, [])
    ... except EligibilityError as e:
    ...     print(e.message)
"""


class StartStopError(Exception):
    """Base exception for all start/stop plugin errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(StartStopError):
    """Configuration-related errors.

    Raised when plugin settings or environment values are invalid, missing,
    or cannot be read.

    Attributes:
        errors: Per-field validation details, when available
    """

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class EligibilityError(StartStopError):
    """A start/stop precondition was violated.

    Examples:
        - Issue is already assigned
        - Issue is a parent issue
        - User reached the concurrency limit for their role
        - Command is disabled for the repository
    """

    pass


class ExternalServiceError(StartStopError):
    """External service communication errors.

    Raised when a call to the issue tracker or the wallet store fails in a
    way the current flow cannot recover from.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response_text: Response body text (if applicable)
        """
        self.status_code = status_code
        self.response_text = response_text

        full_message = message
        if status_code:
            full_message = f"{message} (HTTP {status_code})"

        super().__init__(full_message)
        # Preserve original message
        self.message = message
