"""Custom exceptions for authkeeper"""


class AuthkeeperException(Exception):
    """Base exception for all authkeeper errors

    All custom exceptions should inherit from this class.
    The reaper's scheduled tick catches this and logs it.

    Attributes:
        message: Human-readable error message
        code: Error code for caller-side error handling
    """

    def __init__(self, message: str, code: str):
        """Initialize authkeeper exception

        Args:
            message: Human-readable error message
            code: Error code (e.g., "VALIDATION_ERROR", "CONNECTION_ERROR")
        """
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AuthkeeperException):
    """Validation error (record rejected before write)

    Examples:
        - Password too short
        - Password too long
        - createdAt changed on a persisted record
        - Password compare on a record loaded without its password
    """

    def __init__(self, message: str):
        super().__init__(message, "VALIDATION_ERROR")


class ConnectionError(AuthkeeperException):
    """Store unreachable

    Examples:
        - Connection string missing at startup
        - Database server unreachable at startup
        - Connection dropped at query time
    """

    def __init__(self, message: str):
        super().__init__(message, "CONNECTION_ERROR")


class DeletionError(AuthkeeperException):
    """Bulk delete of stale unverified accounts failed

    Raised by a single sweep. The scheduled tick logs it and waits for
    the next tick.
    """

    def __init__(self, message: str):
        super().__init__(message, "DELETION_FAILURE")


class ConfigError(AuthkeeperException):
    """Configuration error

    Examples:
        - Invalid cron expression for the cleanup schedule
    """

    def __init__(self, message: str):
        super().__init__(message, "CONFIG_ERROR")


class ReaperAlreadyStartedError(AuthkeeperException):
    """Reaper scheduler is already running"""

    def __init__(self, message: str):
        super().__init__(message, "REAPER_ALREADY_STARTED")
