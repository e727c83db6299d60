"""Centralized exception hierarchy for Kob Git Updater.

Every error raised by the resolver, fetcher, installer and registry derives
from ``AppBaseError`` so a batch run can report one readable line per
repository and carry on with the rest.
"""

from collections.abc import Sequence


class AppBaseError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retriable: bool = False,
        **params: object,
    ) -> None:
        """
        Initialize the error.

        Args:
            message: Human-readable description of the failure
            status_code: Upstream HTTP status code, when one is known
            retriable: Whether a later check cycle may succeed
            **params: Extra context kept for diagnostics
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retriable = retriable
        self.params = params

    @property
    def status(self) -> int | None:
        return self.status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class ApiError(AppBaseError):
    """Raised when a GitHub API request fails or returns an unusable body."""

    def __init__(self, status: int | None, message: str, **params: object) -> None:
        super().__init__(message, status_code=status, retriable=status is None or status >= 500, **params)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ResolveError(AppBaseError):
    """Raised when no download target can be determined for a repository."""

    def __init__(self, message: str, status: int | None = None, **params: object) -> None:
        super().__init__(message, status_code=status, **params)


class FetchError(AppBaseError):
    """Raised when an archive cannot be downloaded or has an unexpected layout."""

    def __init__(self, message: str, status: int | None = None, **params: object) -> None:
        super().__init__(message, status_code=status, **params)


class InstallError(AppBaseError):
    """Raised when the extracted content cannot be put in place."""

    def __init__(self, message: str, attempted_methods: Sequence[str] = (), **params: object) -> None:
        super().__init__(message, **params)
        self.attempted_methods = list(attempted_methods)

    def __str__(self) -> str:
        if self.attempted_methods:
            return f"{self.message}. Attempted methods: {'; '.join(self.attempted_methods)}"
        return self.message


class ResourceNotFoundError(AppBaseError):
    """Raised when a requested resource (repository, package, etc.) is not found."""

    def __init__(self, message: str, **params: object) -> None:
        super().__init__(message, **params)


class ResourceConflictError(AppBaseError):
    """Raised when an operation conflicts with the current state (e.g., duplicate repository)."""

    def __init__(self, message: str, **params: object) -> None:
        super().__init__(message, **params)


class ValidationError(AppBaseError):
    """Raised when input validation fails."""

    def __init__(self, message: str, status_code: int | None = None, **params: object) -> None:
        super().__init__(message, status_code=status_code, **params)
