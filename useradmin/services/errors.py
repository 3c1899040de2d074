"""Error taxonomy raised by account services and translated at the HTTP boundary."""

from typing import Any

ACCESS_DENIED_MESSAGE = "Access denied."


class AccountError(Exception):
    """Base class for recoverable account/role errors."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.message = message
        self.errors = list(errors) if errors else [message]
        super().__init__(message)


class ValidationFailure(AccountError):
    """Malformed or missing input. Carries the rejected input so a form can be redisplayed."""

    def __init__(
        self,
        errors: list[str],
        rejected_input: dict[str, Any] | None = None,
    ) -> None:
        self.rejected_input = rejected_input or {}
        super().__init__("Validation failed.", errors)


class PermissionDenied(AccountError):
    """The actor's current roles do not allow the operation. Always the same message."""

    def __init__(self) -> None:
        super().__init__(ACCESS_DENIED_MESSAGE)


class NotFound(AccountError):
    """A target id or email does not resolve."""


class StoreFailure(AccountError):
    """The account or role store rejected a mutation with a structured error list."""

    def __init__(
        self,
        errors: list[str],
        rejected_input: dict[str, Any] | None = None,
    ) -> None:
        self.rejected_input = rejected_input or {}
        super().__init__("The operation could not be completed.", errors)


class PasswordMismatch(AccountError):
    """New password and confirmation differ."""

    def __init__(self) -> None:
        super().__init__("The passwords did not match.")


class Unauthenticated(AccountError):
    """No session, an invalid session, or a session whose user no longer exists."""


class BootstrapUnavailable(AccountError):
    """The one-time SuperAdmin bootstrap has already been used."""

    def __init__(self) -> None:
        super().__init__("Not found.")
