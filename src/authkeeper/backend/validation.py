"""Pre-write validation for user records"""

from dataclasses import dataclass, field

from sqlalchemy import inspect

from .model import User

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 32


@dataclass
class ValidationResult:
    """Outcome of validating a record before it is written"""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        return " ".join(self.errors)


def password_is_modified(user: User) -> bool:
    """Check whether the password must be (re)hashed on the next save

    A record that was never persisted counts as modified as soon as it
    carries a password. A persisted record counts as modified only when
    its password attribute changed since it was loaded or last saved.

    Args:
        user: User record (transient, pending, persistent or detached)

    Returns:
        True if the password was set or changed
    """
    state = inspect(user)
    if not state.has_identity:
        return user.password is not None
    # Reading history never triggers a load of a deferred column
    return state.attrs.password.history.has_changes()


def validate_user(user: User, password_modified: bool) -> ValidationResult:
    """Validate a user record before it is written

    Args:
        user: User record about to be saved
        password_modified: Whether the password holds a new plaintext value

    Returns:
        ValidationResult listing every violated rule
    """
    result = ValidationResult()

    if password_modified and user.password is not None:
        length = len(user.password)
        if length < PASSWORD_MIN_LENGTH:
            result.errors.append(
                f"Password must have at least {PASSWORD_MIN_LENGTH} characters."
            )
        elif length > PASSWORD_MAX_LENGTH:
            result.errors.append(
                f"Password cannot have more than {PASSWORD_MAX_LENGTH} characters."
            )

    state = inspect(user)
    if state.has_identity and state.attrs.created_at.history.deleted:
        result.errors.append("createdAt is immutable.")

    return result
