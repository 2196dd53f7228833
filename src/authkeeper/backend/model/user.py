"""User-related data models"""
import secrets
from datetime import datetime, timedelta
from sqlmodel import Field
from .base import BaseModel
from ..enum import AccountStatus
from ..security import generate_verification_code, generate_token, hash_token

VERIFICATION_CODE_EXPIRE_MINUTES = 5
RESET_PASSWORD_EXPIRE_MINUTES = 15


class User(BaseModel, table=True):
    """User table

    `password` holds the bcrypt hash once persisted. Default reads go through
    UserStore, which defers the column so the hash is never loaded unless
    asked for.
    """

    __tablename__ = "users"

    name: str | None = Field(default=None)
    email: str | None = Field(default=None, index=True)  # Not unique
    password: str | None = Field(default=None)
    phone: str | None = Field(default=None)

    # Account status
    account_verified: bool = Field(default=False, index=True)

    # Pending verification code
    verification_code: int | None = Field(default=None)
    verification_code_expire: datetime | None = Field(default=None)

    # Password reset flow (token stored as sha256 digest)
    reset_password_token: str | None = Field(default=None)
    reset_password_expire: datetime | None = Field(default=None)

    @property
    def status(self) -> AccountStatus:
        """Verification status of this account"""
        if self.account_verified:
            return AccountStatus.VERIFIED
        return AccountStatus.PENDING

    def generate_verification_code(
        self,
        now: datetime | None = None,
        expire_minutes: int = VERIFICATION_CODE_EXPIRE_MINUTES,
    ) -> int:
        """Generate a 5-digit verification code and store it on the record

        Any previously issued code is overwritten.

        Args:
            now: Issuance time (defaults to the current time)
            expire_minutes: Minutes until the code expires

        Returns:
            The verification code, for delivery to the user
        """
        now = now or datetime.now()
        code = generate_verification_code()
        self.verification_code = code
        self.verification_code_expire = now + timedelta(minutes=expire_minutes)
        return code

    def verification_code_is_valid(
        self,
        code: int,
        now: datetime | None = None,
    ) -> bool:
        """Check a submitted code against the pending one

        An expired code is invalid even when the value matches.
        """
        if self.verification_code is None or self.verification_code_expire is None:
            return False
        now = now or datetime.now()
        if now >= self.verification_code_expire:
            return False
        try:
            return self.verification_code == int(code)
        except (TypeError, ValueError):
            return False

    def clear_verification_code(self):
        self.verification_code = None
        self.verification_code_expire = None

    def generate_reset_password_token(
        self,
        now: datetime | None = None,
        expire_minutes: int = RESET_PASSWORD_EXPIRE_MINUTES,
    ) -> str:
        """Generate a password reset token

        Only the sha256 digest of the token is stored on the record.

        Returns:
            The raw token, for delivery to the user
        """
        now = now or datetime.now()
        token = generate_token()
        self.reset_password_token = hash_token(token)
        self.reset_password_expire = now + timedelta(minutes=expire_minutes)
        return token

    def reset_password_token_is_valid(
        self,
        token: str,
        now: datetime | None = None,
    ) -> bool:
        if self.reset_password_token is None or self.reset_password_expire is None:
            return False
        now = now or datetime.now()
        if now >= self.reset_password_expire:
            return False
        return secrets.compare_digest(self.reset_password_token, hash_token(token))
