"""Credential store: persistence of user records"""

import logging
from datetime import datetime

from sqlalchemy import inspect
from sqlalchemy.orm import defer
from sqlmodel import select

from .database import Database
from .exception import ValidationError
from .model import User
from .model.user import VERIFICATION_CODE_EXPIRE_MINUTES, RESET_PASSWORD_EXPIRE_MINUTES
from .security import DEFAULT_BCRYPT_ROUNDS, get_password_hash, verify_password
from .validation import password_is_modified, validate_user

logger = logging.getLogger(__name__)


class UserStore:
    """Reads and writes user records through an explicit database handle

    Every write goes through `save()`, which validates the record, hashes a
    new or changed password, and leaves an unchanged password hash alone.
    """

    def __init__(
        self,
        database: Database,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
        verification_code_expire_minutes: int = VERIFICATION_CODE_EXPIRE_MINUTES,
        reset_password_expire_minutes: int = RESET_PASSWORD_EXPIRE_MINUTES,
    ):
        self.database = database
        self.bcrypt_rounds = bcrypt_rounds
        self.verification_code_expire_minutes = verification_code_expire_minutes
        self.reset_password_expire_minutes = reset_password_expire_minutes

    # ========== Writes ==========

    async def create(
        self,
        name: str | None,
        email: str | None,
        raw_password: str,
        phone: str | None,
    ) -> User:
        """Register a new, unverified user

        Args:
            name: Display name
            email: Email address (uniqueness is not enforced)
            raw_password: Plain text password, 8 to 32 characters
            phone: Phone number

        Returns:
            The persisted user, with its password hashed

        Raises:
            ValidationError: Password length out of bounds
            ConnectionError: Database not connected
        """
        user = User(
            name=name,
            email=email,
            password=raw_password,
            phone=phone,
            account_verified=False,
        )
        await self.save(user)
        logger.info(f"Created user {user.id} ({email})")
        return user

    async def save(self, user: User) -> User:
        """Validate and persist a user record

        Raises:
            ValidationError: Record failed validation
            ConnectionError: Database not connected
        """
        modified = password_is_modified(user)

        result = validate_user(user, password_modified=modified)
        if not result.is_valid:
            logger.warning(f"Rejected write of user {user.id}: {result.message}")
            raise ValidationError(result.message)

        plaintext = user.password if modified else None
        hashed = None
        if plaintext is not None:
            hashed = get_password_hash(plaintext, rounds=self.bcrypt_rounds)

        if inspect(user).has_identity:
            user.touch()

        try:
            async with self.database.session() as session:
                if hashed is not None:
                    user.password = hashed
                    logger.debug(f"Hashed password for user {user.id}")
                session.add(user)
        except Exception:
            # On failure the record keeps its plaintext password
            if hashed is not None:
                user.password = plaintext
            raise
        return user

    async def delete(self, user: User) -> None:
        """Delete a user record"""
        async with self.database.session() as session:
            await session.delete(user)
        logger.info(f"Deleted user {user.id}")

    # ========== Password ==========

    def verify_password(self, user: User, raw_password: str) -> bool:
        """Compare a plain text password with the stored hash

        Raises:
            ValidationError: The record was loaded without its password
        """
        if "password" in inspect(user).unloaded:
            raise ValidationError(
                "Password was not loaded; fetch the user with include_password=True"
            )
        return verify_password(raw_password, user.password)

    # ========== Verification ==========

    async def issue_verification_code(
        self,
        user: User,
        now: datetime | None = None,
    ) -> int:
        """Generate, store and return a new verification code

        The previous code, if any, is overwritten.
        """
        code = user.generate_verification_code(
            now=now,
            expire_minutes=self.verification_code_expire_minutes,
        )
        await self.save(user)
        logger.info(
            f"Issued verification code for user {user.id}, "
            f"expires at {user.verification_code_expire}"
        )
        return code

    async def verify_account(
        self,
        user: User,
        code: int,
        now: datetime | None = None,
    ) -> bool:
        """Mark the account verified if `code` is the pending, unexpired code

        Returns:
            True if the account is verified after the call
        """
        if user.account_verified:
            return True

        if not user.verification_code_is_valid(code, now=now):
            logger.info(f"Invalid or expired verification code for user {user.id}")
            return False

        user.account_verified = True
        user.clear_verification_code()
        await self.save(user)
        logger.info(f"User {user.id} verified")
        return True

    async def issue_reset_password_token(
        self,
        user: User,
        now: datetime | None = None,
    ) -> str:
        """Generate and store a password reset token, returning the raw token"""
        token = user.generate_reset_password_token(
            now=now,
            expire_minutes=self.reset_password_expire_minutes,
        )
        await self.save(user)
        logger.info(f"Issued password reset token for user {user.id}")
        return token

    # ========== Reads ==========

    def _select(self, include_password: bool):
        stmt = select(User)
        if not include_password:
            stmt = stmt.options(defer(User.password, raiseload=True))
        return stmt

    async def get(self, user_id: int, include_password: bool = False) -> User | None:
        """Get a user by id

        Args:
            user_id: User id
            include_password: Load the password hash too

        Returns:
            User or None if not found
        """
        stmt = self._select(include_password).where(User.id == user_id)
        async with self.database.session() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def get_by_email(
        self,
        email: str,
        include_password: bool = False,
    ) -> User | None:
        """Get the oldest user registered with an email address

        Emails are not unique, so several records may match.
        """
        stmt = (
            self._select(include_password)
            .where(User.email == email)
            .order_by(User.created_at, User.id)
        )
        async with self.database.session() as session:
            result = await session.execute(stmt)
            return result.scalars().first()
