"""Repository for accounts and login sessions."""

import logging
from datetime import datetime, timedelta, timezone

from sqlmodel import Session as DBSession
from sqlmodel import select

from fotofi.core.security import hash_password, is_expired, new_token, verify_password
from fotofi.db.models import AuthSession, User, VerificationToken
from fotofi.repositories.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidTokenError,
)

logger = logging.getLogger(__name__)

VERIFICATION_TTL = timedelta(hours=24)


class UserRepository:
    """
    Handles database operations for users and their sessions.

    Emails are compared case-insensitively and stored lower-cased.
    """

    def __init__(self, db_session: DBSession):
        self._db = db_session

    def register(self, name: str, email: str, password: str) -> User:
        """
        Creates an account.

        Raises:
            EmailAlreadyRegisteredError: If the email is taken.
        """
        email = email.strip().lower()
        if self.get_by_email(email) is not None:
            raise EmailAlreadyRegisteredError(email)

        user = User(name=name.strip(), email=email, password_hash=hash_password(password))
        self._db.add(user)
        self._db.commit()
        self._db.refresh(user)
        logger.info("User registered", extra={"user_id": user.id})
        return user

    def get_by_email(self, email: str) -> User | None:
        statement = select(User).where(User.email == email.strip().lower())
        return self._db.exec(statement).first()

    def authenticate(self, email: str, password: str) -> User:
        """
        Checks an email/password pair.

        Raises:
            InvalidCredentialsError: If either is wrong.
        """
        user = self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        return user

    def create_session(self, user: User, ttl: timedelta) -> AuthSession:
        session = AuthSession(
            token=new_token(),
            user_id=user.id,
            expires_at=datetime.now(timezone.utc) + ttl,
        )
        self._db.add(session)
        self._db.commit()
        self._db.refresh(session)
        return session

    def get_user_for_token(self, token: str) -> User | None:
        """Returns the session's user, or None if the token is unknown or expired."""
        session = self._db.get(AuthSession, token)
        if session is None:
            return None
        if is_expired(session.expires_at):
            self._db.delete(session)
            self._db.commit()
            return None
        return self._db.get(User, session.user_id)

    def delete_session(self, token: str) -> None:
        session = self._db.get(AuthSession, token)
        if session is not None:
            self._db.delete(session)
            self._db.commit()

    def create_verification_token(self, user: User) -> str:
        verification = VerificationToken(
            token=new_token(),
            user_id=user.id,
            expires_at=datetime.now(timezone.utc) + VERIFICATION_TTL,
        )
        self._db.add(verification)
        self._db.commit()
        return verification.token

    def verify_email(self, token: str) -> User:
        """
        Marks the token's user as verified and consumes the token.

        Raises:
            InvalidTokenError: If the token is unknown or expired.
        """
        verification = self._db.get(VerificationToken, token)
        if verification is None or is_expired(verification.expires_at):
            raise InvalidTokenError()

        user = self._db.get(User, verification.user_id)
        if user is None:
            raise InvalidTokenError()
        user.email_verified = True
        self._db.add(user)
        self._db.delete(verification)
        self._db.commit()
        self._db.refresh(user)
        return user
