"""
Identity provider boundary

The identity provider verifies credentials, creates accounts and announces
session changes on the event bus. LocalIdentityProvider keeps credentials in
the application database with bcrypt hashes and issues JWT session tokens.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import structlog
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select

from agencyhub.core.auth import create_access_token, verify_token
from agencyhub.core.config import get_settings
from agencyhub.core.events import EventBus, SessionEnded, SessionStarted, event_bus
from agencyhub.models.credential import Credential

logger = structlog.get_logger(__name__)
settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class Principal:
    """Authenticated identity-provider account"""
    uid: str
    email: str


class IdentityError(Exception):
    """Base class for identity failures shown to the user"""
    reason = "identity_error"
    user_message = "Authentication failed. Please try again."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.user_message)


class InvalidCredentialError(IdentityError):
    reason = "invalid_credential"
    user_message = "Failed to log in. Please check your credentials."


class UnknownAccountError(IdentityError):
    reason = "unknown_account"
    user_message = "No account exists for this email address."


class AccountDisabledError(IdentityError):
    reason = "account_disabled"
    user_message = "This account has been disabled. Please contact your administrator."


class RateLimitedError(IdentityError):
    reason = "rate_limited"
    user_message = "Too many failed attempts. Please try again later."


class IdentityNetworkError(IdentityError):
    reason = "network_failure"
    user_message = "Could not reach the authentication service. Check your connection and retry."


class AccountExistsError(IdentityError):
    reason = "account_exists"
    user_message = "An account with this email address already exists."


class WeakPasswordError(IdentityError):
    reason = "weak_password"
    user_message = f"Password must be at least {MIN_PASSWORD_LENGTH} characters."


def describe_identity_error(error: Exception) -> str:
    """Map an identity failure to the message shown to the user"""
    if isinstance(error, IdentityError):
        return error.user_message
    return IdentityError.user_message


class IdentityProvider(ABC):
    """Credential verification, account creation and session events"""

    def __init__(self, bus: Optional[EventBus] = None):
        self.event_bus = bus or event_bus

    @abstractmethod
    async def authenticate(self, email: str, password: str) -> Principal:
        """Verify credentials without announcing a session"""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Principal:
        """Create an account. The session is announced by the caller once the
        profile exists, via start_session()."""

    @abstractmethod
    async def delete_account(self, uid: str) -> None:
        ...

    @abstractmethod
    async def get_principal(self, uid: str) -> Principal:
        """Current account for uid. Raises UnknownAccountError when it no
        longer exists and AccountDisabledError when sign-in is disabled."""

    async def sign_in(self, email: str, password: str) -> Principal:
        principal = await self.authenticate(email, password)
        await self.start_session(principal)
        return principal

    async def start_session(self, principal: Principal) -> None:
        logger.info(f"Session started: {principal.uid}")
        await self.event_bus.publish(SessionStarted(principal))

    async def sign_out(self, principal: Optional[Principal] = None) -> None:
        uid = principal.uid if principal else None
        logger.info(f"Session ended: {uid}")
        await self.event_bus.publish(SessionEnded(uid))

    def issue_token(self, principal: Principal) -> str:
        return create_access_token(uid=principal.uid, email=principal.email)

    def principal_from_token(self, token: str) -> Optional[Principal]:
        claims = verify_token(token)
        if claims is None:
            return None
        return Principal(uid=claims["uid"], email=claims["email"])


class LocalIdentityProvider(IdentityProvider):
    """Identity provider backed by the credentials table"""

    def __init__(
        self,
        session_maker: async_sessionmaker,
        bus: Optional[EventBus] = None,
        max_failed_attempts: Optional[int] = None,
        lockout_minutes: Optional[int] = None,
    ):
        super().__init__(bus)
        self._session_maker = session_maker
        self.max_failed_attempts = max_failed_attempts or settings.LOGIN_MAX_FAILED_ATTEMPTS
        self.lockout = timedelta(minutes=lockout_minutes or settings.LOGIN_LOCKOUT_MINUTES)

    @staticmethod
    def _normalize(email: str) -> str:
        return email.strip().lower()

    async def _find(self, session, email: str) -> Optional[Credential]:
        result = await session.exec(select(Credential).where(Credential.email == email))
        return result.first()

    async def authenticate(self, email: str, password: str) -> Principal:
        email = self._normalize(email)
        try:
            async with self._session_maker() as session:
                credential = await self._find(session, email)
                if credential is None:
                    raise UnknownAccountError()
                if credential.disabled:
                    raise AccountDisabledError()

                now = datetime.utcnow()
                if credential.locked_until and credential.locked_until > now:
                    logger.warning(f"Sign-in attempted while locked out: {credential.uid}")
                    raise RateLimitedError()

                if not pwd_context.verify(password, credential.password_hash):
                    credential.failed_attempts += 1
                    if credential.failed_attempts >= self.max_failed_attempts:
                        credential.locked_until = now + self.lockout
                        credential.failed_attempts = 0
                        logger.warning(f"Account locked after failed attempts: {credential.uid}")
                    session.add(credential)
                    await session.commit()
                    raise InvalidCredentialError()

                credential.failed_attempts = 0
                credential.locked_until = None
                credential.last_sign_in_at = now
                session.add(credential)
                await session.commit()
                return Principal(uid=credential.uid, email=credential.email)
        except SQLAlchemyError as e:
            logger.error(f"Credential lookup failed: {e}")
            raise IdentityNetworkError() from e

    async def sign_up(self, email: str, password: str) -> Principal:
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise WeakPasswordError()
        email = self._normalize(email)
        try:
            async with self._session_maker() as session:
                if await self._find(session, email) is not None:
                    raise AccountExistsError()
                credential = Credential(email=email, password_hash=pwd_context.hash(password))
                session.add(credential)
                await session.commit()
                logger.info(f"Account created: {credential.uid}")
                return Principal(uid=credential.uid, email=credential.email)
        except IntegrityError as e:
            raise AccountExistsError() from e
        except SQLAlchemyError as e:
            logger.error(f"Account creation failed: {e}")
            raise IdentityNetworkError() from e

    async def delete_account(self, uid: str) -> None:
        try:
            async with self._session_maker() as session:
                credential = await session.get(Credential, uid)
                if credential is None:
                    raise UnknownAccountError()
                await session.delete(credential)
                await session.commit()
                logger.info(f"Account deleted: {uid}")
        except SQLAlchemyError as e:
            raise IdentityNetworkError() from e

    async def get_principal(self, uid: str) -> Principal:
        try:
            async with self._session_maker() as session:
                credential = await session.get(Credential, uid)
        except SQLAlchemyError as e:
            raise IdentityNetworkError() from e
        if credential is None:
            raise UnknownAccountError()
        if credential.disabled:
            raise AccountDisabledError()
        return Principal(uid=credential.uid, email=credential.email)

    async def set_disabled(self, uid: str, disabled: bool = True) -> None:
        """Disable or re-enable sign-in for an account"""
        try:
            async with self._session_maker() as session:
                credential = await session.get(Credential, uid)
                if credential is None:
                    raise UnknownAccountError()
                credential.disabled = disabled
                session.add(credential)
                await session.commit()
                logger.info(f"Account {'disabled' if disabled else 'enabled'}: {uid}")
        except SQLAlchemyError as e:
            raise IdentityNetworkError() from e
