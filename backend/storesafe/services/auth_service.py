"""
Authentication Service Module
=============================

Consolidated authentication service handling:
- Password hashing using Argon2
- JWT Access & Refresh token creation with type discrimination
- Token decoding and validation
- Token version tracking for forced logout
- Account lockout management

Security Features:
- Argon2id password hashing (memory-hard, resistant to GPU attacks)
- Token type discrimination (access vs refresh)
- Issuer and audience validation
- Token version for revocation support
"""

from datetime import datetime, timedelta, UTC
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session
from jose import jwt, JWTError
from argon2 import PasswordHasher
from argon2.exceptions import Argon2Error, InvalidHashError, VerifyMismatchError

from storesafe.models.user import User
from storesafe.core.config import settings
from storesafe.core.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
    TokenVersionMismatchError,
    AccountLockedError,
    AccountDisabledError,
    InvalidCredentialsError,
)
from storesafe.core.logging import get_logger, security_logger

# Initialize logger
logger = get_logger(__name__)


# ==========================
# Password Hasher Configuration
# ==========================

ph = PasswordHasher(
    time_cost=3,        # Number of passes
    memory_cost=65536,  # 64 MB memory
    parallelism=4,      # 4 parallel threads
    hash_len=32,        # 32-byte hash
    salt_len=16,        # 16-byte salt
)


# ==========================
# Token Types
# ==========================

class TokenType:
    """Token type constants for discrimination."""
    ACCESS = "access"
    REFRESH = "refresh"


# ==========================
# Auth Service Class
# ==========================

class AuthService:
    """
    Authentication service handling all auth-related operations.

    Usage:
        auth_service = AuthService(db)
        user, tokens = auth_service.authenticate_user(email, password)
    """

    def __init__(self, db: Session):
        self.db = db

    # --------------------------
    # Password Utilities
    # --------------------------

    @staticmethod
    def hash_password(password: str) -> str:
        """
        Hash a password using Argon2id.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        return ph.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Password to verify
            hashed_password: Stored hash from database

        Returns:
            True if password matches, False otherwise
        """
        try:
            ph.verify(hashed_password, plain_password)
            return True
        except VerifyMismatchError:
            return False
        except (Argon2Error, InvalidHashError) as e:
            logger.warning(
                "Password verification error",
                extra={"error": str(e)}
            )
            return False

    # --------------------------
    # Token Creation
    # --------------------------

    @staticmethod
    def _encode(
        user_id: UUID,
        token_version: int,
        token_type: str,
        expires_delta: timedelta,
    ) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": str(user_id),
            "token_version": token_version,
            "type": token_type,
            "exp": now + expires_delta,
            "iat": now,
            "iss": settings.ISSUER,
            "aud": settings.AUDIENCE,
        }
        return jwt.encode(
            payload,
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM
        )

    @staticmethod
    def create_access_token(
        user_id: UUID,
        token_version: int,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a JWT access token.

        Args:
            user_id: User's UUID
            token_version: Current token version for revocation
            expires_delta: Custom expiration time

        Returns:
            Encoded JWT access token
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        return AuthService._encode(user_id, token_version, TokenType.ACCESS, expires_delta)

    @staticmethod
    def create_refresh_token(
        user_id: UUID,
        token_version: int,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a JWT refresh token.

        Args:
            user_id: User's UUID
            token_version: Current token version for revocation
            expires_delta: Custom expiration time

        Returns:
            Encoded JWT refresh token
        """
        if expires_delta is None:
            expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        return AuthService._encode(user_id, token_version, TokenType.REFRESH, expires_delta)

    # --------------------------
    # Token Decoding & Validation
    # --------------------------

    @staticmethod
    def decode_token(token: str, expected_type: Optional[str] = None) -> dict:
        """
        Decode and validate a JWT token.

        Args:
            token: JWT token string
            expected_type: Expected token type (access/refresh)

        Returns:
            Decoded token payload

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If token is invalid
        """
        try:
            payload = jwt.decode(
                token,
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM],
                issuer=settings.ISSUER,
                audience=settings.AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError(token_type=expected_type or "unknown")
        except JWTError as e:
            logger.warning(
                "Token decode error",
                extra={"error": str(e)}
            )
            raise TokenInvalidError(reason=str(e))

        if expected_type and payload.get("type") != expected_type:
            raise TokenInvalidError(
                reason=f"Expected {expected_type} token, got {payload.get('type')}"
            )

        return payload

    def get_tokens_for_user(self, user: User) -> dict:
        """
        Generate access and refresh tokens for a user.

        Returns:
            Dictionary with access_token, refresh_token, token_type, and expires_in
        """
        return {
            "access_token": self.create_access_token(
                user_id=user.id,
                token_version=user.token_version,
            ),
            "refresh_token": self.create_refresh_token(
                user_id=user.id,
                token_version=user.token_version,
            ),
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }

    # --------------------------
    # Authentication Methods
    # --------------------------

    def authenticate_user(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: str = "unknown",
    ) -> Tuple[User, dict]:
        """
        Authenticate a user with email and password.

        Args:
            email: User's email
            password: User's password
            ip_address: Client IP for logging
            user_agent: Client user agent for logging

        Returns:
            Tuple of (User, tokens dict)

        Raises:
            InvalidCredentialsError: If credentials are invalid
            AccountLockedError: If account is locked
            AccountDisabledError: If account is disabled
        """
        ip_address = ip_address or "unknown"
        user = self.db.query(User).filter(User.email == email.lower()).first()

        if not user:
            security_logger.log_login_failure(
                email=email,
                ip_address=ip_address,
                reason="user_not_found"
            )
            raise InvalidCredentialsError()

        if user.is_locked:
            security_logger.log_login_failure(
                email=email,
                ip_address=ip_address,
                reason="account_locked"
            )
            raise AccountLockedError()

        if not user.is_active:
            security_logger.log_login_failure(
                email=email,
                ip_address=ip_address,
                reason="account_disabled"
            )
            raise AccountDisabledError()

        if not self.verify_password(password, user.hashed_password):
            locked = user.increment_failed_attempts(settings.MAX_LOGIN_ATTEMPTS)
            self.db.commit()

            if locked:
                security_logger.log_account_locked(
                    user_id=str(user.id),
                    ip_address=ip_address
                )

            security_logger.log_login_failure(
                email=email,
                ip_address=ip_address,
                reason="invalid_password"
            )
            raise InvalidCredentialsError()

        user.reset_failed_attempts()
        self.db.commit()

        tokens = self.get_tokens_for_user(user)

        security_logger.log_login_success(
            user_id=str(user.id),
            ip_address=ip_address,
            user_agent=user_agent,
        )

        return user, tokens

    def _user_from_payload(self, payload: dict) -> User:
        user_id = payload.get("sub")
        token_version = payload.get("token_version")

        if not user_id or token_version is None:
            raise TokenInvalidError(reason="Invalid token payload")

        try:
            user_uuid = UUID(user_id)
        except ValueError:
            raise TokenInvalidError(reason="Invalid user ID format")

        user = self.db.query(User).filter(User.id == user_uuid).first()

        if not user:
            raise TokenInvalidError(reason="User not found")

        if user.token_version != token_version:
            raise TokenVersionMismatchError()

        if user.is_locked:
            raise AccountLockedError()

        if not user.is_active:
            raise AccountDisabledError()

        return user

    def refresh_tokens(self, refresh_token: str) -> dict:
        """
        Refresh access token using a valid refresh token.

        Raises:
            TokenInvalidError: If token is invalid
            TokenVersionMismatchError: If token version doesn't match
            AccountLockedError: If account is locked
            AccountDisabledError: If account is disabled
        """
        payload = self.decode_token(refresh_token, expected_type=TokenType.REFRESH)

        try:
            user = self._user_from_payload(payload)
        except TokenVersionMismatchError:
            security_logger.log_token_invalid(
                reason="token_version_mismatch",
                ip_address="unknown"
            )
            raise

        tokens = self.get_tokens_for_user(user)
        security_logger.log_token_refresh(user_id=str(user.id))
        return tokens

    def logout(self, user: User) -> None:
        """
        Logout user by invalidating all tokens.

        Args:
            user: User model instance
        """
        user.invalidate_tokens()
        self.db.commit()

        security_logger.log_logout(user_id=str(user.id))

    def validate_access_token(self, token: str) -> User:
        """
        Validate an access token and return the user.

        Args:
            token: Access token

        Returns:
            User model instance
        """
        payload = self.decode_token(token, expected_type=TokenType.ACCESS)
        return self._user_from_payload(payload)
