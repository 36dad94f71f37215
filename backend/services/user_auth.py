"""
User Authentication Service for HealthGuard.

Provides bcrypt password hashing and JWT session tokens for site accounts.

Features:
- Register / login / current-user lookup
- Bcrypt-hashed passwords, JWT HS256 tokens with 7-day expiry
  (claims: sub = user id, email, iat, exp)
- Users stored in PostgreSQL `users` table, or in memory when no
  database is reachable
- Emails are trimmed and lowercased; uniqueness enforced by both stores
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import asyncpg
import bcrypt
import jwt

from errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from services.database import DatabaseManager

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def public_user(user: Dict[str, Any]) -> Dict[str, str]:
    """The user fields safe to return to clients."""
    return {"name": user["name"], "email": user["email"]}


# =============================================================================
# Stores
# =============================================================================


class UserStore(ABC):
    """Persistence for user records."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def create(self, name: str, email: str, password_hash: str) -> Dict[str, Any]:
        """Insert a user. Raises ConflictError if the email exists."""
        ...


class MemoryUserStore(UserStore):
    """Process-local store used when PostgreSQL is unavailable."""

    def __init__(self):
        self._users: Dict[str, Dict[str, Any]] = {}
        self._ids_by_email: Dict[str, str] = {}

    async def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        user_id = self._ids_by_email.get(email)
        return dict(self._users[user_id]) if user_id else None

    async def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        user = self._users.get(user_id)
        return dict(user) if user else None

    async def create(self, name: str, email: str, password_hash: str) -> Dict[str, Any]:
        if email in self._ids_by_email:
            raise ConflictError("Email already registered")
        user = {
            "id": uuid.uuid4().hex,
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc),
        }
        self._users[user["id"]] = user
        self._ids_by_email[email] = user["id"]
        return dict(user)

    def delete(self, user_id: str) -> None:
        user = self._users.pop(user_id, None)
        if user:
            self._ids_by_email.pop(user["email"], None)


class PostgresUserStore(UserStore):
    """Users in the PostgreSQL `users` table."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.db.fetchrow(
            "SELECT id, name, email, password_hash, created_at FROM users WHERE email = $1",
            email,
        )

    async def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.fetchrow(
            "SELECT id, name, email, password_hash, created_at FROM users WHERE id = $1",
            user_id,
        )

    async def create(self, name: str, email: str, password_hash: str) -> Dict[str, Any]:
        try:
            row = await self.db.fetchrow(
                "INSERT INTO users (id, name, email, password_hash) "
                "VALUES ($1, $2, $3, $4) RETURNING id, name, email, password_hash, created_at",
                uuid.uuid4().hex,
                name,
                email,
                password_hash,
            )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError("Email already registered") from e
        return row


# =============================================================================
# Auth manager
# =============================================================================


class UserAuthManager:
    """Account registration, login and JWT handling."""

    def __init__(
        self,
        store: UserStore,
        jwt_secret: str,
        expiry_days: int = 7,
        bcrypt_rounds: int = 12,
    ):
        if not jwt_secret:
            raise ValueError("No JWT secret configured")
        self.store = store
        self._jwt_secret = jwt_secret
        self.expiry_days = expiry_days
        self.bcrypt_rounds = bcrypt_rounds

    # bcrypt only reads the first 72 bytes
    def hash_password(self, password: str) -> str:
        return bcrypt.hashpw(
            password.encode("utf-8")[:72],
            bcrypt.gensalt(rounds=self.bcrypt_rounds),
        ).decode("utf-8")

    @staticmethod
    def check_password(password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False

    async def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """
        Create an account and sign it in.

        Returns:
            {"token": ..., "user": {"name", "email"}}

        Raises:
            ValidationError: short name, missing email, password under 6 chars
            ConflictError: email already registered
        """
        name = (name or "").strip()
        if len(name) < MIN_NAME_LENGTH:
            raise ValidationError("Name is required", parameter="name")

        email = normalize_email(email)
        if not email or not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("Email and 6+ char password required", parameter="password")

        if await self.store.find_by_email(email):
            raise ConflictError("Email already registered")

        user = await self.store.create(name, email, self.hash_password(password))
        logger.info(f"Registered user {user['id']}")
        return {"token": self.create_token(user), "user": public_user(user)}

    async def login(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """
        Verify credentials and issue a token.

        Raises:
            ValidationError: email or password missing
            AuthenticationError: unknown email or wrong password
        """
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = await self.store.find_by_email(email)
        if not user or not self.check_password(password, user["password_hash"]):
            raise AuthenticationError("Invalid credentials", reason="credentials")

        return {"token": self.create_token(user), "user": public_user(user)}

    async def me(self, user_id: str) -> Dict[str, Any]:
        user = await self.store.find_by_id(user_id)
        if not user:
            raise NotFoundError("Not found", resource_type="user", resource_id=user_id)
        return {"user": public_user(user)}

    def create_token(self, user: Dict[str, Any]) -> str:
        now = time.time()
        payload = {
            "sub": str(user["id"]),
            "email": user["email"],
            "iat": int(now),
            "exp": int(now + self.expiry_days * 86400),
        }
        return jwt.encode(payload, self._jwt_secret, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Decode a token.

        Raises:
            AuthenticationError: bad signature, malformed or expired
        """
        try:
            payload = jwt.decode(token, self._jwt_secret, algorithms=[JWT_ALGORITHM])
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid token", details=str(e), reason="token") from e
        if not payload.get("sub"):
            raise AuthenticationError("Invalid token", reason="token")
        return payload


def build_user_store(db: DatabaseManager) -> UserStore:
    """PostgreSQL store when connected, in-memory store otherwise."""
    if db.available:
        return PostgresUserStore(db)
    logger.warning("User accounts are stored in memory and will not survive restarts")
    return MemoryUserStore()
