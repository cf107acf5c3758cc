"""Session authentication for the DealStack API.

Sessions live in Redis (falling back to process memory when Redis is not
reachable or REDIS_URL is "memory://") and are referenced by an httponly
cookie. Each session carries the user's organisation, which scopes every
query the user makes.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import redis
from fastapi import Cookie, HTTPException
from sqlalchemy import select

from dealstack.config import get_config
from dealstack.db.connection import get_session
from dealstack.db.models import UserModel
from dealstack.models import UserRole

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"

# In-memory fallback for development when Redis is missing
_memory_sessions: dict[str, dict[str, Any]] = {}

# Cache for bcrypt password hash (expensive to compute)
_password_hash_cache: bytes | None = None

_REDIS_ERRORS = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_redis_client() -> redis.Redis | None:
    """Redis client for session storage, or None when sessions are memory-only."""
    redis_url = get_config().auth.redis_url
    if not redis_url or redis_url.startswith("memory://"):
        return None
    return redis.from_url(redis_url, decode_responses=True)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def _get_password_hash() -> bytes:
    """bcrypt hash of the environment admin password."""
    global _password_hash_cache

    if _password_hash_cache is not None:
        return _password_hash_cache

    password = get_config().auth.password
    if not password:
        # For demo/development only - MUST set in production
        password = "changeme"
        logger.warning(
            "Using default password 'changeme'. Set DEALSTACK_PASSWORD environment variable!"
        )

    _password_hash_cache = bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12))
    return _password_hash_cache


def create_session(
    username: str,
    org_id: str,
    role: str = UserRole.VIEWER.value,
    user_id: str | None = None,
) -> str:
    """Create a new session for an authenticated user.

    Returns:
        str: Session token
    """
    session_token = secrets.token_urlsafe(32)
    expiry_hours = get_config().auth.session_expiry_hours

    session_data = {
        "username": username,
        "org_id": org_id,
        "role": role,
        "user_id": user_id,
        "created_at": _now().isoformat(),
        "expires_at": (_now() + timedelta(hours=expiry_hours)).isoformat(),
    }

    client = get_redis_client()
    if client is None:
        _memory_sessions[session_token] = session_data
        return session_token

    try:
        client.setex(
            f"session:{session_token}", expiry_hours * 3600, json.dumps(session_data)
        )
    except _REDIS_ERRORS:
        logger.warning("Redis unavailable, using in-memory session storage")
        _memory_sessions[session_token] = session_data

    return session_token


def _memory_session(session_token: str) -> dict[str, Any] | None:
    session_data = _memory_sessions.get(session_token)
    if session_data is None:
        return None
    if _now() > datetime.fromisoformat(session_data["expires_at"]):
        del _memory_sessions[session_token]
        return None
    return session_data


def validate_session(session_token: str | None) -> dict[str, Any] | None:
    """Return session data for a valid token, None otherwise."""
    if not session_token:
        return None

    client = get_redis_client()
    if client is None:
        return _memory_session(session_token)

    try:
        session_data_str = client.get(f"session:{session_token}")
    except _REDIS_ERRORS:
        return _memory_session(session_token)

    if not session_data_str:
        return _memory_session(session_token)

    try:
        session_data = json.loads(session_data_str)
        if _now() > datetime.fromisoformat(session_data["expires_at"]):
            client.delete(f"session:{session_token}")
            return None
        return session_data
    except (json.JSONDecodeError, KeyError, ValueError):
        client.delete(f"session:{session_token}")
        return None


def logout(session_token: str | None) -> None:
    """Invalidate a session."""
    if not session_token:
        return
    _memory_sessions.pop(session_token, None)
    client = get_redis_client()
    if client is None:
        return
    try:
        client.delete(f"session:{session_token}")
    except _REDIS_ERRORS:
        pass


def _anonymous_admin() -> dict[str, Any]:
    return {
        "username": "default_user",
        "org_id": get_config().org_id,
        "role": UserRole.ADMIN.value,
        "user_id": None,
    }


def require_auth(session: str | None = Cookie(default=None)) -> dict[str, Any]:
    """Dependency to require an authenticated session.

    Returns:
        dict: Session data (username, org_id, role, user_id)

    Raises:
        HTTPException: 401 if not authenticated
    """
    if get_config().auth.disabled:
        return _anonymous_admin()

    session_data = validate_session(session)
    if not session_data:
        raise HTTPException(status_code=401, detail="Authentication required")
    return session_data


def require_admin(session: str | None = Cookie(default=None)) -> dict[str, Any]:
    """Dependency to require the admin role."""
    session_data = require_auth(session)
    if session_data.get("role") != UserRole.ADMIN.value:
        raise HTTPException(status_code=403, detail="Admin access required")
    return session_data


async def verify_credentials_db(email: str, password: str) -> tuple[bool, UserModel | None]:
    """Verify credentials against the users table.

    Returns:
        tuple: (is_valid, user_object)
    """
    async with get_session() as session:
        result = await session.execute(select(UserModel).where(UserModel.email == email))
        user = result.scalars().first()

        if not user or not user.is_active:
            return False, None

        if bcrypt.checkpw(password.encode(), user.password_hash.encode()):
            user.last_login = _now()
            return True, user

    return False, None


def verify_credentials(username: str, password: str) -> bool:
    """Verify the environment admin's username and password."""
    valid_username = get_config().auth.username
    # bcrypt comparison is constant-time
    password_matches = bcrypt.checkpw(password.encode(), _get_password_hash())
    return username == valid_username and password_matches
