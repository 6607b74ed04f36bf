"""
services/auth_service.py — Authentication and session lifecycle.

Responsibilities:
  - User registration and credential validation
  - JWT access token creation (HS256)
  - Refresh token lifecycle (creation, validation, revocation)
  - Password hashing (bcrypt) and verification
  - Session start/end: a notification channel is opened on register/login
    and closed on logout, so the channel handle is owned by the session

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP status codes
  - current_app.config is used ONLY to read JWT settings and bcrypt rounds

Token design:
  - Access token: JWT, HS256, 15 min TTL, sub = user_id (str)
  - Refresh token: random hex string, stored in DB as SHA-256 hash (never the
    raw value). Revoked on logout.

Handles are case-insensitive: every write and lookup goes through
normalize_username().
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.todorace.errors import AppError, ConflictError, ErrorCode, NotFoundError
from backend.todorace.models.refresh_token import RefreshToken
from backend.todorace.models.user import User

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def normalize_username(username: str) -> str:
    return username.strip().lower()


def _hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw token string. Used for refresh token storage."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _create_access_token(user_id: int) -> str:
    """
    Creates a signed JWT access token.
    Payload: sub (user_id as str), iat, exp, jti.
    """
    now = datetime.now(timezone.utc)
    expiry = now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": expiry,
        # Guarantees each issued token is unique even if generated in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _create_refresh_token(user_id: int, session: Session) -> str:
    """
    Creates a new refresh token, stores its SHA-256 hash in the DB,
    and returns the raw token to be sent to the client once.
    """
    raw_token = secrets.token_hex(32)
    token_hash = _hash_token(raw_token)
    expires_at = datetime.now(timezone.utc) + current_app.config["JWT_REFRESH_TOKEN_EXPIRES"]

    refresh_token = RefreshToken(
        user_id=user_id,
        token_hash=token_hash,
        expires_at=expires_at,
    )
    session.add(refresh_token)
    # flush so the row exists before we return; commit is the route's job
    session.flush()

    return raw_token


def _start_session(user: User, session: Session, notifier) -> dict:
    """Token pair plus a freshly opened notification channel handle."""
    return {
        "user": _build_user_dict(user),
        "access_token": _create_access_token(user.id),
        "refresh_token": _create_refresh_token(user.id, session),
        "channel": notifier.open_channel(user.id).to_dict(),
    }


def _build_user_dict(user: User) -> dict:
    """Serialises a User to a plain dict. No business logic."""
    return {
        "id": user.id,
        "username": user.username,
        "created_at": user.created_at.isoformat(),
    }


# ── Public service functions ───────────────────────────────────────────────

def register_user(
        username: str,
        password: str,
        session: Session,
        notifier,
) -> dict:
    """
    Creates a new user account and starts a session for it.

    Raises:
      ConflictError(DUPLICATE_USERNAME) — handle already taken (any case)

    Returns: {"user", "access_token", "refresh_token", "channel"}
    """
    username = normalize_username(username)

    existing_username = session.execute(
        select(User).where(User.username == username)
    ).scalar_one_or_none()
    if existing_username is not None:
        raise ConflictError(
            ErrorCode.DUPLICATE_USERNAME,
            f"The username '{username}' is already taken.",
            field="username",
        )

    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    password_hash = bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")

    user = User(username=username, password_hash=password_hash)
    session.add(user)
    try:
        session.flush()  # populate user.id before creating refresh token
    except IntegrityError as exc:
        raise ConflictError(
            ErrorCode.DUPLICATE_USERNAME,
            f"The username '{username}' is already taken.",
            field="username",
        ) from exc

    logger.info("Registered user %s (%s)", user.id, username)
    return _start_session(user, session, notifier)


def login_user(
        username: str,
        password: str,
        session: Session,
        notifier,
) -> dict:
    """
    Validates credentials and starts a new session.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — username not found or password wrong.
      Uses the same error for both to avoid username enumeration.

    Returns: {"user", "access_token", "refresh_token", "channel"}
    """
    user = session.execute(
        select(User).where(User.username == normalize_username(username))
    ).scalar_one_or_none()

    if user is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The username or password is incorrect.",
            401,
        )

    return _start_session(user, session, notifier)


def refresh_access_token(
        raw_refresh_token: str,
        session: Session,
) -> dict:
    """
    Validates a refresh token and issues a new access token.

    The refresh token itself is NOT rotated on use.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — not found, revoked, or expired.

    Returns: {"access_token": "..."}
    """
    token_hash = _hash_token(raw_refresh_token)
    now = datetime.now(timezone.utc)

    record = session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == token_hash)
    ).scalar_one_or_none()

    if record is None or record.revoked or _as_utc(record.expires_at) <= now:
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "The refresh token is invalid, expired, or has been revoked.",
            401,
        )

    return {
        "access_token": _create_access_token(record.user_id),
    }


def logout_user(
        raw_refresh_token: str,
        session: Session,
        notifier,
        caller_id: int,
        channel_id: str | None = None,
) -> None:
    """
    Ends a session: revokes the refresh token and, when given, closes the
    caller's notification channel.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — token not found or already revoked.
      NotFoundError(CHANNEL_NOT_FOUND)     — channel_id is not open
      AuthorizationError(FORBIDDEN)        — channel belongs to another user
    """
    token_hash = _hash_token(raw_refresh_token)

    record = session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == token_hash)
    ).scalar_one_or_none()

    if record is None or record.revoked:
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "The refresh token is invalid or has already been revoked.",
            401,
        )

    if channel_id is not None:
        notifier.close_channel(channel_id, owner_id=caller_id)

    record.revoked = True
    session.flush()


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the profile of the currently authenticated user.

    Raises:
      NotFoundError(USER_NOT_FOUND) — user_id from JWT no longer exists in DB.
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
        )
    return _build_user_dict(user)


def get_user_by_username(username: str, session: Session) -> dict:
    """Case-insensitive handle lookup."""
    user = session.execute(
        select(User).where(User.username == normalize_username(username))
    ).scalar_one_or_none()
    if user is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            f"User '{username}' not found.",
        )
    return _build_user_dict(user)
