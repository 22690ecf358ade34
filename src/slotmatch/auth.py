"""Password hashing, bearer tokens and the current-user dependency."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from slotmatch.config import Config
from slotmatch.database import Database
from slotmatch.dependencies import get_config, get_db
from slotmatch.errors import AuthenticationError, NotFoundError

log = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

# auto_error=False so a missing header is answered with 401 below, not 403.
_bearer = HTTPBearer(auto_error=False)


# ── Passwords ─────────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def authenticate(db: Database, email: str, password: str) -> dict:
    """Return the user row for valid credentials (404 unknown email, 401 bad password)."""
    user = db.get_user_by_email(email)
    if not user:
        raise NotFoundError("User not found.")
    if not verify_password(password, user["password_hash"]):
        log.info("Rejected login for user %s", user["id"])
        raise AuthenticationError("Invalid password.")
    return user


# ── Tokens ────────────────────────────────────────────────────────────────

def create_token(cfg: Config, user_id: int, email: str) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "email": email,
        "iat": issued,
        "exp": issued + timedelta(hours=cfg.jwt_expire_hours),
    }
    return jwt.encode(claims, cfg.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_token(cfg: Config, token: str) -> dict:
    return jwt.decode(token, cfg.jwt_secret, algorithms=[JWT_ALGORITHM])


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    cfg: Config = Depends(get_config),
    db: Database = Depends(get_db),
) -> dict:
    """Resolve the bearer token to a user row; every failure is a 401."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    try:
        claims = decode_token(cfg, credentials.credentials)
        user_id = int(claims["sub"])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise AuthenticationError("Invalid token")

    user = db.get_user_by_id(user_id)
    if not user:
        raise AuthenticationError("User not found")
    return user
