import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request
from jose import JWTError, jwt
from pymongo.database import Database

from config import Settings
from database import USERS
from errors import forbidden, unauthorized

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Database:
    return request.app.state.db


def issue_token(payload: Dict[str, Any], settings: Settings) -> str:
    """Sign whatever identity the caller supplied; expiry is settings.token_ttl."""
    to_encode = dict(payload)
    to_encode["exp"] = datetime.now(timezone.utc) + settings.token_ttl
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str, settings: Settings) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise unauthorized()


def identity_email(identity: Dict[str, Any]) -> Optional[str]:
    email = identity.get("email") or identity.get("userEmail")
    return email.lower() if isinstance(email, str) else None


# ---------------------------
# Dependencies
# ---------------------------

def get_identity(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    if not authorization:
        raise unauthorized()
    if not authorization.lower().startswith("bearer "):
        raise unauthorized()
    token = authorization.split(" ", 1)[1].strip()
    return decode_token(token, settings)


def require_admin(
    identity: Dict[str, Any] = Depends(get_identity),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    email = identity_email(identity)
    user = db[USERS].find_one({"email": email}) if email else None
    if not user or user.get("role") != "admin":
        logger.info(f"Admin access refused for {email}")
        raise forbidden()
    return identity


def ensure_owner(identity: Dict[str, Any], email: str) -> None:
    if identity_email(identity) != (email or "").lower():
        raise forbidden()
