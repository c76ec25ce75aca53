import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

import config
from database import get_db
from errors import fail

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: Any, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({"_id": str(user_id), "exp": expire}, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        fail(401, message="Invalid or expired token")


# Dependencies

def require_sign_in(authorization: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    """Decoded JWT claims of the caller.

    The header carries the raw token, without a ``Bearer`` prefix.
    """
    if not authorization:
        logger.warning("Rejected request without token")
        fail(401, message="Invalid or expired token")
    claims = decode_token(authorization)
    if not claims.get("_id"):
        fail(401, message="Invalid or expired token")
    return claims


def is_admin(claims: Dict[str, Any] = Depends(require_sign_in), db: Database = Depends(get_db)) -> Dict[str, Any]:
    try:
        user = db["user"].find_one({"_id": ObjectId(claims["_id"])})
    except Exception as e:
        logger.exception("Admin lookup failed for %s: %s", claims.get("_id"), e)
        fail(500, message="Internal server error")
    if not user or user.get("role") != 1:
        logger.warning("Non-admin %s refused", claims.get("_id"))
        fail(401, message="UnAuthorized Access")
    return user
