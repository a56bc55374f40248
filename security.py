import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from pymongo.database import Database

import config
from database import get_db
from schemas import Role

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

INVALID_TOKEN = "Invalid or expired token"


class AuthUser(BaseModel):
    id: str


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_access_token(token: Optional[str]) -> AuthUser:
    """Return the identity carried by ``token``.

    Every failure (missing, malformed, bad signature, expired) is reported
    the same way so clients cannot tell them apart.
    """
    credentials_exception = HTTPException(status_code=401, detail=INVALID_TOKEN)
    if not token:
        raise credentials_exception
    if token.startswith("Bearer "):
        token = token.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError as exc:
        logger.info("Rejected token: %s", exc)
        raise credentials_exception
    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        raise credentials_exception
    return AuthUser(id=user_id)


def require_sign_in(authorization: Optional[str] = Header(default=None, alias="Authorization")) -> AuthUser:
    return decode_access_token(authorization)


def require_admin(current: AuthUser = Depends(require_sign_in), db: Database = Depends(get_db)) -> Dict[str, Any]:
    user = db["user"].find_one({"_id": ObjectId(current.id)}, {"password": 0, "answer": 0})
    if not user:
        raise HTTPException(404, "User not found")
    try:
        role = Role(user.get("role", Role.CUSTOMER))
    except ValueError:
        logger.warning("User %s has unknown role %r", current.id, user.get("role"))
        raise HTTPException(403, "Forbidden")
    match role:
        case Role.ADMIN:
            return user
        case Role.CUSTOMER:
            raise HTTPException(403, "Forbidden")
