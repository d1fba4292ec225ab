from datetime import datetime, timedelta
from typing import Optional
import hmac
import secrets

from fastapi import status
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.hash import pbkdf2_sha256 as hasher

from crm.auth.schemas import TokenData
from crm.config import ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_PASSWORD, JWT_ALGORITHM, JWT_SECRET
from crm.errors import APIError

# Error codes the dashboard API client treats as an expired session
TOKEN_EXPIRED = "TOKEN_EXPIRED"
TOKEN_MISSING = "TOKEN_MISSING"
TOKEN_INVALID = "TOKEN_INVALID"


def get_password_hash(password: str) -> str:
    return hasher.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return hasher.verify(password, password_hash)


def verify_admin_password(password: str) -> bool:
    return hmac.compare_digest(password.encode(), ADMIN_PASSWORD.encode())


def generate_invitation_token() -> str:
    return secrets.token_urlsafe(32)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def credentials_error(detail: str, code: str) -> APIError:
    return APIError(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        code=code,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str) -> TokenData:
    """Decode a JWT, mapping failures onto the session error codes."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise credentials_error("Session expired", TOKEN_EXPIRED)
    except JWTError:
        raise credentials_error("Could not validate credentials", TOKEN_INVALID)

    email = payload.get("sub")
    principal_type = payload.get("type")
    if email is None or principal_type is None:
        raise credentials_error("Could not validate credentials", TOKEN_INVALID)
    return TokenData(email=email, type=principal_type, client_id=payload.get("cid"))
