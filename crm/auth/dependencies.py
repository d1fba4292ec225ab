from typing import Optional

from fastapi import Depends, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from crm.auth.schemas import Principal
from crm.auth.utils import TOKEN_INVALID, TOKEN_MISSING, credentials_error, verify_token
from crm.config import ADMIN_EMAIL, AUTH_COOKIE_NAME
from crm.database import get_db
from crm.errors import APIError
from crm.models import Client, ClientStatus, PrincipalType

bearer_scheme = HTTPBearer(auto_error=False)


def get_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is not None:
        return credentials.credentials
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if not token:
        raise credentials_error("Authentication required", TOKEN_MISSING)
    return token


def get_current_principal(
    token: str = Depends(get_token),
    db: Session = Depends(get_db)
) -> Principal:
    token_data = verify_token(token)

    if token_data.type == PrincipalType.ADMIN:
        if token_data.email != ADMIN_EMAIL:
            raise credentials_error("Could not validate credentials", TOKEN_INVALID)
        return Principal(type=PrincipalType.ADMIN, email=ADMIN_EMAIL, name="Admin")

    client = db.query(Client).filter(Client.id == token_data.client_id).first()
    if client is None or client.email != token_data.email:
        raise credentials_error("Could not validate credentials", TOKEN_INVALID)
    if client.status != ClientStatus.ACTIVE.value:
        raise APIError(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not active", code="ACCOUNT_INACTIVE")
    return Principal(
        type=PrincipalType.CLIENT,
        email=client.email,
        name=client.contact_name,
        client_id=client.id,
    )


def require_type(allowed: PrincipalType):
    def type_checker(principal: Principal = Depends(get_current_principal)):
        if principal.type != allowed:
            raise APIError(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
                code="FORBIDDEN",
            )
        return principal
    return type_checker


# Convenience wrappers
def require_admin():
    return require_type(PrincipalType.ADMIN)


def require_client():
    return require_type(PrincipalType.CLIENT)
