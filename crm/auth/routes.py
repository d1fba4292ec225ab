from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from datetime import datetime
import logging

from crm.database import get_db
from crm.models import Client, ClientStatus, PrincipalType
from crm.auth.schemas import AdminLogin, ClientLogin, SetPassword, Token, Principal
from crm.auth.utils import create_access_token, get_password_hash, verify_admin_password, verify_password
from crm.auth.dependencies import get_current_principal
from crm.config import ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_EMAIL, AUTH_COOKIE_NAME

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
    )


@router.post("/admin/login", response_model=Token)
def admin_login(credentials: AdminLogin, response: Response):
    if not verify_admin_password(credentials.password):
        logger.warning("Failed admin login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(data={"sub": ADMIN_EMAIL, "type": PrincipalType.ADMIN.value})
    set_auth_cookie(response, access_token)
    return {"access_token": access_token, "token_type": "bearer", "type": PrincipalType.ADMIN}


@router.post("/login", response_model=Token)
def client_login(credentials: ClientLogin, response: Response, db: Session = Depends(get_db)):
    client = db.query(Client).filter(Client.email == credentials.email).first()

    if not client or not verify_password(credentials.password, client.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if client.status != ClientStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account is not active"
        )

    # Update last login
    client.last_login_at = datetime.utcnow()
    db.commit()

    access_token = create_access_token(
        data={"sub": client.email, "type": PrincipalType.CLIENT.value, "cid": client.id}
    )
    set_auth_cookie(response, access_token)
    return {"access_token": access_token, "token_type": "bearer", "type": PrincipalType.CLIENT}


@router.post("/set-password")
def accept_invitation(payload: SetPassword, db: Session = Depends(get_db)):
    """Set a client password from an invitation token and activate the account."""
    client = db.query(Client).filter(Client.invitation_token == payload.token).first()
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")

    client.password_hash = get_password_hash(payload.password)
    client.invitation_token = None
    client.status = ClientStatus.ACTIVE.value
    db.commit()

    return {"success": True, "message": "Password set successfully"}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(AUTH_COOKIE_NAME)
    return {"success": True, "message": "Logged out"}


@router.get("/verify")
def verify_session(principal: Principal = Depends(get_current_principal)):
    return {"valid": True, "principal": principal.dict()}
