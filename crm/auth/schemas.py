from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from crm.models import PrincipalType

class AdminLogin(BaseModel):
    password: str

class ClientLogin(BaseModel):
    email: EmailStr
    password: str

class SetPassword(BaseModel):
    token: str
    password: str = Field(..., min_length=8)

class Token(BaseModel):
    access_token: str
    token_type: str
    type: PrincipalType

class TokenData(BaseModel):
    email: str
    type: PrincipalType
    client_id: Optional[int] = None

class Principal(BaseModel):
    type: PrincipalType
    email: str
    name: Optional[str] = None
    client_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.type == PrincipalType.ADMIN
