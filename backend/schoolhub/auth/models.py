"""Authentication request/response schemas."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from ..schemas.common import CamelModel
from ..schemas.user import UserOut


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class FederatedLogin(CamelModel):
    id_token: str = Field(..., min_length=1)


class TokenData(BaseModel):
    user_id: str
    role: str


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserOut


class FederatedIdentity(BaseModel):
    """Claims of a verified federated id-token that we rely on."""

    uid: str
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    picture: Optional[str] = None
