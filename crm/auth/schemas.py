"""Auth Pydantic schemas for request / response validation."""


from pydantic import BaseModel, EmailStr

from crm.users.schemas import UserOut


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
