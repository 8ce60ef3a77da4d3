"""Identity schemas: registration, login and the user shapes embedded elsewhere."""

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    role: str = "student"  # student | instructor; admins are provisioned directly


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: str
    created_at: str

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserResponse


class UserSummary(BaseModel):
    """Who submitted or who teaches; embedded in course and submission payloads."""

    id: str
    name: str
    email: str
