"""Auth router: registration, login, and user info."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from edunexus.config import settings
from edunexus.database import get_db
from edunexus.errors import Conflict, Unauthenticated, ValidationError
from edunexus.middleware.auth import (
    hash_password,
    verify_password,
    create_access_token,
    get_current_user,
)
from edunexus.middleware.rate_limit import limiter
from edunexus.models.user import User
from edunexus.schemas.auth import RegisterRequest, LoginRequest, TokenResponse, UserResponse
from edunexus.services.validation import clean_text, to_iso

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Admins are provisioned out of band, never through /register.
SELF_REGISTER_ROLES = ("student", "instructor")


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        created_at=to_iso(user.created_at),
    )


@router.post("/register", response_model=UserResponse, status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user."""
    if req.role not in SELF_REGISTER_ROLES:
        raise ValidationError("Role must be 'student' or 'instructor'", field="role")
    name = clean_text(req.name, "name", min_length=2)
    email = clean_text(req.email, "email").lower()
    if "@" not in email:
        raise ValidationError("Please include a valid email", field="email")
    if len(req.password) < 6:
        raise ValidationError("Password must be at least 6 characters", field="password")

    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise Conflict("Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(req.password),
        name=name,
        role=req.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _user_to_response(user)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def login(request: Request, req: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return a JWT."""
    user = db.query(User).filter(User.email == req.email.strip().lower()).first()
    if not user or not verify_password(req.password, user.password_hash):
        raise Unauthenticated("Invalid email or password")

    token = create_access_token({"sub": user.id, "role": user.role})
    return TokenResponse(
        access_token=token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=_user_to_response(user),
    )


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user info."""
    return _user_to_response(current_user)
