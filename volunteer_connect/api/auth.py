"""Auth API router: register, login, password reset."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from volunteer_connect.core.config import settings
from volunteer_connect.core.rate_limiter import limiter
from volunteer_connect.db.session import get_db
from volunteer_connect.schemas.schemas import (
    LoginRequest, RegisterRequest, ForgotPasswordRequest, ResetPasswordRequest,
    UserOut, ok,
)
from volunteer_connect.services.auth_service import auth_service, RESET_REQUESTED_MESSAGE

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new volunteer account."""
    user = auth_service.register(
        db, body.name, body.email, body.phone, body.password, body.confirm_password
    )
    return ok(data=UserOut.model_validate(user), message="User registered successfully")


@router.post("/login")
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return a bearer token."""
    result = auth_service.authenticate(db, body.email, body.password)
    return ok(data=result, message="Login successful")


@router.post("/forgot-password")
@limiter.limit(settings.FORGOT_PASSWORD_RATE_LIMIT)
async def forgot_password(request: Request, body: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """Email a reset link. The answer is the same whether or not the address exists."""
    await auth_service.forgot_password(db, body.email)
    return ok(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password-with-token")
async def reset_password_with_token(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    auth_service.reset_password(db, body.token, body.new_password)
    return ok(message="Password has been reset successfully")
