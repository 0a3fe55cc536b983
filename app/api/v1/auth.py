from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import get_current_user, rate_limit_dependency
from app.db.session import get_db
from app.models.users import User
from app.schemas.user import (
    VerificationRequest, VerificationRequestResponse, UserVerify,
    AuthResponse, CurrentUserResponse, UserResponse,
)
from app.services.verification import VerificationGate

router = APIRouter()

request_rate_limit = rate_limit_dependency(
    requests_limit=5,
    time_window=15 * 60,
    scope="auth-request",
    message="Too many authentication attempts from this IP. Please try again later.",
)
verify_rate_limit = rate_limit_dependency(
    requests_limit=3,
    time_window=10 * 60,
    scope="auth-verify",
    message="Too many verification attempts from this IP. Please try again later.",
)


def get_verification_gate(db: AsyncSession = Depends(get_db)) -> VerificationGate:
    return VerificationGate(db, admin_emails=settings.admin_emails)


@router.post(
    "/request-verification",
    response_model=VerificationRequestResponse,
    dependencies=[Depends(request_rate_limit)],
)
async def request_verification(
        data: VerificationRequest,
        gate: VerificationGate = Depends(get_verification_gate),
):
    masked_email = await gate.request_verification(data.email)
    return VerificationRequestResponse(
        success=True,
        message="Verification code sent to your email address. Please check your email and enter the code to continue.",
        email=masked_email,
    )


@router.post(
    "/verify-email",
    response_model=AuthResponse,
    dependencies=[Depends(verify_rate_limit)],
)
async def verify_email(
        data: UserVerify,
        gate: VerificationGate = Depends(get_verification_gate),
):
    token, user = await gate.verify_code(data.email, data.code)
    return AuthResponse(
        success=True,
        token=token,
        user=UserResponse.model_validate(user),
        message="Email verified successfully. You are now logged in.",
    )


@router.get("/verify", response_model=CurrentUserResponse)
async def verify_token(current_user: User = Depends(get_current_user)):
    return CurrentUserResponse(user=UserResponse.model_validate(current_user))
