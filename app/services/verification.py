from datetime import timedelta
from typing import Awaitable, Callable, Iterable, Optional, Tuple
import math
import secrets

from loguru import logger
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    Forbidden, RateLimited, NotFound, Conflict, ValidationError, TooManyAttempts, ServiceUnavailable,
)
from app.core.security import create_access_token
from app.models.base import Base, utcnow
from app.models.users import User, UserRole, EmailVerification
from app.services.email import send_verification_email, mask_email

CodeSender = Callable[[str, str], Awaitable[bool]]


def generate_verification_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


class VerificationGate:
    """
    Turns an email address into a verified identity through a one-time code.

    One pending (unverified, unexpired) challenge per email; every checked
    code burns an attempt; a token is minted only after a successful match.
    """

    def __init__(
            self,
            db: AsyncSession,
            admin_emails: Iterable[str] = (),
            send_code: Optional[CodeSender] = None,
            expire_minutes: Optional[int] = None,
            max_attempts: Optional[int] = None,
    ):
        self.db = db
        self.admin_emails = {email.lower() for email in admin_emails}
        self.send_code = send_code or send_verification_email
        self.expire_minutes = expire_minutes or settings.VERIFICATION_CODE_EXPIRE_MINUTES
        self.max_attempts = max_attempts or settings.VERIFICATION_MAX_ATTEMPTS

    async def request_verification(self, email: str) -> str:
        email = email.lower()
        if email in self.admin_emails:
            raise Forbidden(
                "Admin access requires out-of-band verification. Contact the system administrator.",
                code="ADMIN_VERIFICATION_FORBIDDEN",
            )

        await self.cleanup_expired()

        now = utcnow()
        pending = await self._latest_challenge(email)
        if pending is not None and not pending.verified and not pending.is_expired(now):
            retry_after = math.ceil((pending.expires_at - now).total_seconds())
            raise RateLimited(
                "Verification code already sent. Please check your email or wait before requesting again.",
                code="VERIFICATION_PENDING",
                retryAfter=retry_after,
            )

        code = generate_verification_code()
        challenge = EmailVerification(
            sid=Base.generate_sid(),
            email=email,
            code=code,
            attempts=0,
            verified=False,
            expires_at=now + timedelta(minutes=self.expire_minutes),
        )
        self.db.add(challenge)
        await self.db.commit()

        try:
            sent = await self.send_code(email, code)
        except Exception as e:
            logger.error(f"Verification email to {mask_email(email)} raised: {str(e)}")
            sent = False

        if not sent:
            # Nobody holds this code, so it must not block the next request
            await self.db.delete(challenge)
            await self.db.commit()
            raise ServiceUnavailable(
                "Could not send the verification email. Please try again later.",
                code="EMAIL_DELIVERY_FAILED",
            )

        logger.info(f"Verification code issued for {mask_email(email)}")
        return mask_email(email)

    async def verify_code(self, email: str, code: str) -> Tuple[str, User]:
        email = email.lower()
        # Looked up by email alone; the code is what is being checked
        challenge = await self._latest_challenge(email)

        if challenge is None:
            raise NotFound("No pending verification found for this email", code="VERIFICATION_NOT_FOUND")
        if challenge.verified:
            raise Conflict("Email already verified", code="ALREADY_VERIFIED")

        now = utcnow()
        if challenge.is_expired(now):
            raise ValidationError("Verification code expired. Please request a new one.", code="VERIFICATION_EXPIRED")

        if challenge.attempts >= self.max_attempts:
            raise TooManyAttempts(
                attemptsRemaining=0,
                retryAfter=math.ceil((challenge.expires_at - now).total_seconds()),
            )

        attempts = await self._increment_attempts(challenge)

        if not secrets.compare_digest(challenge.code, code):
            logger.info(f"Invalid verification code for {mask_email(email)} (attempt {attempts})")
            raise ValidationError(
                "Invalid verification code",
                code="INVALID_CODE",
                attemptsRemaining=max(0, self.max_attempts - attempts),
            )

        if attempts > self.max_attempts:
            raise TooManyAttempts(attemptsRemaining=0)

        if not await self._mark_verified(challenge):
            raise Conflict("Email already verified", code="ALREADY_VERIFIED")

        user = await self.get_or_create_user(email)
        token = create_access_token(user.sid, user.email)
        logger.info(f"Email {mask_email(email)} verified, user {user.sid} signed in")
        return token, user

    async def get_or_create_user(self, email: str) -> User:
        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is not None:
            return user

        user = User(
            sid=Base.generate_sid(),
            email=email,
            role=UserRole.CUSTOMER,
            points_enabled=False,
            total_points=0,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def cleanup_expired(self) -> int:
        result = await self.db.execute(
            delete(EmailVerification)
            .where(EmailVerification.expires_at <= utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    async def _latest_challenge(self, email: str) -> Optional[EmailVerification]:
        result = await self.db.execute(
            select(EmailVerification)
            .where(EmailVerification.email == email)
            .order_by(EmailVerification.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _increment_attempts(self, challenge: EmailVerification) -> int:
        """attempts = attempts + 1 in SQL, so concurrent checks never lose a count"""
        result = await self.db.execute(
            update(EmailVerification)
            .where(EmailVerification.id == challenge.id)
            .values(attempts=EmailVerification.attempts + 1)
            .returning(EmailVerification.attempts)
            .execution_options(synchronize_session=False)
        )
        attempts = result.scalar_one()
        await self.db.commit()
        return attempts

    async def _mark_verified(self, challenge: EmailVerification) -> bool:
        result = await self.db.execute(
            update(EmailVerification)
            .where(EmailVerification.id == challenge.id, EmailVerification.verified.is_(False))
            .values(verified=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1
