from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from redis.asyncio import Redis
from typing import Optional, Iterable
from loguru import logger

from app.db.session import get_db
from app.db.redis import get_redis
from app.models.users import User
from app.core.config import settings
from app.core.exceptions import Unauthenticated, Forbidden, RateLimited
from app.core.security import decode_access_token, InvalidTokenError

bearer_scheme = HTTPBearer(auto_error=False)


async def get_bearer_token(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


async def authenticate(db: AsyncSession, token: Optional[str]) -> User:
    """
    Проверяет токен и пользователя.

    The email embedded in the token must still be the user's email, so a
    token minted before an email change stops working.
    """
    if not token:
        raise Unauthenticated("Authentication required")

    try:
        token_data = decode_access_token(token)
    except InvalidTokenError as e:
        logger.info(f"Rejected token: {str(e)}")
        raise Unauthenticated()

    result = await db.execute(select(User).where(User.sid == token_data.user_sid))
    user = result.scalar_one_or_none()

    if user is None:
        raise Unauthenticated("User not found")

    if user.email != token_data.email:
        raise Unauthenticated("Token email mismatch", code="TOKEN_EMAIL_MISMATCH")

    return user


async def get_current_user(
        db: AsyncSession = Depends(get_db),
        token: Optional[str] = Depends(get_bearer_token),
) -> User:
    """
    Получает текущего пользователя из JWT-токена
    """
    return await authenticate(db, token)


class AdminGuard:
    """
    Dependency that admits only users whose email is on the admin allowlist.

    No/invalid token is 401, a valid non-admin identity is 403.
    """

    def __init__(self, admin_emails: Iterable[str]):
        self.admin_emails = {email.strip().lower() for email in admin_emails}

    def is_admin(self, user: User) -> bool:
        return user.email.lower() in self.admin_emails

    async def __call__(
            self,
            db: AsyncSession = Depends(get_db),
            token: Optional[str] = Depends(get_bearer_token),
    ) -> User:
        user = await authenticate(db, token)
        if not self.is_admin(user):
            raise Forbidden("Admin access required", code="ADMIN_REQUIRED")
        return user


get_admin_user = AdminGuard(settings.admin_emails)


def rate_limit_dependency(
        requests_limit: int = 100,
        time_window: int = 60,
        scope: str = "global",
        message: str = "Too many requests",
):
    """
    Создает зависимость для ограничения частоты запросов
    """

    async def rate_limit(
            request: Request,
            redis: Redis = Depends(get_redis)
    ):
        client_ip = request.client.host if request.client else "unknown"

        key = f"rate_limit:{scope}:{client_ip}"

        count = await redis.incr(key)

        if count == 1:
            await redis.expire(key, time_window)

        if count > requests_limit:
            ttl = await redis.ttl(key)
            retry_after = ttl if isinstance(ttl, int) and ttl > 0 else time_window
            raise RateLimited(message, retryAfter=retry_after)

    return rate_limit
