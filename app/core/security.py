from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid

from jose import jwt, JWTError

from app.core.config import settings

ALGORITHM = "HS256"


class InvalidTokenError(Exception):
    pass


@dataclass(frozen=True)
class TokenData:
    user_sid: str
    email: str
    jti: str


def create_access_token(user_sid: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": user_sid,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": expire,
        # nonce: two tokens issued in the same second still differ
        "jti": str(uuid.uuid4()),
        "iss": settings.TOKEN_ISSUER,
        "aud": settings.TOKEN_AUDIENCE,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenData:
    """
    Verifies signature, expiry, issuer and audience.

    Every failure is reported as InvalidTokenError so callers cannot tell
    an expired token from a forged one.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[ALGORITHM],
            audience=settings.TOKEN_AUDIENCE,
            issuer=settings.TOKEN_ISSUER,
        )
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    user_sid = payload.get("sub")
    email = payload.get("email")
    if not user_sid or not email:
        raise InvalidTokenError("Token is missing required claims")

    return TokenData(user_sid=user_sid, email=email, jti=payload.get("jti", ""))
