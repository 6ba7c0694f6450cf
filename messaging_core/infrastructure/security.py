"""Token helpers for the identity provider's bearer tokens."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from messaging_core.config import get_settings


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Mint a token the way the identity provider does; used by scripts and tests."""

    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    return jwt.encode(
        {**data, "exp": expire},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


__all__ = ["create_access_token", "decode_access_token"]
