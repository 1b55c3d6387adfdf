import logging
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from ..config import settings

logger = logging.getLogger(__name__)


def verify_token(token: str) -> dict:
    """
    Валидирует JWT токен и возвращает его payload

    Args:
        token: JWT токен из заголовка Authorization

    Returns:
        dict: Декодированный payload токена

    Raises:
        HTTPException: Если токен невалиден или истек срок действия
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm]
        )

        if payload.get("sub") is None:
            logger.warning("Token missing 'sub' claim")
            raise credentials_exception

        if payload.get("exp") is None:
            logger.warning("Token missing 'exp' claim")
            raise credentials_exception

        return payload

    except ExpiredSignatureError as e:
        logger.warning("Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired"
        ) from e
    except JWTError as e:
        logger.error(f"JWT validation error: {str(e)}")
        raise credentials_exception from e


def generate_access_jwt(session_id: str, user_id: str) -> str:
    """Генерация JWT токена для клиентской сессии"""
    payload = {
        "sub": str(session_id),
        "uid": str(user_id),
        "exp": datetime.now(timezone.utc)
        + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)
