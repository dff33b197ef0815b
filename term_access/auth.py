from datetime import datetime, timedelta, timezone
import logging

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from term_access.config import Settings
from term_access.database import get_db
from term_access.dependencies import get_settings
from term_access.exceptions import AuthenticationError, AuthorizationError, UserNotFoundError
from term_access.services.identity import IdentityDirectory, Principal

logger = logging.getLogger(__name__)

# Tokens are issued by the host; a missing token means anonymous
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def create_access_token(
    user_id: int,
    config: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.access_token_expire_minutes))
    return jwt.encode({"sub": str(user_id), "exp": expire}, config.secret_key, algorithm=config.algorithm)


def decode_access_token(token: str, config: Settings) -> int:
    """Return the user id carried in *token*."""
    try:
        payload = jwt.decode(token, config.secret_key, algorithms=[config.algorithm])
    except ExpiredSignatureError:
        logger.warning("Token expired")
        raise AuthenticationError("Token has expired")
    except JWTError as e:
        logger.warning(f"JWT decoding failed: {str(e)}")
        raise AuthenticationError("Invalid token")

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        logger.warning("Token 'sub' claim is not a user id")
        raise AuthenticationError("Token does not carry a user id")


async def get_current_principal(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> Principal:
    identity = IdentityDirectory(db)
    if not token:
        return await identity.load_principal(None)

    user_id = decode_access_token(token, config)
    try:
        return await identity.load_principal(user_id)
    except UserNotFoundError:
        raise AuthenticationError("Could not validate credentials")


def require_capability(capability_name: str):
    """Dependency factory: the current principal must hold the named setting's capability."""

    async def checker(
        principal: Principal = Depends(get_current_principal),
        config: Settings = Depends(get_settings),
    ) -> Principal:
        capability = getattr(config, capability_name)
        if not principal.has_capability(capability):
            raise AuthorizationError(required_capability=capability)
        return principal

    return checker
