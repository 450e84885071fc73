"""
Admin authentication dependency
"""
import logging
import secrets
from typing import Annotated, Optional

from fastapi import Cookie, Header

from .config import settings
from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def require_admin(
    admin_token: Annotated[Optional[str], Cookie()] = None,
    authorization: Annotated[Optional[str], Header()] = None,
) -> None:
    """
    Accept the admin token from the `admin_token` cookie or a Bearer header.

    An unset ADMIN_TOKEN locks every admin route.
    """
    presented = admin_token or _bearer_token(authorization)
    expected = settings.ADMIN_TOKEN

    if not expected or not presented or not secrets.compare_digest(presented, expected):
        logger.warning("🔒 Rejected admin request: missing or invalid token")
        raise AuthenticationError("Unauthorized")
