# ============================================================================
# API Dependencies
# ============================================================================
from typing import Optional
from fastapi import Depends, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import logging

from app.core.exceptions import NotAuthenticated
from app.core.security import decode_access_token
from app.config import get_settings

settings = get_settings()
security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)


# ============================================================================
# Acting User
# ============================================================================
def resolve_acting_user(
    explicit_user_id: Optional[str],
    session_user_id: Optional[str]
) -> Optional[str]:
    """
    Decide who a request acts for.

    A user id supplied explicitly by the caller (scripted and testing flows)
    takes precedence over the authenticated session.
    """
    return explicit_user_id or session_user_id


def require_acting_user(
    explicit_user_id: Optional[str],
    session_user_id: Optional[str]
) -> str:
    user_id = resolve_acting_user(explicit_user_id, session_user_id)
    if not user_id:
        raise NotAuthenticated()
    return user_id


async def get_session_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    """User id from a bearer token, falling back to the session cookie"""
    if credentials:
        user_id = decode_access_token(credentials.credentials)
        if user_id:
            return user_id
        logger.debug("Ignoring invalid bearer token")

    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie:
        return decode_access_token(cookie)
    return None


async def get_current_user_id(
    session_user_id: Optional[str] = Depends(get_session_user_id)
) -> str:
    """Authenticated user id; 401 without a valid session"""
    return require_acting_user(None, session_user_id)


# ============================================================================
# Pagination
# ============================================================================
class Pagination:
    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    ):
        self.page = page
        self.limit = limit

    def to_dict(self, total: int) -> dict:
        return {
            "total": total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": (total + self.limit - 1) // self.limit,
        }
