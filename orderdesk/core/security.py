"""
Request authentication dependencies.

    get_current_user  - any logged-in user (401 otherwise)
    require_admin     - admin role only (403 for other roles)
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.exceptions import AuthFailure
from orderdesk.database import get_db
from orderdesk.models import User, UserRole
from orderdesk.services.auth import AuthService

# auto_error=False so a missing header goes through our AuthFailure handler
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthFailure("No token, authorization denied")
    return await AuthService(db).authenticate(credentials.credentials)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        raise AuthFailure("Admin resource. Access denied.", status_code=403)
    return current_user
