"""
Authentication Service

Email/password accounts with werkzeug password hashes and opaque bearer
tokens stored in ``auth_sessions``. Only gates the admin routes.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from orderdesk.core.config import Settings, get_settings
from orderdesk.core.exceptions import AuthFailure, ValidationError
from orderdesk.models import AuthSession, User, UserRole, utcnow
from orderdesk.schemas import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)


def hash_password(pw: str) -> str:
    return generate_password_hash(pw)


def verify_password(pw: str, pw_hash: str) -> bool:
    return check_password_hash(pw_hash, pw)


class AuthService:
    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    async def create_user(
        self,
        email: str,
        password: str,
        role: UserRole = UserRole.CUSTOMER,
        name: Optional[str] = None,
    ) -> User:
        """Insert a user; duplicate emails are a ValidationError."""
        user = User(
            name=name,
            email=email.strip().lower(),
            password_hash=hash_password(password),
            role=role,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError("User already exists")
        await self.db.refresh(user)
        logger.info(f"User {user.email} registered ({user.role.value})")
        return user

    async def register(self, data: RegisterRequest) -> User:
        if data.role == UserRole.ADMIN and not self.settings.allow_admin_registration:
            raise AuthFailure("Admin accounts cannot be self-registered", status_code=403)
        return await self.create_user(data.email, data.password, data.role, data.name)

    async def login(self, data: LoginRequest) -> tuple[str, User]:
        """Check credentials and issue a new bearer token."""
        result = await self.db.execute(select(User).where(User.email == data.email))
        user = result.scalar_one_or_none()
        if user is None or not verify_password(data.password, user.password_hash):
            raise AuthFailure("Invalid credentials")

        token = secrets.token_urlsafe(32)
        self.db.add(
            AuthSession(
                token=token,
                user_id=user.id,
                expires_at=utcnow() + timedelta(minutes=self.settings.session_expire_minutes),
            )
        )
        await self.db.commit()
        logger.info(f"User {user.email} logged in")
        return token, user

    async def authenticate(self, token: str) -> User:
        """Resolve a bearer token to its user, dropping it if expired."""
        result = await self.db.execute(select(AuthSession).where(AuthSession.token == token))
        session = result.scalar_one_or_none()
        if session is None:
            raise AuthFailure("Token is not valid")
        if session.is_expired:
            await self.db.execute(delete(AuthSession).where(AuthSession.id == session.id))
            await self.db.commit()
            raise AuthFailure("Token has expired")

        user = await self.db.get(User, session.user_id)
        if user is None:
            raise AuthFailure("User not found")
        return user

    async def logout(self, token: str) -> None:
        await self.db.execute(delete(AuthSession).where(AuthSession.token == token))
        await self.db.commit()
