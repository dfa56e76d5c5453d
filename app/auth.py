from datetime import datetime, timedelta
from typing import Annotated

import bcrypt
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.models import User
from app.schemas import TokenData

settings = get_settings()

SESSION_COOKIE = "access_token"

# Bearer header for API clients; the browser sends the session cookie instead
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its hash."""
    if not hashed_password:
        return False
    return bcrypt.checkpw(
        plain_password.encode('utf-8'),
        hashed_password.encode('utf-8')
    )


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt()
    ).decode('utf-8')


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a signed session token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User | None:
    """Authenticate a user by username and password."""
    user = await get_user_by_username(db, username)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


async def get_or_create_oauth_user(
    db: AsyncSession,
    google_id: str,
    display_name: str | None = None,
    email: str | None = None,
    profile_picture: str | None = None,
) -> User:
    """Find the user linked to an identity-provider id, creating one on first login."""
    result = await db.execute(select(User).where(User.google_id == google_id))
    user = result.scalar_one_or_none()
    if user:
        return user

    username = display_name or f"user-{google_id}"
    if await get_user_by_username(db, username):
        username = f"{username}-{google_id}"
    if email and await get_user_by_email(db, email):
        email = None

    user = User(
        username=username,
        google_id=google_id,
        display_name=display_name,
        email=email,
        profile_picture=profile_picture,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


def get_token_from_cookie_or_header(request: Request, token: str | None = Depends(oauth2_scheme)) -> str | None:
    """Extract token from cookie or Authorization header."""
    cookie_token = request.cookies.get(SESSION_COOKIE)
    if cookie_token:
        if cookie_token.startswith("Bearer "):
            return cookie_token[7:]
        return cookie_token
    return token


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_cookie_or_header)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Get the current user if authenticated, otherwise return None."""
    if not token:
        return None

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        user_id = payload.get("sub")
        if user_id is None:
            return None
        token_data = TokenData(user_id=int(user_id))
    except (JWTError, ValueError):
        return None

    return await get_user_by_id(db, token_data.user_id)


async def get_current_user(
    user: Annotated[User | None, Depends(get_current_user_optional)],
) -> User:
    """Get the current authenticated user from the session token."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_subscription(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Gate premium routes behind the one-time payment."""
    expired = (
        current_user.subscription_expiry is not None
        and current_user.subscription_expiry < datetime.utcnow()
    )
    if not current_user.is_subscribed or expired:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Subscription required",
        )
    return current_user
