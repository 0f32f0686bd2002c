import logging
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.user import User
from app.schemas.user import UserCreate
from app.core.security import hash_password, verify_password
from app.core.jwt_config import create_access_token, create_refresh_token, decode_token
from app.services.user_queries import get_user_by_email, get_user_by_id
from fastapi import HTTPException
from sqlalchemy.sql import func

logger = logging.getLogger(__name__)

async def authenticate_user(
    db: AsyncSession,
    email: str,
    password: str
):
    user = await get_user_by_email(db, email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user

async def create_user(db: AsyncSession, data: UserCreate):
    existing = await get_user_by_email(db, data.email)
    if existing:
        raise HTTPException(409, "User already exists")

    user = User(
        email=data.email.lower(),
        name=data.name.strip(),
        password_hash=hash_password(data.password)
    )

    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("user registered id=%s", user.id)
    return user

def _issue_tokens(user: User):
    access_token = create_access_token({"sub": str(user.id)})
    refresh_token = create_refresh_token({"sub": str(user.id)})
    return access_token, refresh_token

async def login_user_service(
    db: AsyncSession,
    email: str,
    password: str
):
    user = await authenticate_user(db, email, password)

    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    access_token, refresh_token = _issue_tokens(user)

    user.refresh_token = refresh_token
    user.last_login_at = func.now()

    await db.commit()
    await db.refresh(user)

    logger.info("user logged in id=%s", user.id)
    return user, access_token, refresh_token

async def refresh_tokens_service(db: AsyncSession, refresh_cookie: str | None):
    if refresh_cookie is None:
        raise HTTPException(status_code=401, detail="Refresh token missing")

    payload = decode_token(refresh_cookie, expected_type="refresh")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(401, "Invalid refresh token")

    user = await get_user_by_id(db, user_id)

    if not user:
        raise HTTPException(401, "User not found")

    if user.refresh_token != refresh_cookie:
        raise HTTPException(401, "Refresh token revoked or rotated")

    access_token, refresh_token = _issue_tokens(user)
    user.refresh_token = refresh_token

    await db.commit()
    await db.refresh(user)

    return user, access_token, refresh_token

async def logout_user_service(db: AsyncSession, user: User):
    user.refresh_token = None
    await db.commit()
    return {"message": "Logged out"}
