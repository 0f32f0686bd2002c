from fastapi import APIRouter, Depends, Response, Cookie
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.dependencies import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.user import UserCreate, UserOut, UserLogin, UserBrief
from app.services.user_queries import search_users
from app.services.user_service import (
    create_user,
    login_user_service,
    refresh_tokens_service,
    logout_user_service,
)

router = APIRouter()

def _set_auth_cookies(response: Response, access: str, refresh: str):
    for key, value in (("access_token", access), ("refresh_token", refresh)):
        response.set_cookie(
            key=key,
            value=value,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite="lax"
        )

@router.post("/register", response_model=UserOut, status_code=201)
async def register_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    return await create_user(db, data)

@router.post("/login", response_model=UserOut)
async def login_user(data: UserLogin, response: Response, db: AsyncSession = Depends(get_db)):
    user, access, refresh = await login_user_service(db, data.email, data.password)
    _set_auth_cookies(response, access, refresh)
    return user

@router.post("/refresh", response_model=UserOut)
async def refresh_token(
    response: Response,
    db: AsyncSession = Depends(get_db),
    refresh_cookie: str | None = Cookie(None, alias="refresh_token")
):
    user, access, refresh = await refresh_tokens_service(db, refresh_cookie)
    _set_auth_cookies(response, access, refresh)
    return user

@router.post("/logout")
async def logout_user(
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await logout_user_service(db, current_user)
    response.delete_cookie("access_token")
    response.delete_cookie("refresh_token")
    return result

@router.get("/me", response_model=UserOut)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user

@router.get("/search", response_model=list[UserBrief])
async def search(
    q: str = "",
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if len(q.strip()) < 2:
        return []
    return await search_users(db, q.strip(), exclude_user_id=current_user.id)
