# telecare/auth_api.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select

from .database import get_async_session
from .models import AuthSession, User
from .schemas import SignInRequest, SignUpRequest, TokenResponse, UserProfile
from .security import get_current_token, get_current_user, hash_password, issue_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/auth/signup", response_model=UserProfile, status_code=201)
async def sign_up(payload: SignUpRequest, db: AsyncSession = Depends(get_async_session)):
    email = payload.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalars().first():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        username=(payload.username or "").strip() or None,
        email=email,
        user_type=payload.user_type.value,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    await db.refresh(user)
    logger.info("AUTH: New %s account %s", user.user_type, user.id)
    return user


@router.post("/auth/login", response_model=TokenResponse)
async def sign_in(payload: SignInRequest, db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = res.scalars().first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = await issue_token(db, user)
    return TokenResponse(access_token=token, user=UserProfile.model_validate(user))


@router.post("/auth/logout", status_code=204)
async def sign_out(
    token: str = Depends(get_current_token),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    session_row = await db.get(AuthSession, token)
    if session_row:
        await db.delete(session_row)
        await db.commit()


@router.get("/users/me", response_model=UserProfile)
async def read_profile(user: User = Depends(get_current_user)):
    return user
