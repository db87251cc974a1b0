# telecare/security.py
import hashlib
import hmac
import secrets
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Header, status
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from .config import SESSION_TTL_HOURS
from .database import get_async_session
from .models import AuthSession, User, UserType

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 200_000


# -------------------- Passwords --------------------

def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        salt, expected = stored.split("$", 1)
        salt_bytes = bytes.fromhex(salt)
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt_bytes, PBKDF2_ITERATIONS)
    return hmac.compare_digest(digest.hex(), expected)


# -------------------- Sessions --------------------

async def issue_token(db: AsyncSession, user: User) -> str:
    now = datetime.now(timezone.utc)
    pruned = await db.execute(
        delete(AuthSession)
        .where(AuthSession.expires_at <= now)
        .execution_options(synchronize_session=False)
    )
    if pruned.rowcount:
        logger.info("AUTH: Pruned %d expired session(s)", pruned.rowcount)

    token = secrets.token_hex(32)
    db.add(AuthSession(
        token=token,
        user_id=user.id,
        expires_at=now + timedelta(hours=SESSION_TTL_HOURS),
    ))
    await db.commit()
    return token


def _as_aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns.
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return authorization.split(" ", 1)[1].strip()


async def get_current_token(authorization: Optional[str] = Header(None)) -> str:
    return _bearer_token(authorization)


async def get_current_user(
    token: str = Depends(get_current_token),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    res = await db.execute(
        select(AuthSession).where(AuthSession.token == token).options(selectinload(AuthSession.user))
    )
    session_row = res.scalars().first()
    if not session_row:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if _as_aware(session_row.expires_at) <= datetime.now(timezone.utc):
        logger.info("AUTH: Session for user %s expired", session_row.user_id)
        await db.delete(session_row)
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session_row.user


async def get_current_patient(user: User = Depends(get_current_user)) -> User:
    if user.user_type != UserType.PATIENT.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only patients can do this")
    return user


async def get_current_doctor(user: User = Depends(get_current_user)) -> User:
    if user.user_type != UserType.DOCTOR.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only doctors can do this")
    return user
