"""Registration, login and session"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from tradewiser.core.deps import get_db, get_current_user
from tradewiser.core.security import get_password_hash, verify_password
from tradewiser.models.user import User
from tradewiser.schemas.user import UserCreate, LoginRequest, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    *,
    db: AsyncSession = Depends(get_db),
    request: Request,
    user_in: UserCreate) -> Any:
    """Create an account and log it in"""
    result = await db.execute(
        select(User).where(or_(User.username == user_in.username, User.email == user_in.email))
    )
    existing = result.scalars().first()
    if existing:
        if existing.username == user_in.username:
            raise HTTPException(status_code=400, detail="Username already exists")
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        username=user_in.username,
        password=get_password_hash(user_in.password),
        full_name=user_in.full_name,
        email=user_in.email,
        phone=user_in.phone,
        role=user_in.role
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    request.session["user_id"] = user.id
    logger.info(f"👤 Registered user {user.username} ({user.role})")
    return user


@router.post("/login", response_model=UserResponse)
async def login(
    *,
    db: AsyncSession = Depends(get_db),
    request: Request,
    credentials: LoginRequest) -> Any:
    if not credentials.username or not credentials.password:
        raise HTTPException(status_code=400, detail="Username and password are required")

    result = await db.execute(select(User).where(User.username == credentials.username))
    user = result.scalar_one_or_none()
    if not user or not verify_password(credentials.password, user.password):
        logger.warning(f"Failed login for {credentials.username}")
        raise HTTPException(status_code=401, detail="Invalid username or password")

    request.session["user_id"] = user.id
    return user


@router.get("/session", response_model=UserResponse)
async def get_session(
    *,
    current_user: User = Depends(get_current_user)) -> Any:
    return current_user


@router.post("/logout")
async def logout(*, request: Request) -> Any:
    request.session.clear()
    return {"message": "Logged out"}
