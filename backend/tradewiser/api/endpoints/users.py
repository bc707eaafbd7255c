"""Public user profiles and the signed-in user's account settings"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.core.deps import get_db, get_current_user
from tradewiser.core.security import get_password_hash, verify_password
from tradewiser.models.user import User
from tradewiser.schemas.user import ChangePasswordRequest, UserPublic, UserSettings, UserSettingsUpdate

logger = logging.getLogger(__name__)

router = APIRouter()
account_router = APIRouter()

MIN_PASSWORD_LENGTH = 8

# Keys are camelCase because the frontend stores them as-is
DEFAULT_USER_SETTINGS: Dict[str, Dict[str, Any]] = {
    "notifications": {
        "email": True,
        "sms": True,
        "push": True,
        "depositUpdates": True,
        "receiptGeneration": True,
        "loanAlerts": True,
        "priceAlerts": False,
    },
    "preferences": {
        "language": "en-in",
        "currency": "INR",
        "timezone": "Asia/Kolkata",
        "theme": "light",
        "dashboardLayout": "default",
    },
    "security": {
        "twoFactorEnabled": False,
        "sessionTimeout": 60,
        "loginNotifications": True,
    },
}


def effective_settings(user: User) -> Dict[str, Dict[str, Any]]:
    """Stored settings layered section by section over the defaults"""
    stored = user.settings or {}
    return {
        section: {**defaults, **(stored.get(section) or {})}
        for section, defaults in DEFAULT_USER_SETTINGS.items()
    }


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    user_id: int) -> Any:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@account_router.get("/settings", response_model=UserSettings)
async def get_settings(
    *,
    current_user: User = Depends(get_current_user)) -> Any:
    return effective_settings(current_user)


@account_router.patch("/settings", response_model=UserSettings)
async def update_settings(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings_in: UserSettingsUpdate) -> Any:
    """Merge the given keys into each section; sections left out are unchanged"""
    merged = effective_settings(current_user)
    for section, values in settings_in.model_dump(exclude_none=True).items():
        merged[section] = {**merged[section], **values}

    current_user.settings = merged
    await db.commit()
    await db.refresh(current_user)
    return effective_settings(current_user)


@account_router.post("/change-password")
async def change_password(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    password_in: ChangePasswordRequest) -> Any:
    if not password_in.current_password or not password_in.new_password:
        raise HTTPException(status_code=400, detail="Current password and new password are required")
    if len(password_in.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"New password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not verify_password(password_in.current_password, current_user.password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    current_user.password = get_password_hash(password_in.new_password)
    await db.commit()

    logger.info(f"🔑 Password changed for {current_user.username}")
    return {"message": "Password updated successfully"}
