"""Dependency injection"""
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.db.session import SessionLocal
from tradewiser.models.user import User
from tradewiser.services.broadcast import BroadcastService
from tradewiser.services.external_warehouse import ExternalWarehouseService
from tradewiser.services.file_upload import FileUploadService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency
    """
    async with SessionLocal() as session:
        yield session


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> User:
    """Logged-in user from the session cookie, 401 otherwise"""
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = await db.get(User, user_id)
    if not user:
        request.session.clear()
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def get_broadcast_service(request: Request) -> BroadcastService:
    return request.app.state.broadcast_service


def get_file_upload_service(request: Request) -> FileUploadService:
    return request.app.state.file_upload_service


def get_external_warehouse_service(request: Request) -> ExternalWarehouseService:
    return request.app.state.external_warehouse_service
