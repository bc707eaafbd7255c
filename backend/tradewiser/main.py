from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
import os

from tradewiser import __version__
from tradewiser.api.api import api_router
from tradewiser.core.config import settings
from tradewiser.core.logging_config import setup_logging, get_logger
from tradewiser.db.init_db import ensure_tables_exist
from tradewiser.services.broadcast import BroadcastService, ConnectionManager
from tradewiser.services.external_warehouse import ExternalWarehouseService
from tradewiser.services.file_upload import FileUploadService
from tradewiser.services.scheduler import init_scheduler, shutdown_scheduler

# Logging
log_level = os.getenv("LOG_LEVEL", "INFO")
setup_logging(log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    logger.info("🚀 TradeWiser starting...")

    await ensure_tables_exist()
    logger.info("📊 Database tables ready")

    init_scheduler()
    yield
    logger.info("🛑 TradeWiser shutting down...")
    shutdown_scheduler()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    description="TradeWiser - warehouse receipts, deposits and receipt-backed loans",
    lifespan=lifespan
)

# Shared services, injected into endpoints through tradewiser.core.deps
app.state.broadcast_service = BroadcastService(ConnectionManager())
app.state.file_upload_service = FileUploadService()
app.state.external_warehouse_service = ExternalWarehouseService()

# Cookie sessions
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax"
)

# CORS
if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"CORS allowed origins: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

logger.info(f"Registering API routes under {settings.API_PREFIX}")
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {"message": "TradeWiser - digital warehouse receipts", "version": __version__}


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=int(os.getenv("PORT", "5000")), log_level="info")
