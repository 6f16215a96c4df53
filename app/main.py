# ============================================================================
# FastAPI Application Entry Point
# ============================================================================
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from app.config import get_settings
from app.core.exceptions import LexException
from app.api.v1.router import api_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown"""
    logger.info("🚀 Starting Lex engine...")

    from app.core.database import get_engine, init_models
    from app.repositories.sql import unit_of_work
    from app.services.gamification.achievements import BadgeEngine

    # Initialize database tables
    try:
        await init_models()
        logger.info("✅ Database tables created/verified")
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise

    # Seed default badges
    async with unit_of_work() as uow:
        created = await BadgeEngine(uow).ensure_default_badges()
    logger.info(f"✅ Badges ready ({created} created)")

    logger.info("🎉 Application started successfully!")

    yield

    # Shutdown
    logger.info("👋 Shutting down...")
    await get_engine().dispose()

app = FastAPI(
    title=settings.APP_NAME,
    description="Adaptive practice sessions, mastery tracking and gamification",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception Handler
@app.exception_handler(LexException)
async def lex_exception_handler(request: Request, exc: LexException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code}
    )

# Health Check - Root level
@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.APP_NAME}

app.include_router(api_router, prefix=settings.API_V1_PREFIX)
