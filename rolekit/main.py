"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rolekit.core.config import settings
from rolekit.core.middleware import expects_json, setup_middleware
from rolekit.core.exceptions import (
    AuthenticationError, ConflictError, ForbiddenError, NotFoundError,
    RolekitError, UnauthenticatedError,
)
from rolekit.db.session import SessionLocal, get_db, init_db
from rolekit.services.cache_service import cache_service
from rolekit.services.gate import gate_registry

from rolekit.api.auth import router as auth_router
from rolekit.api.roles import router as roles_router
from rolekit.api.permissions import router as permissions_router
from rolekit.api.users import router as users_router
from rolekit.api.settings import router as settings_router
from rolekit.api.audit import router as audit_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("rolekit")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s", settings.APP_NAME)
    try:
        init_db()
    except SQLAlchemyError as e:
        logger.warning("Database not available, tables not created: %s", e)

    if settings.RBAC_REGISTER_GATES:
        db = SessionLocal()
        try:
            gate_registry.register_permissions(db)
        finally:
            db.close()

    if cache_service.health_check():
        logger.info("Redis connected")
    else:
        logger.warning("Redis not available, authorization decisions will not be cached")

    yield

    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title="rolekit API",
    description="Role and permission based access control",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)


@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError):
    if expects_json(request):
        return JSONResponse(status_code=403, content={"message": exc.message})
    return PlainTextResponse(exc.message, status_code=403)


@app.exception_handler(UnauthenticatedError)
async def unauthenticated_handler(request: Request, exc: UnauthenticatedError):
    return JSONResponse(
        status_code=401,
        content={"message": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(AuthenticationError)
async def authentication_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content={"message": exc.message})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"message": exc.message})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"message": exc.message})


# Fallback for any other rolekit error
@app.exception_handler(RolekitError)
async def rolekit_exception_handler(request: Request, exc: RolekitError):
    return JSONResponse(status_code=400, content={"message": exc.message})


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(permissions_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(settings_router, prefix="/api")
app.include_router(audit_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health(db: Session = Depends(get_db)):
    """System health check: database and redis."""
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable")
        db_ok = False
    redis_ok = cache_service.health_check()

    return {
        "database": "ok" if db_ok else "error",
        "redis": "ok" if redis_ok else "error",
        "gates": len(gate_registry.abilities()),
        "status": "healthy" if db_ok else "degraded",
    }
