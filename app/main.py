from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import engine, init_db
from app.core.logging import configure_logging
from app.core.redis import redis_client
from app.utils.validation import NotFoundError, SchedulingError, SlotLockedError

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging()
    await init_db()
    if settings.SLOT_LOCK_BACKEND == "redis":
        await redis_client.init_redis()
    logger.info("Application started", environment=settings.ENVIRONMENT)
    yield
    await redis_client.close()
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Availability, scheduling conflicts and appointment lifecycle",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    logger.info("Scheduling rule violated", code=exc.code, path=request.url.path)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.to_dict())


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"code": "not_found", "message": str(exc), "details": {"entity": exc.entity}},
    )


@app.exception_handler(SlotLockedError)
async def slot_locked_handler(request: Request, exc: SlotLockedError):
    logger.warning("Slot lock contention", key=exc.lock_key)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"code": "slot_locked", "message": str(exc), "details": {}},
    )


app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": settings.VERSION}
