import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.database import engine
from core.errors import DependencyError, DomainError
from models.base import Base
# Регистрируем все таблицы в metadata до create_all
from models import (  # noqa: F401
    block, date_suggestion, deal_breakers, match, message, message_limit,
    profile, report, swipe, venue,
)

from routers.discover import router as discover_router
from routers.interactions import router as interactions_router
from routers.matches import router as matches_router
from routers.messages import router as messages_router
from routers.venues import router as venues_router
from routers.profile import router as profile_router
from routers.health import router as health_router

app = FastAPI(
    title="Datespot Backend",
    version="0.1.0",
    description="Backend правил дейтинг-приложения: лента, матчи, переписка, свидания",
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("uvicorn.error")


@app.middleware("http")
async def log_request_time(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} {response.status_code} completed in {process_time:.2f} ms"
    )
    return response


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.kind == "failure":
        logger.warning(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    error = DependencyError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


app.include_router(discover_router)
app.include_router(interactions_router)
app.include_router(matches_router)
app.include_router(messages_router)
app.include_router(venues_router)
app.include_router(profile_router)
app.include_router(health_router)


@app.on_event("startup")
async def on_startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.get("/")
async def root():
    return {"message": "Datespot Backend"}


@app.on_event("shutdown")
async def shutdown():
    # Закрываем все соединения пула
    await engine.dispose()
