import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from models.errors import (
    GameError, GameNotFound, InvalidAmount, InvalidCredentials, NotHost, PlayerNotFound,
    SelfTargetNotAllowed, TargetNotFound,
)

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)

# Rule violations not listed here are state conflicts (409)
ERROR_STATUS = {
    GameNotFound: 404,
    PlayerNotFound: 404,
    TargetNotFound: 404,
    NotHost: 403,
    InvalidCredentials: 403,
    InvalidAmount: 400,
    SelfTargetNotAllowed: 400,
}


def status_for(exc: GameError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status
    return 409


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Resource Rush backend starting up (store: %s)", settings.store_backend)
    yield
    from agents.host_round_processor import stop_all_host_processors
    stop_all_host_processors()
    logger.info("Backend shutting down.")


app = FastAPI(
    title="Resource Rush",
    version="0.1.0",
    description="Social deduction resource-management game: host-authoritative round engine",
    lifespan=lifespan,
)

origins = list(settings.allowed_origins)
if settings.extra_origin:
    origins.append(settings.extra_origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Player-Token"],
)


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    status = status_for(exc)
    if status == 409:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(status_code=status, content={"detail": exc.message, "code": exc.code})


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "resource-rush", "version": "0.1.0"}


from routers.game_router import router as game_router

app.include_router(game_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
