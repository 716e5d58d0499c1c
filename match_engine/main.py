import logging
import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from .config import get_settings
from .db import close_mongo_connection, connect_to_mongo, is_connected
from .redis_bus import stop as redis_bus_stop
from .routers import candidates, matches, messages, swipes
from .services.exceptions import MatchEngineError, StorageUnavailableError

LOGGER = logging.getLogger("uvicorn.error")

app = FastAPI(title="Match Engine API")
settings = get_settings()

# Build CORS origins list from env (supports CSV)
_origins_env = os.getenv("CORS_ORIGINS") or settings.cors_origin
_allow_origins = [o.strip() for o in _origins_env.split(",") if o.strip()]
LOGGER.info("CORS allow_origins=%s", _allow_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)
app.add_middleware(GZipMiddleware, minimum_size=512)


@app.middleware("http")
async def log_slow_requests(request: Request, call_next):
    t0 = time.time()
    response = await call_next(request)
    dt = (time.time() - t0) * 1000
    if dt >= get_settings().slow_request_ms:
        LOGGER.warning(
            "Slow request %s %s %dms status=%s",
            request.method,
            request.url.path,
            int(dt),
            response.status_code,
        )
    return response


@app.exception_handler(MatchEngineError)
async def match_engine_error_handler(request: Request, exc: MatchEngineError):
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(PyMongoError)
async def storage_error_handler(request: Request, exc: PyMongoError):
    LOGGER.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    error = StorageUnavailableError("document store unavailable")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.on_event("startup")
async def startup():
    await connect_to_mongo()
    if get_settings().redis_pubsub_enabled:
        LOGGER.info("Events: Redis pub/sub publishing enabled")
    else:
        LOGGER.info("Events: Redis pub/sub disabled")


@app.on_event("shutdown")
async def shutdown():
    await close_mongo_connection()
    await redis_bus_stop()


# Routers
app.include_router(candidates.router, prefix="/api", tags=["candidates"])
app.include_router(swipes.router, prefix="/api", tags=["swipes"])
app.include_router(matches.router, prefix="/api", tags=["matches"])
app.include_router(messages.router, prefix="/api", tags=["messages"])


@app.get("/")
async def root():
    return {"status": "match-engine-ok"}


@app.get("/api/health/db")
async def db_health():
    return {
        "mongo": "connected" if is_connected() else "disconnected",
        "db": str(get_settings().mongo_db),
    }
