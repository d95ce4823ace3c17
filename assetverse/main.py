# assetverse/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException, status as fastapi_status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import ConnectionFailure, PyMongoError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from loguru import logger

from assetverse.core.config import setup_logging
from assetverse.core.errors import AssetVerseError
from assetverse.core.rate_limiter import get_rate_limiter, rate_limit_exception_handler
from assetverse.db.database import init_db, close_db, get_client
from assetverse.middleware.authentication import AuthMiddleware
from assetverse.middleware.logging import RequestLoggingMiddleware
from assetverse.api.v1.api import api_router_v1

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup...")
    await init_db()
    logger.info("Database initialized.")
    yield
    logger.info("Application shutdown...")
    close_db()


app = FastAPI(
    title="AssetVerse API",
    description="Asset lifecycle and request approval backend for HR teams.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Error handling ---
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)


@app.exception_handler(AssetVerseError)
async def assetverse_exception_handler(request: Request, exc: AssetVerseError):
    if exc.status_code >= 500:
        # Cause stays in the server log; the caller only gets the generic message
        logger.opt(exception=exc).error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.__cause__ or exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"detail": type(exc).default_detail})
    logger.warning(f"{type(exc).__name__}: Status={exc.status_code}, Detail={exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    logger.error(f"Validation Error: {exc.errors()}")
    return JSONResponse(
        status_code=fastapi_status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"detail": "Validation Error", "errors": exc.errors()}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP Exception: Status={exc.status_code}, Detail={exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(PyMongoError)
async def database_exception_handler(request: Request, exc: PyMongoError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=fastapi_status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Database operation failed."})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled Exception: {exc}", exc_info=True)
    return JSONResponse(status_code=fastapi_status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "An internal server error occurred."})


# --- Middleware (last added runs first) ---
app.add_middleware(AuthMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.state.limiter = get_rate_limiter()
app.add_middleware(GZipMiddleware, minimum_size=500)

app.include_router(api_router_v1)


@app.get("/")
async def read_root():
    return {"message": "Hello from AssetVerse Server.."}


@app.get("/ping-mongodb")
async def ping_mongodb():
    try:
        await get_client().admin.command("ping")
        return {"status": "success", "message": "MongoDB connection is healthy."}
    except (ConnectionFailure, AssetVerseError):
        raise HTTPException(status_code=503, detail="MongoDB connection failed.")
