from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging
from pydantic import ValidationError as PydanticValidationError

from itemscan.core.config import settings
from itemscan.api.dependencies import close_providers
from itemscan.db.database import create_tables, dispose_engine
from itemscan.api.routes.analyze import router as analyze_router
from itemscan.api.routes.usage import router as usage_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.USE_DATABASE:
        await create_tables()
    try:
        yield
    finally:
        await close_providers()
        if settings.USE_DATABASE:
            await dispose_engine()


app = FastAPI(
    title="ItemScan",
    version="1.0.0",
    description="Parallel Google Vision + Amazon Rekognition item recognition with usage quotas",
    lifespan=lifespan,
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle FastAPI HTTPExceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "Request failed", "detail": exc.detail}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    errors = exc.errors()
    detail = "; ".join([f"{e['loc'][-1]}: {e['msg']}" for e in errors])

    return JSONResponse(
        status_code=422,
        content={"error": "Validation error", "detail": detail}
    )


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    """Handle Pydantic validation errors from manual model construction."""
    errors = exc.errors()
    detail = "; ".join([f"{e['loc'][-1] if e['loc'] else 'field'}: {e['msg']}" for e in errors])

    return JSONResponse(
        status_code=422,
        content={"error": "Validation error", "detail": detail}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    Logs full traceback but returns generic error to client.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred. Please contact support if the issue persists."
        }
    )


@app.get("/health")
def health():
    return {"status": "ok"}

app.include_router(analyze_router, prefix="/v1")
app.include_router(usage_router, prefix="/v1")
