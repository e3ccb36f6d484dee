# backend/mathtutor/main.py
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from contextlib import asynccontextmanager

from mathtutor.api.routes import health, tutor
from mathtutor.core.config import settings
from mathtutor.core.errors import GENERIC_FAILURE_MESSAGE, MethodNotAllowed, TutorAPIError
from mathtutor.models.schemas import TutorResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
# httpx logs full request URLs at INFO, and the Gemini key travels in the query string
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(
        f"🚀 Starting {settings.APP_NAME} (provider: {settings.LLM_PROVIDER}, "
        f"timeout: {settings.UPSTREAM_TIMEOUT}s of {settings.PLATFORM_MAX_DURATION}s)"
    )
    if not settings.api_key_configured:
        logger.warning("⚠️ Provider API key not configured, requests will fail with 500")

    yield

    logger.info(f"🛑 Shutting down {settings.APP_NAME}")


async def tutor_error_handler(request: Request, exc: TutorAPIError):
    if exc.status_code >= 500:
        logger.error(f"❌ {type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")

    return error_envelope(exc.status_code, exc.message, allow=isinstance(exc, MethodNotAllowed))


async def routing_error_handler(request: Request, exc: StarletteHTTPException):
    """Methods without a route (HEAD, TRACE, custom verbs) still get the envelope"""
    if exc.status_code != 405:
        return await http_exception_handler(request, exc)

    logger.info(f"Rejected {request.method} {request.url.path}")
    return error_envelope(405, MethodNotAllowed.message, allow=True)


def error_envelope(status_code: int, message: str, allow: bool = False) -> JSONResponse:
    headers = dict(tutor.CORS_HEADERS)
    if allow:
        headers["Allow"] = tutor.ALLOWED_METHODS

    return JSONResponse(
        status_code=status_code,
        content=TutorResponse.failure(message).to_content(),
        headers=headers,
    )


async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.url.path}: {exc!r}")
    return JSONResponse(
        status_code=500,
        content=TutorResponse.failure(GENERIC_FAILURE_MESSAGE).to_content(),
        headers=tutor.CORS_HEADERS,
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Math tutoring proxy for PAU students with a timeout-bounded LLM call and static fallback",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
        lifespan=lifespan
    )

    app.add_exception_handler(TutorAPIError, tutor_error_handler)
    app.add_exception_handler(StarletteHTTPException, routing_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(tutor.router)
    app.include_router(health.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
