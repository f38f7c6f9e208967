import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
import socketio

from app.core.config import settings
from app.core.errors import DiscoveryError, PartialCompletion
from app.routers import api_router
from app.socket_handlers import register_socketio_handlers
from app.socket_instance import sio

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app, but name it 'fastapi_app' to avoid conflict
fastapi_app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

fastapi_app.state.sio = sio

# Set all CORS enabled origins
if settings.ALLOWED_ORIGINS:
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin).strip() for origin in settings.ALLOWED_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


@fastapi_app.exception_handler(DiscoveryError)
async def discovery_error_handler(request: Request, exc: DiscoveryError):
    if isinstance(exc, PartialCompletion):
        logger.error(
            f"{request.method} {request.url.path} partially completed "
            f"(done: {exc.completed_steps}): {exc.message}"
        )
    return _error_response(exc.status_code, exc.message)


@fastapi_app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@fastapi_app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid request")
    return _error_response(400, f"{location}: {message}" if location else message)


@fastapi_app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    if settings.is_production:
        return _error_response(500, "Internal server error")
    return _error_response(500, str(exc))


fastapi_app.include_router(api_router, prefix=settings.API_V1_STR)


@fastapi_app.get("/health", tags=["health"])
def read_root():
    return {"status": "ok"}


# Create the final ASGI app that wraps FastAPI and Socket.IO.
# This 'app' is what uvicorn will run.
app = socketio.asgi.ASGIApp(sio, other_asgi_app=fastapi_app)
register_socketio_handlers(sio)
