import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from overlay_studio.core.config import get_settings
from overlay_studio.core.db import Base, engine
from overlay_studio.core.errors import OverlayError
from overlay_studio.core.logging_config import setup_logging
from overlay_studio.api.v1 import api_router as api_v1_router
from overlay_studio.models import overlay, stream_settings  # noqa: F401  (register tables)

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

# Create tables on startup
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.PROJECT_NAME,
)

_VERBS = {"GET": "fetch", "POST": "create", "PUT": "update", "DELETE": "delete"}


def _failure_message(request: Request) -> str:
    path = request.url.path.rstrip("/")
    verb = _VERBS.get(request.method, "process")
    if path.endswith("/stream-settings"):
        return f"Failed to {'save' if verb == 'create' else verb} stream settings"
    if request.method == "GET" and path.endswith("/overlays"):
        return "Failed to fetch overlays"
    return f"Failed to {verb} overlay"


# Registered before CORS so it sits inside it: 500s keep their CORS headers
@app.middleware("http")
async def unexpected_error_middleware(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception("%s %s failed", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"message": _failure_message(request), "error": str(exc)},
        )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(OverlayError)
async def overlay_error_handler(request: Request, exc: OverlayError):
    logger.warning(
        "%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("%s %s with unreadable body: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid JSON in request body", "error": "InvalidField"},
    )


@app.get("/health")
def health():
    return {"status": "ok"}
