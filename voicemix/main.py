import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voicemix.app.config import get_settings
from voicemix.app.core.logging_config import (
    REQUEST_ID_HEADER,
    bind_request_id,
    configure_logging,
    current_request_id,
    reset_request_id,
)
from voicemix.app.deps import create_mixer, create_object_store
from voicemix.routes import files, render

configure_logging()
logger = logging.getLogger(__name__)

SERVICE_NAME = "voicemix-api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # Health endpoints keep working without storage; routes that need it answer 503.
    app.state.object_store = create_object_store(settings)
    app.state.mixer = create_mixer(settings)
    yield


app = FastAPI(
    title="Voicemix Gateway",
    version="1.0.0",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    token = bind_request_id(request.headers.get(REQUEST_ID_HEADER))
    try:
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = current_request_id()
        return response
    finally:
        reset_request_id(token)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Same {ok, error} shape as every other failure; the input is never echoed.
    logger.info("%s %s rejected: %d validation error(s)", request.method, request.url.path, len(exc.errors()))
    return JSONResponse({"ok": False, "error": "Invalid request"}, status_code=400)


app.include_router(files.router, tags=["files"])
app.include_router(render.router, tags=["render"])


@app.get("/")
async def root() -> dict:
    return {"ok": True, "name": SERVICE_NAME, "ts": int(time.time() * 1000)}


@app.get("/health")
async def health() -> dict:
    return {"ok": True}


@app.get("/healthz")
async def healthz(request: Request) -> dict:
    return {
        "status": "ok",
        "storage": getattr(request.app.state, "object_store", None) is not None,
    }


@app.get("/ffmpeg-check")
async def ffmpeg_check(request: Request) -> dict:
    mixer = getattr(request.app.state, "mixer", None) or create_mixer(get_settings())
    return mixer.ffmpeg_status()


def run() -> None:
    import uvicorn  # noqa: PLC0415

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)


if __name__ == "__main__":
    run()
