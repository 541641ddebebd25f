"""
Atlas Composer API
==================

FastAPI server for composite projections: loads interchange documents,
projects and inverts coordinates per territory, and exports the result.
"""

import logging
import sys
import time

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Settings modules read the environment at import time
load_dotenv()

for _stream in (sys.stdout, sys.stderr):
    try:
        _stream.reconfigure(encoding="utf-8", errors="replace")
    except (AttributeError, ValueError):
        pass

from api.router import api_router
from config.settings import COMPOSITE_PRELOAD_PRESETS
from pipelines.composite.errors import ConfigurationError
from pipelines.composite.projections.registry import get_default_registry
from services.composite.engine_cache import get_engine_cache
from services.logging_service import init_logging

# level -> (ANSI colour, marker)
LEVEL_STYLES = {
    "DEBUG": ("\033[36m", "🔍"),
    "INFO": ("\033[32m", "ℹ️"),
    "WARNING": ("\033[33m", "⚠️"),
    "ERROR": ("\033[31m", "❌"),
    "CRITICAL": ("\033[35m", "🚨"),
}
RESET = "\033[0m"


class ConsoleFormatter(logging.Formatter):
    """Coloured console output with a marker per level."""

    def format(self, record):
        colour, marker = LEVEL_STYLES.get(record.levelname, ("", ""))
        record.levelname = f"{colour}{marker} {record.levelname}{RESET}"
        return super().format(record)


def configure_console_logging(level: int = logging.INFO) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ConsoleFormatter("%(levelname)s %(name)s: %(message)s"))
    root.setLevel(level)
    root.addHandler(console)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


configure_console_logging()
try:
    init_logging()
except OSError as e:
    logging.getLogger(__name__).warning(f"⚠️ File logging unavailable: {e}")
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    application = FastAPI(
        title="Atlas Composer API",
        description="Composite cartographic projections assembled from per-territory sub-projections",
        version="1.0.0",
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(api_router)
    return application


app = create_app()


@app.on_event("startup")
async def warm_up():
    registry = get_default_registry()
    logger.info(f"🚀 Atlas Composer API starting with {len(registry)} projections")

    if COMPOSITE_PRELOAD_PRESETS:
        from api.endpoints.composite import get_composite_service

        service = get_composite_service()
        for atlas_id in COMPOSITE_PRELOAD_PRESETS:
            result = service.load_preset(atlas_id)
            if result["success"]:
                logger.info(f"🗺️ Preloaded {atlas_id} ({len(result['territories'])} territories)")
            else:
                logger.warning(f"⚠️ Could not preload {atlas_id}: {result['error']}")


@app.on_event("shutdown")
async def release_engines():
    stats = get_engine_cache().stats()
    get_engine_cache().clear()
    logger.info(f"🛑 Shut down; engine cache had {stats['size']} engines, {stats['hits']} hits")


@app.middleware("http")
async def timing_header(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Process-Time"] = f"{time.perf_counter() - started:.4f}"
    return response


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.warning(f"⚠️ Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if app.debug else "An unexpected error occurred",
        },
    )


@app.get("/")
async def root():
    return {
        "message": "Atlas Composer API v1.0",
        "docs": "/docs",
        "api": "/api",
        "engines_cached": len(get_engine_cache()),
    }


if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=False, log_level="info")
