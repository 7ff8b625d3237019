"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from nginxswitch import __version__
from nginxswitch.app.api.v1 import events_router, nginx_router
from nginxswitch.app.config import get_settings
from nginxswitch.app.dependencies import close_services, get_runtime, init_services
from nginxswitch.app.logging import setup_logging
from nginxswitch.app.metrics import get_metrics_response
from nginxswitch.core.errors import NginxSwitchError
from nginxswitch.core.logging_schema import LogEvent
from nginxswitch.core.retryable import classify_error
from nginxswitch.infra import close_docker

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    controller = init_services(settings)

    logger.info("Starting application", extra={"event": LogEvent.APP_STARTED})

    if settings.controller.autostart:
        try:
            await controller.start()
        except NginxSwitchError as exc:
            # The app stays up so the user can retry from the menu
            logger.error(
                "Autostart failed: %s",
                exc.message,
                extra={"event": LogEvent.INTENT_FAILED, "error_class": classify_error(exc)},
            )

    yield

    logger.info("Shutting down application", extra={"event": LogEvent.APP_STOPPED})
    await close_services()
    await close_docker()


app = FastAPI(title="nginx-switch", version=__version__, lifespan=lifespan)


@app.exception_handler(NginxSwitchError)
async def nginx_switch_error_handler(request: Request, exc: NginxSwitchError) -> JSONResponse:
    """Handle NginxSwitchError exceptions."""
    logger.info(
        "Request failed: %s",
        exc.message,
        extra={
            "event": LogEvent.REQUEST_FAILED,
            "path": request.url.path,
            "code": exc.code,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


app.include_router(nginx_router, prefix="/api/v1")
app.include_router(events_router, prefix="/api/v1")


@app.get("/health")
async def health():
    try:
        docker = "connected" if await get_runtime().ping() else "unreachable"
    except RuntimeError:
        docker = "not initialized"

    return {
        "status": "ok" if docker == "connected" else "degraded",
        "version": __version__,
        "services": {"docker": docker},
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    if not get_settings().metrics.enabled:
        return JSONResponse(status_code=404, content={"detail": "Not Found"})
    return get_metrics_response()


def run() -> None:
    """Console entry point: serve the control API with uvicorn."""
    server = get_settings().server
    uvicorn.run(app, host=server.host, port=server.port, log_config=None)
