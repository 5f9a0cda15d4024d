# ─────────────────────────────────────────────────────────────────
# main.py — App Setup
#
# create_app() builds one hub: settings, state objects, routers and
# error handlers. The module-level `app` is what uvicorn serves.
#
# Which routers are mounted depends on HUB_MODE:
#   poll → /api/pull and /api/queues, commands are queued
#   push → /ws/agent, commands are sent to the live socket or fail
# ─────────────────────────────────────────────────────────────────

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from config import Settings, load_settings
from connections import ConnectionRegistry
from dispatch import LiveDispatcher, QueueDispatcher
from errors import HubError, InternalError
from notices import configure_logging
from registry import Registry
from routes import admin, agent, push

logger = logging.getLogger("main")

VERSION = "1.0.0"


# ─────────────────────────────────────────────────────────────────
# ERROR HANDLERS — every error leaves as {"error": ..., "detail": ...}
# ─────────────────────────────────────────────────────────────────

async def hub_error_handler(request: Request, exc: HubError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "validation_error", "detail": jsonable_encoder(exc.errors())})


async def unexpected_error_handler(request: Request, exc: Exception):
    # full traceback to the log, nothing internal to the client
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    err = InternalError()
    return JSONResponse(status_code=err.status_code, content={"error": err.code, "detail": "Internal server error"})


def create_app(settings: Optional[Settings] = None, registry: Optional[Registry] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="DeviceHub",
        description="Command hub for remote device agents",
        version=VERSION,
    )

    app.state.settings = settings
    app.state.registry = registry or Registry(
        window=settings.online_window_seconds,
        queue_max=settings.queue_max,
    )
    app.state.connections = ConnectionRegistry()

    if settings.hub_mode == "push":
        app.state.dispatcher = LiveDispatcher(app.state.connections, settings.script_prefix)
    else:
        app.state.dispatcher = QueueDispatcher(app.state.registry)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(HubError, hub_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz():
        return "ok"

    app.include_router(agent.heartbeat_router)
    app.include_router(admin.router)
    app.include_router(admin.stats_router)

    if settings.hub_mode == "push":
        app.include_router(push.router)
    else:
        app.include_router(agent.pull_router)
        app.include_router(admin.queues_router)

    if not settings.admin_token:
        logger.warning("ADMIN_TOKEN is not set — operator endpoints will reject every request")

    logger.info(f"DeviceHub {VERSION} ready in {settings.hub_mode} mode "
                f"(online window {settings.online_window_seconds:g}s)")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
