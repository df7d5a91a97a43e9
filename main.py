# ─────────────────────────────────────────────────────────────────
# main.py: Application Entry Point
#
# Builds the FastAPI app, wires the relay core onto app.state,
# includes the routers, and turns core errors into HTTP replies:
#
#   InvalidArgument    → 400
#   NotFound           → 404
#   Conflict           → 409   (retryable)
#   StorageUnavailable → 503   (retryable)
#
# Run with:   python main.py      or   uvicorn main:app --port 5000
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

import alerts  # noqa: F401  configures logging for the whole app
import config
from deps import build_relay
from errors import Conflict, InvalidArgument, NotFound, RelayError, StorageUnavailable
from routes.configuration import router as config_router
from routes.devices import router as devices_router
from timer import run_sweep

logger = logging.getLogger("main")

ERROR_STATUS = {
    InvalidArgument: 400,
    NotFound: 404,
    Conflict: 409,
    StorageUnavailable: 503,
}


def create_app(relay=None, sweep_interval_s: float = config.SWEEP_INTERVAL_S):
    relay = relay if relay is not None else build_relay()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweep = None
        if sweep_interval_s > 0:
            sweep = asyncio.create_task(run_sweep(relay.liveness, sweep_interval_s))
        logger.info(
            f"🚦 {config.APP_NAME} ready | offline after {relay.liveness.offline_threshold_ms}ms"
            f" | {relay.configs.slot_count} slots per signal"
        )
        yield
        if sweep is not None:
            sweep.cancel()
            await sweep

    app = FastAPI(
        title=config.APP_NAME,
        description="Heartbeat and display-configuration relay for junction signal displays",
        version=config.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.relay = relay

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        status_code = next(
            (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
            500,
        )
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.get("/")
    def root():
        return {
            "message": f"{config.APP_NAME} is running",
            "version": config.APP_VERSION,
            "docs": "/docs",
        }

    app.include_router(devices_router)
    app.include_router(config_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
