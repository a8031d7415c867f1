"""FastAPI application factory and route registration."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from SimAction.logger import logger
from SimAction.version import APP_VERSION

from . import actions, config, devices, logs, metrics, version


def create_app(refresh_on_startup: bool = True) -> FastAPI:
    """Build the FastAPI app with routers.

    Args:
        refresh_on_startup: Run one device refresh when the app starts
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from SimAction.device_manager import DeviceManager

        if refresh_on_startup:
            result = await DeviceManager.get_instance().refresh()
            if not result.ok:
                logger.warning(f"Initial device refresh failed: {result.error}")
        yield

    app = FastAPI(title="SimAction API", version=APP_VERSION, lifespan=lifespan)

    app.include_router(devices.router)
    app.include_router(actions.router)
    app.include_router(logs.router)
    app.include_router(config.router)
    app.include_router(metrics.router)
    app.include_router(version.router)

    return app
