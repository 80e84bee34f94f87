"""FastAPI application entrypoint and configuration.

This module provides the application factory that sets up CORS middleware,
includes the render and analyse routers and exposes a health check
endpoint, plus a ``run`` entrypoint that configures logging and serves the
application with uvicorn.

Example:
    The application can be run with uvicorn:
        $ uvicorn map_renderer.main:app --reload

    Or with the installed console script, which reads host, port and
    logging options from settings:
        $ map-renderer
"""

import logging

import fastapi
import uvicorn
from fastapi.middleware import cors

from map_renderer.api import analyse, render
from map_renderer.core import config, log_setup

_LOGGER = logging.getLogger("map_renderer.main")


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Sets up CORS middleware, includes the render and analyse routers, and
    adds a health check endpoint. CORS origins are configured from
    settings.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = config.get_settings()
    app = fastapi.FastAPI(title="Map Renderer", version="0.1.0")

    app.include_router(render.router)
    app.include_router(analyse.router)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Dictionary with status "ok" if the service is running.
        """
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Configure logging and serve the application until interrupted."""
    settings = config.get_settings()
    log_setup.setup_logging(settings.log_level, settings.log_file)
    if settings.svg2png_executable is None:
        _LOGGER.warning("SVG2PNG_EXECUTABLE is not set - PNG rendering is disabled")
    _LOGGER.info("Starting map renderer on %s:%d", settings.host, settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=int(settings.shutdown_timeout_seconds),
    )
