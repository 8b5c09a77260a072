"""
Server entry point — FastAPI app setup and route configuration.
Sets up the FastAPI server with CORS, the admin settings API and the
public tracking-script endpoint.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator

import dotenv
import fastapi
import uvicorn
from fastapi.middleware import cors
from starlette import responses

from src.config import ServerConfig
from src.models.request import RequestContext
from src.routes import admin_api
from src.services.settings_store import SettingsStore
from src.tracking import injector
from src.utils import logger

dotenv.load_dotenv()

log = logger.create_logger("Server")


def create_app(config: ServerConfig | None = None) -> fastapi.FastAPI:
    """Build the FastAPI application around a config and settings store."""
    config = config or ServerConfig()
    store = SettingsStore(config.settings_file)

    @contextlib.asynccontextmanager
    async def lifespan(_app: fastapi.FastAPI) -> AsyncGenerator[None]:
        """Log server start on startup."""
        log.section("Rybbit Analytics Settings Server Started")
        log.info(
            "Environment",
            {
                "env": "production" if config.is_production else "development",
                "settingsFile": str(config.settings_file),
                "adminAuth": config.auth_enabled,
            },
        )
        yield

    app = fastapi.FastAPI(title="Rybbit Analytics Settings Server", lifespan=lifespan)
    app.state.config = config
    app.state.settings_store = store

    # ========================================================================
    # Middleware
    # ========================================================================

    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # Routes
    # ========================================================================

    app.include_router(admin_api.router)

    @app.get("/tracking-script")
    async def tracking_script(
        url: str = fastapi.Query("/", description="The page URL or path being rendered"),
        post_id: int | None = fastapi.Query(None, description="ID of the single post being rendered"),
    ) -> responses.HTMLResponse:
        """
        Render the tracking snippet for an anonymous front-end request.
        """
        ctx = RequestContext(url=url, post_id=post_id)
        snippet = injector.render_tracking_script(store.get_settings(), ctx)
        return responses.HTMLResponse(content=snippet)

    return app


app = create_app()


# ============================================================================
# Start Server
# ============================================================================


def main() -> None:
    """Entry point for running the server."""
    config = ServerConfig()
    log.success(f"Server listening on {config.host}:{config.port}")

    uvicorn.run(
        "src.main:app",
        host=config.host,
        port=config.port,
        reload=not config.is_production,
    )


if __name__ == "__main__":
    main()
