from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import relay_router
from .api import router as api_router
from .core.config import Settings, settings
from .core.logger import setup_logging
from .services.relay import RelayOrchestrator


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as {"error": ...}, the shape relay clients expect."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


def create_application(
    app_settings: Settings = settings,
    orchestrator: RelayOrchestrator | None = None,
) -> FastAPI:
    """Build the relay application.

    The browser session is created lazily on the first relayed call (or the
    first /health probe) and torn down on shutdown, which uvicorn triggers
    on SIGINT/SIGTERM.

    Args:
        app_settings: Settings, threaded explicitly to every component
        orchestrator: Pre-built orchestrator (tests inject one with mocks)
    """
    setup_logging(app_settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        yield
        await app.state.orchestrator.cleanup()

    application = FastAPI(
        title=app_settings.APP_NAME,
        description=app_settings.APP_DESCRIPTION,
        version=app_settings.APP_VERSION or "0.1.0",
        lifespan=lifespan,
    )
    application.state.settings = app_settings
    application.state.orchestrator = orchestrator or RelayOrchestrator(app_settings)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_methods=app_settings.CORS_METHODS,
        allow_headers=app_settings.CORS_HEADERS,
    )
    application.add_exception_handler(StarletteHTTPException, http_error_handler)

    application.include_router(api_router)
    application.include_router(relay_router)
    return application


app = create_application()


def run() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
