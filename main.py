"""
Taskpad — multi-user to-do API, application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_exception_handlers, register_middleware
from api.routes import router as todo_router
from auth.dependencies import get_token_codec
from auth.routes import router as auth_router
from auth.sessions import SessionStore
from config.settings import config
from database.session import async_session_factory, init_models

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "urllib3", "sqlalchemy.engine", "aiosqlite"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Taskpad",
        version="1.0.0",
        description="Multi-user to-do API with rotating refresh-token sessions.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(auth_router, prefix="/api/v1/auth")
    app.include_router(todo_router, prefix="/api/v1")

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        # Fail fast on a missing signing secret
        codec = get_token_codec()

        logger.info("Ensuring database tables…")
        await init_models()

        async with async_session_factory() as session:
            purged = await SessionStore(session, codec).purge_expired()
            await session.commit()
        if purged:
            logger.info("Removed %d expired sessions from previous runs", purged)

        logger.info("Application ready to accept requests.")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
