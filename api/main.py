from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import db
from core.config import Settings, get_settings
from core.log import configure_logging
from core.middleware import RequestLoggingMiddleware
from users.repository import UserRepository
from users.router import router as users_router
from users.service import UserService


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logger = configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # One pool per process; repositories borrow connections from it.
        pool = await db.create_pool(settings, logger)
        app.state.pool = pool
        app.state.user_service = UserService(UserRepository(pool, logger), logger)
        try:
            yield
        finally:
            app.state.user_service = None
            await db.close_pool(pool)
            logger.info("postgres pool closed")

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.logger = logger

    app.add_middleware(RequestLoggingMiddleware, logger=logger)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["GET", "HEAD", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["X-Requested-With", "Content-Type", "Authorization"],
    )

    app.include_router(users_router, tags=["users"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "user family api"}

    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    # uvicorn drains in-flight requests on SIGINT/SIGTERM.
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
