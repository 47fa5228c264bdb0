from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.v1.assignments.router import router as assignments_router
from app.api.v1.health.router import router as health_router
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import setup_logging
from app.core.middleware import add_middlewares
from app.db.init_db import create_tables


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        await create_tables()
    yield


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title="Scheduling Administration Backend", lifespan=lifespan)

    add_middlewares(app)
    register_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(assignments_router)

    return app


app = create_app()
