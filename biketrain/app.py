"""FastAPI application factory and configuration."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

from . import models  # noqa: F401 - ensure models are registered with SQLModel
from .api import register_routes
from .core import (
    ADMIN_TOKEN,
    ALLOWED_CORS_ORIGINS,
    DB_RESET,
    configure_logging,
    engine as default_engine,
)
from .live import RideHub
from .services.rides import RideStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_engine: Engine = app.state.db_engine
    if app.state.db_reset:
        SQLModel.metadata.drop_all(db_engine)
    SQLModel.metadata.create_all(db_engine)

    app.state.hub = RideHub(RideStore(db_engine))
    logger.info("Live session hub ready")
    try:
        yield
    finally:
        await app.state.hub.close()
        logger.info("Live session hub closed")


def create_app(
    db_engine: Optional[Engine] = None,
    *,
    admin_token: Optional[str] = ADMIN_TOKEN,
    db_reset: bool = DB_RESET,
) -> FastAPI:
    configure_logging()
    app = FastAPI(title="Bike Train API", version="2.1.0", lifespan=lifespan)
    app.state.db_engine = db_engine if db_engine is not None else default_engine
    app.state.admin_token = admin_token
    app.state.db_reset = db_reset

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("biketrain.app:app", host="127.0.0.1", port=3001, reload=True)
