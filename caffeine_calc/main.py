"""Caffeine Calculator FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from caffeine_calc.api.routes import router
from caffeine_calc.config import DB_PATH, LOG_LEVEL
from caffeine_calc.core.database import close_connection, init_db

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("caffeine.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    log.info("Caffeine calculator API started (db: %s)", DB_PATH)
    yield
    close_connection()
    log.info("Caffeine calculator API stopped")


app = FastAPI(
    title="Caffeine Calculator API",
    description="Caffeine left at bedtime, per-drink cutoffs and daily advisories",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(router)


@app.get("/")
def root():
    return {"name": "Caffeine Calculator API", "version": "0.1.0", "docs": "/docs"}
