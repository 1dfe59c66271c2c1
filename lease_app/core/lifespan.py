import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from .get_db import async_engine

logger = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")

    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database reachable.")
    except Exception:
        logger.exception("Database connection check failed")

    logger.info("Application startup complete.")

    yield

    try:
        await async_engine.dispose()
    except Exception:
        logger.exception("Failed to dispose database engine")
