"""Lumi FastAPI server: main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lumi import config
from lumi.parsers.platforms.registry import ENGINES
from lumi.routers.api import parse_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("lumi")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Lumi server starting up (engines: %s, dev=%s)", ", ".join(ENGINES), config.DEV_MODE)
    yield
    logger.info("Lumi server shut down")


app = FastAPI(
    title="Lumi Server",
    description="Normalizes coding-agent CLI output into timelines for the Lumi extension",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=config.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(parse_router)


@app.get("/health")
async def health():
    return {"status": "ok", "engines": list(ENGINES)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("lumi.main:app", host=config.HOST, port=config.PORT, reload=config.DEV_MODE)
