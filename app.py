#!/usr/bin/env python3
"""
Main entry point for the snaplinks service.

Concurrency: requests are served with async I/O (FastAPI + asyncpg connection
pool + redis.asyncio + httpx). Set WORKERS > 1 for multi-process scaling; only
do that with DATABASE_URL pointing at PostgreSQL, since the memory store is
per-process.

Usage:
    python app.py

Environment variables:
    DATABASE_URL - postgresql://... or memory:// (default)
    DATABASE_CREATE_TABLES - Set to '1' to create the assets table on startup
    REDIS_URL - Redis connection URL (optional)
    BASE_URL - Base URL for short links
    STORAGE_BACKEND - 'local' or 'supabase'
    AUTH_BACKEND - 'static' or 'supabase'
    API_TOKENS - token:user_id[:role],... for the static auth backend
    SUPABASE_URL / SUPABASE_SERVICE_KEY - Supabase project credentials
    PORT - Port to listen on
    WORKERS - Number of uvicorn worker processes (default 1)
    LOG_LEVEL - Logging level
"""

import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import load_config
from snaplinks.common.logging_config import setup_logging
from snaplinks.wiring import build_identity, build_service
from web_app import create_app


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting snaplinks service...")
    logger.info(f"Asset store: {config.database_url.split('@')[-1]}")
    logger.info(f"Storage backend: {config.storage_backend}, auth backend: {config.auth_backend}")

    service = await build_service(config, logger)
    identity = build_identity(config, logger)

    app.state.service = service
    app.state.identity = identity

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down snaplinks service...")
    await identity.close()
    await service.close()
    logger.info("Service stopped")


def main():
    """Main entry point."""
    config = load_config()

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    logger.info("Snaplinks Service")
    logger.info(f"Configuration: {config.safe_dump()}")

    # Service and identity are attached in lifespan
    app = create_app(
        service_instance=None,
        identity_instance=None,
        config=config,
        logger=logger,
    )
    app.router.lifespan_context = lifespan

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        workers=config.workers,
        log_level=config.log_level.lower(),
        access_log=True,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
