"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from parts_inventory.api.v1.router import api_v1_router
from parts_inventory.core.exceptions import (
    ProblemDetailError,
    http_exception_handler,
    problem_detail_handler,
    validation_exception_handler,
)
from parts_inventory.core.logging import setup_logging
from parts_inventory.core.middleware.cors import get_cors_config
from parts_inventory.core.middleware.request_id import RequestIdMiddleware
from parts_inventory.db.session import async_session_factory
from parts_inventory.services.users import ensure_initial_admin

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with async_session_factory() as session:
        if await ensure_initial_admin(session) is not None:
            await session.commit()
    logger.info("Parts inventory API started")
    yield


app = FastAPI(
    title="Transmission Parts Inventory API",
    version="0.1.0",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Middleware (last added = first executed)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(CORSMiddleware, **get_cors_config())

# Exception handlers (RFC 7807)
app.add_exception_handler(ProblemDetailError, problem_detail_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Routes
app.include_router(api_v1_router, prefix="/api/v1")
