from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from photoguess.config import get_settings
from photoguess.db import create_db_and_tables
from photoguess.errors import GameError, UpstreamUnavailable
from photoguess.observability import setup_logging
from photoguess.routers import rooms, rounds, submissions, sync

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(get_settings().log_level)
    create_db_and_tables()
    yield


app = FastAPI(
    title='PhotoGuess',
    description='Photo location guessing party game server',
    version='0.1.0',
    lifespan=lifespan,
)


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
    logger.warning(
        '%s %s rejected: %s (%s)', request.method, request.url.path, exc.message, exc.code
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


@app.exception_handler(OperationalError)
async def storage_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error('Storage unavailable on %s: %s', request.url.path, exc, exc_info=exc)
    error = UpstreamUnavailable('Storage is unavailable; retry shortly.')
    return JSONResponse(status_code=error.http_status, content=error.to_response())


app.include_router(rooms.router)
app.include_router(submissions.router)
app.include_router(rounds.router)
app.include_router(sync.router)


@app.get('/')
async def root() -> dict[str, str]:
    return {'message': 'Hello, PhotoGuess!'}


@app.get('/health')
async def health() -> dict[str, str]:
    return {'status': 'ok'}
