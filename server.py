#!/usr/bin/env python3
"""
PirateVoice FastAPI Server

Turns text into pirate speak, synthesizes it through the Replicate speech API
and optionally keeps the audio in durable object storage.
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import APP_NAME, APP_VERSION, SERVER_HOST, SERVER_PORT, REPLICATE_API_TOKEN
from app.database import init_db, close_db, prune_history
from app.services.storage import get_storage
from app.services.voice_generator import get_voice_generator
from app.routers import health_router, generate_router, history_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup:
        - Initialize database and create the history table
        - Open provider and storage HTTP clients
        - Prune history rows above HISTORY_LIMIT

    Shutdown:
        - Close HTTP clients
        - Close database connections
    """
    print(f'Starting {APP_NAME} v{APP_VERSION}...')

    print('Initializing database...')
    await init_db()

    generator = get_voice_generator()
    if not REPLICATE_API_TOKEN:
        print('REPLICATE_API_TOKEN is not set; generation requests will fail')

    print('Starting voice generator...')
    await generator.start()
    if generator.relocation_enabled:
        print(f'Audio relocation enabled ({generator.relocator.storage.backend_name})')
    else:
        print('Audio relocation disabled; provider URLs are returned directly')

    await prune_history(get_storage())

    print(f'Server ready at http://{SERVER_HOST}:{SERVER_PORT}')
    print('API documentation available at /docs')

    yield

    print('Shutting down...')
    await generator.stop()
    await close_db()
    print('Shutdown complete.')


app = FastAPI(
    title=APP_NAME,
    description='Pirate speech generation using Replicate text-to-speech.',
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests get the same 400 body as rejected values."""
    return JSONResponse(
        status_code=400,
        content={'error': 'Invalid request', 'details': str(exc.errors())},
    )


app.include_router(health_router)
app.include_router(generate_router)
app.include_router(history_router)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    uvicorn.run(
        app,
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=False,
        log_level='info',
    )
