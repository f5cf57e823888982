"""
FastAPI routers.
"""
from app.routers.health import router as health_router
from app.routers.generate import router as generate_router
from app.routers.history import router as history_router

__all__ = ['health_router', 'generate_router', 'history_router']
