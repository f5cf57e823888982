"""
SQLAlchemy models.
"""
from app.models.generation import Base, Generation

__all__ = ['Base', 'Generation']
