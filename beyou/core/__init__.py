"""Core module exports"""
from .config import settings
from .database import Base, engine, async_session_maker, get_db

__all__ = ["settings", "Base", "engine", "async_session_maker", "get_db"]
