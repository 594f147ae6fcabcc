"""Persistence: async SQLModel sessions and repositories"""
from .connection import get_engine, get_session, get_session_maker, init_db
from .repository import Repository, SqlModelRepository
from .memory import InMemoryRepository, InMemoryStore

__all__ = [
    "get_engine",
    "get_session",
    "get_session_maker",
    "init_db",
    "Repository",
    "SqlModelRepository",
    "InMemoryRepository",
    "InMemoryStore",
]
