"""Набор middleware и инфраструктура БД для MemeRadar."""

from .db import create_engine, create_session_maker, init_db
from .errors import ErrorsMiddleware

__all__ = [
    "ErrorsMiddleware",
    "create_engine",
    "create_session_maker",
    "init_db",
]
