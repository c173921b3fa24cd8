from .base import Base
from .engine import engine
from .session import async_session_maker


__all__ = [
    "Base",
    "async_session_maker",
    "engine",
]
