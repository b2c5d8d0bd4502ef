"""awaitlite - aiosqlite 기반 비동기 SQLite 어댑터"""

from database import (
    Database,
    DatabaseRegistry,
    RunResult,
    SqliteOptions,
    get_db,
    OPEN_CREATE,
    OPEN_READONLY,
    OPEN_READWRITE,
)

__version__ = "0.1.0"

__all__ = [
    'Database',
    'DatabaseRegistry',
    'RunResult',
    'SqliteOptions',
    'get_db',
    'OPEN_READONLY',
    'OPEN_READWRITE',
    'OPEN_CREATE',
]
