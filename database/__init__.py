"""
비동기 SQLite 데이터베이스 패키지

사용 예시:
    from database import Database, get_db
    from database.registry import DatabaseRegistry

    # 직접 연결
    db = await Database.connect('./data/app.db')

    # 설정 파일에서 초기화
    await DatabaseRegistry.init_from_config(load_config())
    db = get_db('default')
"""

from database.config import DatabaseConfig, load_config
from database.exception import (
    ConfigError,
    DatabaseClosedError,
    DatabaseError,
    InvalidOpenModeError,
    ReadOnlyTransactionError,
    UnknownEventError,
)
from database.registry import DatabaseRegistry, get_db
from database.sqlite3 import (
    Database,
    ManagedTransaction,
    RunResult,
    SqliteOptions,
    TransactionContext,
    OPEN_CREATE,
    OPEN_READONLY,
    OPEN_READWRITE,
)

__all__ = [
    'Database',
    'RunResult',
    'SqliteOptions',
    'TransactionContext',
    'ManagedTransaction',
    'DatabaseConfig',
    'DatabaseRegistry',
    'load_config',
    'get_db',
    'DatabaseError',
    'DatabaseClosedError',
    'InvalidOpenModeError',
    'UnknownEventError',
    'ReadOnlyTransactionError',
    'ConfigError',
    'OPEN_READONLY',
    'OPEN_READWRITE',
    'OPEN_CREATE',
]
