"""
SQLite3 비동기 데이터베이스 패키지

사용 예시:
    from database.sqlite3 import Database

    db = await Database.connect('./data/app.db')
    db.on('trace', lambda sql: print(sql))

    await db.run("INSERT INTO items (name) VALUES ($name)", {'$name': 'a'})
    rows = await db.all("SELECT * FROM items")

    # 트랜잭션
    async with db.transaction() as tx:
        await tx.run("UPDATE items SET name = ? WHERE id = ?", 'b', 1)

    await db.close()
"""

from database.sqlite3.connection import (
    Database,
    RunResult,
    SqliteOptions,
    TransactionContext,
    ManagedTransaction,
    OPEN_READONLY,
    OPEN_READWRITE,
    OPEN_CREATE,
)
from database.sqlite3.event import EventEmitter, EVENTS

__all__ = [
    'Database',
    'RunResult',
    'SqliteOptions',
    'TransactionContext',
    'ManagedTransaction',
    'EventEmitter',
    'EVENTS',
    'OPEN_READONLY',
    'OPEN_READWRITE',
    'OPEN_CREATE',
]
