"""
SQLite3 비동기 연결 어댑터 모듈

aiosqlite 연결 하나를 감싸서 run / get / all / exec / close 와
이벤트 구독을 await 가능한 인터페이스로 제공합니다.
인자와 결과는 드라이버에 그대로 전달하고, 드라이버 예외도 그대로 전파합니다.
"""

import asyncio
import logging
import sqlite3
import time
from collections.abc import Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiosqlite
import aiosql
from aiosql.queries import Queries

from database.exception import (
    DatabaseClosedError,
    InvalidOpenModeError,
    ReadOnlyTransactionError,
)
from database.sqlite3.event import EventEmitter, Listener

logger = logging.getLogger(__name__)

OPEN_READONLY = 0x01
OPEN_READWRITE = 0x02
OPEN_CREATE = 0x04

MEMORY_FILENAMES = (':memory:', '')

# cached=True 로 연 연결 (파일 경로 -> Database)
_cache: dict[str, 'Database'] = {}


@dataclass(frozen=True)
class RunResult:
    """run() 실행 결과"""
    last_id: int | None
    changes: int


@dataclass
class SqliteOptions:
    """SQLite 연결 옵션 (PRAGMA)"""
    busy_timeout: int | None = 5000
    journal_mode: str | None = None
    synchronous: str | None = None
    cache_size: int | None = None
    foreign_keys: bool | None = None


def _uri_mode(mode: int) -> str:
    """open 플래그를 SQLite URI mode 값으로 변환"""
    if mode & ~(OPEN_READONLY | OPEN_READWRITE | OPEN_CREATE):
        raise InvalidOpenModeError(mode, f"Unknown open flags: {mode:#x}")
    if mode & OPEN_READONLY:
        if mode & (OPEN_READWRITE | OPEN_CREATE):
            raise InvalidOpenModeError(mode, "OPEN_READONLY cannot be combined with other flags")
        return 'ro'
    if mode & OPEN_READWRITE:
        return 'rwc' if mode & OPEN_CREATE else 'rw'
    raise InvalidOpenModeError(mode, "Mode must include OPEN_READONLY or OPEN_READWRITE")


def _cache_key(filename: str) -> str:
    return str(Path(filename).resolve())


def _strip_prefix(name: str) -> str:
    return name[1:] if name[:1] in ('$', ':', '@') else name


def _bind_parameters(params: tuple) -> tuple | dict:
    """run/get/all 가변 인자를 드라이버 파라미터로 변환"""
    if len(params) == 1:
        value = params[0]
        if isinstance(value, Mapping):
            return {_strip_prefix(str(key)): item for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return tuple(value)
    return params


def _split_script(sql: str) -> list[str]:
    """스크립트를 완결된 SQL 문 단위로 분리 (트리거 본문의 ; 는 유지)"""
    statements = []
    buffer = ''
    for part in sql.split(';'):
        buffer += part + ';'
        if sqlite3.complete_statement(buffer):
            if buffer.strip(' \t\r\n;'):
                statements.append(buffer.strip())
            buffer = ''
    if buffer.strip(' \t\r\n;'):
        statements.append(buffer.strip())
    return statements


def _log_query(sql: str, parameters: Any = None) -> None:
    """SQL 쿼리 로깅"""
    sql_oneline = ' '.join(sql.split())
    extra = {'sql': sql_oneline, 'params': parameters or None}
    if parameters:
        logger.debug(f"[SQL] {sql_oneline} | params: {parameters}", extra=extra)
    else:
        logger.debug(f"[SQL] {sql_oneline}", extra=extra)


def _log_result(row_count: int) -> None:
    """SQL 결과 로깅"""
    logger.debug(f"[SQL Result] {row_count} row(s)", extra={'row_count': row_count})


async def _apply_options(
    connection: aiosqlite.Connection,
    options: SqliteOptions,
    readonly: bool
) -> None:
    """PRAGMA 설정 적용"""
    pragmas = []
    if options.busy_timeout is not None:
        pragmas.append(f"busy_timeout={int(options.busy_timeout)}")
    if options.cache_size is not None:
        pragmas.append(f"cache_size={int(options.cache_size)}")
    if options.foreign_keys is not None:
        pragmas.append(f"foreign_keys={'ON' if options.foreign_keys else 'OFF'}")
    # 읽기 전용 연결은 저널/동기화 모드를 바꿀 수 없음
    if not readonly:
        if options.journal_mode:
            pragmas.append(f"journal_mode={options.journal_mode}")
        if options.synchronous:
            pragmas.append(f"synchronous={options.synchronous}")

    for pragma in pragmas:
        async with connection.execute(f"PRAGMA {pragma}"):
            pass
    logger.debug(f"PRAGMA settings applied: {', '.join(pragmas) or '-'}")


class Database:
    """
    aiosqlite 연결 어댑터

    사용 예시:
        db = await Database.connect('./data/app.db')
        db.on('trace', print)

        await db.run("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT)")
        result = await db.run("INSERT INTO items (name) VALUES (?)", 'a')
        row = await db.get("SELECT * FROM items WHERE id = ?", result.last_id)
        rows = await db.all("SELECT * FROM items")

        await db.close()
    """

    OPEN_READONLY = OPEN_READONLY
    OPEN_READWRITE = OPEN_READWRITE
    OPEN_CREATE = OPEN_CREATE

    def __init__(
        self,
        connection: aiosqlite.Connection,
        filename: str,
        mode: int,
        loop: asyncio.AbstractEventLoop
    ):
        self._connection: aiosqlite.Connection | None = connection
        self._filename = filename
        self._mode = mode
        self._loop = loop
        self._events = EventEmitter()
        self._queries: dict[str, Queries] = {}
        self._cache_key: str | None = None

    @classmethod
    def verbose(cls) -> type['Database']:
        """드라이버 콜백 traceback 출력 및 SQL 디버그 로깅 활성화"""
        sqlite3.enable_callback_tracebacks(True)
        logging.getLogger('database').setLevel(logging.DEBUG)
        return cls

    @classmethod
    async def connect(
        cls,
        filename: str,
        mode: int = OPEN_READWRITE | OPEN_CREATE,
        cached: bool = False,
        options: SqliteOptions | None = None
    ) -> 'Database':
        """
        SQLite 데이터베이스 연결

        Args:
            filename: 데이터베이스 파일 경로 (':memory:' 또는 '' 는 임시 DB)
            mode: open 플래그 조합 (기본 OPEN_READWRITE | OPEN_CREATE)
            cached: True면 같은 파일에 대해 열려 있는 연결을 재사용
            options: 연결 직후 적용할 PRAGMA 설정

        Raises:
            InvalidOpenModeError: 지원하지 않는 mode 조합
            sqlite3.Error: 드라이버 open 실패 (그대로 전파)
        """
        uri_mode = _uri_mode(mode)
        filename = str(filename)

        # 메모리/임시 DB는 열 때마다 새 DB이므로 캐시하지 않음
        cached = cached and filename not in MEMORY_FILENAMES
        if cached:
            key = _cache_key(filename)
            db = _cache.get(key)
            if db is not None and not db.closed:
                logger.debug(f"Reusing cached connection: {filename}")
                return db

        if filename in MEMORY_FILENAMES:
            connection = await aiosqlite.connect(filename, isolation_level=None)
        else:
            uri = f"{Path(filename).resolve().as_uri()}?mode={uri_mode}"
            connection = await aiosqlite.connect(uri, uri=True, isolation_level=None)

        connection.row_factory = aiosqlite.Row
        loop = asyncio.get_running_loop()
        db = cls(connection, filename, mode, loop)

        try:
            if options is not None:
                await _apply_options(connection, options, readonly=bool(mode & OPEN_READONLY))
            await connection.set_trace_callback(db._on_trace)
        except BaseException:
            await connection.close()
            raise

        if cached:
            db._cache_key = key
            _cache[key] = db

        logger.info(f"Database opened: {filename} (mode={uri_mode}, cached={cached})")
        # connect() 직후 등록한 리스너도 open 이벤트를 받도록 다음 루프 턴에 발생
        loop.call_soon(db._events.emit, 'open')
        return db

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def mode(self) -> int:
        return self._mode

    @property
    def closed(self) -> bool:
        return self._connection is None

    @property
    def connection(self) -> aiosqlite.Connection:
        """원본 aiosqlite 연결 반환"""
        return self._ensure_open()

    @property
    def in_transaction(self) -> bool:
        return self._ensure_open().in_transaction

    def on(self, event: str, listener: Listener) -> None:
        """이벤트 리스너 등록 (trace, profile, error, open, close)"""
        self._events.on(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        """이벤트 리스너 해제"""
        self._events.off(event, listener)

    async def wait_listeners(self) -> None:
        """실행 중인 코루틴 리스너 완료 대기"""
        await self._events.drain()

    async def close(self) -> None:
        """데이터베이스 연결 종료"""
        connection = self._ensure_open()
        self._connection = None
        if self._cache_key is not None and _cache.get(self._cache_key) is self:
            del _cache[self._cache_key]

        try:
            await connection.close()
        except sqlite3.Error as e:
            self._events.emit('error', e)
            raise

        logger.info(f"Database closed: {self._filename}")
        self._events.emit('close')

    async def run(self, sql: str, *params: Any) -> RunResult:
        """
        단일 SQL 문 실행

        INSERT면 last_id에 삽입된 rowid, UPDATE/DELETE면 changes에 영향받은 행 수가 담깁니다.
        여러 문을 넘기면 첫 문만 실행하지 않고 드라이버 예외가 그대로 발생합니다.
        (Python 3.11 이하 sqlite3.Warning, 3.12 이상 sqlite3.ProgrammingError)
        여러 문은 exec()를 사용하세요.
        """
        parameters = _bind_parameters(params)
        async with self._statement(sql, parameters) as connection:
            async with connection.execute(sql, parameters) as cursor:
                return RunResult(
                    last_id=cursor.lastrowid,
                    changes=max(cursor.rowcount, 0)
                )

    async def get(self, sql: str, *params: Any) -> dict[str, Any] | None:
        """첫 번째 행을 {컬럼: 값} 형태로 반환 (결과 없으면 None)"""
        parameters = _bind_parameters(params)
        async with self._statement(sql, parameters) as connection:
            async with connection.execute(sql, parameters) as cursor:
                row = await cursor.fetchone()
        _log_result(1 if row else 0)
        return dict(row) if row is not None else None

    async def all(self, sql: str, *params: Any) -> list[dict[str, Any]]:
        """모든 행을 {컬럼: 값} 리스트로 반환 (결과 없으면 빈 리스트)"""
        parameters = _bind_parameters(params)
        async with self._statement(sql, parameters) as connection:
            async with connection.execute(sql, parameters) as cursor:
                rows = await cursor.fetchall()
        _log_result(len(rows))
        return [dict(row) for row in rows]

    async def exec(self, sql: str) -> None:
        """
        여러 SQL 문 실행 (결과 없음)

        중간에 실패한 문이 있으면 이후 문은 실행되지 않습니다.
        executescript()는 열린 트랜잭션을 먼저 COMMIT 하므로
        트랜잭션 안에서는 문을 하나씩 나눠 실행합니다.
        """
        async with self._statement(sql) as connection:
            if not connection.in_transaction:
                cursor = await connection.executescript(sql)
                await cursor.close()
                return
            for statement in _split_script(sql):
                async with connection.execute(statement):
                    pass

    def transaction(self, readonly: bool = False) -> 'ManagedTransaction':
        """트랜잭션 컨텍스트 매니저 반환"""
        return ManagedTransaction(self, readonly)

    def load_queries(self, name: str, sql_path: str | Path) -> Queries:
        """aiosql로 SQL 파일 로드 (쿼리 함수에는 db.connection 전달)"""
        queries = aiosql.from_path(str(sql_path), "aiosqlite")
        self._queries[name] = queries
        logger.debug(f"Queries loaded: {name} ({sql_path})")
        return queries

    def get_queries(self, name: str) -> Queries | None:
        """로드된 쿼리 세트 반환"""
        return self._queries.get(name)

    @asynccontextmanager
    async def _statement(self, sql: str, parameters: Any = None):
        """드라이버 호출 공통 처리: 로깅, error/profile 이벤트"""
        connection = self._ensure_open()
        _log_query(sql, parameters)
        started = time.perf_counter()
        try:
            yield connection
        except sqlite3.Error as e:
            logger.debug(f"[SQL Error] {e}")
            self._events.emit('error', e)
            raise
        self._events.emit('profile', sql, (time.perf_counter() - started) * 1000.0)

    def _on_trace(self, statement: str) -> None:
        # aiosqlite 워커 스레드에서 호출됨
        self._events.emit_threadsafe(self._loop, 'trace', statement)

    def _ensure_open(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise DatabaseClosedError(self._filename)
        return self._connection

    async def __aenter__(self) -> 'Database':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self.closed:
            await self.close()

    def __repr__(self) -> str:
        state = 'closed' if self.closed else 'open'
        return f"<Database {self._filename!r} mode={self._mode:#x} {state}>"


class TransactionContext:
    """SQLite 트랜잭션 컨텍스트 관리 클래스"""

    def __init__(self, db: Database, readonly: bool = False):
        self._db = db
        self._readonly = readonly
        self._in_transaction = False

    @property
    def db(self) -> Database:
        return self._db

    @property
    def readonly(self) -> bool:
        return self._readonly

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    async def begin(self) -> None:
        """트랜잭션 시작"""
        if self._in_transaction:
            logger.warning("Transaction already started")
            return
        await self._db.run("BEGIN DEFERRED" if self._readonly else "BEGIN IMMEDIATE")
        self._in_transaction = True
        logger.debug("Transaction started")

    async def commit(self) -> None:
        """트랜잭션 커밋"""
        if not self._in_transaction:
            logger.warning("No active transaction to commit")
            return
        await self._db.run("COMMIT")
        self._in_transaction = False
        logger.debug("Transaction committed")

    async def rollback(self) -> None:
        """트랜잭션 롤백"""
        if not self._in_transaction:
            logger.warning("No active transaction to rollback")
            return
        # 일부 오류(SQLITE_FULL 등)는 드라이버가 이미 롤백한 상태
        if self._db.in_transaction:
            await self._db.run("ROLLBACK")
        self._in_transaction = False
        logger.debug("Transaction rolled back")

    async def run(self, sql: str, *params: Any) -> RunResult:
        self._check_write(sql)
        return await self._db.run(sql, *params)

    async def get(self, sql: str, *params: Any) -> dict[str, Any] | None:
        self._check_write(sql)
        return await self._db.get(sql, *params)

    async def all(self, sql: str, *params: Any) -> list[dict[str, Any]]:
        self._check_write(sql)
        return await self._db.all(sql, *params)

    def _check_write(self, sql: str) -> None:
        if self._readonly and self._is_write_query(sql):
            raise ReadOnlyTransactionError("Cannot execute write query in readonly transaction")

    def _is_write_query(self, sql: str) -> bool:
        """쓰기 쿼리인지 확인"""
        sql_upper = sql.strip().upper()
        write_keywords = ('INSERT', 'UPDATE', 'DELETE', 'REPLACE', 'CREATE', 'DROP', 'ALTER')
        return sql_upper.startswith(write_keywords)


class ManagedTransaction:
    """SQLite 트랜잭션 컨텍스트 매니저"""

    def __init__(self, db: Database, readonly: bool = False):
        self._db = db
        self._readonly = readonly
        self._ctx: TransactionContext | None = None

    async def __aenter__(self) -> TransactionContext:
        self._ctx = TransactionContext(self._db, self._readonly)
        await self._ctx.begin()
        return self._ctx

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            await self._ctx.rollback()
            return
        try:
            await self._ctx.commit()
        except sqlite3.Error:
            # COMMIT 실패 (지연 FK 위반, BUSY 등) 시 트랜잭션이 열린 채로 남음
            await self._ctx.rollback()
            raise
