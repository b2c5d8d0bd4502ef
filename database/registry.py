"""
이름 기반 데이터베이스 레지스트리

설정에 정의된 데이터베이스를 열어 이름으로 조회할 수 있게 합니다.
"""

import logging
from pathlib import Path
from typing import Any

from database.config import database_configs
from database.sqlite3.connection import MEMORY_FILENAMES, OPEN_CREATE, Database

logger = logging.getLogger(__name__)


class DatabaseRegistry:
    """데이터베이스 레지스트리"""

    _databases: dict[str, Database] = {}

    @classmethod
    async def init_from_config(cls, config: dict[str, Any], names: list[str] | None = None) -> None:
        """
        설정에서 데이터베이스 초기화

        Args:
            config: 'databases' 섹션을 포함한 설정 dict
            names: 초기화할 데이터베이스 이름 목록 (None이면 전체)
        """
        configs = database_configs(config)

        if names is not None:
            missing = set(names) - set(configs)
            if missing:
                raise KeyError(f"Database not configured: {', '.join(sorted(missing))}")

        for name, db_config in configs.items():
            if names is not None and name not in names:
                continue
            if name in cls._databases:
                logger.warning(f"Database '{name}' already registered")
                continue

            if db_config.mode & OPEN_CREATE and db_config.path not in MEMORY_FILENAMES:
                Path(db_config.path).parent.mkdir(parents=True, exist_ok=True)

            db = await Database.connect(
                db_config.path,
                mode=db_config.mode,
                cached=db_config.cached,
                options=db_config.options,
            )
            cls._databases[name] = db
            logger.info(f"Database '{name}' registered: {db_config.path}")

    @classmethod
    def register(cls, name: str, db: Database) -> None:
        """이미 연결된 데이터베이스 등록"""
        cls._databases[name] = db

    @classmethod
    def get(cls, name: str) -> Database:
        """이름으로 데이터베이스 조회"""
        if name not in cls._databases:
            raise KeyError(f"Database not found: {name}")
        return cls._databases[name]

    @classmethod
    def get_all(cls) -> dict[str, Database]:
        return dict(cls._databases)

    @classmethod
    async def close_all(cls) -> None:
        """등록된 모든 데이터베이스 종료"""
        for name, db in list(cls._databases.items()):
            # cached 연결은 여러 이름에 같은 인스턴스가 등록될 수 있음
            if not db.closed:
                await db.close()
            logger.debug(f"Database '{name}' released")
        cls._databases.clear()

    @classmethod
    def clear(cls) -> None:
        cls._databases.clear()


def get_db(name: str = 'default') -> Database:
    """DatabaseRegistry.get() 단축 함수"""
    return DatabaseRegistry.get(name)
