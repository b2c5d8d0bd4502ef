"""
데이터베이스 설정 로드

config/database.yaml 형식:
    databases:
      default:
        path: ./data/default.db
        mode: [readwrite, create]
        cached: false
        options:
          busy_timeout: 5000
          journal_mode: WAL
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from database.exception import ConfigError
from database.sqlite3.connection import (
    OPEN_CREATE,
    OPEN_READONLY,
    OPEN_READWRITE,
    SqliteOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path('config') / 'database.yaml'

MODE_FLAGS = {
    'readonly': OPEN_READONLY,
    'readwrite': OPEN_READWRITE,
    'create': OPEN_CREATE,
}


@dataclass
class DatabaseConfig:
    """단일 데이터베이스 설정"""
    name: str
    path: str
    mode: int = OPEN_READWRITE | OPEN_CREATE
    cached: bool = False
    options: SqliteOptions = field(default_factory=SqliteOptions)


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """YAML 설정 파일 로드"""
    path = Path(path)
    if not path.exists():
        raise ConfigError("Config file not found", str(path))

    with open(path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ConfigError("Config root must be a mapping", str(path))
    logger.debug(f"Config loaded: {path}")
    return config


def parse_mode(value: Any) -> int:
    """mode 설정값 변환 (정수, 플래그 이름, 플래그 이름 리스트)"""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid mode: {value!r}")
    if isinstance(value, int):
        return value
    names = [value] if isinstance(value, str) else value
    if not isinstance(names, list) or not names:
        raise ConfigError(f"Invalid mode: {value!r}")

    mode = 0
    for name in names:
        flag = MODE_FLAGS.get(str(name).lower())
        if flag is None:
            raise ConfigError(f"Unknown mode flag: {name!r}")
        mode |= flag
    return mode


def database_configs(config: dict[str, Any]) -> dict[str, DatabaseConfig]:
    """config['databases'] 섹션을 DatabaseConfig 로 변환"""
    databases = config.get('databases')
    if not isinstance(databases, dict):
        raise ConfigError("'databases' section must be a mapping")

    result = {}
    for name, cfg in databases.items():
        cfg = cfg or {}
        if not isinstance(cfg, dict):
            raise ConfigError(f"Database '{name}' config must be a mapping")

        opts = cfg.get('options') or {}
        unknown = set(opts) - set(SqliteOptions.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown options for database '{name}': {', '.join(sorted(unknown))}")

        result[name] = DatabaseConfig(
            name=name,
            path=str(cfg.get('path', f'./data/{name}.db')),
            mode=parse_mode(cfg.get('mode', ['readwrite', 'create'])),
            cached=bool(cfg.get('cached', False)),
            options=SqliteOptions(**opts),
        )
    return result
