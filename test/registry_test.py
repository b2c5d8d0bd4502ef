"""
설정 / DatabaseRegistry 테스트

테스트 항목:
1. YAML 설정 로드
2. mode 설정값 변환
3. 설정에서 다중 DB 초기화
4. cached 연결 공유
5. get_db() / close_all()

실행: python -m pytest test/registry_test.py -v
"""

import logging
import sys
from pathlib import Path

import pytest
import pytest_asyncio
import yaml

sys.path.insert(0, str(Path(__file__).parent.parent))

from database import (
    ConfigError,
    Database,
    DatabaseRegistry,
    get_db,
    load_config,
    OPEN_CREATE,
    OPEN_READONLY,
    OPEN_READWRITE,
)
from database.config import database_configs, parse_mode

logger = logging.getLogger(__name__)


@pytest.fixture
def multi_db_config(tmp_path):
    return {
        'databases': {
            'default': {
                'path': str(tmp_path / 'data' / 'default.db'),
                'options': {'busy_timeout': 2000, 'foreign_keys': True},
            },
            'secondary': {
                'path': str(tmp_path / 'data' / 'secondary.db'),
                'mode': ['readwrite', 'create'],
                'cached': True,
            },
            'memory': {
                'path': ':memory:',
            },
        }
    }


@pytest_asyncio.fixture
async def registry(multi_db_config):
    DatabaseRegistry.clear()
    await DatabaseRegistry.init_from_config(multi_db_config)
    yield DatabaseRegistry
    await DatabaseRegistry.close_all()


class TestConfig:
    """설정 로드 테스트"""

    def test_load_config(self, tmp_path, multi_db_config):
        config_path = tmp_path / "database.yaml"
        config_path.write_text(yaml.safe_dump(multi_db_config), encoding="utf-8")

        config = load_config(config_path)
        assert config == multi_db_config

    def test_load_config_missing(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "missing.yaml")
        assert exc_info.value.path.endswith("missing.yaml")

    def test_load_config_not_mapping(self, tmp_path):
        config_path = tmp_path / "database.yaml"
        config_path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(config_path)

    def test_load_repository_config(self):
        """저장소 기본 설정 파일 파싱"""
        config = load_config(Path(__file__).parent.parent / "config" / "database.yaml")
        configs = database_configs(config)
        assert configs['default'].mode == OPEN_READWRITE | OPEN_CREATE
        assert configs['default'].options.journal_mode == 'WAL'

    @pytest.mark.parametrize("value, expected", [
        ('readonly', OPEN_READONLY),
        ('readwrite', OPEN_READWRITE),
        (['readwrite', 'create'], OPEN_READWRITE | OPEN_CREATE),
        (['READWRITE', 'Create'], OPEN_READWRITE | OPEN_CREATE),
        (0x06, 0x06),
    ])
    def test_parse_mode(self, value, expected):
        assert parse_mode(value) == expected

    @pytest.mark.parametrize("value", ['write', [], True, None, ['readonly', 'bogus']])
    def test_parse_mode_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_mode(value)

    def test_database_configs_defaults(self):
        configs = database_configs({'databases': {'main': None}})
        main = configs['main']
        assert main.path == './data/main.db'
        assert main.mode == OPEN_READWRITE | OPEN_CREATE
        assert main.cached is False
        assert main.options.busy_timeout == 5000

    def test_database_configs_invalid(self):
        with pytest.raises(ConfigError):
            database_configs({})
        with pytest.raises(ConfigError):
            database_configs({'databases': {'main': 'path.db'}})
        with pytest.raises(ConfigError, match="bogus"):
            database_configs({'databases': {'main': {'options': {'bogus': 1}}}})


class TestDatabaseRegistry:
    """DatabaseRegistry 테스트"""

    @pytest.mark.asyncio
    async def test_init_from_config(self, registry, multi_db_config, tmp_path):
        all_dbs = registry.get_all()
        assert set(all_dbs) == {'default', 'secondary', 'memory'}
        assert (tmp_path / 'data' / 'default.db').exists()

        default_db = get_db('default')
        assert default_db is registry.get('default')
        assert await default_db.get("PRAGMA foreign_keys") == {'foreign_keys': 1}

    @pytest.mark.asyncio
    async def test_get_unknown(self, registry):
        with pytest.raises(KeyError):
            get_db('nonexistent')

    @pytest.mark.asyncio
    async def test_databases_are_independent(self, registry):
        default_db = get_db('default')
        secondary_db = get_db('secondary')

        await default_db.run("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT)")
        await secondary_db.run("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT)")

        await default_db.run("INSERT INTO items (name) VALUES (?)", 'item_default')

        assert await default_db.all("SELECT name FROM items") == [{'name': 'item_default'}]
        assert await secondary_db.all("SELECT name FROM items") == []

    @pytest.mark.asyncio
    async def test_init_selected_names(self, multi_db_config):
        DatabaseRegistry.clear()
        await DatabaseRegistry.init_from_config(multi_db_config, ['memory'])
        try:
            assert set(DatabaseRegistry.get_all()) == {'memory'}
        finally:
            await DatabaseRegistry.close_all()

    @pytest.mark.asyncio
    async def test_init_unknown_name(self, multi_db_config):
        DatabaseRegistry.clear()
        with pytest.raises(KeyError):
            await DatabaseRegistry.init_from_config(multi_db_config, ['nonexistent'])
        assert DatabaseRegistry.get_all() == {}

    @pytest.mark.asyncio
    async def test_cached_database_shared(self, tmp_path):
        """같은 파일을 cached로 설정하면 하나의 연결을 공유"""
        path = str(tmp_path / 'shared.db')
        config = {
            'databases': {
                'writer': {'path': path, 'cached': True},
                'alias': {'path': path, 'cached': True},
            }
        }
        DatabaseRegistry.clear()
        await DatabaseRegistry.init_from_config(config)

        assert get_db('writer') is get_db('alias')

        await DatabaseRegistry.close_all()
        assert DatabaseRegistry.get_all() == {}

    @pytest.mark.asyncio
    async def test_close_all(self, multi_db_config):
        DatabaseRegistry.clear()
        await DatabaseRegistry.init_from_config(multi_db_config)
        databases = list(DatabaseRegistry.get_all().values())

        await DatabaseRegistry.close_all()

        assert all(db.closed for db in databases)
        assert DatabaseRegistry.get_all() == {}

    @pytest.mark.asyncio
    async def test_register(self, tmp_path):
        """직접 연결한 데이터베이스 등록"""
        DatabaseRegistry.clear()
        db = await Database.connect(str(tmp_path / 'manual.db'))
        DatabaseRegistry.register('manual', db)

        assert get_db('manual') is db

        await DatabaseRegistry.close_all()
        assert db.closed is True
