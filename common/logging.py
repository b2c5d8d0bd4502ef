"""
로깅 설정

[SQL] 디버그 로그의 sql / params / row_count 값을 JSON 필드로 내보냅니다.
"""

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from database.sqlite3 import Database

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# database.sqlite3.connection 의 _log_query / _log_result 가 extra 로 넘기는 필드
SQL_FIELDS = ('sql', 'params', 'row_count')

LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class SqlJsonFormatter(JsonFormatter):
    """JSON 로그 포매터"""

    def __init__(self):
        super().__init__('%(timestamp)s %(level)s %(name)s %(message)s', json_default=repr)

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = self.formatTime(record)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        # SQL 로그가 아니면 필드 생략
        for field in SQL_FIELDS:
            if log_record.get(field) is None:
                log_record.pop(field, None)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None,
    verbose: bool = False
) -> None:
    """
    로깅 설정

    Args:
        level: 루트 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON 포맷 사용 여부 (False면 텍스트 포맷)
        log_file: 로그 파일 경로 (None이면 stdout만 사용)
        verbose: Database.verbose() 적용 (루트 레벨과 무관하게 SQL 디버그 로그 출력)
    """
    level = level.upper()
    if level not in LEVELS:
        raise ValueError(f"Unknown log level: {level}")

    formatter = SqlJsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=getattr(logging, level), handlers=handlers, force=True)

    # aiosqlite 는 워커 스레드 요청마다 DEBUG 로그를 남김
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('aiosqlite').setLevel(logging.WARNING)

    if verbose:
        Database.verbose()
