"""
Database 관련 예외 클래스 정의

드라이버(sqlite3) 예외는 감싸지 않고 그대로 전파합니다.
여기 정의된 예외는 어댑터 자체의 상태/인자 오류만 표현합니다.
"""


class DatabaseError(Exception):
    """Database 기본 예외"""
    pass


class DatabaseClosedError(DatabaseError):
    """이미 닫힌 연결에 대한 호출"""
    def __init__(self, filename: str):
        self.filename = filename
        self.message = f"Database is closed: {filename}"
        super().__init__(self.message)


class InvalidOpenModeError(DatabaseError):
    """지원하지 않는 open 모드 조합"""
    def __init__(self, mode: int, message: str = None):
        self.mode = mode
        self.message = message or f"Invalid open mode: {mode:#x}"
        super().__init__(self.message)


class UnknownEventError(DatabaseError):
    """등록할 수 없는 이벤트 이름"""
    def __init__(self, event: str):
        self.event = event
        self.message = f"Unknown event: {event!r}"
        super().__init__(self.message)


class ReadOnlyTransactionError(DatabaseError):
    """읽기 전용 트랜잭션에서 쓰기 쿼리 실행 시도"""
    pass


class ConfigError(DatabaseError):
    """데이터베이스 설정 오류"""
    def __init__(self, message: str, path: str = None):
        self.path = path
        self.message = f"{message} ({path})" if path else message
        super().__init__(self.message)
