"""
SQLite 드라이버 이벤트 구독 모듈

trace / profile / error / open / close 이벤트 리스너를 관리합니다.
드라이버 콜백은 aiosqlite 워커 스레드에서 호출되므로
emit_threadsafe()로 이벤트 루프 스레드에 넘겨서 실행합니다.
"""

import asyncio
import functools
import inspect
import logging
from typing import Any, Callable

from database.exception import UnknownEventError

logger = logging.getLogger(__name__)

EVENTS = ('trace', 'profile', 'error', 'open', 'close')

Listener = Callable[..., Any]


class EventEmitter:
    """이벤트 리스너 레지스트리"""

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = {event: [] for event in EVENTS}
        # 코루틴 리스너 태스크 (완료 전 GC 방지)
        self._tasks: set[asyncio.Future] = set()

    def on(self, event: str, listener: Listener) -> None:
        """리스너 등록"""
        self._check_event(event)
        self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        """리스너 해제 (등록되지 않은 리스너는 무시)"""
        self._check_event(event)
        listeners = self._listeners[event]
        if listener in listeners:
            listeners.remove(listener)

    def has_listeners(self, event: str) -> bool:
        return bool(self._listeners.get(event))

    def emit(self, event: str, *args: Any) -> None:
        """이벤트 발생 (이벤트 루프 스레드에서 호출)"""
        for listener in list(self._listeners[event]):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(functools.partial(self._listener_done, event))
            except Exception:
                logger.exception(f"Listener for '{event}' event failed")

    def emit_threadsafe(self, loop: asyncio.AbstractEventLoop, event: str, *args: Any) -> None:
        """다른 스레드에서 이벤트 발생"""
        if not self.has_listeners(event) or loop.is_closed():
            return
        loop.call_soon_threadsafe(self.emit, event, *args)

    def _check_event(self, event: str) -> None:
        if event not in self._listeners:
            raise UnknownEventError(event)

    async def drain(self) -> None:
        """실행 중인 코루틴 리스너가 모두 끝날 때까지 대기"""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _listener_done(self, event: str, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Listener for '{event}' event failed", exc_info=exc)
