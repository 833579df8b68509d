from contextlib import contextmanager
from datetime import timedelta
import time
from typing import Any, Callable, Awaitable, ContextManager, Generator

import statsd
from statsd.client.timer import Timer
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.config import ConfigStats


class Stats:
    def timing(self, key: str, value: int) -> None:
        raise NotImplementedError

    def inc(self, key: str, count: int = 1, rate: int = 1) -> None:
        raise NotImplementedError

    def gauge(self, key: str, value: int, delta: bool = False) -> None:
        raise NotImplementedError

    def timer(self, key: str) -> ContextManager[Any]:
        raise NotImplementedError


class NoopStats(Stats):
    def timing(self, key: str, value: int) -> None:
        pass

    def inc(self, key: str, count: int = 1, rate: int = 1) -> None:
        pass

    def gauge(self, key: str, value: int, delta: bool = False) -> None:
        pass

    def timer(self, key: str) -> ContextManager[Any]:
        @contextmanager
        def noop_context_manager() -> Generator[Any, Any, Any]:
            yield

        return noop_context_manager()


class MemoryClient:
    """
    Keeps stats in memory instead of sending them to a statsd server. Used when
    stats are enabled without a host, and in tests.
    """

    def __init__(self, prefix: str | None = None) -> None:
        self.prefix = prefix
        self.memory: dict[str, Any] = {}

    def __key(self, stat: str) -> str:
        return f"{self.prefix}.{stat}" if self.prefix else stat

    def timer(self, stat: str, rate: int = 1) -> Timer:
        return Timer(self, stat, rate)

    def timing(self, stat: str, delta: timedelta | float, rate: int = 1) -> None:
        if isinstance(delta, timedelta):
            delta = delta.total_seconds() * 1000.0
        self.memory.setdefault(self.__key(stat), []).append(delta)

    def incr(self, stat: str, count: int = 1, rate: int = 1) -> None:
        key = self.__key(stat)
        self.memory[key] = self.memory.get(key, 0) + count

    def gauge(self, stat: str, value: int, rate: int = 1, delta: bool = False) -> None:
        snapshot = {"value": value, "timestamp": time.time()}
        self.memory.setdefault(self.__key(stat), []).append(snapshot)

    def get_memory(self) -> dict[str, Any]:
        return self.memory


class Statsd(Stats):
    def __init__(self, client: statsd.StatsClient | MemoryClient):
        self.client = client

    def timing(self, key: str, value: int) -> None:
        self.client.timing(key, value)

    def inc(self, key: str, count: int = 1, rate: int = 1) -> None:
        self.client.incr(key, count, rate)

    def gauge(self, key: str, value: int, delta: bool = False) -> None:
        self.client.gauge(key, value, delta=delta)

    def timer(self, key: str) -> Timer:
        return self.client.timer(key)


_STATS: Stats = NoopStats()


def setup_stats(config: ConfigStats) -> None:
    global _STATS

    if config.enabled is False:
        _STATS = NoopStats()
        return

    if config.host is None or config.host == "":
        _STATS = Statsd(MemoryClient(prefix=config.module_name))
        return

    _STATS = Statsd(
        statsd.StatsClient(config.host, config.port or 8125, prefix=config.module_name)
    )


def get_stats() -> Stats:
    return _STATS


class StatsdMiddleware(BaseHTTPMiddleware):
    """
    Counts requests per method and path and records the response time.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        get_stats().inc(f"http.request.{request.method.lower()}.{request.url.path}")

        start_time = time.monotonic()
        response = await call_next(request)
        response_time = int((time.monotonic() - start_time) * 1000)
        get_stats().timing("http.response_time", response_time)

        return response
