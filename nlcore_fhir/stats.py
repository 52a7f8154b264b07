from contextlib import contextmanager
from datetime import timedelta
import time
from typing import Any, Awaitable, Callable, Generator

import statsd
from statsd.client.timer import Timer
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from nlcore_fhir.config import get_config


class Stats:
    def timing(self, key: str, value: int) -> None:
        raise NotImplementedError

    def inc(self, key: str, count: int = 1, rate: int = 1) -> None:
        raise NotImplementedError

    def timer(self, key: str) -> Timer:
        raise NotImplementedError


class NoopStats(Stats):
    def timing(self, key: str, value: int) -> None:
        pass

    def inc(self, key: str, count: int = 1, rate: int = 1) -> None:
        pass

    def timer(self, key: str) -> Timer:
        @contextmanager
        def noop_context_manager() -> Generator[Any, Any, Any]:
            yield

        return noop_context_manager()  # type: ignore[return-value]


class MemoryClient:
    """
    Keeps the metrics in memory, used when no statsd host is configured.
    """

    def __init__(self) -> None:
        self.memory: dict[str, Any] = {}

    def timer(self, stat: str, rate: int = 1) -> Timer:
        return Timer(self, stat, rate)  # type: ignore[arg-type]

    def timing(self, stat: str, delta: timedelta | float, rate: int = 1) -> None:
        if isinstance(delta, timedelta):
            delta = delta.total_seconds() * 1000.0
        self.memory.setdefault(stat, []).append(delta)

    def incr(self, stat: str, count: int = 1, rate: int = 1) -> None:
        self.memory[stat] = self.memory.get(stat, 0) + count

    def get_memory(self) -> dict[str, Any]:
        return self.memory


class Statsd(Stats):
    def __init__(self, client: statsd.StatsClient | MemoryClient):
        self.client = client

    def timing(self, key: str, value: int) -> None:
        self.client.timing(key, value)

    def inc(self, key: str, count: int = 1, rate: int = 1) -> None:
        self.client.incr(key, count, rate)

    def timer(self, key: str) -> Timer:
        return self.client.timer(key)


_STATS: Stats = NoopStats()


def setup_stats() -> None:
    config = get_config()

    if config.stats.enabled is False:
        return
    in_memory = config.stats.host is None or config.stats.host == ""
    client = (
        MemoryClient()
        if in_memory
        else statsd.StatsClient(config.stats.host, config.stats.port or 8125)
    )
    global _STATS
    _STATS = Statsd(client)


def get_stats() -> Stats:
    return _STATS


def stats_key(path: str) -> str:
    """
    Collapses resource ids in FHIR paths so the number of metric keys stays
    bounded: /api/fhir/R4/Patient/123 becomes api.fhir.R4.Patient.id
    """
    parts = [p for p in path.split("/") if p]
    if len(parts) >= 5 and parts[0] == "api" and parts[1] == "fhir":
        parts = parts[:4] + ["id"]
    return ".".join(parts) or "root"


class StatsdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to record request count and response time for each request
    """

    def __init__(self, app: ASGIApp, module_name: str):
        super().__init__(app)
        self.module_name = module_name

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        key = f"{self.module_name}.http.request.{request.method.lower()}.{stats_key(request.url.path)}"
        get_stats().inc(key)

        start_time = time.monotonic()
        response = await call_next(request)
        response_time = int((time.monotonic() - start_time) * 1000)

        get_stats().inc(f"{self.module_name}.http.status.{response.status_code}")
        get_stats().timing(f"{self.module_name}.http.response_time", response_time)

        return response
