from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from esports_wiki.core.config import Settings
from esports_wiki.ingestion.providers.base.client import BaseHttpClient, Json
from esports_wiki.ingestion.providers.base.errors import (
    ProviderRateLimited,
    ProviderRequestError,
    RateLimitExceeded,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
ClockFn = Callable[[], float]


class RateLimitClass(str, Enum):
    STANDARD = "standard"
    INTENSIVE = "intensive"
    BULK_QUERY = "bulk_query"


@dataclass(frozen=True)
class RequestSpec:
    path: str
    params: Mapping[str, Any] = field(default_factory=dict)
    method: str = "GET"


@dataclass
class RateLimitQueue:
    """Single-flight queue for one rate class.

    Callers hold `lock` for the whole request (retries included), and call
    `wait_turn()` right before each send so consecutive sends of the class are
    never closer than `min_interval_s`.
    """

    rate_class: RateLimitClass
    min_interval_s: float
    last_request_monotonic: float | None = None
    requests_sent: int = 0

    _sleep: SleepFn = field(default=asyncio.sleep, repr=False)
    _monotonic: ClockFn = field(default=time.monotonic, repr=False)

    def __post_init__(self) -> None:
        self.lock = asyncio.Lock()

    async def wait_turn(self) -> None:
        if self.last_request_monotonic is not None and self.min_interval_s > 0.0:
            elapsed = float(self._monotonic()) - self.last_request_monotonic
            remaining = self.min_interval_s - elapsed
            if remaining > 0:
                logger.debug(
                    "Spacing %s request by %.2fs", self.rate_class.value, remaining
                )
                await self._sleep(remaining)
        self.last_request_monotonic = float(self._monotonic())
        self.requests_sent += 1


def _is_throttle_envelope(data: Json) -> bool:
    error = data.get("error")
    return isinstance(error, dict) and error.get("code") in {"ratelimited", "maxlag"}


class RequestGovernor:
    """Funnels every wiki request through one queue per rate class.

    Throttling responses are retried with exponential backoff
    (`base_delay_s * 2**attempt` for attempt 1..max_retries); once retries run
    out the call fails with `RateLimitExceeded`. Other transport failures are
    logged and re-raised without retry.
    """

    def __init__(
        self,
        http: BaseHttpClient,
        *,
        intervals: Mapping[RateLimitClass, float],
        user_agent: str,
        base_delay_s: float = 2.0,
        max_retries: int = 3,
        sleep: SleepFn = asyncio.sleep,
        monotonic: ClockFn = time.monotonic,
    ) -> None:
        self.http = http
        self.user_agent = user_agent
        self.base_delay_s = base_delay_s
        self.max_retries = max_retries
        self._sleep = sleep
        self.queues: dict[RateLimitClass, RateLimitQueue] = {
            rate_class: RateLimitQueue(
                rate_class=rate_class,
                min_interval_s=float(intervals.get(rate_class, 0.0)),
                _sleep=sleep,
                _monotonic=monotonic,
            )
            for rate_class in RateLimitClass
        }

    @classmethod
    def from_settings(
        cls,
        http: BaseHttpClient,
        cfg: Settings,
        *,
        sleep: SleepFn = asyncio.sleep,
        monotonic: ClockFn = time.monotonic,
    ) -> RequestGovernor:
        return cls(
            http,
            intervals={
                RateLimitClass.STANDARD: cfg.standard_interval_s,
                RateLimitClass.INTENSIVE: cfg.intensive_interval_s,
                RateLimitClass.BULK_QUERY: cfg.bulk_query_interval_s,
            },
            user_agent=cfg.require_user_agent(),
            base_delay_s=cfg.throttle_base_delay_s,
            max_retries=cfg.throttle_max_retries,
            sleep=sleep,
            monotonic=monotonic,
        )

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept-Encoding": "gzip"}

    async def execute(self, spec: RequestSpec, rate_class: RateLimitClass) -> Json:
        queue = self.queues[rate_class]
        async with queue.lock:
            attempt = 0
            while True:
                await queue.wait_turn()
                try:
                    data = await self.http.request_json(
                        spec.method, spec.path, params=spec.params, headers=self._headers()
                    )
                    if _is_throttle_envelope(data):
                        raise ProviderRateLimited(
                            f"API throttled the request: {data['error'].get('info', '')}",
                            status_code=429,
                        )
                    return data
                except ProviderRateLimited:
                    if attempt >= self.max_retries:
                        logger.warning(
                            "Giving up on %s request after %d attempts: path=%s params=%s",
                            rate_class.value,
                            attempt + 1,
                            spec.path,
                            dict(spec.params),
                        )
                        raise RateLimitExceeded(rate_class.value, attempt + 1) from None
                    attempt += 1
                    delay = self.base_delay_s * (2**attempt)
                    logger.info(
                        "Throttled on %s request (retry %d/%d), backing off %.1fs",
                        rate_class.value,
                        attempt,
                        self.max_retries,
                        delay,
                    )
                    await self._sleep(delay)
                except ProviderRequestError as e:
                    logger.error(
                        "Request failed: path=%s params=%s status=%s error=%s",
                        spec.path,
                        dict(spec.params),
                        e.status_code,
                        e,
                    )
                    raise
