"""
Sliding-window rate limiting keyed by client IP and operation kind.

The store sits behind the RateLimitStore protocol. The in-memory store is
process-local, so limits are approximate when several workers run; a shared
store can replace it without touching call sites.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Protocol

from fastapi import Request
from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from studyhub.config import get_settings
from studyhub.security import get_client_ip, log_security_event

logger = logging.getLogger(__name__)
settings = get_settings()

RateLimitKind = Literal["api", "auth", "upload", "chat"]


@dataclass(frozen=True)
class RateLimitRule:
    """Quota of requests allowed per window."""

    requests: int
    window_seconds: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: float  # epoch seconds


class RateLimitExceededError(Exception):
    """Raised by the RateLimit dependency when a client is over quota."""

    def __init__(self, kind: str, result: RateLimitResult):
        super().__init__(f"Rate limit exceeded for {kind}")
        self.kind = kind
        self.result = result


class RateLimitStore(Protocol):
    def hit(self, key: str, rule: RateLimitRule) -> RateLimitResult: ...

    def sweep(self) -> int: ...

    def reset(self) -> None: ...


class InMemoryRateLimitStore:
    """
    Moving-window counters held in the process, via the limits library.

    Each hit is timestamped; a request is denied once the timestamps inside
    the trailing window reach the quota. reset_time is when the oldest hit
    in the window falls out of it.
    """

    def __init__(self, storage: MemoryStorage | None = None):
        self._storage = storage if storage is not None else MemoryStorage()
        self._strategy = MovingWindowRateLimiter(self._storage)
        # Keys seen since the last sweep, with the item they were hit under
        self._items: dict[str, RateLimitItem] = {}

    @staticmethod
    def _item(rule: RateLimitRule) -> RateLimitItem:
        return RateLimitItemPerSecond(rule.requests, int(rule.window_seconds))

    def hit(self, key: str, rule: RateLimitRule) -> RateLimitResult:
        item = self._item(rule)
        self._items[key] = item
        allowed = self._strategy.hit(item, key)
        stats = self._strategy.get_window_stats(item, key)
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, stats.remaining),
            reset_time=float(stats.reset_time),
        )

    def sweep(self) -> int:
        """Clear keys with no hits left in their window. Returns how many were removed."""
        expired = [
            key
            for key, item in self._items.items()
            if self._strategy.get_window_stats(item, key).remaining >= item.amount
        ]
        for key in expired:
            self._strategy.clear(self._items.pop(key), key)
        return len(expired)

    def reset(self) -> None:
        self._storage.reset()
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


def default_rules() -> dict[str, RateLimitRule]:
    return {
        "api": RateLimitRule(settings.rate_limit_api, settings.rate_limit_api_window_seconds),
        "auth": RateLimitRule(settings.rate_limit_auth, settings.rate_limit_auth_window_seconds),
        "upload": RateLimitRule(settings.rate_limit_upload, settings.rate_limit_upload_window_seconds),
        "chat": RateLimitRule(settings.rate_limit_chat, settings.rate_limit_chat_window_seconds),
    }


class RateLimiter:
    """Applies per-kind rules against a store."""

    def __init__(
        self,
        store: RateLimitStore | None = None,
        rules: dict[str, RateLimitRule] | None = None,
    ):
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.rules = rules if rules is not None else default_rules()

    def check(self, kind: str, client_ip: str) -> RateLimitResult:
        rule = self.rules[kind]
        return self.store.hit(f"{client_ip}-{kind}", rule)

    def sweep(self) -> int:
        removed = self.store.sweep()
        if removed:
            logger.debug("Swept %d expired rate limit entries", removed)
        return removed

    def reset(self) -> None:
        self.store.reset()


class RateLimit:
    """
    FastAPI dependency enforcing one rate-limit kind.

        @router.post("/upload", dependencies=[Depends(RateLimit("upload"))])
    """

    def __init__(self, kind: RateLimitKind):
        self.kind = kind

    async def __call__(self, request: Request) -> RateLimitResult:
        result = rate_limiter.check(self.kind, get_client_ip(request))
        if not result.allowed:
            log_security_event("rate_limit_exceeded", request, type=self.kind)
            raise RateLimitExceededError(self.kind, result)
        return result


# Singleton instance
rate_limiter = RateLimiter()
