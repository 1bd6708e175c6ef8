from __future__ import annotations

import os
from dataclasses import dataclass

import redis


@dataclass(frozen=True, slots=True)
class RedisSettings:
    url: str = "redis://localhost:6379/0"
    # Applies to connect and to every command.
    socket_timeout_s: float | None = 5.0


def redis_settings_from_env() -> RedisSettings:
    raw_timeout = os.environ.get("REDIS_SOCKET_TIMEOUT_S")
    return RedisSettings(
        url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        socket_timeout_s=float(raw_timeout) if raw_timeout else 5.0,
    )


def create_redis(settings: RedisSettings | None = None) -> redis.Redis:
    s = settings or redis_settings_from_env()
    # decode_responses=True => rows come back as JSON strings, not bytes
    return redis.Redis.from_url(
        s.url,
        decode_responses=True,
        socket_timeout=s.socket_timeout_s,
        socket_connect_timeout=s.socket_timeout_s,
    )
