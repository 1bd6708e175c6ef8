from __future__ import annotations

from collections.abc import Generator

import redis

from bride_buddy.config import ChatSettings, settings_from_env
from bride_buddy.infra.redis_client import create_redis


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        client.close()


def get_chat_settings() -> ChatSettings:
    return settings_from_env()
