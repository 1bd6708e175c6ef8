from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return float(raw)


@dataclass(frozen=True, slots=True)
class ChatSettings:
    # Free tier: messages per UTC day.
    daily_message_limit: int = 20
    trial_days: int = 7
    # Pricing copy switches from early-adopter to standard past this many users.
    early_adopter_limit: int = 100
    # Most recent messages sent to the model.
    history_limit: int = 50
    checklist_context_limit: int = 10
    vendor_search_max_results: int = 5
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    overpass_timeout_s: float = 25.0


def settings_from_env() -> ChatSettings:
    return ChatSettings(
        daily_message_limit=_env_int("BRIDE_BUDDY_DAILY_MESSAGE_LIMIT", 20),
        trial_days=_env_int("BRIDE_BUDDY_TRIAL_DAYS", 7),
        early_adopter_limit=_env_int("BRIDE_BUDDY_EARLY_ADOPTER_LIMIT", 100),
        history_limit=_env_int("BRIDE_BUDDY_HISTORY_LIMIT", 50),
        overpass_url=os.environ.get("OVERPASS_URL", "https://overpass-api.de/api/interpreter"),
        overpass_timeout_s=_env_float("OVERPASS_TIMEOUT_S", 25.0),
    )
