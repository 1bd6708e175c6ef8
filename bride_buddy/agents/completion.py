from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from bride_buddy.agents.base import Completion, ToolCall
from bride_buddy.agents.llm_config import OpenAICompatibleSettings, request_headers, settings_from_env
from bride_buddy.core.context import RenderedContext
from bride_buddy.errors import ModelInvocationError, ModelPaymentRequired, ModelRateLimited

logger = logging.getLogger(__name__)


def _parse_tool_calls(raw_calls: object) -> tuple[ToolCall, ...]:
    if not isinstance(raw_calls, list):
        return ()

    calls: list[ToolCall] = []
    for raw in raw_calls:
        if not isinstance(raw, dict):
            continue
        fn = raw.get("function") or {}
        name = fn.get("name")
        if not isinstance(name, str) or not name:
            continue

        raw_args = fn.get("arguments")
        try:
            args = json.loads(raw_args) if isinstance(raw_args, str) and raw_args.strip() else (raw_args or {})
        except json.JSONDecodeError:
            args = None
        if not isinstance(args, dict):
            calls.append(ToolCall(id=str(raw.get("id") or ""), name=name, malformed=True))
            continue

        calls.append(ToolCall(id=str(raw.get("id") or ""), name=name, arguments=args))
    return tuple(calls)


def parse_completion_body(body: dict[str, Any], *, model: str) -> Completion:
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ModelInvocationError("The AI service returned no response", details="empty choices")

    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message") or {}
    content = message.get("content")
    return Completion(
        content=content if isinstance(content, str) else "",
        tool_calls=_parse_tool_calls(message.get("tool_calls")),
        metadata={"model": model, "finish_reason": first.get("finish_reason")},
    )


async def create_completion(
    *,
    ctx: RenderedContext,
    history: list[dict[str, str]],
    tools: list[dict[str, Any]],
    settings: OpenAICompatibleSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Completion:
    """Send one non-streamed chat completion request, offering `tools` for auto-invocation.

    No retries: a rate limit is surfaced to the caller, who decides when to try again.
    """

    s = settings or settings_from_env()
    payload: dict[str, Any] = {
        "model": s.model,
        "messages": ctx.as_messages() + history,
        "stream": False,
    }
    # OpenAI `user` field: stable end-user identifier.
    if ctx.metadata.get("user_id"):
        payload["user"] = str(ctx.metadata["user_id"])
    if tools:
        payload["tools"] = tools
        payload["tool_choice"] = "auto"

    url = s.base_url.rstrip("/") + "/chat/completions"
    try:
        async with httpx.AsyncClient(timeout=s.timeout_s, transport=transport) as client:
            resp = await client.post(url, headers=request_headers(s), json=payload)
    except httpx.TimeoutException as e:
        logger.warning("Completion request timed out after %.1fs", s.timeout_s)
        raise ModelInvocationError("The AI service timed out. Please try again.", details=str(e)) from e
    except httpx.HTTPError as e:
        logger.warning("Completion request failed: %s", e)
        raise ModelInvocationError("The AI service is unreachable. Please try again.", details=str(e)) from e

    if resp.status_code == 429:
        logger.warning("Completion API rate limited: %s", resp.text)
        raise ModelRateLimited(
            "We're experiencing high demand right now. Please try again in a moment.",
            upstream_status=429,
        )
    if resp.status_code == 402:
        logger.warning("Completion API payment required: %s", resp.text)
        raise ModelPaymentRequired(
            "The AI service needs attention. Please contact support.",
            upstream_status=402,
        )
    if resp.status_code >= 400:
        logger.warning("Completion API error status=%s body=%s", resp.status_code, resp.text)
        raise ModelInvocationError(
            "The AI service returned an error",
            upstream_status=resp.status_code,
            details=f"status={resp.status_code} body={resp.text[:500]}",
        )

    try:
        body = resp.json()
    except ValueError as e:
        raise ModelInvocationError("The AI service returned an unreadable response", details=str(e)) from e
    if not isinstance(body, dict):
        raise ModelInvocationError("The AI service returned an unreadable response", details="body is not an object")

    return parse_completion_body(body, model=s.model)
