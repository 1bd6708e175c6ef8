from __future__ import annotations

from uuid import UUID

import redis
from fastapi import APIRouter, Depends, Header, Request, status

from bride_buddy import store
from bride_buddy.api.deps import get_chat_settings, get_redis
from bride_buddy.api.models import ChatResponse, ChatSession, MessageListResponse, SessionCreateRequest
from bride_buddy.auth import authenticate
from bride_buddy.config import ChatSettings
from bride_buddy.turn_processing.turns import handle_chat_turn, require_owned_session

router = APIRouter()


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/chat", response_model=ChatResponse)
async def chat_route(
    request: Request,
    authorization: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
    settings: ChatSettings = Depends(get_chat_settings),
) -> ChatResponse:
    """Process one chat turn.

    The reply itself is not returned; clients re-read the session's messages.
    """

    try:
        payload: object = await request.json()
    except ValueError:
        payload = None

    await handle_chat_turn(r=r, payload=payload, authorization=authorization, settings=settings)
    return ChatResponse(success=True)


@router.post("/sessions", response_model=ChatSession, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: SessionCreateRequest,
    authorization: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> ChatSession:
    user = authenticate(authorization)
    return store.create_session(r=r, user_id=user.id, title=payload.title)


@router.get("/sessions/{session_id}/messages", response_model=MessageListResponse)
async def list_messages_route(
    session_id: UUID,
    authorization: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> MessageListResponse:
    user = authenticate(authorization)
    require_owned_session(r=r, user_id=user.id, session_id=session_id)
    return MessageListResponse(session_id=session_id, messages=store.list_messages(r=r, session_id=session_id))
