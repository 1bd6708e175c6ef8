from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_MESSAGE_CHARS = 5000


class SubscriptionTier(StrEnum):
    trial = "trial"
    free = "free"
    vip = "vip"


class MessageRole(StrEnum):
    user = "user"
    assistant = "assistant"


class UserLocation(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: UUID = Field(..., alias="sessionId")
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_CHARS)
    is_onboarding: bool = Field(False, alias="isOnboarding")
    user_location: UserLocation | None = Field(None, alias="userLocation")

    @field_validator("message")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be blank")
        return v

    @field_validator("is_onboarding", mode="before")
    @classmethod
    def _null_means_false(cls, v: object) -> object:
        return False if v is None else v


class ChatResponse(BaseModel):
    success: bool = True


class SessionCreateRequest(BaseModel):
    title: str | None = Field(None, max_length=200)


class ChatSession(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    title: str | None = None
    created_at: datetime


class ChatMessage(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    session_id: UUID
    role: MessageRole
    content: str
    created_at: datetime


class MessageListResponse(BaseModel):
    session_id: UUID
    messages: list[ChatMessage]


class Profile(BaseModel):
    user_id: str
    full_name: str = ""
    subscription_tier: SubscriptionTier = SubscriptionTier.trial
    messages_today: int = 0
    last_message_date: date | None = None
    trial_start_date: datetime | None = None
    partner_name: str | None = None
    relationship_duration: str | None = None
    # Denormalized copy of Timeline.wedding_date.
    wedding_date: date | None = None


class Timeline(BaseModel):
    user_id: str
    engagement_date: date | None = None
    wedding_date: date | None = None
    completed_tasks: int = 0
    # UI progress marker, owned by the checklist dashboard.
    car_position: float = 0


class ChecklistItem(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    task_name: str
    emoji: str = "✅"
    due_date: date | None = None
    completed: bool = False


class Vendor(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    name: str
    service: str
    amount: float | None = None
    paid: bool = False
    due_date: date | None = None
    notes: str | None = None
