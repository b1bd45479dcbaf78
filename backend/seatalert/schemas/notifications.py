"""Schemas for push notification content."""

from typing import Any

from pydantic import BaseModel, Field


class PushMessage(BaseModel):
    """A notification ready to hand to the Notification Port."""

    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
