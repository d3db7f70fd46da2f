"""Notification schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ListNotificationsRequest(BaseModel):
    """Request schema for listing a user's notifications."""

    user_id: int = Field(..., description="Recipient")


class Notification(BaseModel):
    """Notification response schema."""

    id: int = Field(..., description="Notification ID")
    user_id: int = Field(..., description="Recipient")
    message: str = Field(..., description="Message text")
    timestamp: datetime = Field(..., description="Creation time (ISO 8601)")

    model_config = ConfigDict(from_attributes=True)


class NotificationList(BaseModel):
    """Notifications, newest first."""

    items: list[Notification] = Field(default_factory=list, description="Notifications")
