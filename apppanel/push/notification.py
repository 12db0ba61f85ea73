"""Structured view of an incoming push payload."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    return value if isinstance(value, int) else None


@dataclass
class Notification:
    id: str | None = None
    title: str | None = None
    body: str | None = None
    subtitle: str | None = None
    badge: int | None = None
    sound: str | None = None
    category: str | None = None
    thread_id: str | None = None
    campaign_id: str | None = None
    data: dict[str, Any] | None = None
    deep_link: str | None = None
    image_url: str | None = None
    user_info: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, user_info: dict[str, Any]) -> "Notification":
        notification = cls(user_info=dict(user_info))

        aps = user_info.get("aps")
        if isinstance(aps, dict):
            alert = aps.get("alert")
            if isinstance(alert, dict):
                notification.title = _str(alert.get("title"))
                notification.body = _str(alert.get("body"))
                notification.subtitle = _str(alert.get("subtitle"))
            elif isinstance(alert, str):
                notification.body = alert
            notification.badge = _int(aps.get("badge"))
            notification.sound = _str(aps.get("sound"))
            notification.category = _str(aps.get("category"))
            notification.thread_id = _str(aps.get("thread-id"))

        # Custom fields live under "app_panel" when present, else at top level.
        custom = user_info.get("app_panel")
        if not isinstance(custom, dict):
            custom = user_info
        notification.id = _str(custom.get("notification_id"))
        notification.campaign_id = _str(custom.get("campaign_id"))
        notification.deep_link = _str(custom.get("deep_link"))
        notification.image_url = _str(custom.get("image_url"))
        data = custom.get("custom_data")
        notification.data = data if isinstance(data, dict) else None
        return notification

    @property
    def is_silent(self) -> bool:
        return self.title is None and self.body is None and self.badge is None and self.sound is None

    @property
    def has_rich_media(self) -> bool:
        return self.image_url is not None

    def tracking_properties(self) -> dict[str, str]:
        return {
            "notification_id": self.id or "",
            "campaign_id": self.campaign_id or "",
        }
