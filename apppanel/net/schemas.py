"""Request and response bodies for the AppPanel HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Request(BaseModel):
    model_config = ConfigDict(extra="forbid")


class Response(BaseModel):
    model_config = ConfigDict(extra="ignore")


class EmptyResponse(Response):
    """Endpoints that answer with an empty 2xx body."""


class RegisterRequest(Request):
    apns_token: str = Field(min_length=1)
    device_id: str = Field(min_length=1)
    platform: str = Field(min_length=1)
    app_version: str
    bundle_id: str
    timezone: str
    locale: str
    is_token_update: bool
    os_version: str | None = None
    device_model: str | None = None


class RegisterResponse(Response):
    token: str = Field(min_length=1)


class UnregisterRequest(Request):
    token: str = Field(min_length=1)


class TopicRequest(Request):
    token: str = Field(min_length=1)
    topic: str = Field(min_length=1)


class TrackEventRequest(Request):
    event: str = Field(min_length=1)
    properties: dict[str, Any] | None = None
    token: str | None = None


class UserSessionRequest(Request):
    user_id: str = Field(min_length=1)
    device_id: str = Field(min_length=1)


class DeviceRegenerateRequest(Request):
    old_device_id: str
    new_device_id: str = Field(min_length=1)
