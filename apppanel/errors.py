"""Error types raised and returned by the AppPanel SDK."""

from __future__ import annotations


class AppPanelError(Exception):
    """Base class for every SDK error."""

    description = "AppPanel error"

    def __init__(self, description: str | None = None) -> None:
        if description is not None:
            self.description = description
        super().__init__(self.description)


class NotConfigured(AppPanelError):
    description = "AppPanel SDK is not configured. Call AppPanel.configure() first."


class InvalidConfiguration(AppPanelError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Invalid configuration: {message}")


class NetworkError(AppPanelError):
    """Transport failure that survived every retry."""

    def __init__(self, cause: BaseException | str) -> None:
        self.cause = cause
        super().__init__(f"Network error: {cause}")


class InvalidResponse(AppPanelError):
    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        text = "Invalid response from server"
        if detail:
            text = f"{text}: {detail}"
        super().__init__(text)


class InvalidCredentials(AppPanelError):
    description = "Invalid API key provided"


class TokenExpired(AppPanelError):
    description = "Push token has expired"


class TokenNotAvailable(AppPanelError):
    description = "Push token is not available. Register a platform token first."


class ServerError(AppPanelError):
    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Server error ({status_code}): {message or 'Unknown error'}")


__all__ = [
    "AppPanelError",
    "InvalidConfiguration",
    "InvalidCredentials",
    "InvalidResponse",
    "NetworkError",
    "NotConfigured",
    "ServerError",
    "TokenExpired",
    "TokenNotAvailable",
]
