from __future__ import annotations

from typing import Optional


class ImageGinError(Exception):
    pass


class ConfigError(ImageGinError):
    """Missing or invalid settings or credentials."""


class AuthError(ConfigError):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class NetworkError(ImageGinError):
    pass


class ServiceError(ImageGinError):
    def __init__(
        self, service: str, status: int, body: str, detail: Optional[str] = None
    ) -> None:
        super().__init__(f"{service} error {status}: {detail or body.strip()[:500]}")
        self.service = service
        self.status = status
        self.body = body


class ParseError(ImageGinError):
    pass


class LocalIoError(ImageGinError):
    pass
