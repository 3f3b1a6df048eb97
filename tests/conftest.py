from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List

import pytest
import requests

from image_gin.config import Config, ImageKitSettings, RecraftSettings, FreepikSettings
from image_gin.errors import LocalIoError
from image_gin.vault import in_scope, normalize_path


class MemoryVault:
    def __init__(self, documents=None, files=None) -> None:
        self.documents: Dict[str, str] = dict(documents or {})
        self.files: Dict[str, bytes] = dict(files or {})
        self.mtimes: Dict[str, float] = {}
        self.writes: List[str] = []

    def read_document(self, path: str) -> str:
        try:
            return self.documents[normalize_path(path)]
        except KeyError:
            raise LocalIoError(f"missing note {path}") from None

    def write_document(self, path: str, text: str) -> None:
        self.writes.append(path)
        self.documents[normalize_path(path)] = text

    def list_documents(self, scope: str = "") -> List[str]:
        return sorted(p for p in self.documents if in_scope(p, scope))

    def read_binary(self, path: str) -> bytes:
        try:
            return self.files[normalize_path(path)]
        except KeyError:
            raise LocalIoError(f"missing file {path}") from None

    def write_binary(self, path: str, data: bytes) -> None:
        self.files[normalize_path(path)] = data

    def delete_file(self, path: str) -> None:
        if self.files.pop(normalize_path(path), None) is None:
            raise LocalIoError(f"missing file {path}")

    def exists(self, path: str) -> bool:
        path = normalize_path(path)
        return path in self.files or path in self.documents

    def list_files(self, folder: str) -> List[str]:
        return sorted(p for p in self.files if in_scope(p, folder))

    def modified_time(self, path: str) -> float:
        return self.mtimes.get(normalize_path(path), 0.0)

    def file_size(self, path: str) -> int:
        return len(self.read_binary(path))


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b"", text=None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.content = content
        if text is None:
            text = json.dumps(payload) if payload is not None else content.decode("latin-1")
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    """Returns queued responses and records every request."""

    def __init__(self, responses=None) -> None:
        self.responses = list(responses or [])
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        vault_path=tmp_path,
        recraft=RecraftSettings(api_key="rk", base_url="https://recraft.test/generate"),
        freepik=FreepikSettings(api_key="fk"),
        imagekit=ImageKitSettings(
            enabled=True,
            private_key="private_123",
            url_endpoint="https://cdn.example",
            upload_folder="/notes",
        ),
        retries=2,
        backoff_delay=0.5,
        rate_limit=0,
    )


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
