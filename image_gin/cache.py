from __future__ import annotations

import hashlib
import logging
import posixpath
import time
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlparse

import requests

from image_gin.config import Config
from image_gin.errors import ImageGinError, LocalIoError
from image_gin.http import download
from image_gin.vault import Vault

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedImage:
    original_url: str
    local_path: str
    file_name: str
    cached: bool


@dataclass(frozen=True)
class CacheStats:
    total_images: int
    total_bytes: int
    size_label: str


def format_bytes(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


def cache_file_name(url: str) -> str:
    extension = posixpath.splitext(urlparse(url).path)[1].lstrip(".") or "jpg"
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:12]
    return f"freepik_{digest}.{extension}"


class ImageCache:
    """Keeps downloaded search images inside the vault's cache folder."""

    def __init__(
        self,
        vault: Vault,
        config: Config,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.vault = vault
        self.folder = config.cache_folder.strip("/")
        self.retention_seconds = config.cache_duration_days * 24 * 60 * 60
        self.session = session or requests.Session()
        self._entries: Dict[str, CachedImage] = {}

    def get(self, url: str) -> Optional[CachedImage]:
        return self._entries.get(url)

    def cache_image(self, url: str) -> CachedImage:
        known = self._entries.get(url)
        if known and self.vault.exists(known.local_path):
            return known

        file_name = cache_file_name(url)
        local_path = posixpath.join(self.folder, file_name)
        if self.vault.exists(local_path):
            entry = CachedImage(url, local_path, file_name, True)
            self._entries[url] = entry
            return entry

        try:
            data = download(self.session, url, "image download")
            self.vault.write_binary(local_path, data)
        except ImageGinError as exc:
            logger.warning("Failed to cache %s: %s", url, exc)
            return CachedImage(url, url, "", False)

        entry = CachedImage(url, local_path, file_name, True)
        self._entries[url] = entry
        return entry

    def cache_images(self, urls: List[str]) -> List[CachedImage]:
        return [self.cache_image(url) for url in urls]

    def _files(self) -> List[str]:
        return self.vault.list_files(self.folder)

    def clear(self) -> int:
        removed = 0
        for path in self._files():
            self.vault.delete_file(path)
            removed += 1
        self._entries.clear()
        logger.info("Cleared %d cached image(s)", removed)
        return removed

    def prune(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        cutoff = now - self.retention_seconds
        removed = 0
        for path in self._files():
            try:
                if self.vault.modified_time(path) < cutoff:
                    self.vault.delete_file(path)
                    removed += 1
            except LocalIoError as exc:
                logger.warning("Could not prune %s: %s", path, exc)
        stale = [u for u, e in self._entries.items() if not self.vault.exists(e.local_path)]
        for url in stale:
            del self._entries[url]
        return removed

    def stats(self) -> CacheStats:
        files = self._files()
        total = sum(self.vault.file_size(path) for path in files)
        return CacheStats(len(files), total, format_bytes(total))
