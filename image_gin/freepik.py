from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from image_gin.config import Config
from image_gin.errors import ConfigError, ParseError
from image_gin.http import RateLimiter, parse_json, send

logger = logging.getLogger(__name__)

API_URL = "https://api.freepik.com/v1"
SERVICE = "Freepik"


@dataclass(frozen=True)
class FreepikImage:
    id: int
    title: str
    url: str
    source_url: str
    source_size: str = ""
    author_name: str = ""
    author_avatar: str = ""

    @classmethod
    def from_response(cls, item: Dict[str, Any]) -> "FreepikImage":
        source = (item.get("image") or {}).get("source") or {}
        author = item.get("author") or {}
        return cls(
            id=int(item["id"]),
            title=item.get("title") or "",
            url=item.get("url") or "",
            source_url=source.get("url") or "",
            source_size=str(source.get("size") or ""),
            author_name=author.get("name") or "",
            author_avatar=author.get("avatar") or "",
        )


@dataclass(frozen=True)
class SearchMeta:
    current_page: int
    last_page: int
    per_page: int
    total: int


@dataclass(frozen=True)
class SearchResult:
    images: List[FreepikImage]
    meta: SearchMeta


def image_markdown(image: FreepikImage, url: Optional[str] = None) -> str:
    return f"![{image.title}]({url or image.source_url or image.url})"


class FreepikClient:
    def __init__(
        self,
        config: Config,
        session: Optional[requests.Session] = None,
        api_url: str = API_URL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = config.freepik.api_key.strip()
        self.default_count = config.freepik.default_image_count
        self.retries = config.retries
        self.backoff_delay = config.backoff_delay
        self.session = session or requests.Session()
        self.api_url = api_url.rstrip("/")
        self.sleep = sleep
        self.limiter = RateLimiter(config.rate_limit, sleep=sleep)

    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def search(self, term: str, limit: Optional[int] = None, page: int = 1) -> SearchResult:
        if not self.api_key:
            raise ConfigError("Please configure your Freepik API key in secrets.json.")

        params = {
            "term": term,
            "per_page": str(limit or self.default_count),
            "page": str(page),
            "clean_search": "true",
        }
        logger.info("Searching Freepik for %r (page %d)", term, page)
        self.limiter.wait()
        response = send(
            self.session,
            "GET",
            f"{self.api_url}/resources",
            SERVICE,
            retries=self.retries,
            backoff_delay=self.backoff_delay,
            sleep=self.sleep,
            headers={"Accept": "application/json", "x-freepik-api-key": self.api_key},
            params=params,
        )
        data = parse_json(response, SERVICE)
        if not isinstance(data, dict):
            raise ParseError("Freepik returned an unexpected body.")

        try:
            images = [FreepikImage.from_response(item) for item in data.get("data") or []]
            meta = data.get("meta") or {}
            search_meta = SearchMeta(
                current_page=int(meta.get("current_page", page)),
                last_page=int(meta.get("last_page", page)),
                per_page=int(meta.get("per_page", len(images))),
                total=int(meta.get("total", len(images))),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ParseError(f"Freepik returned a malformed result: {exc}") from exc
        return SearchResult(images=images, meta=search_meta)
