from __future__ import annotations

import base64
import json
import logging
import posixpath
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from image_gin.config import Config
from image_gin.errors import ConfigError, ParseError, ServiceError
from image_gin.http import RateLimiter, download, parse_json, send

logger = logging.getLogger(__name__)

SERVICE = "Recraft"


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    width: int
    height: int
    prompt: str
    created: int
    url: str
    image_id: str = ""


def _error_detail(body: str) -> Optional[str]:
    try:
        error = json.loads(body).get("error")
    except (ValueError, AttributeError):
        return None
    if not isinstance(error, dict):
        return None
    detail = f"{error.get('code', 'error')}: {error.get('message', '')}".strip()
    if error.get("details"):
        detail += f" ({error['details']})"
    return detail


def style_params(config: Config) -> Dict[str, str]:
    if config.image_styles_json:
        first = config.image_styles_json[0]
        if isinstance(first, dict) and first.get("id"):
            return {"style_id": str(first["id"])}
        logger.warning("First entry of image_styles_json has no id, using preset style")

    style = config.style
    if style.use_custom_style and style.custom_style_id:
        return {"style_id": style.custom_style_id}

    params = {"style": style.base}
    if style.substyle:
        params["substyle"] = style.substyle
    return params


def image_path(config: Config, base_name: str, width: int, height: int, created: int) -> str:
    file_name = f"{base_name}_{width}x{height}_{created}.png"
    folder = config.image_output_folder.strip("/")
    return posixpath.join(folder, file_name) if folder else file_name


class RecraftClient:
    def __init__(
        self,
        config: Config,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = config.recraft
        self.retries = config.retries
        self.backoff_delay = config.backoff_delay
        self.session = session or requests.Session()
        self.sleep = sleep
        self.limiter = RateLimiter(config.rate_limit, sleep=sleep)

    def generate(
        self,
        prompt: str,
        width: int,
        height: int,
        style: Optional[Dict[str, Any]] = None,
    ) -> GeneratedImage:
        if not self.settings.api_key:
            raise ConfigError(
                "Recraft API key is not set. Add recraft.api_key to secrets.json."
            )
        if not self.settings.base_url:
            raise ConfigError("Recraft API base URL is not configured.")

        payload: Dict[str, Any] = {
            "prompt": prompt,
            "width": width,
            "height": height,
            "model": self.settings.model,
            "n": 1,
            "response_format": "url",
        }
        payload.update(style or {})
        logger.info(
            "Requesting %dx%d image from Recraft (model=%s, style=%s)",
            width,
            height,
            self.settings.model,
            style,
        )

        self.limiter.wait()
        try:
            response = send(
                self.session,
                "POST",
                self.settings.base_url,
                SERVICE,
                retries=self.retries,
                backoff_delay=self.backoff_delay,
                sleep=self.sleep,
                headers={
                    "Authorization": f"Bearer {self.settings.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
        except ServiceError as exc:
            raise ServiceError(SERVICE, exc.status, exc.body, _error_detail(exc.body)) from exc

        data = parse_json(response, SERVICE)
        images = data.get("data") if isinstance(data, dict) else None
        if not images:
            raise ParseError("Recraft returned no image data.")
        url = images[0].get("url") or ""
        b64_json = images[0].get("b64_json")
        if b64_json:
            try:
                image_bytes = base64.b64decode(b64_json)
            except ValueError as exc:
                raise ParseError(f"Recraft returned invalid base64 data: {exc}") from exc
        elif url:
            logger.info("Downloading generated image from %s", url)
            image_bytes = download(self.session, url, SERVICE)
        else:
            raise ParseError("Recraft returned no usable image data.")
        return GeneratedImage(
            data=image_bytes,
            width=width,
            height=height,
            prompt=prompt,
            created=int(data.get("created") or time.time()),
            url=url,
            image_id=str(images[0].get("image_id") or ""),
        )
