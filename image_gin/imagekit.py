"""ImageKit upload client.

The multipart body is assembled by hand from header bytes, the raw file bytes
and footer bytes so the payload reaches the CDN unmodified.
"""

from __future__ import annotations

import base64
import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from image_gin.config import ImageKitSettings
from image_gin.errors import AuthError, ParseError
from image_gin.http import parse_json, send
from image_gin.paths import is_cdn_url

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"
SERVICE = "ImageKit"


@dataclass(frozen=True)
class UploadResult:
    remote_url: str
    file_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    size_bytes: Optional[int] = None
    name: str = ""
    thumbnail_url: str = ""
    file_path: str = ""
    tags: List[str] = field(default_factory=list)
    is_private_file: bool = False
    file_type: str = ""

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "UploadResult":
        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise ParseError("ImageKit upload response has no url.")
        return cls(
            remote_url=url,
            file_id=str(data.get("fileId", "")),
            width=data.get("width"),
            height=data.get("height"),
            size_bytes=data.get("size"),
            name=data.get("name") or "",
            thumbnail_url=data.get("thumbnailUrl") or "",
            file_path=data.get("filePath") or "",
            tags=list(data.get("tags") or []),
            is_private_file=bool(data.get("isPrivateFile", False)),
            file_type=data.get("fileType") or "",
        )


def webp_name(file_name: str) -> str:
    lowered = file_name.lower()
    if lowered.endswith(".webp") or lowered.endswith(".svg"):
        return file_name
    if "." not in file_name:
        return f"{file_name}.webp"
    return re.sub(r"\.[^.]+$", ".webp", file_name)


def build_multipart(
    fields: Sequence[Tuple[str, str]],
    file_name: str,
    data: bytes,
    boundary: Optional[str] = None,
) -> Tuple[bytes, str]:
    boundary = boundary or f"----image-gin-{uuid.uuid4().hex}"
    lines: List[str] = []
    for name, value in fields:
        lines.append(f"--{boundary}")
        lines.append(f'Content-Disposition: form-data; name="{name}"')
        lines.append("")
        lines.append(value)
    lines.append(f"--{boundary}")
    lines.append(f'Content-Disposition: form-data; name="file"; filename="{file_name}"')
    lines.append("Content-Type: application/octet-stream")
    lines.append("")

    header = ("\r\n".join(lines) + "\r\n").encode("utf-8")
    footer = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return header + data + footer, f"multipart/form-data; boundary={boundary}"


def tags_from_frontmatter(frontmatter: Dict[str, Any] | None) -> List[str]:
    if not frontmatter:
        return []
    value = frontmatter.get("tags")
    tags: List[str] = []
    if isinstance(value, list):
        tags = [str(t).strip() for t in value]
    elif isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            tags = [str(t).strip() for t in parsed]
        else:
            tags = [t.strip() for t in re.split(r"[,-]", value)]

    unique: List[str] = []
    for tag in tags:
        if tag and tag not in unique:
            unique.append(tag)
    return unique


class ImageKitClient:
    def __init__(
        self,
        settings: ImageKitSettings,
        session: Optional[requests.Session] = None,
        upload_url: str = UPLOAD_URL,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.upload_url = upload_url

    def is_cdn_url(self, url: str) -> bool:
        return is_cdn_url(url, self.settings.url_endpoint)

    def upload(
        self,
        data: bytes,
        file_name: str,
        folder: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> UploadResult:
        if not self.settings.enabled:
            raise AuthError("ImageKit is not enabled in settings.")
        if not self.settings.private_key:
            raise AuthError("ImageKit private key is not configured.")

        final_name = webp_name(file_name) if self.settings.convert_to_webp else file_name
        fields: List[Tuple[str, str]] = [("fileName", final_name)]
        upload_folder = folder or self.settings.upload_folder
        if upload_folder:
            fields.append(("folder", upload_folder))
        if tags:
            fields.append(("tags", ",".join(tags)))

        body, content_type = build_multipart(fields, final_name, data)
        token = base64.b64encode(f"{self.settings.private_key}:".encode("utf-8")).decode("ascii")

        logger.info(
            "Uploading %s to ImageKit (folder=%s, %d bytes)",
            final_name,
            upload_folder or "/",
            len(body),
        )
        response = send(
            self.session,
            "POST",
            self.upload_url,
            SERVICE,
            headers={
                "Authorization": f"Basic {token}",
                "Content-Type": content_type,
            },
            data=body,
        )
        result = UploadResult.from_response(parse_json(response, SERVICE))
        logger.info("ImageKit upload successful: %s", result.remote_url)
        return result
