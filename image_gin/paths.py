from __future__ import annotations

import enum
import posixpath
import re

from image_gin.vault import normalize_path

IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "webp", "gif", "svg")
IMAGEKIT_HOST = "ik.imagekit.io"

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


class PathKind(enum.Enum):
    REMOTE = "remote"
    ALREADY_ON_CDN = "already_on_cdn"
    LOCAL_IMAGE = "local_image"
    NOT_AN_IMAGE = "not_an_image"


def is_url(path: str) -> bool:
    return bool(_SCHEME.match(path)) or path.startswith("//")


def is_cdn_url(url: str, url_endpoint: str = "") -> bool:
    if not url:
        return False
    if IMAGEKIT_HOST in url:
        return True
    return bool(url_endpoint) and url.startswith(url_endpoint)


def classify_path(path: str, url_endpoint: str = "") -> PathKind:
    path = path.strip()
    if is_url(path):
        if is_cdn_url(path, url_endpoint):
            return PathKind.ALREADY_ON_CDN
        return PathKind.REMOTE

    _, ext = posixpath.splitext(path)
    if ext[1:].lower() in IMAGE_EXTENSIONS:
        return PathKind.LOCAL_IMAGE
    return PathKind.NOT_AN_IMAGE


def embed_target(inner: str) -> str:
    # ![[file.png|300]] and ![[file.png#anchor]] point at file.png
    return inner.split("|", 1)[0].split("#", 1)[0].strip()


def resolve_local_path(reference: str, document_path: str) -> str:
    reference = reference.strip()
    if reference.startswith("/"):
        return normalize_path(reference)
    if reference.startswith("./") or reference.startswith("../"):
        folder = posixpath.dirname(document_path)
        return normalize_path(posixpath.join(folder, reference))
    return normalize_path(reference)
