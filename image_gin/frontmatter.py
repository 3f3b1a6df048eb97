from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import yaml

from image_gin.errors import ParseError

IMAGE_KEYS = (
    "banner_image",
    "portrait_image",
    "square_image",
    "og_image",
    "featured_image",
    "thumbnail",
    "hero_image",
    "cover_image",
)


def split_frontmatter(text: str) -> Tuple[Dict[str, Any] | None, str, str | None]:
    if not text.startswith("---\n"):
        return None, text, None

    lines = text.splitlines(keepends=True)
    end_index = None
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            end_index = i
            break

    if end_index is None:
        return None, text, None

    fm_text = "".join(lines[1:end_index])
    body = "".join(lines[end_index + 1 :])
    try:
        fm = yaml.safe_load(fm_text) or {}
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid frontmatter: {exc}") from exc
    if not isinstance(fm, dict):
        raise ParseError("Frontmatter is not a key-value mapping.")
    return fm, body, fm_text


def dump_frontmatter(data: Dict[str, Any]) -> str:
    return yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=1000,
    ).strip()


def join_document(fm: Dict[str, Any] | None, body: str) -> str:
    if fm is None:
        return body
    if not fm:
        return f"---\n---\n{body}"
    return f"---\n{dump_frontmatter(fm)}\n---\n{body}"


def set_frontmatter_value(text: str, key: str, value: Any) -> str:
    fm, body, _ = split_frontmatter(text)
    if fm is None:
        fm = {}
        body = text
    fm[key] = value
    return join_document(fm, body)


def get_frontmatter_value(text: str, key: str) -> Optional[Any]:
    fm, _, _ = split_frontmatter(text)
    if fm is None:
        return None
    return fm.get(key)


def image_properties(fm: Dict[str, Any] | None) -> List[Tuple[str, str]]:
    if not fm:
        return []
    return [
        (key, fm[key])
        for key in IMAGE_KEYS
        if isinstance(fm.get(key), str) and fm[key]
    ]
