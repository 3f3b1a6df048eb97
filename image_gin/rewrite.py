from __future__ import annotations

import posixpath
import re
from typing import Optional

from image_gin.paths import embed_target

EMBED_PATTERN = re.compile(r"!\[\[([^\]]+)\]\]")


def embed_markdown(name: str, url: str) -> str:
    return f"![{name}]({url})"


def default_name(match: str) -> str:
    found = EMBED_PATTERN.fullmatch(match)
    inner = found.group(1) if found else match
    return posixpath.basename(embed_target(inner))


def rewrite_reference(
    text: str,
    match: str,
    url: str,
    name: Optional[str] = None,
    occurrence: Optional[int] = None,
) -> str:
    """Replace literal occurrences of ``match`` with a markdown image link.

    All occurrences are rewritten unless ``occurrence`` selects one (0-based).
    """
    if not match:
        return text
    replacement = embed_markdown(default_name(match) if name is None else name, url)
    pattern = re.compile(re.escape(match))

    if occurrence is None:
        return pattern.sub(lambda _: replacement, text)

    for index, found in enumerate(pattern.finditer(text)):
        if index == occurrence:
            return text[: found.start()] + replacement + text[found.end() :]
    return text
