from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import List, Optional, Sequence

from image_gin.config import Config
from image_gin.errors import ConfigError
from image_gin.freepik import FreepikImage, image_markdown
from image_gin.frontmatter import get_frontmatter_value, set_frontmatter_value
from image_gin.recraft import RecraftClient, image_path, style_params
from image_gin.vault import Vault

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedFile:
    size_id: str
    yaml_key: str
    path: str


def existing_prompt(vault: Vault, config: Config, document_path: str) -> Optional[str]:
    value = get_frontmatter_value(vault.read_document(document_path), config.image_prompt_key)
    return str(value) if value else None


def generate_for_document(
    vault: Vault,
    config: Config,
    client: RecraftClient,
    document_path: str,
    prompt: str,
    size_ids: Sequence[str],
    write_prompt: bool = True,
) -> List[GeneratedFile]:
    prompt = prompt.strip()
    if not prompt:
        raise ConfigError("Please enter an image prompt.")
    if not size_ids:
        raise ConfigError("Please select at least one image size.")
    sizes = [config.size(size_id) for size_id in size_ids]

    if write_prompt:
        text = vault.read_document(document_path)
        vault.write_document(
            document_path, set_frontmatter_value(text, config.image_prompt_key, prompt)
        )

    params = style_params(config)
    base_name = posixpath.splitext(posixpath.basename(document_path))[0]
    generated: List[GeneratedFile] = []
    for size in sizes:
        logger.info("Generating %s image for %s", size.label, document_path)
        image = client.generate(prompt, size.width, size.height, params)
        path = image_path(config, base_name, size.width, size.height, image.created)
        vault.write_binary(path, image.data)

        text = vault.read_document(document_path)
        vault.write_document(document_path, set_frontmatter_value(text, size.yaml_key, path))
        generated.append(GeneratedFile(size.id, size.yaml_key, path))
    return generated


def insert_search_result(
    vault: Vault,
    document_path: str,
    image: FreepikImage,
    line: Optional[int] = None,
    url: Optional[str] = None,
) -> str:
    """Insert the image link before ``line`` (1-based) or append it."""
    snippet = image_markdown(image, url)
    text = vault.read_document(document_path)
    lines = text.split("\n")
    if line is None or line > len(lines):
        updated = text + ("" if not text or text.endswith("\n") else "\n") + snippet + "\n"
    else:
        lines.insert(max(line - 1, 0), snippet)
        updated = "\n".join(lines)
    vault.write_document(document_path, updated)
    return snippet
