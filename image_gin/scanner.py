from __future__ import annotations

import enum
import logging
import posixpath
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from image_gin.config import Config
from image_gin.errors import ImageGinError
from image_gin.paths import PathKind, classify_path, embed_target
from image_gin.rewrite import EMBED_PATTERN
from image_gin.vault import Vault

logger = logging.getLogger(__name__)


@dataclass
class ImageReference:
    source_document_path: str
    raw_match_text: str
    referenced_path: str
    line_number: int
    selected: bool = True
    # index among identical embeds on the same line
    line_occurrence: int = 0

    @property
    def document_name(self) -> str:
        return posixpath.basename(self.source_document_path)

    @property
    def image_name(self) -> str:
        return posixpath.basename(self.referenced_path)


class SelectAllState(enum.Enum):
    ALL = "all"
    NONE = "none"
    PARTIAL = "partial"


class ReferenceSelection:
    """Scanned references with per-item checked state."""

    def __init__(self, references: Optional[List[ImageReference]] = None) -> None:
        self.references: List[ImageReference] = list(references or [])

    def __len__(self) -> int:
        return len(self.references)

    def __iter__(self) -> Iterator[ImageReference]:
        return iter(self.references)

    def __getitem__(self, index: int) -> ImageReference:
        return self.references[index]

    def toggle(self, index: int, selected: Optional[bool] = None) -> SelectAllState:
        reference = self.references[index]
        reference.selected = (not reference.selected) if selected is None else selected
        return self.state

    def set_all(self, selected: bool) -> SelectAllState:
        for reference in self.references:
            reference.selected = selected
        return self.state

    @property
    def state(self) -> SelectAllState:
        count = sum(1 for r in self.references if r.selected)
        if count == 0:
            return SelectAllState.NONE
        if count == len(self.references):
            return SelectAllState.ALL
        return SelectAllState.PARTIAL

    def selected(self) -> List[ImageReference]:
        return [r for r in self.references if r.selected]


def extract_local_references(
    text: str, document_path: str, url_endpoint: str = ""
) -> List[ImageReference]:
    references: List[ImageReference] = []
    for line_number, line in enumerate(text.split("\n"), start=1):
        seen: Dict[str, int] = {}
        for match in EMBED_PATTERN.finditer(line):
            line_occurrence = seen.get(match.group(0), 0)
            seen[match.group(0)] = line_occurrence + 1
            target = embed_target(match.group(1))
            if classify_path(target, url_endpoint) is not PathKind.LOCAL_IMAGE:
                continue
            references.append(
                ImageReference(
                    source_document_path=document_path,
                    raw_match_text=match.group(0),
                    referenced_path=target,
                    line_number=line_number,
                    line_occurrence=line_occurrence,
                )
            )
    return references


def scan_documents(vault: Vault, config: Config, scope: str = "") -> ReferenceSelection:
    references: List[ImageReference] = []
    for document_path in vault.list_documents(scope):
        try:
            text = vault.read_document(document_path)
        except ImageGinError as exc:
            logger.error("Error reading %s: %s", document_path, exc)
            continue
        references.extend(
            extract_local_references(text, document_path, config.imagekit.url_endpoint)
        )
    logger.info("Found %d local image reference(s) under %r", len(references), scope or "/")
    return ReferenceSelection(references)
