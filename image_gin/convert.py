"""Migration of local image references to the CDN.

Both workflows are sequential read-modify-write loops: one upload in flight
at a time, and each note is re-read before it is rewritten.
"""

from __future__ import annotations

import logging
import posixpath
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from image_gin.config import Config
from image_gin.errors import ImageGinError, LocalIoError
from image_gin.frontmatter import image_properties, join_document, split_frontmatter
from image_gin.imagekit import UploadResult, tags_from_frontmatter
from image_gin.paths import PathKind, classify_path, embed_target, resolve_local_path
from image_gin.rewrite import EMBED_PATTERN, rewrite_reference
from image_gin.scanner import ImageReference
from image_gin.vault import Vault

logger = logging.getLogger(__name__)


class Uploader(Protocol):
    def upload(
        self,
        data: bytes,
        file_name: str,
        folder: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> UploadResult: ...


@dataclass(frozen=True)
class ItemError:
    item: str
    message: str


@dataclass
class ConversionSummary:
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[ItemError] = field(default_factory=list)
    urls: Dict[str, str] = field(default_factory=dict)

    def record_error(self, item: str, exc: Exception) -> None:
        self.failed += 1
        self.errors.append(ItemError(item, str(exc)))

    @property
    def message(self) -> str:
        return f"Conversion completed: {self.succeeded} successful, {self.failed} failed"


def _occurrence_index(text: str, reference: ImageReference, rewritten: int = 0) -> int:
    """Index of the reference's embed among the identical embeds in ``text``.

    Rewrites never add or remove newlines, so the scanned line number still
    points at the same line. ``rewritten`` counts identical embeds earlier on
    that line that have already been replaced.
    """
    raw = reference.raw_match_text
    lines = text.split("\n")
    wanted = reference.line_occurrence - rewritten
    if reference.line_number <= len(lines):
        line = lines[reference.line_number - 1]
        if 0 <= wanted < line.count(raw):
            start = sum(len(previous) + 1 for previous in lines[: reference.line_number - 1])
            return text[:start].count(raw) + wanted
    raise LocalIoError(
        f"{reference.source_document_path} line {reference.line_number} "
        f"no longer contains {raw}"
    )


def _remove_local(vault: Vault, path: str) -> None:
    try:
        vault.delete_file(path)
        logger.info("Removed local file: %s", path)
    except LocalIoError as exc:
        logger.warning("Could not delete local file %s: %s", path, exc)


class BatchConverter:
    def __init__(self, vault: Vault, config: Config, uploader: Uploader) -> None:
        self.vault = vault
        self.config = config
        self.uploader = uploader

    def convert(
        self,
        references: Sequence[ImageReference],
        progress: Optional[Callable[[int, int, ImageReference], None]] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> ConversionSummary:
        selected = [r for r in references if r.selected]
        summary = ConversionSummary()
        # resolved image path -> URL, so a file removed after its first
        # upload can still be linked from later references
        uploaded: Dict[str, str] = {}
        # (note, line, embed) -> identical embeds already rewritten on that line
        rewritten: Dict[Tuple[str, int, str], int] = {}

        for index, reference in enumerate(selected):
            if should_continue is not None and not should_continue():
                summary.skipped = len(selected) - index
                logger.info("Conversion stopped, %d item(s) not started", summary.skipped)
                break
            if progress is not None:
                progress(index, len(selected), reference)
            key = (
                reference.source_document_path,
                reference.line_number,
                reference.raw_match_text,
            )
            try:
                url = self._convert_one(reference, uploaded, rewritten.get(key, 0))
            except ImageGinError as exc:
                logger.error(
                    "Error converting %s in %s: %s",
                    reference.referenced_path,
                    reference.source_document_path,
                    exc,
                )
                summary.record_error(
                    f"{reference.source_document_path}:{reference.line_number}", exc
                )
                continue
            rewritten[key] = rewritten.get(key, 0) + 1
            summary.succeeded += 1
            summary.urls[reference.referenced_path] = url

        logger.info(summary.message)
        return summary

    def _convert_one(
        self, reference: ImageReference, uploaded: Dict[str, str], rewritten: int = 0
    ) -> str:
        document_path = reference.source_document_path
        text = self.vault.read_document(document_path)
        occurrence = _occurrence_index(text, reference, rewritten)

        image_path = resolve_local_path(reference.referenced_path, document_path)
        url = uploaded.get(image_path)
        if url is None:
            data = self.vault.read_binary(image_path)
            result = self.uploader.upload(
                data, reference.image_name, self.config.imagekit.upload_folder or None
            )
            url = result.remote_url
            uploaded[image_path] = url

        updated = rewrite_reference(
            text,
            reference.raw_match_text,
            url,
            name=reference.image_name,
            occurrence=occurrence,
        )
        self.vault.write_document(document_path, updated)

        if self.config.imagekit.remove_local_files and self.vault.exists(image_path):
            _remove_local(self.vault, image_path)
        return url


@dataclass(frozen=True)
class ImageProperty:
    key: str
    value: str
    target: str
    is_local: bool


@dataclass(frozen=True)
class BodyImage:
    path: str
    match: str
    is_local: bool


@dataclass(frozen=True)
class DocumentAnalysis:
    properties: List[ImageProperty]
    body_images: List[BodyImage]

    @property
    def local_count(self) -> int:
        return sum(1 for p in self.properties if p.is_local) + sum(
            1 for b in self.body_images if b.is_local
        )


def _property_target(value: str) -> str:
    value = value.strip()
    if value.startswith("[[") and value.endswith("]]"):
        return embed_target(value[2:-2])
    return value


def analyze_document(text: str, url_endpoint: str = "") -> DocumentAnalysis:
    fm, body, _ = split_frontmatter(text)
    properties = []
    for key, value in image_properties(fm):
        target = _property_target(value)
        is_local = classify_path(target, url_endpoint) is PathKind.LOCAL_IMAGE
        properties.append(ImageProperty(key, value, target, is_local))

    body_images = []
    seen = set()
    for match in EMBED_PATTERN.finditer(body):
        target = embed_target(match.group(1))
        if classify_path(target, url_endpoint) is not PathKind.LOCAL_IMAGE:
            continue
        if match.group(0) in seen:
            continue
        seen.add(match.group(0))
        body_images.append(BodyImage(target, match.group(0), True))
    return DocumentAnalysis(properties, body_images)


def _upload_name(stem: str, label: str, path: str, timestamp: int) -> str:
    extension = posixpath.splitext(path)[1].lstrip(".") or "png"
    return f"{stem}_{label}_{timestamp}.{extension}"


def convert_document(
    vault: Vault,
    config: Config,
    uploader: Uploader,
    document_path: str,
    frontmatter_keys: Optional[Sequence[str]] = None,
    body_paths: Optional[Sequence[str]] = None,
    clock: Callable[[], float] = time.time,
) -> ConversionSummary:
    """Upload the selected local images of one note and rewrite it once.

    ``None`` for a selection means every local image of that kind.
    """
    text = vault.read_document(document_path)
    fm, body, _ = split_frontmatter(text)
    analysis = analyze_document(text, config.imagekit.url_endpoint)
    stem = posixpath.splitext(posixpath.basename(document_path))[0]
    summary = ConversionSummary()
    # resolved image path -> URL; one file may back several keys and embeds
    uploaded: Dict[str, str] = {}

    for prop in analysis.properties:
        if not prop.is_local:
            continue
        if frontmatter_keys is not None and prop.key not in frontmatter_keys:
            continue
        try:
            local_path = resolve_local_path(prop.target, document_path)
            url = uploaded.get(local_path)
            if url is None:
                data = vault.read_binary(local_path)
                url = uploader.upload(
                    data,
                    _upload_name(stem, prop.key, local_path, int(clock() * 1000)),
                    None,
                    tags_from_frontmatter(fm),
                ).remote_url
                uploaded[local_path] = url
        except ImageGinError as exc:
            logger.error("Error converting %s: %s", prop.key, exc)
            summary.record_error(prop.key, exc)
            continue
        fm[prop.key] = url
        summary.succeeded += 1
        summary.urls[prop.key] = url
        logger.info("Converted %s: %s", prop.key, url)

    for image in analysis.body_images:
        if body_paths is not None and image.path not in body_paths:
            continue
        try:
            local_path = resolve_local_path(image.path, document_path)
            url = uploaded.get(local_path)
            if url is None:
                data = vault.read_binary(local_path)
                url = uploader.upload(
                    data,
                    _upload_name(stem, "content", local_path, int(clock() * 1000)),
                    None,
                    [stem, "markdown"],
                ).remote_url
                uploaded[local_path] = url
        except ImageGinError as exc:
            logger.error("Error converting image %s: %s", image.path, exc)
            summary.record_error(image.path, exc)
            continue
        body = rewrite_reference(body, image.match, url)
        summary.succeeded += 1
        summary.urls[image.path] = url

    if summary.succeeded:
        vault.write_document(document_path, join_document(fm, body))
        # only once the note no longer points at them
        if config.imagekit.remove_local_files:
            for local_path in uploaded:
                if vault.exists(local_path):
                    _remove_local(vault, local_path)
    logger.info(summary.message)
    return summary
