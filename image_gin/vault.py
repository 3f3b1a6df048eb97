from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Protocol

from image_gin.errors import LocalIoError

logger = logging.getLogger(__name__)


class Vault(Protocol):
    """File operations the workflows need from the host vault.

    Paths are vault-relative POSIX strings.
    """

    def read_document(self, path: str) -> str: ...

    def write_document(self, path: str, text: str) -> None: ...

    def list_documents(self, scope: str = "") -> List[str]: ...

    def read_binary(self, path: str) -> bytes: ...

    def write_binary(self, path: str, data: bytes) -> None: ...

    def delete_file(self, path: str) -> None: ...

    def exists(self, path: str) -> bool: ...

    def list_files(self, folder: str) -> List[str]: ...

    def modified_time(self, path: str) -> float: ...

    def file_size(self, path: str) -> int: ...


def normalize_path(path: str) -> str:
    parts: List[str] = []
    for part in PurePosixPath(path.replace("\\", "/")).parts:
        if part in ("/", "."):
            continue
        if part == "..":
            if parts:
                parts.pop()
            continue
        parts.append(part)
    return "/".join(parts)


def in_scope(path: str, scope: str) -> bool:
    scope = normalize_path(scope)
    if not scope:
        return True
    return path == scope or path.startswith(scope + "/")


def iter_markdown_files(vault_path: Path) -> Iterable[Path]:
    return (p for p in vault_path.rglob("*.md") if p.is_file())


class FileVault:
    """Vault backed by a directory on disk."""

    def __init__(self, root: Path, backup_dir: Optional[str] = None) -> None:
        self.root = root
        self.backup_root = root / backup_dir if backup_dir else None

    def _resolve(self, path: str) -> Path:
        return self.root / normalize_path(path)

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def backup_note(self, path: str) -> Optional[Path]:
        if self.backup_root is None:
            return None
        source = self._resolve(path)
        if not source.exists():
            return None
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = self.backup_root / f"{normalize_path(path)}.{timestamp}.bak"
        backup_path.parent.mkdir(parents=True, exist_ok=True)
        backup_path.write_text(source.read_text(encoding="utf-8"), encoding="utf-8")
        return backup_path

    def read_document(self, path: str) -> str:
        try:
            return self._resolve(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise LocalIoError(f"Cannot read note {path}: {exc}") from exc

    def write_document(self, path: str, text: str) -> None:
        try:
            backup = self.backup_note(path)
            if backup is not None:
                logger.info("Backed up %s to %s", path, backup)
            self._resolve(path).write_text(text, encoding="utf-8")
        except OSError as exc:
            raise LocalIoError(f"Cannot write note {path}: {exc}") from exc

    def list_documents(self, scope: str = "") -> List[str]:
        notes = []
        for note_path in iter_markdown_files(self.root):
            rel = self._relative(note_path)
            if self.backup_root is not None and note_path.is_relative_to(self.backup_root):
                continue
            if in_scope(rel, scope):
                notes.append(rel)
        return sorted(notes)

    def read_binary(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except OSError as exc:
            raise LocalIoError(f"Cannot read file {path}: {exc}") from exc

    def write_binary(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as f:
                f.write(data)
        except OSError as exc:
            raise LocalIoError(f"Cannot write file {path}: {exc}") from exc

    def delete_file(self, path: str) -> None:
        try:
            self._resolve(path).unlink()
        except OSError as exc:
            raise LocalIoError(f"Cannot delete file {path}: {exc}") from exc

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def list_files(self, folder: str) -> List[str]:
        base = self._resolve(folder)
        if not base.is_dir():
            return []
        return sorted(self._relative(p) for p in base.rglob("*") if p.is_file())

    def modified_time(self, path: str) -> float:
        try:
            return self._resolve(path).stat().st_mtime
        except OSError as exc:
            raise LocalIoError(f"Cannot stat file {path}: {exc}") from exc

    def file_size(self, path: str) -> int:
        try:
            return self._resolve(path).stat().st_size
        except OSError as exc:
            raise LocalIoError(f"Cannot stat file {path}: {exc}") from exc
