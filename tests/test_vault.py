import pytest

from image_gin.errors import LocalIoError
from image_gin.vault import FileVault, in_scope, normalize_path


def test_normalize_path():
    assert normalize_path("/a/./b/../c.png") == "a/c.png"
    assert normalize_path("a\\b.png") == "a/b.png"
    assert normalize_path("") == ""


def test_in_scope():
    assert in_scope("notes/a.md", "")
    assert in_scope("notes/a.md", "notes/")
    assert not in_scope("notesX/a.md", "notes")


def test_file_vault_round_trip(tmp_path):
    (tmp_path / "notes").mkdir()
    (tmp_path / "notes" / "a.md").write_text("hello", encoding="utf-8")
    (tmp_path / "b.md").write_text("root", encoding="utf-8")
    vault = FileVault(tmp_path, backup_dir=".vault_backups")

    assert vault.list_documents() == ["b.md", "notes/a.md"]
    assert vault.list_documents("notes") == ["notes/a.md"]

    vault.write_document("notes/a.md", "changed")
    assert vault.read_document("notes/a.md") == "changed"
    backups = list((tmp_path / ".vault_backups" / "notes").iterdir())
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "hello"
    assert vault.list_documents() == ["b.md", "notes/a.md"]

    vault.write_binary("img/x.png", b"\x00\x01")
    assert vault.read_binary("img/x.png") == b"\x00\x01"
    assert vault.list_files("img") == ["img/x.png"]
    assert vault.file_size("img/x.png") == 2
    vault.delete_file("img/x.png")
    assert not vault.exists("img/x.png")


def test_file_vault_errors(tmp_path):
    vault = FileVault(tmp_path)
    with pytest.raises(LocalIoError):
        vault.read_document("missing.md")
    with pytest.raises(LocalIoError):
        vault.read_binary("missing.png")
    with pytest.raises(LocalIoError):
        vault.delete_file("missing.png")
    assert vault.list_files("nothing") == []
