from conftest import MemoryVault

from image_gin.scanner import (
    ReferenceSelection,
    SelectAllState,
    extract_local_references,
    scan_documents,
)


def test_extract_records_line_numbers_and_skips_remote():
    text = (
        "# Title\n"
        "![[img/a.png]] and ![[img/b.jpg|200]]\n"
        "![[https://ik.imagekit.io/me/c.png]]\n"
        "![[Other note]]\n"
        "![[https://cdn.example/d.png]] ![[img/a.png]]\n"
    )
    refs = extract_local_references(text, "notes/day.md", "https://cdn.example")
    assert [(r.referenced_path, r.line_number) for r in refs] == [
        ("img/a.png", 2),
        ("img/b.jpg", 2),
        ("img/a.png", 5),
    ]
    assert refs[1].raw_match_text == "![[img/b.jpg|200]]"
    assert refs[0].document_name == "day.md"
    assert refs[1].image_name == "b.jpg"
    assert all(r.selected for r in refs)


def test_extract_counts_identical_embeds_within_a_line():
    refs = extract_local_references("![[a.png]] ![[b.png]] ![[a.png]]\n![[a.png]]", "n.md")
    assert [(r.referenced_path, r.line_number, r.line_occurrence) for r in refs] == [
        ("a.png", 1, 0),
        ("b.png", 1, 0),
        ("a.png", 1, 1),
        ("a.png", 2, 0),
    ]


def test_scan_respects_scope_and_keeps_duplicates(config):
    vault = MemoryVault(
        documents={
            "projects/a.md": "![[shared.png]]",
            "projects/sub/b.md": "![[shared.png]]\n![[shared.png]]",
            "projectsX/c.md": "![[other.png]]",
            "journal/d.md": "![[j.png]]",
        }
    )
    selection = scan_documents(vault, config, "projects")
    assert [(r.source_document_path, r.line_number) for r in selection] == [
        ("projects/a.md", 1),
        ("projects/sub/b.md", 1),
        ("projects/sub/b.md", 2),
    ]
    assert len(scan_documents(vault, config)) == 5


def test_scan_skips_unreadable_documents(config):
    class BrokenVault(MemoryVault):
        def read_document(self, path):
            if path == "bad.md":
                return super().read_document("missing.md")
            return super().read_document(path)

    vault = BrokenVault(documents={"bad.md": "![[x.png]]", "good.md": "![[y.png]]"})
    selection = scan_documents(vault, config)
    assert [r.referenced_path for r in selection] == ["y.png"]


def test_select_all_state_follows_toggles():
    vault_text = "![[a.png]] ![[b.png]] ![[c.png]]"
    selection = ReferenceSelection(extract_local_references(vault_text, "n.md"))
    assert selection.state is SelectAllState.ALL

    assert selection.toggle(1) is SelectAllState.PARTIAL
    assert [r.referenced_path for r in selection.selected()] == ["a.png", "c.png"]

    selection.toggle(0, False)
    assert selection.toggle(2, False) is SelectAllState.NONE
    assert selection.toggle(1, True) is SelectAllState.PARTIAL

    assert selection.set_all(True) is SelectAllState.ALL
    assert selection.set_all(False) is SelectAllState.NONE
    assert selection.selected() == []


def test_empty_selection_state():
    assert ReferenceSelection().state is SelectAllState.NONE
