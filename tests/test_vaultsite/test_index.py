"""Unit tests for vaultsite.index."""

import os
import sys
import textwrap
from pathlib import Path, PurePosixPath

import pytest

from vaultsite.errors import AmbiguousIdentifierError, LoadError, SlugCollisionError, TraversalError
from vaultsite.index import VaultIndex, is_hidden, walk_markdown
from vaultsite.parser import load_note


def _write_note(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


@pytest.fixture()
def vault(tmp_path: Path) -> VaultIndex:
    """Vault with a nested folder, an aliased index note, and hidden trees."""
    _write_note(tmp_path, "index.md", """\
        ---
        aliases: ["Home"]
        layout: Index
        ---
        # Home
        See [[Other]].
    """)
    _write_note(tmp_path, "Notes/Other.md", "# Other Note\n")
    _write_note(tmp_path, "Notes/Deep/third_note.md", "No heading.\n")
    _write_note(tmp_path, ".obsidian/workspace.md", "# Should not load\n")
    _write_note(tmp_path, "_drafts/draft.md", "# Draft\n")
    _write_note(tmp_path, "Notes/_private.md", "# Private file\n")
    (tmp_path / "Notes" / "image.png").write_bytes(b"\x89PNG")
    (tmp_path / "readme.txt").write_text("not markdown", encoding="utf-8")
    return VaultIndex.from_directory(tmp_path)


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


class TestTraversal:
    def test_only_visible_markdown_loaded(self, vault: VaultIndex):
        assert set(vault.notes) == {"index", "Other", "third_note"}

    def test_hidden_predicate(self):
        assert is_hidden(".obsidian")
        assert is_hidden("_drafts")
        assert not is_hidden("Notes")

    def test_paths_are_vault_relative(self, vault: VaultIndex):
        assert vault.notes["Other"].path == PurePosixPath("Notes/Other.md")
        assert vault.notes["third_note"].path == PurePosixPath("Notes/Deep/third_note.md")

    def test_traversal_order_is_sorted(self, tmp_path: Path):
        for name in ["c", "a", "b"]:
            _write_note(tmp_path, f"{name}.md", f"# {name}\n")
        assert [p.name for p in walk_markdown(tmp_path)] == ["a.md", "b.md", "c.md"]

    def test_uppercase_extension_loaded(self, tmp_path: Path):
        _write_note(tmp_path, "Shout.MD", "# Loud\n")
        idx = VaultIndex.from_directory(tmp_path)
        assert "Shout" in idx

    def test_missing_root_raises(self, tmp_path: Path):
        with pytest.raises(TraversalError):
            VaultIndex.from_directory(tmp_path / "nope")

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlinked_directory_followed(self, tmp_path: Path):
        vault_dir = tmp_path / "vault"
        outside = tmp_path / "outside"
        _write_note(outside, "linked.md", "# Linked\n")
        vault_dir.mkdir()
        os.symlink(outside, vault_dir / "shared", target_is_directory=True)
        idx = VaultIndex.from_directory(vault_dir)
        assert idx.notes["linked"].path == PurePosixPath("shared/linked.md")

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlink_cycle_raises(self, tmp_path: Path):
        _write_note(tmp_path, "a/b/note.md", "# Note\n")
        os.symlink(tmp_path / "a", tmp_path / "a" / "b" / "loop", target_is_directory=True)
        with pytest.raises(TraversalError) as excinfo:
            VaultIndex.from_directory(tmp_path)
        assert "cycle" in str(excinfo.value)

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_sibling_symlink_loads_file_once(self, tmp_path: Path):
        _write_note(tmp_path, "a/n.md", "# N\n")
        os.symlink(tmp_path / "a", tmp_path / "b", target_is_directory=True)
        idx = VaultIndex.from_directory(tmp_path)
        assert list(idx.notes) == ["n"]
        assert idx.notes["n"].path == PurePosixPath("a/n.md")

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlinked_file_loads_once(self, tmp_path: Path):
        _write_note(tmp_path, "real.md", "# Real\n")
        os.symlink(tmp_path / "real.md", tmp_path / "shortcut.md")
        assert [p.name for p in walk_markdown(tmp_path)] == ["real.md"]


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class TestFind:
    def test_find_by_slug(self, vault: VaultIndex):
        assert vault.find("Other").title == "Other Note"

    def test_find_by_alias(self, vault: VaultIndex):
        assert vault.find("Home").slug == "index"

    def test_find_is_case_sensitive(self, vault: VaultIndex):
        assert vault.find("other") is None
        assert vault.find("home") is None

    def test_find_by_path_does_not_match(self, vault: VaultIndex):
        assert vault.find("Notes/Other") is None

    def test_find_missing(self, vault: VaultIndex):
        assert vault.find("Missing") is None

    def test_title_falls_back_to_filename(self, vault: VaultIndex):
        assert vault.find("third_note").title == "third note"

    def test_slug_wins_over_alias(self):
        a = load_note("a.md", "---\naliases: [b]\n---\n")
        b = load_note("b.md", "# B\n")
        idx = VaultIndex(".", [a, b])
        assert idx.find("b").slug == "b"

    def test_duplicate_alias_raises(self):
        a = load_note("a.md", "---\naliases: [Shared]\n---\n")
        b = load_note("b.md", "---\naliases: [Shared]\n---\n")
        with pytest.raises(AmbiguousIdentifierError) as excinfo:
            VaultIndex(".", [a, b])
        assert excinfo.value.identifier == "Shared"
        assert excinfo.value.slugs == ["a", "b"]

    def test_alias_repeated_within_one_note_is_fine(self):
        a = load_note("a.md", "---\naliases: [x, x]\n---\n")
        assert VaultIndex(".", [a]).find("x").slug == "a"

    def test_slug_collision_raises(self, tmp_path: Path):
        _write_note(tmp_path, "one/same.md", "# One\n")
        _write_note(tmp_path, "two/same.md", "# Two\n")
        with pytest.raises(SlugCollisionError) as excinfo:
            VaultIndex.from_directory(tmp_path)
        assert excinfo.value.slug == "same"
        assert len(excinfo.value.paths) == 2


# ---------------------------------------------------------------------------
# Subsets
# ---------------------------------------------------------------------------


class TestNotesUnder:
    def test_folder_is_recursive(self, vault: VaultIndex):
        assert {n.slug for n in vault.notes_under("Notes")} == {"Other", "third_note"}

    def test_trailing_slash_tolerated(self, vault: VaultIndex):
        assert {n.slug for n in vault.notes_under("Notes/")} == {"Other", "third_note"}

    def test_root_selects_everything(self, vault: VaultIndex):
        assert len(vault.notes_under("")) == len(vault)
        assert len(vault.notes_under(".")) == len(vault)

    def test_prefix_is_not_a_folder_match(self, tmp_path: Path):
        _write_note(tmp_path, "Notes/a.md", "# A\n")
        _write_note(tmp_path, "Notebook/b.md", "# B\n")
        idx = VaultIndex.from_directory(tmp_path)
        assert [n.slug for n in idx.notes_under("Notes")] == ["a"]


# ---------------------------------------------------------------------------
# Load policy
# ---------------------------------------------------------------------------


class TestLoadPolicy:
    @pytest.fixture()
    def broken_vault(self, tmp_path: Path) -> Path:
        _write_note(tmp_path, "good.md", "# Good\n")
        _write_note(tmp_path, "bad.md", "---\ndate: not-a-date\n---\n# Bad\n")
        return tmp_path

    def test_fail_policy_raises_with_path(self, broken_vault: Path):
        with pytest.raises(LoadError) as excinfo:
            VaultIndex.from_directory(broken_vault)
        assert excinfo.value.path.name == "bad.md"

    def test_skip_policy_records_and_continues(self, broken_vault: Path, caplog):
        with caplog.at_level("WARNING", logger="vaultsite"):
            idx = VaultIndex.from_directory(broken_vault, on_error="skip")
        assert set(idx.notes) == {"good"}
        assert [e.path.name for e in idx.skipped] == ["bad.md"]
        assert "bad.md" in caplog.text

    def test_skip_policy_covers_impossible_date(self, tmp_path: Path):
        _write_note(tmp_path, "ok.md", "# Ok\n")
        _write_note(tmp_path, "bad.md", "---\ndate: 2024-02-30\n---\n# Bad\n")
        idx = VaultIndex.from_directory(tmp_path, on_error="skip")
        assert set(idx.notes) == {"ok"}
        assert [e.path.name for e in idx.skipped] == ["bad.md"]

    def test_byte_order_mark_alias_indexed(self, tmp_path: Path):
        (tmp_path / "bom.md").write_bytes("\ufeff---\naliases: [X]\n---\n# Bom\n".encode("utf-8"))
        idx = VaultIndex.from_directory(tmp_path)
        assert idx.find("X").slug == "bom"

    def test_unknown_policy_rejected(self, broken_vault: Path):
        with pytest.raises(ValueError):
            VaultIndex.from_directory(broken_vault, on_error="ignore")


class TestImmutability:
    def test_notes_mapping_is_read_only(self, vault: VaultIndex):
        with pytest.raises(TypeError):
            vault.notes["new"] = vault.notes["index"]  # type: ignore[index]

    def test_iteration_and_membership(self, vault: VaultIndex):
        assert [n.slug for n in vault] == list(vault.notes)
        assert "index" in vault
        assert vault.get("nope") is None
