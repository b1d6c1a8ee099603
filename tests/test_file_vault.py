# tests/test_file_vault.py

from __future__ import annotations

import os
from pathlib import Path

import pytest

from tasklens.connectors.file_vault import FileVault, task_line_numbers
from tasklens.connectors.text_buffer import TextBuffer


def _touch_later(path: Path, text: str) -> None:
    """Write like an external editor would, with a clearly newer mtime."""
    path.write_text(text, "utf-8")
    st = path.stat()
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))


def test_task_line_numbers_skips_code_fences_and_prose() -> None:
    text = "\n".join(
        [
            "- [ ] one",
            "[ ] not a list item",
            "```",
            "- [ ] in code",
            "```",
            "  1. [x] numbered",
            "* [-] other marker",
            "~~~md",
            "- [ ] in tilde code",
            "~~~",
        ]
    )
    assert task_line_numbers(text) == [0, 5, 6]


@pytest.fixture()
def vault(tmp_path: Path) -> FileVault:
    root = tmp_path / "vault"
    (root / "Projects").mkdir(parents=True)
    (root / ".obsidian").mkdir()
    (root / "Inbox.md").write_text("# Inbox\n- [ ] Buy milk\n", "utf-8")
    (root / "Projects" / "Work.md").write_text("- [x] Ship it\n", "utf-8")
    (root / ".obsidian" / "hidden.md").write_text("- [ ] hidden\n", "utf-8")
    (root / "notes.txt").write_text("- [ ] not markdown\n", "utf-8")
    return FileVault(root)


@pytest.mark.asyncio
async def test_lists_markdown_documents_only(vault: FileVault) -> None:
    assert await vault.list_documents() == ["Inbox.md", "Projects/Work.md"]
    assert vault.get_task_line_numbers("Inbox.md") == [1]
    assert vault.get_task_line_numbers("Missing.md") is None


@pytest.mark.asyncio
async def test_process_is_atomic_and_notifies(vault: FileVault) -> None:
    seen: list[str] = []
    vault.on_change(seen.append)

    new = await vault.process("Inbox.md", lambda t: t.replace("[ ]", "[x]"))

    assert new == "# Inbox\n- [x] Buy milk\n"
    assert (vault.root / "Inbox.md").read_text("utf-8") == new
    assert not (vault.root / ".Inbox.md.tmp").exists()
    assert seen == ["Inbox.md"]


@pytest.mark.asyncio
async def test_process_without_change_does_not_write(vault: FileVault) -> None:
    seen: list[str] = []
    vault.on_change(seen.append)

    await vault.process("Inbox.md", lambda t: t)

    assert seen == []


@pytest.mark.asyncio
async def test_cached_read_follows_external_edits(vault: FileVault) -> None:
    assert "Buy milk" in await vault.cached_read("Inbox.md")

    _touch_later(vault.root / "Inbox.md", "- [ ] Buy bread\n")

    assert await vault.cached_read("Inbox.md") == "- [ ] Buy bread\n"


@pytest.mark.asyncio
async def test_poll_changes_reports_external_edits_only(vault: FileVault) -> None:
    seen: list[str] = []
    vault.on_change(seen.append)

    assert await vault.poll_changes() == []

    await vault.write("Inbox.md", "- [ ] ours\n")
    _touch_later(vault.root / "Projects" / "Work.md", "- [ ] theirs\n")
    (vault.root / "New.md").write_text("- [ ] brand new\n", "utf-8")

    assert await vault.poll_changes() == ["New.md", "Projects/Work.md"]
    assert seen == ["Inbox.md", "New.md", "Projects/Work.md"]


@pytest.mark.asyncio
async def test_paths_cannot_escape_the_vault(vault: FileVault) -> None:
    with pytest.raises(ValueError):
        await vault.read("../outside.md")


@pytest.mark.asyncio
async def test_text_buffer_edits_stay_local_until_flush(vault: FileVault) -> None:
    buf = TextBuffer(vault)
    changes = {"n": 0}
    buf.on_change(lambda: changes.__setitem__("n", changes["n"] + 1))

    await buf.open_document_at_line("Inbox.md", 99)
    assert buf.cursor_line == buf.line_count() - 1

    buf.set_line(1, "- [x] Buy milk")
    buf.set_line(1, "- [x] Buy milk")
    assert changes["n"] == 1
    assert "[ ] Buy milk" in (vault.root / "Inbox.md").read_text("utf-8")

    await buf.flush()
    assert (vault.root / "Inbox.md").read_text("utf-8") == "# Inbox\n- [x] Buy milk\n"
    assert buf.dirty is False

    with pytest.raises(IndexError):
        buf.set_line(42, "nope")
    assert buf.get_line(42) == ""


@pytest.mark.asyncio
async def test_text_buffer_flushes_before_switching_documents(vault: FileVault) -> None:
    buf = TextBuffer(vault)
    await buf.open_document_at_line("Inbox.md", 0)
    buf.set_line(0, "# Renamed")

    await buf.open_document_at_line("Projects/Work.md", 0)

    assert buf.active_path() == "Projects/Work.md"
    assert (vault.root / "Inbox.md").read_text("utf-8").startswith("# Renamed")
