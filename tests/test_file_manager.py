from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from gcc_journal.errors import ErrorCode, GCCError
from gcc_journal.file_manager import FileManager


@pytest.fixture()
def manager() -> FileManager:
    return FileManager()


def test_read_text_missing_file_is_empty(tmp_path: Path, manager: FileManager) -> None:
    assert manager.read_text(tmp_path / "missing.md") == ""


def test_write_text_replaces_content_without_leftovers(tmp_path: Path, manager: FileManager) -> None:
    target = tmp_path / "doc.md"
    manager.write_text(target, "first")
    manager.write_text(target, "second")

    assert target.read_text(encoding="utf-8") == "second"
    assert [path.name for path in tmp_path.iterdir()] == ["doc.md"]


def test_write_text_missing_parent_raises_storage_error(tmp_path: Path, manager: FileManager) -> None:
    with pytest.raises(GCCError) as exc_info:
        manager.write_text(tmp_path / "absent" / "doc.md", "text")

    assert exc_info.value.code == ErrorCode.STORAGE_ERROR


def test_ensure_text_never_clobbers(tmp_path: Path, manager: FileManager) -> None:
    target = tmp_path / "doc.md"
    target.write_text("user content", encoding="utf-8")

    assert manager.ensure_text(target, "template") is True
    assert target.read_text(encoding="utf-8") == "user content"


def test_ensure_text_reports_failure_instead_of_raising(tmp_path: Path, manager: FileManager) -> None:
    assert manager.ensure_text(tmp_path / "absent" / "doc.md", "template") is False


def test_replace_section_caps_and_drops_placeholder(tmp_path: Path, manager: FileManager) -> None:
    target = tmp_path / "main.md"
    target.write_text("## Recent Milestones\n- (none yet)\n\n## Open Branches\n- (none)\n", encoding="utf-8")

    for index in range(4):
        retained = manager.replace_section(
            target, "## Recent Milestones", f"- entry {index}", cap=3, placeholder="(none yet)"
        )

    assert retained == ["- entry 3", "- entry 2", "- entry 1"]
    content = target.read_text(encoding="utf-8")
    assert "(none yet)" not in content
    assert content.endswith("## Open Branches\n- (none)\n")


def test_section_items_are_unique_and_leave_sentinel(tmp_path: Path, manager: FileManager) -> None:
    target = tmp_path / "main.md"
    target.write_text("## Open Branches\n- (none)\n", encoding="utf-8")

    assert manager.add_section_item(target, "## Open Branches", "- a", "- (none)") is True
    assert manager.add_section_item(target, "## Open Branches", "- a", "- (none)") is False
    assert target.read_text(encoding="utf-8") == "## Open Branches\n- a\n"

    assert manager.remove_section_item(target, "## Open Branches", "- a", "- (none)") is True
    assert manager.remove_section_item(target, "## Open Branches", "- a", "- (none)") is False
    assert target.read_text(encoding="utf-8") == "## Open Branches\n- (none)\n"


def test_append_rotating_keeps_newest_tail(tmp_path: Path, manager: FileManager) -> None:
    log_path = tmp_path / "log.md"

    for index in range(11):
        assert manager.append_rotating(log_path, f"line {index}", max_lines=10, keep_lines=4)

    assert log_path.read_text(encoding="utf-8").splitlines() == [
        "line 7",
        "line 8",
        "line 9",
        "line 10",
    ]


def test_append_rotating_is_fail_soft(tmp_path: Path, manager: FileManager) -> None:
    assert manager.append_rotating(tmp_path / "absent" / "log.md", "x", 10, 5) is False


def test_rename_aside_does_not_overwrite_older_backup(tmp_path: Path, manager: FileManager) -> None:
    first = tmp_path / "commits.md"
    first.write_text("one", encoding="utf-8")
    assert manager.rename_aside(first, ".v1-backup").name == "commits.md.v1-backup"

    first.write_text("two", encoding="utf-8")
    second_backup = manager.rename_aside(first, ".v1-backup")

    assert second_backup.name == "commits.md.v1-backup.1"
    assert (tmp_path / "commits.md.v1-backup").read_text(encoding="utf-8") == "one"


def test_read_yaml_ignores_non_mapping(tmp_path: Path, manager: FileManager) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")

    assert manager.read_yaml(config) == {}
    assert manager.read_yaml(tmp_path / "missing.yaml") == {}


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_write_text_keeps_existing_mode_and_honours_umask(tmp_path: Path, manager: FileManager) -> None:
    existing = tmp_path / "shared.md"
    existing.write_text("old", encoding="utf-8")
    existing.chmod(0o640)
    fresh = tmp_path / "fresh.md"

    previous_umask = os.umask(0o027)
    try:
        manager.write_text(existing, "new")
        manager.write_text(fresh, "text")
    finally:
        os.umask(previous_umask)

    assert stat.S_IMODE(existing.stat().st_mode) == 0o640
    assert stat.S_IMODE(fresh.stat().st_mode) == 0o640
