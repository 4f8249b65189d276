from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from gcc_journal.file_manager import FileManager
from gcc_journal.layout import ContextLayout
from gcc_journal.migration import LayoutMigrator, convert_branch_header, extract_section

LEGACY_JOURNAL = (
    "# Milestone Journal\n\n"
    "## [C002] 2026-01-02 10:00 | branch:main | Second\n"
    "**What**: two\n**Why**: w\n**Files**: b.py\n**Next**: n\n\n---\n\n"
    "## [C001] 2026-01-01 10:00 | branch:main | First\n"
    "**What**: one\n**Why**: w\n**Files**: a.py\n**Next**: n\n\n---\n\n"
)
LEGACY_BRANCH = (
    "# Branch: old-idea\n\n"
    "## Purpose\nTry a queue\n\n"
    "## Hypothesis\nLower latency\n\n"
    "## Findings\nWorked for small loads\n\n"
    "## Conclusion\n(Fill in at merge time)\n"
)


@pytest.fixture()
def legacy_layout(tmp_path: Path) -> ContextLayout:
    layout = ContextLayout(tmp_path)
    layout.branches_dir.mkdir(parents=True)
    layout.legacy_commits_path.write_text(LEGACY_JOURNAL, encoding="utf-8")
    layout.legacy_log_path.write_text("[2026-01-01] COMMIT C001: First\n", encoding="utf-8")
    (layout.branches_dir / "old-idea.md").write_text(LEGACY_BRANCH, encoding="utf-8")
    (layout.branches_dir / "_registry.md").write_text("## Active Branch\nmain\n", encoding="utf-8")
    return layout


def test_needs_migration_only_for_unmarked_legacy_layout(tmp_path: Path) -> None:
    layout = ContextLayout(tmp_path)
    migrator = LayoutMigrator(layout, FileManager())
    assert migrator.needs_migration() is False

    layout.context_root.mkdir(parents=True)
    layout.legacy_commits_path.write_text(LEGACY_JOURNAL, encoding="utf-8")
    assert migrator.needs_migration() is True

    layout.migration_marker_path.write_text("done", encoding="utf-8")
    assert migrator.needs_migration() is False


def test_migrate_moves_documents_and_converts_branches(legacy_layout: ContextLayout) -> None:
    migrator = LayoutMigrator(legacy_layout, FileManager())

    report = migrator.migrate()

    assert report.journal == "moved"
    assert report.log == "moved"
    assert report.branches == ["old-idea"]
    assert legacy_layout.commits_path("main").read_text(encoding="utf-8") == LEGACY_JOURNAL
    assert not legacy_layout.legacy_commits_path.exists()
    assert legacy_layout.log_path("main").read_text(encoding="utf-8").startswith("[2026-01-01]")

    header = legacy_layout.commits_path("old-idea").read_text(encoding="utf-8")
    assert "## Purpose\nTry a queue\n" in header
    assert "## Findings\nWorked for small loads\n" in header
    assert "(Fill in at merge time - success/failure/partial)" in header
    assert header.endswith("# Milestone Journal\n\n")
    assert (legacy_layout.branches_dir / "old-idea.md.v1-backup").exists()
    assert (legacy_layout.branches_dir / "_registry.md").exists()
    assert legacy_layout.migration_marker_path.read_text(encoding="utf-8") == report.completed_at
    assert migrator.needs_migration() is False


def test_migrate_twice_keeps_content_intact(legacy_layout: ContextLayout) -> None:
    migrator = LayoutMigrator(legacy_layout, FileManager())
    migrator.migrate()
    migrated = legacy_layout.commits_path("main").read_text(encoding="utf-8")

    second = migrator.migrate()

    assert second.journal == "absent"
    assert legacy_layout.commits_path("main").read_text(encoding="utf-8") == migrated


def test_crash_and_retry_does_not_duplicate_commits(legacy_layout: ContextLayout) -> None:
    # Simulate a crash after the journal move but before the marker was written.
    shutil.copyfile(legacy_layout.legacy_commits_path, legacy_layout.context_root / "copy.md")
    migrator = LayoutMigrator(legacy_layout, FileManager())
    migrator.migrate()
    legacy_layout.migration_marker_path.unlink()
    shutil.move(legacy_layout.context_root / "copy.md", legacy_layout.legacy_commits_path)
    assert migrator.needs_migration() is True

    report = migrator.migrate()

    journal = legacy_layout.commits_path("main").read_text(encoding="utf-8")
    assert report.journal == "backed-up"
    assert journal.count("## [C001]") == 1
    assert journal.count("## [C002]") == 1
    assert (legacy_layout.context_root / "commits.md.v1-backup").read_text(encoding="utf-8") == LEGACY_JOURNAL


def test_migrate_appends_new_legacy_content_to_existing_journal(legacy_layout: ContextLayout) -> None:
    main_journal = legacy_layout.commits_path("main")
    main_journal.parent.mkdir(parents=True)
    main_journal.write_text("# Milestone Journal\n\n", encoding="utf-8")

    report = LayoutMigrator(legacy_layout, FileManager()).migrate()

    content = main_journal.read_text(encoding="utf-8")
    assert report.journal == "appended"
    assert content.count("## [C002]") == 1
    assert content.count("# Milestone Journal") == 1
    assert content.index("# Milestone Journal") < content.index("## [C002]")
    assert report.backups


def test_convert_branch_header_keeps_real_conclusion() -> None:
    legacy = LEGACY_BRANCH.replace("(Fill in at merge time)", "Queue was slower")

    header = convert_branch_header(legacy, "old-idea")

    assert "## Conclusion\nQueue was slower\n" in header
    assert "Fill in at merge time" not in header


def test_convert_branch_header_defaults_missing_sections() -> None:
    header = convert_branch_header("# Branch: bare\n", "bare")

    assert "## Purpose\n(migrated from v1)\n" in header
    assert "## Findings" not in header


def test_extract_section_trims_body() -> None:
    assert extract_section(LEGACY_BRANCH, "Hypothesis") == "Lower latency"
    assert extract_section(LEGACY_BRANCH, "Missing") is None
