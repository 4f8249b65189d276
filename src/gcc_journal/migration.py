"""One-shot upgrade from the flat single-journal layout to per-branch storage.

The flat layout kept one ``commits.md`` and one ``log.md`` at the context
root and described each exploration branch in a single
``branches/<name>.md`` file. The per-branch layout gives every branch its
own directory. Legacy files are never deleted: they are either moved into
place or renamed aside with a ``.v1-backup`` suffix.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .constants import (
    BACKUP_SUFFIX,
    CONCLUSION_PLACEHOLDER,
    DEFAULT_BRANCH,
    JOURNAL_ANCHOR,
    REGISTRY_FILE_NAME,
)
from .file_manager import FileManager
from .journal import render_branch_header
from .layout import ContextLayout

logger = logging.getLogger(__name__)

LEGACY_PLACEHOLDER = "(migrated from v1)"
LEGACY_BRANCH_SUFFIX = ".md"


@dataclass
class MigrationReport:
    """What a migration run touched."""

    journal: str = "absent"
    log: str = "absent"
    branches: list[str] = field(default_factory=list)
    backups: list[str] = field(default_factory=list)
    completed_at: str = ""


class LayoutMigrator:
    def __init__(self, layout: ContextLayout, file_manager: FileManager | None = None) -> None:
        self.layout = layout
        self.file_manager = file_manager or FileManager()

    def needs_migration(self) -> bool:
        if self.layout.migration_marker_path.exists():
            return False
        return self.layout.legacy_commits_path.exists()

    def migrate(self) -> MigrationReport:
        """Move legacy documents into the per-branch layout and write the marker.

        Safe to run again after a partial run: content already present at
        the destination is not appended twice.
        """
        report = MigrationReport()
        self.file_manager.make_dirs(self.layout.main_dir)

        report.journal = self._merge_legacy_file(
            self.layout.legacy_commits_path,
            self.layout.commits_path(DEFAULT_BRANCH),
            report,
        )
        report.log = self._merge_legacy_file(
            self.layout.legacy_log_path,
            self.layout.log_path(DEFAULT_BRANCH),
            report,
        )
        self.file_manager.ensure_text(self.layout.log_path(DEFAULT_BRANCH), "")

        for legacy_file in self._legacy_branch_files():
            branch = legacy_file.name[: -len(LEGACY_BRANCH_SUFFIX)]
            self._convert_branch_file(legacy_file, branch, report)
            report.branches.append(branch)

        report.completed_at = datetime.now(timezone.utc).isoformat()
        self.file_manager.write_text(self.layout.migration_marker_path, report.completed_at)
        logger.info(
            "Migrated legacy layout in %s (journal=%s, log=%s, branches=%s)",
            self.layout.context_root,
            report.journal,
            report.log,
            report.branches,
        )
        return report

    def _merge_legacy_file(self, legacy: Path, target: Path, report: MigrationReport) -> str:
        if not legacy.exists():
            return "absent"
        if not target.exists():
            self.file_manager.move(legacy, target)
            return "moved"

        existing = self.file_manager.read_text(target)
        addition = self.file_manager.read_text(legacy)
        if JOURNAL_ANCHOR in existing and addition.startswith(JOURNAL_ANCHOR):
            addition = addition[len(JOURNAL_ANCHOR):]
        outcome = "backed-up"
        if addition.strip() and addition.strip() not in existing:
            separator = "" if not existing or existing.endswith("\n") else "\n"
            self.file_manager.write_text(target, existing + separator + "\n" + addition)
            outcome = "appended"
        backup = self.file_manager.rename_aside(legacy, BACKUP_SUFFIX)
        report.backups.append(str(backup))
        return outcome

    def _legacy_branch_files(self) -> list[Path]:
        branches_dir = self.layout.branches_dir
        if not branches_dir.is_dir():
            return []
        legacy_files: list[Path] = []
        for entry in sorted(branches_dir.iterdir(), key=lambda item: item.name):
            if entry.name == REGISTRY_FILE_NAME or not entry.is_file():
                continue
            if not entry.name.endswith(LEGACY_BRANCH_SUFFIX):
                continue
            branch = entry.name[: -len(LEGACY_BRANCH_SUFFIX)]
            if not branch or branch == DEFAULT_BRANCH or self.layout.branch_dir(branch).exists():
                continue
            legacy_files.append(entry)
        return legacy_files

    def _convert_branch_file(self, legacy_file: Path, branch: str, report: MigrationReport) -> None:
        content = self.file_manager.read_text(legacy_file)
        self.file_manager.make_dirs(self.layout.branch_dir(branch))
        self.file_manager.write_text(
            self.layout.commits_path(branch),
            convert_branch_header(content, branch),
        )
        self.file_manager.ensure_text(self.layout.log_path(branch), "")
        backup = self.file_manager.rename_aside(legacy_file, BACKUP_SUFFIX)
        report.backups.append(str(backup))


def convert_branch_header(content: str, branch: str) -> str:
    """Turn a flat branch description into a per-branch journal header."""
    purpose = extract_section(content, "Purpose") or LEGACY_PLACEHOLDER
    hypothesis = extract_section(content, "Hypothesis") or LEGACY_PLACEHOLDER
    findings = extract_section(content, "Findings")
    conclusion = extract_section(content, "Conclusion")
    if conclusion and "Fill in at merge time" in conclusion:
        conclusion = None
    return render_branch_header(
        branch,
        purpose,
        hypothesis,
        findings=findings,
        conclusion=conclusion or CONCLUSION_PLACEHOLDER,
    )


def extract_section(content: str, heading: str) -> str | None:
    """Return the trimmed body under ``## <heading>``, or ``None`` when empty."""
    match = re.search(
        rf"^## {re.escape(heading)}[ \t]*\n(.*?)(?=\n## |\Z)",
        content,
        re.MULTILINE | re.DOTALL,
    )
    if match is None:
        return None
    return match.group(1).strip() or None
