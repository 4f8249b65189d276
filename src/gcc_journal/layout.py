"""Path layout of a project's journal tree."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .constants import (
    BRANCHES_DIR_NAME,
    COMMITS_FILE_NAME,
    CONFIG_FILE_NAME,
    CONTEXT_DIR_NAME,
    DEFAULT_BRANCH,
    ERROR_LOG_FILE_NAME,
    GCC_DIR_NAME,
    LOG_FILE_NAME,
    MIGRATION_MARKER_NAME,
    REGISTRY_FILE_NAME,
    SUMMARY_FILE_NAME,
)


@dataclass(frozen=True)
class ContextLayout:
    """Resolved locations of every journal document for one project."""

    project_dir: Path

    @property
    def gcc_root(self) -> Path:
        return self.project_dir / GCC_DIR_NAME

    @property
    def context_root(self) -> Path:
        return self.gcc_root / CONTEXT_DIR_NAME

    @property
    def config_path(self) -> Path:
        return self.gcc_root / CONFIG_FILE_NAME

    @property
    def error_log_path(self) -> Path:
        return self.gcc_root / ERROR_LOG_FILE_NAME

    @property
    def summary_path(self) -> Path:
        return self.context_root / SUMMARY_FILE_NAME

    @property
    def branches_dir(self) -> Path:
        return self.context_root / BRANCHES_DIR_NAME

    @property
    def registry_path(self) -> Path:
        return self.branches_dir / REGISTRY_FILE_NAME

    @property
    def migration_marker_path(self) -> Path:
        return self.context_root / MIGRATION_MARKER_NAME

    @property
    def legacy_commits_path(self) -> Path:
        return self.context_root / COMMITS_FILE_NAME

    @property
    def legacy_log_path(self) -> Path:
        return self.context_root / LOG_FILE_NAME

    def branch_dir(self, branch: str) -> Path:
        return self.branches_dir / branch

    def commits_path(self, branch: str) -> Path:
        return self.branch_dir(branch) / COMMITS_FILE_NAME

    def log_path(self, branch: str) -> Path:
        return self.branch_dir(branch) / LOG_FILE_NAME

    def branch_exists(self, branch: str) -> bool:
        return self.branch_dir(branch).is_dir()

    def relative_branch_dir(self, branch: str) -> str:
        """Project-relative branch directory, as written into merge commits."""
        return f"{GCC_DIR_NAME}/{CONTEXT_DIR_NAME}/{BRANCHES_DIR_NAME}/{branch}/"

    @property
    def main_dir(self) -> Path:
        return self.branch_dir(DEFAULT_BRANCH)
