"""Creation of the journal tree and per-branch storage."""

from __future__ import annotations

import logging
import re

from .constants import (
    DEFAULT_BRANCH,
    GCC_DIR_NAME,
    MAIN_JOURNAL_TEMPLATE,
    REGISTRY_TEMPLATE,
    SUMMARY_TEMPLATE,
)
from .errors import ErrorCode, GCCError
from .file_manager import FileManager
from .journal import render_branch_header
from .layout import ContextLayout

logger = logging.getLogger(__name__)

GITIGNORE_ENTRY_PATTERN = re.compile(rf"^/?{re.escape(GCC_DIR_NAME)}/?\s*$", re.MULTILINE)


def ensure_context_structure(layout: ContextLayout, file_manager: FileManager) -> bool:
    """Create missing directories and documents; existing files are left alone."""
    created_root = not layout.gcc_root.exists()
    try:
        layout.main_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.warning("Unable to create %s", layout.main_dir, exc_info=True)
        return False

    if created_root:
        ensure_gitignore(layout, file_manager)

    documents = (
        (layout.summary_path, SUMMARY_TEMPLATE),
        (layout.registry_path, REGISTRY_TEMPLATE),
        (layout.commits_path(DEFAULT_BRANCH), MAIN_JOURNAL_TEMPLATE),
        (layout.log_path(DEFAULT_BRANCH), ""),
    )
    ready = True
    for path, template in documents:
        ready = file_manager.ensure_text(path, template) and ready
    return ready


def ensure_branch_storage(
    layout: ContextLayout,
    file_manager: FileManager,
    branch: str,
    purpose: str,
    hypothesis: str,
) -> None:
    """Create ``branches/<branch>/`` with a header journal and an empty log."""
    file_manager.make_dirs(layout.branch_dir(branch))
    documents = (
        (layout.commits_path(branch), render_branch_header(branch, purpose, hypothesis)),
        (layout.log_path(branch), ""),
    )
    for path, template in documents:
        if not file_manager.ensure_text(path, template):
            raise GCCError(
                ErrorCode.STORAGE_ERROR,
                f"Unable to create {path}",
                "Check directory permissions and free disk space.",
                {"branch": branch},
            )


def ensure_gitignore(layout: ContextLayout, file_manager: FileManager) -> bool:
    """Add ``.gcc/`` to ``.gitignore`` inside git work trees.

    Returns whether the file was updated. Failures are logged, never raised.
    """
    project_dir = layout.project_dir
    if not (project_dir / ".git").exists():
        return False

    gitignore_path = project_dir / ".gitignore"
    try:
        existing = file_manager.read_text(gitignore_path)
        if GITIGNORE_ENTRY_PATTERN.search(existing):
            return False
        prefix = "\n" if existing and not existing.endswith("\n") else ""
        file_manager.write_text(gitignore_path, f"{existing}{prefix}{GCC_DIR_NAME}/\n")
    except GCCError:
        logger.warning("Unable to update %s", gitignore_path, exc_info=True)
        return False
    return True
