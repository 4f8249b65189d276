"""Branch registry: the active-branch pointer and branch history table."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .constants import ACTIVE_BRANCH_HEADING, DEFAULT_BRANCH, REGISTRY_TEMPLATE, STATUS_ACTIVE
from .errors import GCCError
from .file_manager import FileManager

logger = logging.getLogger(__name__)

ACTIVE_BRANCH_PATTERN = re.compile(rf"^{re.escape(ACTIVE_BRANCH_HEADING)}\n(\S+)", re.MULTILINE)
HISTORY_ROW_PATTERN = re.compile(
    r"^\|\s*(?P<name>[^|\s]+)\s*\|\s*(?P<status>[^|\s]+)\s*\|\s*(?P<created>[^|]*?)\s*\|\s*$",
    re.MULTILINE,
)


@dataclass(frozen=True)
class BranchHistoryRow:
    name: str
    status: str
    created: str


class BranchRegistry:
    """Plain ledger over ``_registry.md``.

    The registry records state; the rules about when a branch may become
    active live in the engine.
    """

    def __init__(self, path: Path, file_manager: FileManager | None = None) -> None:
        self.path = path
        self.file_manager = file_manager or FileManager()

    def get_active(self) -> str:
        """Return the active branch, defaulting to ``main`` on any read problem."""
        try:
            content = self.file_manager.read_text(self.path)
        except GCCError:
            logger.warning("Unable to read registry %s; assuming main", self.path, exc_info=True)
            return DEFAULT_BRANCH
        match = ACTIVE_BRANCH_PATTERN.search(content)
        if match is None:
            return DEFAULT_BRANCH
        return match.group(1)

    def set_active(self, branch: str) -> None:
        content = self._load()
        replacement = f"{ACTIVE_BRANCH_HEADING}\n{branch}"
        if ACTIVE_BRANCH_PATTERN.search(content):
            updated = ACTIVE_BRANCH_PATTERN.sub(lambda _match: replacement, content, count=1)
        else:
            logger.warning("Active branch label missing in %s; restoring it", self.path)
            updated = f"{replacement}\n\n{content}"
        if updated != content:
            self.file_manager.write_text(self.path, updated)

    def record_created(self, branch: str, created: str) -> None:
        content = self._load()
        updated = content.rstrip() + f"\n| {branch} | {STATUS_ACTIVE} | {created} |\n"
        self.file_manager.write_text(self.path, updated)

    def set_status(self, branch: str, status: str) -> bool:
        """Rewrite the status cell of ``branch``'s row; no-op when the row is absent."""
        content = self._load()
        pattern = re.compile(rf"^\| {re.escape(branch)} \| \S+ \|", re.MULTILINE)
        updated, count = pattern.subn(lambda _match: f"| {branch} | {status} |", content, count=1)
        if not count:
            logger.warning("Branch %r has no history row in %s", branch, self.path)
            return False
        if updated != content:
            self.file_manager.write_text(self.path, updated)
        return True

    def history(self) -> list[BranchHistoryRow]:
        try:
            content = self.file_manager.read_text(self.path)
        except GCCError:
            return []
        rows: list[BranchHistoryRow] = []
        for match in HISTORY_ROW_PATTERN.finditer(content):
            name = match.group("name")
            if name == "Branch" or set(name) <= {"-"}:
                continue
            rows.append(
                BranchHistoryRow(
                    name=name,
                    status=match.group("status"),
                    created=match.group("created"),
                )
            )
        return rows

    def _load(self) -> str:
        content = self.file_manager.read_text(self.path)
        return content or REGISTRY_TEMPLATE
