"""Layered, read-only rendering of journal state."""

from __future__ import annotations

from .constants import DEFAULT_BRANCH, MAX_SEARCH_MATCHES
from .file_manager import FileManager
from .journal import branch_header, find_commit_block, search_commit_blocks, split_commit_blocks
from .layout import ContextLayout
from .runtime import JournalSettings

MIN_LEVEL = 1
MAX_LEVEL = 5


class ContextReader:
    """Progressive disclosure of a project's journal.

    1. project summary
    2. + the newest commits of the branch
    3. + the branch header (exploration branches only)
    4. + an extended commit slice that replaces the level-2 one
    5. + an optional commit lookup and an optional substring search
    """

    def __init__(
        self,
        layout: ContextLayout,
        file_manager: FileManager | None = None,
        settings: JournalSettings | None = None,
    ) -> None:
        self.layout = layout
        self.file_manager = file_manager or FileManager()
        self.settings = settings or JournalSettings()

    def render(
        self,
        level: int,
        branch: str,
        active_branch: str,
        commit_id: str = "",
        search_term: str = "",
    ) -> str:
        parts = [
            f"## GCC Context (Active: {active_branch})\n",
            self.file_manager.read_text(self.layout.summary_path),
        ]
        journal = self.file_manager.read_text(self.layout.commits_path(branch))

        if 2 <= level < 4:
            recent = self._recent(journal, self.settings.recent_commit_count)
            if recent:
                parts.append(f"\n## Recent Commits ({branch})\n{recent}")

        if level >= 3 and branch != DEFAULT_BRANCH:
            header = branch_header(journal)
            if header:
                parts.append(f"\n## Branch: {branch}\n{header}")

        if level >= 4:
            count = self.settings.extended_commit_count
            extended = self._recent(journal, count)
            if extended:
                parts.append(f"\n## Extended History ({branch}, last {count})\n{extended}")

        if level >= 5:
            if commit_id:
                block = find_commit_block(journal, commit_id)
                if block:
                    parts.append(f"\n## Commit {commit_id}\n{block}")
                else:
                    parts.append(f"\n## Commit {commit_id} not found in branch:{branch}")
            if search_term:
                matches = search_commit_blocks(journal, search_term, MAX_SEARCH_MATCHES)
                if matches:
                    parts.append(f'\n## Search: "{search_term}"\n' + "\n".join(matches))
                else:
                    parts.append(f'\n## No matches for "{search_term}" in branch:{branch}')

        return "\n".join(parts)

    @staticmethod
    def _recent(journal: str, count: int) -> str:
        return "\n".join(split_commit_blocks(journal)[:count])
