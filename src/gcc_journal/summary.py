"""Project summary document (``main.md``)."""

from __future__ import annotations

from pathlib import Path

from . import sections
from .constants import (
    DEFAULT_MILESTONES_KEPT,
    MILESTONES_HEADING,
    MILESTONES_PLACEHOLDER,
    OPEN_BRANCHES_EMPTY,
    OPEN_BRANCHES_HEADING,
)
from .file_manager import FileManager


class ProjectSummary:
    def __init__(self, path: Path, file_manager: FileManager | None = None) -> None:
        self.path = path
        self.file_manager = file_manager or FileManager()

    def read(self) -> str:
        return self.file_manager.read_text(self.path)

    def add_milestone(
        self,
        day: str,
        branch: str,
        title: str,
        cap: int = DEFAULT_MILESTONES_KEPT,
    ) -> list[str]:
        """Prepend a milestone line, keeping the newest ``cap`` entries."""
        return self.file_manager.replace_section(
            self.path,
            MILESTONES_HEADING,
            f"- {day}: {title} ({branch})",
            cap=cap,
            placeholder=MILESTONES_PLACEHOLDER,
        )

    def milestones(self) -> list[str]:
        return [
            line[2:]
            for line in sections.section_bullets(self.read(), MILESTONES_HEADING)
            if MILESTONES_PLACEHOLDER not in line
        ]

    def add_open_branch(self, branch: str) -> bool:
        return self.file_manager.add_section_item(
            self.path, OPEN_BRANCHES_HEADING, f"- {branch}", OPEN_BRANCHES_EMPTY
        )

    def remove_open_branch(self, branch: str) -> bool:
        return self.file_manager.remove_section_item(
            self.path, OPEN_BRANCHES_HEADING, f"- {branch}", OPEN_BRANCHES_EMPTY
        )

    def open_branches(self) -> list[str]:
        return [
            line[2:]
            for line in sections.section_bullets(self.read(), OPEN_BRANCHES_HEADING)
            if line != OPEN_BRANCHES_EMPTY
        ]
