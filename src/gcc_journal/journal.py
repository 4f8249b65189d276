"""Commit identifiers and commit-block text for branch journals."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .constants import CONCLUSION_HEADING, CONCLUSION_PLACEHOLDER, JOURNAL_ANCHOR

COMMIT_MARKER_PATTERN = re.compile(r"^## \[C(\d+)\]", re.MULTILINE)
COMMIT_HEADER_PATTERN = re.compile(
    r"^## \[(?P<id>C\d+)\] (?P<timestamp>[^|]*?) \| branch:(?P<branch>\S*) \| (?P<title>.*)$",
    re.MULTILINE,
)
COMMIT_SPLIT_PATTERN = re.compile(r"(?=^## \[C\d+\])", re.MULTILINE)
CONCLUSION_PLACEHOLDER_PATTERN = re.compile(
    rf"{re.escape(CONCLUSION_HEADING)}\n\(Fill in at merge time[^)\n]*\)"
)
FIRST_COMMIT_ID = "C001"


@dataclass(frozen=True)
class CommitRecord:
    """One milestone as written into a branch journal."""

    commit_id: str
    timestamp: str
    branch: str
    title: str
    what: str
    why: str
    files: tuple[str, ...]
    next_step: str

    def render(self) -> str:
        return (
            f"## [{self.commit_id}] {self.timestamp} | branch:{self.branch} | {self.title}\n"
            f"**What**: {self.what}\n"
            f"**Why**: {self.why}\n"
            f"**Files**: {', '.join(self.files)}\n"
            f"**Next**: {self.next_step}\n"
            "\n"
            "---\n"
            "\n"
        )


def _journal_body(journal_text: str) -> str:
    """Text below the journal anchor; header text never counts as commits."""
    _, anchor, body = journal_text.partition(JOURNAL_ANCHOR)
    return body if anchor else journal_text


def format_commit_id(number: int) -> str:
    return f"C{number:03d}"


def next_commit_id(journal_text: str) -> str:
    """Return the identifier following the newest one in ``journal_text``.

    Journals are newest-first, so the first marker is the latest commit.
    Numbering is per branch and starts at ``C001``.
    """
    match = COMMIT_MARKER_PATTERN.search(_journal_body(journal_text))
    if match is None:
        return FIRST_COMMIT_ID
    return format_commit_id(int(match.group(1)) + 1)


def split_commit_blocks(journal_text: str) -> list[str]:
    """Return commit blocks in document order (newest first)."""
    return [
        block
        for block in COMMIT_SPLIT_PATTERN.split(_journal_body(journal_text))
        if block.startswith("## [C")
    ]


def find_commit_block(journal_text: str, commit_id: str) -> str | None:
    wanted = commit_id.strip().upper()
    for block in split_commit_blocks(journal_text):
        if block[4:].split("]", 1)[0] == wanted:
            return block.strip()
    return None


def search_commit_blocks(journal_text: str, term: str, limit: int) -> list[str]:
    needle = term.lower()
    matches = [block for block in split_commit_blocks(journal_text) if needle in block.lower()]
    return [block.strip() for block in matches[:limit]]


def latest_commit(journal_text: str) -> tuple[str, str] | None:
    """Return ``(commit_id, title)`` of the newest commit, if any."""
    blocks = split_commit_blocks(journal_text)
    if not blocks:
        return None
    match = COMMIT_HEADER_PATTERN.match(blocks[0])
    if match is not None:
        return match.group("id"), match.group("title").strip()
    first_line = blocks[0].splitlines()[0]
    commit_id, _, rest = first_line[4:].partition("]")
    return commit_id, rest.strip()


def branch_header(journal_text: str) -> str | None:
    """Return everything above the first commit block, trimmed."""
    head, anchor, _ = journal_text.partition(JOURNAL_ANCHOR)
    if anchor:
        return (head + anchor).strip() or None
    match = COMMIT_SPLIT_PATTERN.search(journal_text)
    header = journal_text if match is None else journal_text[: match.start()]
    return header.strip() or None


def render_branch_header(
    branch: str,
    purpose: str,
    hypothesis: str,
    findings: str | None = None,
    conclusion: str | None = None,
) -> str:
    """Render a branch journal header followed by the journal anchor."""
    header = (
        f"# Branch: {branch}\n"
        "\n"
        "## Purpose\n"
        f"{purpose}\n"
        "\n"
        "## Hypothesis\n"
        f"{hypothesis}\n"
        "\n"
    )
    if findings:
        header += f"## Findings\n{findings}\n\n"
    header += f"{CONCLUSION_HEADING}\n{conclusion or CONCLUSION_PLACEHOLDER}\n\n"
    return header + "---\n\n" + JOURNAL_ANCHOR


def render_conclusion(outcome: str, conclusion: str) -> str:
    return f"{CONCLUSION_HEADING}\n**Outcome**: {outcome}\n{conclusion}"
