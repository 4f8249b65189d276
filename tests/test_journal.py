from __future__ import annotations

from gcc_journal.constants import JOURNAL_ANCHOR
from gcc_journal.journal import (
    CommitRecord,
    branch_header,
    find_commit_block,
    latest_commit,
    next_commit_id,
    render_branch_header,
    search_commit_blocks,
    split_commit_blocks,
)


def _record(commit_id: str, title: str, branch: str = "main") -> CommitRecord:
    return CommitRecord(
        commit_id=commit_id,
        timestamp="2026-03-14 09:26",
        branch=branch,
        title=title,
        what=f"did {title}",
        why="because",
        files=("a.py", "b.py"),
        next_step="more",
    )


def _journal(*records: CommitRecord) -> str:
    return JOURNAL_ANCHOR + "".join(record.render() for record in records)


def test_next_commit_id_starts_at_c001() -> None:
    assert next_commit_id("") == "C001"
    assert next_commit_id(JOURNAL_ANCHOR) == "C001"


def test_next_commit_id_uses_newest_marker() -> None:
    journal = _journal(_record("C009", "nine"), _record("C008", "eight"))

    assert next_commit_id(journal) == "C010"


def test_next_commit_id_widens_past_999() -> None:
    assert next_commit_id(_journal(_record("C999", "last"))) == "C1000"


def test_commit_record_render_format() -> None:
    assert _record("C001", "wire redis", branch="explore-cache").render() == (
        "## [C001] 2026-03-14 09:26 | branch:explore-cache | wire redis\n"
        "**What**: did wire redis\n"
        "**Why**: because\n"
        "**Files**: a.py, b.py\n"
        "**Next**: more\n"
        "\n"
        "---\n"
        "\n"
    )


def test_split_and_find_commit_blocks() -> None:
    journal = _journal(_record("C010", "ten"), _record("C001", "one"))

    blocks = split_commit_blocks(journal)

    assert [block.split("]")[0] for block in blocks] == ["## [C010", "## [C001"]
    assert find_commit_block(journal, "c001").startswith("## [C001]")
    assert find_commit_block(journal, "C01") is None


def test_search_commit_blocks_is_case_insensitive_and_capped() -> None:
    journal = _journal(*[_record(f"C00{index}", f"Cache step {index}") for index in range(7, 0, -1)])

    matches = search_commit_blocks(journal, "CACHE", limit=5)

    assert len(matches) == 5
    assert matches[0].startswith("## [C007]")
    assert search_commit_blocks(journal, "nothing-like-this", limit=5) == []


def test_latest_commit_and_header() -> None:
    header = render_branch_header("explore-cache", "test redis", "faster reads")
    journal = header + _record("C002", "second").render() + _record("C001", "first").render()

    assert latest_commit(journal) == ("C002", "second")
    assert latest_commit(header) is None
    assert branch_header(journal).startswith("# Branch: explore-cache")
    assert branch_header(journal).endswith("# Milestone Journal")
    assert branch_header("") is None


def test_render_branch_header_carries_findings() -> None:
    header = render_branch_header("old", "p", "h", findings="f1", conclusion="done")

    assert "## Findings\nf1\n\n## Conclusion\ndone\n\n---\n\n# Milestone Journal\n\n" in header


def test_header_text_is_not_read_as_commits() -> None:
    header = render_branch_header("explore-redo", "redo ## [C041] from main", "## [C050] was wrong")
    journal = header + _record("C001", "first", branch="explore-redo").render()

    assert next_commit_id(header) == "C001"
    assert next_commit_id(journal) == "C002"
    assert [block.split("]")[0] for block in split_commit_blocks(journal)] == ["## [C001"]
    assert latest_commit(journal) == ("C001", "first")
    assert "## [C050] was wrong" in branch_header(journal)
