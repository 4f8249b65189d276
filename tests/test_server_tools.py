from __future__ import annotations

from pathlib import Path

import pytest

pytest.importorskip("mcp")

from gcc_journal import server


def test_server_tool_flow(tmp_path: Path) -> None:
    directory = str(tmp_path)

    branch_response = server.gcc_branch(
        name="explore-cache",
        purpose="test redis",
        hypothesis="faster reads",
        directory=directory,
    )
    assert branch_response["status"] == "success"
    assert branch_response["branch"] == "explore-cache"
    assert len(branch_response["correlation_id"]) == 12

    commit_response = server.gcc_commit(
        title="wire redis",
        what="added client",
        why="latency",
        files_changed=["cache.py"],
        next_step="measure",
        directory=directory,
    )
    assert commit_response["status"] == "success"
    assert commit_response["commit_id"] == "C001"
    assert commit_response["branch"] == "explore-cache"

    status_response = server.gcc_status(directory=directory)
    assert status_response["active_branch"] == "explore-cache"
    assert status_response["open_branches"] == ["explore-cache"]

    merge_response = server.gcc_merge(
        branch_name="explore-cache",
        outcome="partial",
        conclusion="helps only hot keys",
        directory=directory,
    )
    assert merge_response["status"] == "success"
    assert merge_response["active_branch"] == "main"
    assert merge_response["outcome"] == "partial"

    context_response = server.gcc_context(level=5, search_term="HOT KEYS", directory=directory)
    assert context_response["status"] == "success"
    assert '## Search: "HOT KEYS"' in context_response["rendered"]


def test_server_tool_rejects_unknown_outcome(tmp_path: Path) -> None:
    response = server.gcc_merge(
        branch_name="explore-cache",
        outcome="maybe",
        conclusion="unclear",
        directory=str(tmp_path),
    )

    assert response["status"] == "error"
    assert response["error_code"] == "INVALID_INPUT"
    assert response["details"]["errors"]
    assert "correlation_id" in response


def test_server_tool_reports_invalid_level(tmp_path: Path) -> None:
    response = server.gcc_context(level=0, directory=str(tmp_path))

    assert response["status"] == "error"
    assert response["error_code"] == "INVALID_LEVEL"
    assert not (tmp_path / ".gcc").exists()


def test_server_tool_reports_wrong_active_branch(tmp_path: Path) -> None:
    directory = str(tmp_path)
    server.gcc_branch(name="first-idea", purpose="p", hypothesis="h", directory=directory)

    response = server.gcc_branch(name="second-idea", purpose="p", hypothesis="h", directory=directory)

    assert response["error_code"] == "WRONG_ACTIVE_BRANCH"
    assert response["suggestion"]


def test_unexpected_exception_becomes_internal_error(caplog: pytest.LogCaptureFixture) -> None:
    def _explode() -> dict:
        raise RuntimeError("boom")

    response = server._run_tool("gcc_status", operation=_explode)

    assert response["error_code"] == "INTERNAL_ERROR"
    assert response["message"] == "boom"
    assert "Unhandled server exception" in caplog.text
