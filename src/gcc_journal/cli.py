"""Command line interface for the GCC journal with parity to MCP tools."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from pydantic import ValidationError

from .engine import JournalEngine
from .errors import ErrorCode, GCCError
from .models import (
    BranchRequest,
    CommitRequest,
    ContextRequest,
    InitRequest,
    MergeRequest,
    StatusRequest,
)

engine = JournalEngine()


def _csv_list(value: str) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _print_payload(payload: dict[str, Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2))
        return

    if payload.get("status") == "success" and payload.get("rendered"):
        print(payload["rendered"])
        return

    status = payload.get("status", "unknown").upper()
    message = payload.get("message", "")
    print(f"[{status}] {message}")

    if payload.get("status") == "error":
        error_code = payload.get("error_code", "")
        suggestion = payload.get("suggestion", "")
        if error_code:
            print(f"error_code: {error_code}")
        if suggestion:
            print(f"suggestion: {suggestion}")
        return

    for key in (
        "commit_id",
        "branch",
        "merge_commit_id",
        "active_branch",
        "last_commit_id",
        "last_commit_title",
        "journal",
        "log",
    ):
        if key in payload and payload[key] not in ("", None):
            print(f"{key}: {payload[key]}")

    if payload.get("open_branches"):
        print("open branches: " + ", ".join(payload["open_branches"]))

    if payload.get("migration_pending"):
        print("legacy layout pending migration: run `gcc-journal migrate`")

    if "branches" in payload:
        for branch in payload["branches"]:
            if isinstance(branch, dict):
                marker = "*" if branch.get("name") == payload.get("active_branch") else "-"
                print(f"{marker} {branch.get('name')} [{branch.get('status')}] created={branch.get('created')}")
            else:
                print(f"- {branch}")


def _error_payload(exc: Exception) -> dict[str, Any]:
    if isinstance(exc, GCCError):
        return exc.to_payload()
    if isinstance(exc, ValidationError):
        return {
            "status": "error",
            "error_code": ErrorCode.INVALID_INPUT.value,
            "message": "Input validation failed",
            "suggestion": "Check command arguments and constraints.",
            "details": {"errors": exc.errors(include_context=False, include_input=False)},
        }
    return {
        "status": "error",
        "error_code": ErrorCode.INTERNAL_ERROR.value,
        "message": str(exc),
        "suggestion": "Retry with --json for diagnostics and inspect .gcc/error.log.",
        "details": {},
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gcc-journal", description="GCC project journal CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def _add_common(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "-d",
            "--directory",
            default="",
            help="Project directory (default: GCC_PROJECT_DIR, CLAUDE_PROJECT_DIR or cwd)",
        )
        subparser.add_argument("--json", action="store_true", help="Output machine-readable JSON")

    init = subparsers.add_parser("init", help="Create the journal tree (migrating a legacy layout)")
    _add_common(init)

    commit = subparsers.add_parser("commit", help="Record a milestone on the active branch")
    commit.add_argument("-t", "--title", required=True, help="One-line milestone title")
    commit.add_argument("--what", required=True, help="What was done")
    commit.add_argument("--why", required=True, help="Why it was done")
    commit.add_argument("--files", required=True, help="Comma-separated changed file paths")
    commit.add_argument("--next", dest="next_step", required=True, help="Next planned step")
    _add_common(commit)

    branch = subparsers.add_parser("branch", help="Open an exploration branch from main")
    branch.add_argument("name", help="Kebab-case branch name")
    branch.add_argument("--purpose", required=True, help="What the exploration is for")
    branch.add_argument("--hypothesis", required=True, help="What you expect to find")
    _add_common(branch)

    merge = subparsers.add_parser("merge", help="Close the active branch and return to main")
    merge.add_argument("branch_name", help="The active exploration branch")
    merge.add_argument(
        "--outcome",
        choices=["success", "failure", "partial"],
        required=True,
        help="Exploration outcome",
    )
    merge.add_argument("--conclusion", required=True, help="What the exploration concluded")
    _add_common(merge)

    context = subparsers.add_parser("context", help="Show layered journal context")
    context.add_argument("-l", "--level", type=int, default=1, help="Detail level 1-5")
    context.add_argument("-b", "--branch", default="", help="Branch to read (default: active)")
    context.add_argument("--commit-id", default="", help="Commit to show at level 5")
    context.add_argument("--search", default="", help="Search commits at level 5")
    _add_common(context)

    status = subparsers.add_parser("status", help="Show journal status")
    _add_common(status)

    migrate = subparsers.add_parser("migrate", help="Upgrade a legacy flat layout")
    _add_common(migrate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    as_json = bool(getattr(args, "json", False))

    try:
        if args.command == "init":
            response = engine.initialize(InitRequest(directory=args.directory)).model_dump(mode="json")
        elif args.command == "commit":
            response = engine.commit(
                CommitRequest(
                    directory=args.directory,
                    title=args.title,
                    what=args.what,
                    why=args.why,
                    files_changed=_csv_list(args.files),
                    next_step=args.next_step,
                )
            ).model_dump(mode="json")
        elif args.command == "branch":
            response = engine.branch(
                BranchRequest(
                    directory=args.directory,
                    name=args.name,
                    purpose=args.purpose,
                    hypothesis=args.hypothesis,
                )
            ).model_dump(mode="json")
        elif args.command == "merge":
            response = engine.merge(
                MergeRequest(
                    directory=args.directory,
                    branch_name=args.branch_name,
                    outcome=args.outcome,
                    conclusion=args.conclusion,
                )
            ).model_dump(mode="json")
        elif args.command == "context":
            response = engine.get_context(
                ContextRequest(
                    directory=args.directory,
                    level=args.level,
                    branch=args.branch,
                    commit_id=args.commit_id,
                    search_term=args.search,
                )
            ).model_dump(mode="json")
        elif args.command == "migrate":
            response = engine.migrate(StatusRequest(directory=args.directory)).model_dump(mode="json")
        else:
            response = engine.get_status(StatusRequest(directory=args.directory)).model_dump(mode="json")

        _print_payload(response, as_json=as_json)
        return 0
    except Exception as exc:  # noqa: BLE001
        payload = _error_payload(exc)
        _print_payload(payload, as_json=as_json)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
