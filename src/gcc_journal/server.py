"""MCP server entrypoint and tool definitions for the GCC journal."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
import uuid
from typing import Annotated, Any, Callable

from mcp.server.fastmcp import FastMCP
from pydantic import Field, ValidationError

from .engine import JournalEngine
from .errors import ErrorCode, GCCError
from .models import (
    BranchRequest,
    CommitRequest,
    ContextRequest,
    MergeRequest,
    StatusRequest,
)
from .runtime import get_runtime_server_defaults, validate_streamable_http_binding

logger = logging.getLogger(__name__)

DIRECTORY_DESCRIPTION = (
    "Project directory holding .gcc/ (defaults to GCC_PROJECT_DIR, CLAUDE_PROJECT_DIR "
    "or the server's working directory)"
)


def _build_fastmcp() -> FastMCP:
    """Instantiate FastMCP with compatibility fallbacks for older SDK versions."""
    kwargs: dict[str, Any] = {
        "name": "gcc-journal",
        "instructions": (
            "Keep a git-like project journal. Use gcc_commit to record milestones, "
            "gcc_branch to open an exploration branch from main, gcc_merge to close it "
            "with an outcome, gcc_context to read layered context (levels 1-5) and "
            "gcc_status for a quick overview."
        ),
        "json_response": True,
    }
    optional_keys = ("json_response",)

    while True:
        try:
            return FastMCP(**kwargs)
        except TypeError as exc:
            message = str(exc).lower()
            if "unexpected keyword argument" not in message:
                raise

            removed_key = next((key for key in optional_keys if key in message and key in kwargs), None)
            if removed_key is None:
                raise
            kwargs.pop(removed_key, None)
            logger.debug(
                "FastMCP constructor does not support '%s'; using compatibility fallback.",
                removed_key,
            )


mcp = _build_fastmcp()

engine = JournalEngine()

READ_ONLY_TOOL_ANNOTATIONS = {
    "readOnlyHint": True,
    "idempotentHint": True,
    "destructiveHint": False,
    "openWorldHint": False,
}

WRITE_TOOL_ANNOTATIONS = {
    "readOnlyHint": False,
    "idempotentHint": False,
    "destructiveHint": False,
    "openWorldHint": False,
}


def _register_tool(annotations: dict[str, bool]):
    """Register tool with annotations, falling back when the SDK lacks them."""

    def decorator(func):
        try:
            return mcp.tool(annotations=annotations)(func)
        except TypeError as exc:
            message = str(exc).lower()
            if "annotations" not in message and "unexpected keyword argument" not in message:
                raise
            logger.debug("FastMCP tool annotations not supported in this SDK version; using fallback.")
            return mcp.tool()(func)

    return decorator


def _error_payload_from_exception(exc: Exception) -> dict[str, Any]:
    """Convert internal exceptions into stable MCP error payloads."""
    if isinstance(exc, GCCError):
        return exc.to_payload()
    if isinstance(exc, ValidationError):
        return {
            "status": "error",
            "error_code": ErrorCode.INVALID_INPUT.value,
            "message": "Input validation failed",
            "suggestion": "Check field constraints and request schema.",
            "details": {"errors": exc.errors(include_context=False, include_input=False)},
        }
    logger.exception("Unhandled server exception", exc_info=exc)
    return {
        "status": "error",
        "error_code": ErrorCode.INTERNAL_ERROR.value,
        "message": str(exc),
        "suggestion": "Check .gcc/error.log and server logs, then retry the operation.",
        "details": {},
    }


def _build_correlation_id() -> str:
    """Generate short operation correlation IDs for diagnostics."""
    return uuid.uuid4().hex[:12]


def _log_tool_phase(
    *,
    correlation_id: str,
    tool_name: str,
    phase: str,
    status: str,
    elapsed_seconds: float,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit structured phase-level diagnostics for tool execution."""
    payload: dict[str, Any] = {
        "event_type": "mcp_tool_phase",
        "correlation_id": correlation_id,
        "tool_name": tool_name,
        "phase": phase,
        "status": status,
        "elapsed_ms": round(elapsed_seconds * 1000, 3),
    }
    if details:
        payload["details"] = details
    logger.info("mcp_tool_phase %s", json.dumps(payload, ensure_ascii=True, sort_keys=True))


def _run_tool(tool_name: str, operation: Callable[[], dict[str, Any]]) -> dict[str, Any]:
    """Execute a tool operation; every failure becomes an error payload."""
    total_start = time.perf_counter()
    correlation_id = _build_correlation_id()

    operation_start = time.perf_counter()
    try:
        response_payload = dict(operation())
        _log_tool_phase(
            correlation_id=correlation_id,
            tool_name=tool_name,
            phase="operation_execution",
            status="ok",
            elapsed_seconds=time.perf_counter() - operation_start,
        )
        serialization_start = time.perf_counter()
        json.dumps(response_payload, ensure_ascii=True, sort_keys=True)
        _log_tool_phase(
            correlation_id=correlation_id,
            tool_name=tool_name,
            phase="serialization",
            status="ok",
            elapsed_seconds=time.perf_counter() - serialization_start,
        )
        response_payload["correlation_id"] = correlation_id
        _log_tool_phase(
            correlation_id=correlation_id,
            tool_name=tool_name,
            phase="total",
            status="ok",
            elapsed_seconds=time.perf_counter() - total_start,
        )
        return response_payload
    except Exception as exc:  # noqa: BLE001
        phase = "validation" if isinstance(exc, ValidationError) else "operation_execution"
        _log_tool_phase(
            correlation_id=correlation_id,
            tool_name=tool_name,
            phase=phase,
            status="error",
            elapsed_seconds=time.perf_counter() - operation_start,
            details={"exception": exc.__class__.__name__},
        )
        error_payload = _error_payload_from_exception(exc)
        error_payload["correlation_id"] = correlation_id
        _log_tool_phase(
            correlation_id=correlation_id,
            tool_name=tool_name,
            phase="total",
            status="error",
            elapsed_seconds=time.perf_counter() - total_start,
            details={"error_code": error_payload.get("error_code")},
        )
        return error_payload


@_register_tool(WRITE_TOOL_ANNOTATIONS)
def gcc_commit(
    title: Annotated[str, Field(description="One-line milestone title")],
    what: Annotated[str, Field(description="What was done")],
    why: Annotated[str, Field(description="Why it was done")],
    files_changed: Annotated[
        list[str],
        Field(description="Files touched by this milestone (list[str]). Example: ['src/cache.py']."),
    ],
    next_step: Annotated[str, Field(description="The next planned step")],
    directory: Annotated[str, Field(description=DIRECTORY_DESCRIPTION)] = "",
) -> dict[str, Any]:
    """Record a milestone at the top of the active branch's journal."""

    def _operation() -> dict[str, Any]:
        request = CommitRequest(
            directory=directory,
            title=title,
            what=what,
            why=why,
            files_changed=files_changed,
            next_step=next_step,
        )
        return engine.commit(request).model_dump(mode="json")

    return _run_tool("gcc_commit", operation=_operation)


@_register_tool(WRITE_TOOL_ANNOTATIONS)
def gcc_branch(
    name: Annotated[
        str,
        Field(description="Kebab-case branch name, e.g. explore-caching"),
    ],
    purpose: Annotated[str, Field(description="What the exploration is for")],
    hypothesis: Annotated[str, Field(description="What you expect to find")],
    directory: Annotated[str, Field(description=DIRECTORY_DESCRIPTION)] = "",
) -> dict[str, Any]:
    """Open an exploration branch from main and make it active."""

    def _operation() -> dict[str, Any]:
        request = BranchRequest(
            directory=directory,
            name=name,
            purpose=purpose,
            hypothesis=hypothesis,
        )
        return engine.branch(request).model_dump(mode="json")

    return _run_tool("gcc_branch", operation=_operation)


@_register_tool(WRITE_TOOL_ANNOTATIONS)
def gcc_merge(
    branch_name: Annotated[str, Field(description="The active exploration branch to close")],
    outcome: Annotated[str, Field(description="Exploration outcome: success, failure, or partial")],
    conclusion: Annotated[str, Field(description="What the exploration concluded")],
    directory: Annotated[str, Field(description=DIRECTORY_DESCRIPTION)] = "",
) -> dict[str, Any]:
    """Close the active branch, record its outcome and return to main."""

    def _operation() -> dict[str, Any]:
        request = MergeRequest(
            directory=directory,
            branch_name=branch_name,
            outcome=outcome,
            conclusion=conclusion,
        )
        return engine.merge(request).model_dump(mode="json")

    return _run_tool("gcc_merge", operation=_operation)


@_register_tool(READ_ONLY_TOOL_ANNOTATIONS)
def gcc_context(
    level: Annotated[
        int,
        Field(
            description=(
                "1 summary, 2 recent commits, 3 branch header, 4 extended history, "
                "5 commit lookup and search"
            )
        ),
    ] = 1,
    branch: Annotated[str, Field(description="Branch to read (defaults to the active one)")] = "",
    commit_id: Annotated[str, Field(description="Commit to show at level 5, e.g. C003")] = "",
    search_term: Annotated[
        str,
        Field(description="Case-insensitive text to search commits for at level 5"),
    ] = "",
    directory: Annotated[str, Field(description=DIRECTORY_DESCRIPTION)] = "",
) -> dict[str, Any]:
    """Read layered journal context."""

    def _operation() -> dict[str, Any]:
        request = ContextRequest(
            directory=directory,
            level=level,
            branch=branch,
            commit_id=commit_id,
            search_term=search_term,
        )
        return engine.get_context(request).model_dump(mode="json")

    return _run_tool("gcc_context", operation=_operation)


@_register_tool(READ_ONLY_TOOL_ANNOTATIONS)
def gcc_status(
    directory: Annotated[str, Field(description=DIRECTORY_DESCRIPTION)] = "",
) -> dict[str, Any]:
    """Get a quick status summary of the journal."""

    def _operation() -> dict[str, Any]:
        return engine.get_status(StatusRequest(directory=directory)).model_dump(mode="json")

    return _run_tool("gcc_status", operation=_operation)


def main() -> None:
    """Run the GCC journal MCP server in stdio or streamable HTTP mode."""
    parser = argparse.ArgumentParser(description="GCC journal MCP server")
    try:
        defaults = get_runtime_server_defaults()
    except ValueError as exc:
        parser.error(str(exc))
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        default=defaults.transport,
        help="Server transport mode (default: stdio).",
    )
    parser.add_argument("--host", default=defaults.host, help="Host for streamable HTTP transport.")
    parser.add_argument(
        "--port",
        type=int,
        default=defaults.port,
        help="Port for streamable HTTP transport.",
    )
    parser.add_argument(
        "--allow-public-http",
        action=argparse.BooleanOptionalAction,
        default=defaults.allow_public_http,
        help=(
            "Allow non-loopback streamable-http host binding. "
            "Required for 0.0.0.0 or other public interface hosts."
        ),
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=defaults.log_level,
        help="Log level for server diagnostics on stderr.",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate runtime settings and exit without starting server transport.",
    )
    parser.add_argument(
        "--print-effective-config",
        action="store_true",
        help="Print effective runtime configuration and exit.",
    )
    args = parser.parse_args()

    try:
        validate_streamable_http_binding(
            transport=args.transport,
            host=args.host,
            allow_public_http=args.allow_public_http,
        )
    except ValueError as exc:
        parser.error(str(exc))
    if not 1 <= args.port <= 65535:
        parser.error("--port must be between 1 and 65535.")

    logging.basicConfig(level=args.log_level, stream=sys.stderr)
    mcp.settings.host = args.host
    mcp.settings.port = args.port

    if args.print_effective_config:
        print(
            json.dumps(
                {
                    "transport": args.transport,
                    "host": args.host,
                    "port": args.port,
                    "allow_public_http": args.allow_public_http,
                    "log_level": args.log_level,
                },
                indent=2,
                sort_keys=True,
            )
        )

    if args.check_config or args.print_effective_config:
        if not args.print_effective_config:
            print("Configuration is valid.")
        return

    if args.transport == "stdio":
        mcp.run()
        return

    mcp.run(transport="streamable-http")


if __name__ == "__main__":
    main()
