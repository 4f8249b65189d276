"""Pydantic models for GCC journal tool inputs and outputs."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class MergeOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"


def _require_text(value: str, field_name: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field_name} must not be blank")
    return stripped


class InitRequest(BaseModel):
    directory: str = ""


class CommitRequest(BaseModel):
    directory: str = ""
    title: str = Field(..., min_length=1, max_length=200)
    what: str = Field(..., min_length=1)
    why: str = Field(..., min_length=1)
    files_changed: list[str] = Field(..., min_length=1)
    next_step: str = Field(..., min_length=1)

    @field_validator("title", "what", "why", "next_step")
    @classmethod
    def _text_not_blank(cls, value: str, info: Any) -> str:
        return _require_text(value, info.field_name)

    @field_validator("title")
    @classmethod
    def _title_single_line(cls, value: str) -> str:
        if "\n" in value or "\r" in value:
            raise ValueError("title must be a single line")
        return value

    @field_validator("files_changed")
    @classmethod
    def _files_not_blank(cls, value: list[str]) -> list[str]:
        files = [item.strip() for item in value if item.strip()]
        if not files:
            raise ValueError("files_changed must list at least one file")
        return files


class BranchRequest(BaseModel):
    directory: str = ""
    name: str = Field(..., min_length=1, max_length=50)
    purpose: str = Field(..., min_length=1, max_length=500)
    hypothesis: str = Field(..., min_length=1, max_length=500)

    @field_validator("name", "purpose", "hypothesis")
    @classmethod
    def _text_not_blank(cls, value: str, info: Any) -> str:
        return _require_text(value, info.field_name)


class MergeRequest(BaseModel):
    directory: str = ""
    branch_name: str = Field(..., min_length=1, max_length=50)
    outcome: MergeOutcome
    conclusion: str = Field(..., min_length=1)

    @field_validator("branch_name", "conclusion")
    @classmethod
    def _text_not_blank(cls, value: str, info: Any) -> str:
        return _require_text(value, info.field_name)


class ContextRequest(BaseModel):
    directory: str = ""
    level: int = 1
    branch: str = ""
    commit_id: str = ""
    search_term: str = ""


class StatusRequest(BaseModel):
    directory: str = ""


class BaseToolResponse(BaseModel):
    status: Literal["success", "error"]
    message: str = ""
    error_code: str = ""
    suggestion: str = ""
    details: dict[str, Any] = Field(default_factory=dict)


class InitResponse(BaseToolResponse):
    context_root: str = ""
    structure_ready: bool = False
    migrated: bool = False


class CommitResponse(BaseToolResponse):
    commit_id: str = ""
    branch: str = ""
    timestamp: str = ""


class BranchResponse(BaseToolResponse):
    branch: str = ""
    branch_path: str = ""


class MergeResponse(BaseToolResponse):
    merge_commit_id: str = ""
    merged_branch: str = ""
    outcome: MergeOutcome | None = None
    active_branch: str = ""


class ContextResponse(BaseToolResponse):
    level: int = 0
    branch: str = ""
    active_branch: str = ""
    rendered: str = ""


class BranchHistoryEntry(BaseModel):
    name: str
    status: str
    created: str


class StatusResponse(BaseToolResponse):
    active_branch: str = ""
    open_branches: list[str] = Field(default_factory=list)
    branches: list[BranchHistoryEntry] = Field(default_factory=list)
    last_commit_id: str = ""
    last_commit_title: str = ""
    migration_pending: bool = False


class MigrateResponse(BaseToolResponse):
    migrated: bool = False
    journal: str = ""
    log: str = ""
    branches: list[str] = Field(default_factory=list)
    backups: list[str] = Field(default_factory=list)
