"""Domain-specific error types for GCC journal operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Supported error codes exposed by GCC journal tools."""

    GCC_NOT_FOUND = "GCC_NOT_FOUND"
    BRANCH_EXISTS = "BRANCH_EXISTS"
    BRANCH_NOT_FOUND = "BRANCH_NOT_FOUND"
    INVALID_BRANCH_NAME = "INVALID_BRANCH_NAME"
    WRONG_ACTIVE_BRANCH = "WRONG_ACTIVE_BRANCH"
    INVALID_DIRECTORY = "INVALID_DIRECTORY"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    STORAGE_ERROR = "STORAGE_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_LEVEL = "INVALID_LEVEL"
    MIGRATION_FAILED = "MIGRATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class GCCError(Exception):
    """Structured exception carrying a stable error contract."""

    code: ErrorCode
    message: str
    suggestion: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": "error",
            "error_code": self.code.value,
            "message": self.message,
            "suggestion": self.suggestion or "",
            "details": self.details,
        }
