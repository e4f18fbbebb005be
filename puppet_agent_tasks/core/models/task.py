"""
TaskResult — the response contract of a task invocation.

A task never lets an exception escape to the orchestrator: failures are
captured in the result with ``status="failure"`` and an ``_error`` object.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class TaskResult(BaseModel):
    """Outcome of one task run against one target."""

    task: str
    target: str = "localhost"
    status: Literal["success", "failure"] = "success"
    result: dict[str, Any] = Field(default_factory=dict)

    started_at: str = Field(default_factory=now_iso)
    ended_at: str = Field(default_factory=now_iso)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def output(self) -> str | None:
        return self.result.get("_output")

    @property
    def error(self) -> dict[str, Any] | None:
        return self.result.get("_error")

    @classmethod
    def success(cls, task: str, result: dict[str, Any] | None = None, **kwargs: Any) -> TaskResult:
        """Create a success result."""
        return cls(task=task, status="success", result=result or {}, **kwargs)

    @classmethod
    def failure(
        cls,
        task: str,
        msg: str,
        kind: str = "puppet_agent/error",
        details: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> TaskResult:
        """Create a failure result carrying an ``_error`` object."""
        error = {"msg": msg, "kind": kind, "details": details or {}}
        return cls(task=task, status="failure", result={"_error": error}, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Orchestrator view: status plus the task's own result object."""
        return {"target": self.target, "status": self.status, "result": self.result}
