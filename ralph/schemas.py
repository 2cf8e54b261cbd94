"""Pydantic schemas for the Ralph loop: configuration, iterations, results."""

from __future__ import annotations

from enum import Enum, IntEnum
from pathlib import Path

from pydantic import BaseModel, Field


class AgentName(str, Enum):
    """Supported agent identities."""

    AMP = "amp"
    CLAUDE = "claude"
    OPENCODE = "opencode"
    CODEX = "codex"


class IterationStatus(str, Enum):
    """Status marker written for each iteration."""

    RUNNING = "running"
    OK = "ok"
    FAILED = "failed"
    AGENT_NOT_FOUND = "agent_not_found"


class ExitCode(IntEnum):
    """Process exit codes for ``ralph run``."""

    COMPLETED = 0
    BUDGET_EXHAUSTED = 1
    CONFIG_ERROR = 2
    STATE_ERROR = 3


# --- Configuration ---


class LoopConfig(BaseModel):
    """Resolved configuration for one orchestrator run."""

    agent: AgentName = AgentName.AMP
    prompt_file: Path
    work_dir: Path
    state_dir: Path
    skills_dir: Path
    max_iterations: int = Field(
        default=0,
        ge=0,
        description="Stop after this many iterations (0 = unbounded)",
    )
    completion_token: str = Field(
        default="<RALPH_DONE/>",
        min_length=1,
        description="Exact string that marks all work as done",
    )
    required_commands: list[str] = Field(
        default_factory=lambda: ["git"],
        description="External commands that must be on PATH at startup",
    )


# --- Runner / Iteration Results ---


class RunnerResult(BaseModel):
    """Result from one agent invocation."""

    agent: AgentName
    command_executed: str
    exit_code: int
    output: str = ""
    found: bool = True


class IterationRecord(BaseModel):
    """One attempted iteration of the loop."""

    number: int = Field(..., ge=1)
    started_at: str
    ended_at: str | None = None
    status: IterationStatus = IterationStatus.RUNNING
    log_path: Path


class LoopResult(BaseModel):
    """Outcome of a full orchestrator run."""

    exit_code: ExitCode
    iterations: int = Field(..., ge=0)
    message: str
    last_record: IterationRecord | None = None


# --- State Inspection ---


class StateSnapshot(BaseModel):
    """Markers read back from a state directory."""

    state_dir: Path
    iteration: int | None = None
    last_start_utc: str | None = None
    last_end_utc: str | None = None
    run_statuses: dict[int, str] = Field(default_factory=dict)
    has_context: bool = False
