"""Filesystem-backed state directory for the Ralph loop."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from ralph.schemas import IterationRecord, IterationStatus, StateSnapshot

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

CONTEXT_PLACEHOLDER = """# Repo context (optional)

Add anything here that should be included in every iteration.
Examples:
- target branch / constraints
- high-level goal
- links to PRD / issue
"""


def utc_timestamp() -> str:
    """Current UTC time in ISO-8601 form with a ``Z`` suffix."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


class StateStore:
    """Persistent context plus per-iteration markers and logs.

    Markers are whole-file overwrites meant for humans; nothing here is used
    to resume a crashed run.
    """

    def __init__(self, state_dir: Path | str):
        """Initialize the store.

        Args:
            state_dir: Directory holding context, markers and run logs
        """
        self.state_dir = Path(state_dir)

    @property
    def context_path(self) -> Path:
        return self.state_dir / "context.md"

    @property
    def effective_prompt_path(self) -> Path:
        return self.state_dir / "effective_prompt.md"

    @property
    def runs_dir(self) -> Path:
        return self.state_dir / "runs"

    def log_path(self, number: int) -> Path:
        return self.runs_dir / f"{number}.log"

    def status_path(self, number: int) -> Path:
        return self.runs_dir / f"{number}.status"

    def init(self) -> None:
        """Create the state and runs directories and seed the context file.

        Safe to call repeatedly; an existing context file is never touched.
        """
        self.runs_dir.mkdir(parents=True, exist_ok=True)

        if not self.context_path.exists():
            self.context_path.write_text(CONTEXT_PLACEHOLDER, encoding="utf-8")
            logger.info(f"Created context file: {self.context_path}")

    def begin_iteration(self, number: int) -> IterationRecord:
        """Write the iteration number and start timestamp markers.

        Args:
            number: Iteration number, starting at 1

        Returns:
            IterationRecord in running state
        """
        started_at = utc_timestamp()
        self._write_marker("iteration.txt", str(number))
        self._write_marker("last_start_utc.txt", started_at)

        return IterationRecord(
            number=number,
            started_at=started_at,
            log_path=self.log_path(number),
        )

    def end_iteration(
        self,
        record: IterationRecord,
        status: IterationStatus,
    ) -> IterationRecord:
        """Write the end timestamp and the per-iteration status marker.

        Args:
            record: Record returned by begin_iteration
            status: Final status of the iteration

        Returns:
            Copy of the record with end time and status filled in
        """
        ended_at = utc_timestamp()
        self._write_marker("last_end_utc.txt", ended_at)

        self.runs_dir.mkdir(parents=True, exist_ok=True)
        self.status_path(record.number).write_text(f"{status.value}\n", encoding="utf-8")

        return record.model_copy(update={"ended_at": ended_at, "status": status})

    def snapshot(self) -> StateSnapshot:
        """Read the markers back for inspection."""
        iteration = self._read_marker("iteration.txt")

        run_statuses: dict[int, str] = {}
        if self.runs_dir.is_dir():
            for path in self.runs_dir.glob("*.status"):
                if path.stem.isdigit():
                    run_statuses[int(path.stem)] = path.read_text(encoding="utf-8").strip()

        return StateSnapshot(
            state_dir=self.state_dir,
            iteration=int(iteration) if iteration and iteration.isdigit() else None,
            last_start_utc=self._read_marker("last_start_utc.txt"),
            last_end_utc=self._read_marker("last_end_utc.txt"),
            run_statuses=dict(sorted(run_statuses.items())),
            has_context=self.context_path.is_file(),
        )

    def _write_marker(self, name: str, value: str) -> None:
        path = self.state_dir / name
        path.write_text(f"{value}\n", encoding="utf-8")
        logger.debug(f"Wrote marker {name}={value}")

    def _read_marker(self, name: str) -> str | None:
        path = self.state_dir / name
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8").strip() or None
