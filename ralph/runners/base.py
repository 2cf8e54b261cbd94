"""Agent runner interface: invoke one CLI non-interactively and stream its output."""

from __future__ import annotations

import errno
import logging
import shlex
import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

from ralph.schemas import AgentName, RunnerResult

logger = logging.getLogger(__name__)

# Shell conventions for "not found" and "found but not executable"
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126

OutputSink = Callable[[bytes], None]


def _discard(chunk: bytes) -> None:
    pass


def decode_output(data: bytes) -> str:
    """Decode captured agent output for display and detection."""
    return data.decode("utf-8", errors="replace")


class AgentRunner:
    """Base class for agent adapters.

    Subclasses set ``name``, ``binary`` and ``args``. The prompt file is fed
    to the process on stdin; stderr is merged into stdout so the captured
    output holds everything the agent printed.
    """

    name: AgentName
    binary: str
    args: tuple[str, ...] = ()
    install_hint: str = ""

    def build_command(self, executable: str) -> list[str]:
        """Build the argv for one non-interactive invocation."""
        return [executable, *self.args]

    def describe(self) -> str:
        """Human-readable command line, as run with the prompt on stdin."""
        return shlex.join([self.binary, *self.args]) + " < <prompt>"

    def resolve(self) -> str | None:
        """Locate the agent binary on PATH."""
        return shutil.which(self.binary)

    def is_available(self) -> bool:
        return self.resolve() is not None

    def run(
        self,
        prompt_file: Path,
        work_dir: Path,
        sink: OutputSink | None = None,
    ) -> RunnerResult:
        """Invoke the agent against a prompt file and capture its output.

        Output is read as raw bytes and handed to ``sink`` unchanged, one
        line at a time, so callers can keep a byte-exact copy.

        Args:
            prompt_file: Effective prompt, supplied on stdin
            work_dir: Working directory for the agent process
            sink: Called with each chunk of raw output as it arrives

        Returns:
            RunnerResult with the decoded output and exit code. A missing
            binary gives exit code 127 and ``found=False``; a binary the OS
            refuses to start gives 126 (127 if it vanished). Nothing is raised
            for agent failures.
        """
        sink = sink or _discard
        chunks: list[bytes] = []

        def emit(chunk: bytes) -> None:
            chunks.append(chunk)
            sink(chunk)

        executable = self.resolve()
        if executable is None:
            logger.warning(f"{self.binary} not found on PATH")
            emit(f"ERROR: {self.binary} not found on PATH\n".encode())
            if self.install_hint:
                emit(f"{self.install_hint}\n".encode())
            return RunnerResult(
                agent=self.name,
                command_executed=self.describe(),
                exit_code=EXIT_NOT_FOUND,
                output=decode_output(b"".join(chunks)),
                found=False,
            )

        command = self.build_command(executable)
        logger.info(f"Executing agent: {shlex.join(command)} (cwd: {work_dir})")

        with open(prompt_file, "rb") as stdin:
            try:
                process = subprocess.Popen(
                    command,
                    stdin=stdin,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    cwd=str(work_dir),
                )
            except OSError as e:
                exit_code = EXIT_NOT_FOUND if e.errno == errno.ENOENT else EXIT_NOT_EXECUTABLE
                logger.warning(f"Agent could not be executed: {e}")
                emit(f"ERROR: {self.binary} could not be executed: {e}\n".encode())
                return RunnerResult(
                    agent=self.name,
                    command_executed=shlex.join(command),
                    exit_code=exit_code,
                    output=decode_output(b"".join(chunks)),
                )

            with process.stdout:
                for line in process.stdout:
                    emit(line)
            exit_code = process.wait()

        return RunnerResult(
            agent=self.name,
            command_executed=shlex.join(command),
            exit_code=exit_code,
            output=decode_output(b"".join(chunks)),
        )
