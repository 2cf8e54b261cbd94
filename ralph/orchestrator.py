"""Main Ralph loop: compose prompt, run agent, check for the completion token."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from ralph.config import (
    MissingCommandError,
    PromptNotFoundError,
    find_missing_commands,
)
from ralph.detect import detect_completion
from ralph.prompt_builder import build_effective_prompt
from ralph.runners import AgentRunner, get_runner
from ralph.runners.base import EXIT_NOT_FOUND, decode_output
from ralph.schemas import (
    ExitCode,
    IterationRecord,
    IterationStatus,
    LoopConfig,
    LoopResult,
    RunnerResult,
)
from ralph.state import StateStore

logger = logging.getLogger(__name__)


def _status_for(result: RunnerResult) -> IterationStatus:
    if not result.found or result.exit_code == EXIT_NOT_FOUND:
        return IterationStatus.AGENT_NOT_FOUND
    if result.exit_code != 0:
        return IterationStatus.FAILED
    return IterationStatus.OK


class Orchestrator:
    """Runs the agent repeatedly until it prints the completion token.

    Nothing is carried between iterations except the loop counter; every
    iteration rebuilds its prompt from disk.
    """

    def __init__(
        self,
        config: LoopConfig,
        runner: AgentRunner | None = None,
        relay_output: bool = True,
    ):
        """Initialize the orchestrator.

        Args:
            config: Resolved loop configuration
            runner: Agent runner to use (defaults to the registry entry)
            relay_output: Echo agent output to the terminal while capturing it
        """
        self.config = config
        self.runner = runner
        self.relay_output = relay_output
        self.store = StateStore(config.state_dir)

    def prepare(self) -> None:
        """Validate configuration and initialize the state directory.

        Raises:
            ConfigurationError: On unknown agent, missing command or prompt
        """
        if self.runner is None:
            self.runner = get_runner(self.config.agent)

        missing = find_missing_commands(self.config.required_commands)
        if missing:
            raise MissingCommandError(f"required command not found: {', '.join(missing)}")

        self.store.init()

        if not self.config.prompt_file.is_file():
            raise PromptNotFoundError(f"Base prompt not found: {self.config.prompt_file}")

        logger.info("Ralph starting")
        logger.info(f"  Agent:            {self.config.agent.value}")
        logger.info(f"  Project root:     {self.config.work_dir}")
        logger.info(f"  Base prompt:      {self.config.prompt_file}")
        logger.info(f"  State dir:        {self.config.state_dir}")
        logger.info(f"  Skills dir:       {self.config.skills_dir}")
        logger.info(f"  Max iterations:   {self.config.max_iterations}")
        logger.info(f"  Completion token: {self.config.completion_token}")

    def run(self) -> LoopResult:
        """Run the loop until completion or budget exhaustion.

        Returns:
            LoopResult with exit code, iteration count and message
        """
        self.prepare()

        max_iterations = self.config.max_iterations
        number = 1
        record: IterationRecord | None = None
        while True:
            if max_iterations and number > max_iterations:
                message = f"Reached max iterations ({max_iterations}) without completing."
                logger.error(message)
                return LoopResult(
                    exit_code=ExitCode.BUDGET_EXHAUSTED,
                    iterations=number - 1,
                    message=message,
                    last_record=record,
                )

            record, done = self.run_iteration(number)
            if done:
                message = (
                    f"Completion token detected: {self.config.completion_token}\n"
                    f"Ralph finished in {number} iteration(s)."
                )
                logger.info(f"Ralph finished in {number} iteration(s).")
                return LoopResult(
                    exit_code=ExitCode.COMPLETED,
                    iterations=number,
                    message=message,
                    last_record=record,
                )

            number += 1

    def run_iteration(self, number: int) -> tuple[IterationRecord, bool]:
        """Run one iteration.

        Args:
            number: Iteration number, starting at 1

        Returns:
            Tuple of (finished record, whether the completion token was seen)
        """
        record = self.store.begin_iteration(number)

        prompt_path = self.store.effective_prompt_path
        build_effective_prompt(
            agent=self.config.agent,
            base_prompt=self.config.prompt_file,
            state_dir=self.config.state_dir,
            skills_dir=self.config.skills_dir,
            out_path=prompt_path,
            completion_token=self.config.completion_token,
        )

        logger.info(f"== Iteration {number} ==")
        result = self._invoke(prompt_path, record)

        if result.exit_code != 0:
            logger.warning(f"runner exited with code {result.exit_code}")
            logger.warning("Continuing loop unless completion token is found.")

        record = self.store.end_iteration(record, _status_for(result))
        logger.info(f"Iteration {number} ended with status '{record.status.value}'")

        done = detect_completion(record.log_path, self.config.completion_token)
        return record, done

    def _invoke(self, prompt_path: Path, record: IterationRecord) -> RunnerResult:
        """Run the agent, copying its raw output to the iteration log as it arrives."""
        record.log_path.parent.mkdir(parents=True, exist_ok=True)

        with open(record.log_path, "wb") as log:

            def relay(chunk: bytes) -> None:
                log.write(chunk)
                log.flush()
                if self.relay_output:
                    click.echo(decode_output(chunk), nl=False)

            return self.runner.run(prompt_path, self.config.work_dir, relay)
