"""CLI for Ralph - an agent-agnostic autonomous coding loop."""

from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError

from ralph import __version__
from ralph.config import (
    BUNDLED_PROMPT,
    BUNDLED_SKILLS_DIR,
    DEFAULT_AGENT,
    DEFAULT_COMPLETION_TOKEN,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_REQUIRED_COMMANDS,
    DEFAULT_STATE_DIR,
    ENV_AGENT,
    ENV_COMPLETION_TOKEN,
    ENV_MAX_ITERATIONS,
    ENV_PROJECT_ROOT,
    ENV_PROMPT_FILE,
    ENV_SKILLS_DIR,
    ENV_STATE_DIR,
    ConfigurationError,
    resolve_path,
    resolve_prompt_file,
)
from ralph.orchestrator import Orchestrator
from ralph.runners import RUNNERS
from ralph.schemas import AgentName, ExitCode, LoopConfig
from ralph.state import StateStore

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

AGENT_CHOICES = [agent.value for agent in AgentName]


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def _fail(message: str, code: ExitCode) -> NoReturn:
    click.echo(f"ERROR: {message}", err=True)
    sys.exit(int(code))


work_dir_option = click.option(
    "--work-dir", "-w",
    envvar=ENV_PROJECT_ROOT,
    default=".",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, resolve_path=True),
    help="Project root directory (default: current directory)",
)

state_dir_option = click.option(
    "--state-dir", "-s",
    envvar=ENV_STATE_DIR,
    default=DEFAULT_STATE_DIR,
    show_default=True,
    help="State directory, relative to the project root",
)


@click.group()
@click.version_option(version=__version__, prog_name="ralph")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only log warnings and errors")
def main(verbose: bool, quiet: bool) -> None:
    """Ralph - run a coding agent in a loop until it reports completion.

    Each iteration composes a prompt from your base prompt, the persistent
    context file and the skills tree, then runs the agent CLI on it.
    """
    _configure_logging(verbose, quiet)


@main.command()
@click.option(
    "--agent", "-a",
    envvar=ENV_AGENT,
    type=click.Choice(AGENT_CHOICES),
    default=DEFAULT_AGENT,
    show_default=True,
    help="Agent runner to use",
)
@click.option(
    "--prompt", "-p",
    "prompt",
    envvar=ENV_PROMPT_FILE,
    default=None,
    help="Base prompt file (default: auto-detect)",
)
@work_dir_option
@state_dir_option
@click.option(
    "--skills-dir",
    envvar=ENV_SKILLS_DIR,
    default=None,
    help="Skills tree with common/ and per-agent subdirectories (default: bundled)",
)
@click.option(
    "--max-iterations", "-n",
    envvar=ENV_MAX_ITERATIONS,
    type=int,
    default=DEFAULT_MAX_ITERATIONS,
    show_default=True,
    help="Stop after n iterations (0 = unbounded)",
)
@click.option(
    "--completion-token", "-t",
    envvar=ENV_COMPLETION_TOKEN,
    default=DEFAULT_COMPLETION_TOKEN,
    show_default=True,
    help="Token that marks completion",
)
@click.option(
    "--require",
    "required",
    multiple=True,
    default=DEFAULT_REQUIRED_COMMANDS,
    show_default=True,
    help="Command that must be on PATH before starting (repeatable)",
)
def run(
    agent: str,
    prompt: str | None,
    work_dir: str,
    state_dir: str,
    skills_dir: str | None,
    max_iterations: int,
    completion_token: str,
    required: tuple[str, ...],
) -> None:
    """Run the agent loop.

    \b
    Prompt file detection (in order):
      1. --prompt <file> (or PROMPT_FILE)
      2. <work-dir>/prompt.md
      3. <work-dir>/ralph-prompt.md
      4. bundled default prompt

    \b
    Example:
        ralph run --agent claude
        ralph run --agent opencode --max-iterations 10
        ralph run --work-dir /path/to/project --prompt my-prompt.md
    """
    root = Path(work_dir)

    try:
        config = LoopConfig(
            agent=agent,
            prompt_file=resolve_prompt_file(root, prompt),
            work_dir=root,
            state_dir=resolve_path(state_dir, root),
            skills_dir=resolve_path(skills_dir, root) if skills_dir else BUNDLED_SKILLS_DIR,
            max_iterations=max_iterations,
            completion_token=completion_token,
            required_commands=list(required),
        )
    except ValidationError as e:
        errors = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        _fail(f"invalid configuration: {errors}", ExitCode.CONFIG_ERROR)

    orchestrator = Orchestrator(config)
    try:
        result = orchestrator.run()
    except ConfigurationError as e:
        _fail(str(e), ExitCode.CONFIG_ERROR)
    except OSError as e:
        _fail(f"state write failed: {e}", ExitCode.STATE_ERROR)

    click.echo()
    if result.exit_code == ExitCode.COMPLETED:
        click.echo(f"✅ {result.message}")
    else:
        click.echo(f"ERROR: {result.message}", err=True)
    sys.exit(int(result.exit_code))


@main.command()
@work_dir_option
@state_dir_option
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Overwrite an existing prompt.md with the bundled default",
)
def init(work_dir: str, state_dir: str, force: bool) -> None:
    """Initialize Ralph in a project.

    Creates the state directory with a context file and copies the bundled
    default prompt to prompt.md.

    \b
    Example:
        cd /path/to/myproject
        ralph init
        ralph init --force    # Reset prompt.md to the bundled default
    """
    root = Path(work_dir)
    store = StateStore(resolve_path(state_dir, root))

    context_existed = store.context_path.exists()
    store.init()
    if context_existed:
        click.echo(f"Kept existing context: {store.context_path}")
    else:
        click.echo(f"Created context: {store.context_path}")

    prompt_path = root / "prompt.md"
    if prompt_path.exists() and not force:
        click.echo("prompt.md already exists (use --force to replace)")
    else:
        shutil.copyfile(BUNDLED_PROMPT, prompt_path)
        click.echo(f"Wrote {prompt_path}")

    click.echo(f"\n✓ Ralph initialized in {root}")
    click.echo("\nNext steps:")
    click.echo("  1. Edit prompt.md and the context file")
    click.echo("  2. Run: ralph run --agent claude --max-iterations 10")


@main.command()
@work_dir_option
@state_dir_option
def status(work_dir: str, state_dir: str) -> None:
    """Show the markers of the last run."""
    root = Path(work_dir)
    store = StateStore(resolve_path(state_dir, root))

    if not store.state_dir.is_dir():
        click.echo(f"No state directory at {store.state_dir}. Run 'ralph init' or 'ralph run'.")
        return

    snapshot = store.snapshot()
    click.echo(f"State dir:       {snapshot.state_dir}")
    click.echo(f"Context file:    {'present' if snapshot.has_context else 'missing'}")
    click.echo(f"Last iteration:  {snapshot.iteration if snapshot.iteration is not None else '-'}")
    click.echo(f"Last start (UTC): {snapshot.last_start_utc or '-'}")
    click.echo(f"Last end (UTC):   {snapshot.last_end_utc or '-'}")

    if snapshot.run_statuses:
        click.echo("\nRuns:")
        for number, run_status in snapshot.run_statuses.items():
            click.echo(f"  {number}: {run_status}")


@main.command()
def agents() -> None:
    """List supported agents and whether their CLIs are installed."""
    for name, runner_cls in RUNNERS.items():
        runner = runner_cls()
        mark = "✓" if runner.is_available() else "✗"
        click.echo(f"  {mark} {name.value:<10} {runner.describe()}")


if __name__ == "__main__":
    main()
