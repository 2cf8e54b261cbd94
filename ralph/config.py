"""Configuration defaults, prompt discovery and startup errors."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent

DEFAULT_AGENT = "amp"
DEFAULT_STATE_DIR = ".ralph"
DEFAULT_COMPLETION_TOKEN = "<RALPH_DONE/>"
DEFAULT_MAX_ITERATIONS = 0
DEFAULT_REQUIRED_COMMANDS = ("git",)

# Bundled resources shipped inside the package
BUNDLED_PROMPT = PACKAGE_DIR / "prompt.md"
BUNDLED_SKILLS_DIR = PACKAGE_DIR / "skills"

# Project-level prompt files, checked in order
PROJECT_PROMPT_NAMES = ("prompt.md", "ralph-prompt.md")

# Environment variables accepted for each option (first match wins)
ENV_AGENT = ["RALPH_AGENT", "AGENT"]
ENV_PROMPT_FILE = ["RALPH_PROMPT_FILE", "PROMPT_FILE"]
ENV_PROJECT_ROOT = ["RALPH_PROJECT_ROOT", "PROJECT_ROOT"]
ENV_STATE_DIR = ["RALPH_STATE_DIR", "STATE_DIR"]
ENV_SKILLS_DIR = ["RALPH_SKILLS_DIR"]
ENV_MAX_ITERATIONS = ["RALPH_MAX_ITERATIONS", "MAX_ITERATIONS"]
ENV_COMPLETION_TOKEN = ["RALPH_COMPLETION_TOKEN", "COMPLETION_TOKEN"]


class ConfigurationError(Exception):
    """Raised when the loop cannot start with the given configuration."""

    pass


class UnknownAgentError(ConfigurationError):
    """Raised when no runner adapter exists for an agent identity."""

    pass


class MissingCommandError(ConfigurationError):
    """Raised when a required external command is not on PATH."""

    pass


class PromptNotFoundError(ConfigurationError):
    """Raised when the base prompt file does not exist."""

    pass


def resolve_path(value: str | Path, work_dir: Path) -> Path:
    """Resolve a user-supplied path against the working root."""
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = work_dir / path
    return path.resolve()


def resolve_prompt_file(work_dir: Path, override: str | Path | None = None) -> Path:
    """Pick the base prompt file.

    Order: explicit override, ``prompt.md`` at the working root,
    ``ralph-prompt.md`` at the working root, then the bundled default.
    An explicit override is returned even if it does not exist so that the
    startup check can report it.
    """
    if override:
        return resolve_path(override, work_dir)

    for name in PROJECT_PROMPT_NAMES:
        candidate = work_dir / name
        if candidate.is_file():
            logger.debug(f"Using project prompt: {candidate}")
            return candidate.resolve()

    return BUNDLED_PROMPT


def find_missing_commands(commands: list[str] | tuple[str, ...]) -> list[str]:
    """Return the commands that cannot be found on PATH."""
    return [cmd for cmd in commands if shutil.which(cmd) is None]
