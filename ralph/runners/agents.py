"""Runner adapters for each supported agent CLI."""

from __future__ import annotations

from ralph.config import UnknownAgentError
from ralph.runners.base import AgentRunner
from ralph.schemas import AgentName


class AmpRunner(AgentRunner):
    """Amp CLI, prompt on stdin."""

    name = AgentName.AMP
    binary = "amp"
    install_hint = "Install/enable the Amp CLI and ensure 'amp' works."


class ClaudeRunner(AgentRunner):
    """Claude Code in print mode with permission prompts disabled."""

    name = AgentName.CLAUDE
    binary = "claude"
    args = ("--print", "--dangerously-skip-permissions")
    install_hint = "Install/enable Claude Code CLI and ensure 'claude' works."


class OpencodeRunner(AgentRunner):
    """OpenCode CLI, prompt on stdin."""

    name = AgentName.OPENCODE
    binary = "opencode"
    install_hint = "Install/enable OpenCode CLI and ensure 'opencode' works."


class CodexRunner(AgentRunner):
    """Codex ``exec`` subcommand reading the prompt from stdin."""

    name = AgentName.CODEX
    binary = "codex"
    args = ("exec", "--full-auto", "-")
    install_hint = "Install/enable the Codex CLI and ensure 'codex' works."


# Runner registry
RUNNERS: dict[AgentName, type[AgentRunner]] = {
    AgentName.AMP: AmpRunner,
    AgentName.CLAUDE: ClaudeRunner,
    AgentName.OPENCODE: OpencodeRunner,
    AgentName.CODEX: CodexRunner,
}


def get_runner(agent: AgentName | str) -> AgentRunner:
    """Get a runner instance for an agent identity.

    Raises:
        UnknownAgentError: If no adapter exists for the agent
    """
    try:
        runner_cls = RUNNERS[AgentName(agent)]
    except (KeyError, ValueError):
        expected = " | ".join(a.value for a in RUNNERS)
        raise UnknownAgentError(
            f"Unknown agent runner: {agent} (expected one of: {expected})"
        ) from None
    return runner_cls()
