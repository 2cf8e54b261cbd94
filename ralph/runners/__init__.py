"""Agent runner adapters for the Ralph loop."""

from ralph.runners.base import AgentRunner
from ralph.runners.agents import RUNNERS, get_runner

__all__ = ["AgentRunner", "RUNNERS", "get_runner"]
