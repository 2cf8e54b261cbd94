"""Ralph - agent-agnostic autonomous coding loop.

Runs an external coding agent CLI over and over against a composed prompt,
carrying memory between runs only through files, until the agent prints a
completion token or the iteration budget runs out.
"""

__version__ = "0.1.0"
