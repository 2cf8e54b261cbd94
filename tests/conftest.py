"""Pytest configuration and fixtures for Ralph tests."""

import os
import stat

import pytest
from pathlib import Path

from ralph.config import (
    ENV_AGENT,
    ENV_COMPLETION_TOKEN,
    ENV_MAX_ITERATIONS,
    ENV_PROJECT_ROOT,
    ENV_PROMPT_FILE,
    ENV_SKILLS_DIR,
    ENV_STATE_DIR,
)
from ralph.schemas import AgentName, LoopConfig, RunnerResult
from ralph.runners.base import AgentRunner


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the host's loop settings out of the tests."""
    for names in (
        ENV_AGENT,
        ENV_PROMPT_FILE,
        ENV_PROJECT_ROOT,
        ENV_STATE_DIR,
        ENV_SKILLS_DIR,
        ENV_MAX_ITERATIONS,
        ENV_COMPLETION_TOKEN,
    ):
        for name in names:
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tmp_workspace(tmp_path: Path) -> Path:
    """Create a temporary project root."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def base_prompt(tmp_workspace: Path) -> Path:
    """Create a base prompt file at the project root."""
    prompt = tmp_workspace / "prompt.md"
    prompt.write_text("# Test Prompt\n\nList the files in src/.\n")
    return prompt


@pytest.fixture
def skills_tree(tmp_path: Path) -> Path:
    """Create a skills tree with shared and claude-specific fragments."""
    skills = tmp_path / "skills"
    (skills / "common").mkdir(parents=True)
    (skills / "claude").mkdir()
    (skills / "amp").mkdir()

    (skills / "common" / "b-testing.md").write_text("Run the tests.")
    (skills / "common" / "a-commits.md").write_text("Commit often.")
    (skills / "common" / "notes.txt").write_text("not a skill")
    (skills / "claude" / "claude-tips.md").write_text("Use --print.")
    (skills / "amp" / "amp-tips.md").write_text("Amp only.")
    return skills


@pytest.fixture
def fake_bin(tmp_path: Path, monkeypatch) -> Path:
    """Directory prepended to PATH for fake agent executables."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return bin_dir


def write_script(bin_dir: Path, name: str, body: str) -> Path:
    """Write an executable /bin/sh script into bin_dir."""
    script = bin_dir / name
    script.write_text(f"#!/bin/sh\n{body}\n")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def make_config(tmp_workspace: Path, base_prompt: Path, skills_tree: Path):
    """Factory for LoopConfig pointing at the temporary workspace."""

    def _make(**overrides) -> LoopConfig:
        values = {
            "agent": AgentName.CLAUDE,
            "prompt_file": base_prompt,
            "work_dir": tmp_workspace,
            "state_dir": tmp_workspace / ".ralph",
            "skills_dir": skills_tree,
            "max_iterations": 0,
            "completion_token": "<DONE/>",
            "required_commands": [],
        }
        values.update(overrides)
        return LoopConfig(**values)

    return _make


class ScriptedRunner(AgentRunner):
    """Runner that replays canned outputs instead of starting a process."""

    name = AgentName.CLAUDE
    binary = "scripted-agent"

    def __init__(self, outputs: list[str], exit_codes: list[int] | None = None):
        self.outputs = outputs
        self.exit_codes = exit_codes or [0] * len(outputs)
        self.calls: list[str] = []

    def run(self, prompt_file, work_dir, sink=None):
        index = len(self.calls)
        self.calls.append(Path(prompt_file).read_text())
        output = self.outputs[index] if index < len(self.outputs) else ""
        exit_code = self.exit_codes[index] if index < len(self.exit_codes) else 0
        if sink:
            sink(output.encode())
        return RunnerResult(
            agent=self.name,
            command_executed=self.binary,
            exit_code=exit_code,
            output=output,
        )


@pytest.fixture
def scripted_runner():
    """Factory for ScriptedRunner."""
    return ScriptedRunner


@pytest.fixture
def agent_script(fake_bin: Path):
    """Write a fake agent executable onto the temporary PATH."""

    def _write(name: str, body: str) -> Path:
        return write_script(fake_bin, name, body)

    return _write
