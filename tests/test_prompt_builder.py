"""Tests for effective prompt composition."""

from pathlib import Path

from ralph.config import BUNDLED_PROMPT, BUNDLED_SKILLS_DIR
from ralph.prompt_builder import (
    SECTION_SEPARATOR,
    build_effective_prompt,
    load_skill_fragments,
)
from ralph.schemas import AgentName


def _build(tmp_path: Path, base_prompt: Path, skills_dir: Path, agent=AgentName.CLAUDE) -> str:
    state_dir = tmp_path / ".ralph"
    state_dir.mkdir(exist_ok=True)
    return build_effective_prompt(
        agent=agent,
        base_prompt=base_prompt,
        state_dir=state_dir,
        skills_dir=skills_dir,
        out_path=state_dir / "effective_prompt.md",
        completion_token="<DONE/>",
    )


class TestLoadSkillFragments:
    """Test fragment discovery."""

    def test_sorted_markdown_only(self, skills_tree):
        """Only .md files are loaded, sorted by name."""
        fragments = load_skill_fragments(skills_tree, "common")

        assert [f.name for f in fragments] == ["a-commits.md", "b-testing.md"]
        assert all(f.category == "common" for f in fragments)
        assert fragments[0].content == "Commit often."

    def test_missing_category(self, tmp_path):
        """Missing directory yields no fragments."""
        assert load_skill_fragments(tmp_path / "nowhere", "common") == []


class TestBuildEffectivePrompt:
    """Test prompt structure and ordering."""

    def test_section_order(self, tmp_path, base_prompt, skills_tree):
        """Base, context, shared skills, agent skills, token instruction."""
        state_dir = tmp_path / ".ralph"
        state_dir.mkdir()
        (state_dir / "context.md").write_text("Target branch: main")

        text = _build(tmp_path, base_prompt, skills_tree)

        positions = [
            text.index("# Test Prompt"),
            text.index("# Context\nTarget branch: main"),
            text.index("# Loaded skills"),
            text.index("## a-commits.md"),
            text.index("## b-testing.md"),
            text.index("## claude-tips.md"),
            text.index("print this exact token on its own line"),
        ]
        assert positions == sorted(positions)
        assert text.endswith("print this exact token on its own line:\n<DONE/>\n")

    def test_base_prompt_verbatim(self, tmp_path, base_prompt, skills_tree):
        """Base prompt content starts the output unchanged."""
        text = _build(tmp_path, base_prompt, skills_tree)

        assert text.startswith(base_prompt.read_text() + SECTION_SEPARATOR)

    def test_only_selected_agent_skills(self, tmp_path, base_prompt, skills_tree):
        """Other agents' fragments are not included."""
        text = _build(tmp_path, base_prompt, skills_tree, agent=AgentName.CLAUDE)

        assert "Use --print." in text
        assert "Amp only." not in text
        assert "not a skill" not in text

    def test_fragment_layout(self, tmp_path, base_prompt, skills_tree):
        """Each fragment is its heading, a blank line, its content and one blank line."""
        text = _build(tmp_path, base_prompt, skills_tree)

        assert (
            "# Loaded skills\n\n"
            "## a-commits.md\n\nCommit often.\n\n"
            "## b-testing.md\n\nRun the tests.\n\n"
            "## claude-tips.md\n\nUse --print.\n\n"
            "\n---\n\n"
        ) in text

    def test_no_context_section_without_file(self, tmp_path, base_prompt, skills_tree):
        """Context heading is omitted when context.md is absent."""
        text = _build(tmp_path, base_prompt, skills_tree)

        assert "# Context" not in text

    def test_missing_skills_directories(self, tmp_path, base_prompt):
        """Absent skills tree is not an error."""
        text = _build(tmp_path, base_prompt, tmp_path / "no-skills")

        assert "# Loaded skills\n\n\n---\n\n" in text
        assert "## " not in text

    def test_missing_agent_directory_only(self, tmp_path, base_prompt, skills_tree):
        """Shared skills still load when the agent has no directory."""
        text = _build(tmp_path, base_prompt, skills_tree, agent=AgentName.CODEX)

        assert "## a-commits.md" in text
        assert "Use --print." not in text

    def test_deterministic(self, tmp_path, base_prompt, skills_tree):
        """Unchanged inputs give byte-identical output."""
        state_dir = tmp_path / ".ralph"
        state_dir.mkdir()
        (state_dir / "context.md").write_text("stable")
        out = state_dir / "effective_prompt.md"

        first = _build(tmp_path, base_prompt, skills_tree)
        first_bytes = out.read_bytes()
        second = _build(tmp_path, base_prompt, skills_tree)

        assert first == second
        assert out.read_bytes() == first_bytes

    def test_context_changes_are_picked_up(self, tmp_path, base_prompt, skills_tree):
        """Each build reads context.md fresh from disk."""
        state_dir = tmp_path / ".ralph"
        state_dir.mkdir()
        (state_dir / "context.md").write_text("first note")
        _build(tmp_path, base_prompt, skills_tree)

        (state_dir / "context.md").write_text("second note")
        text = _build(tmp_path, base_prompt, skills_tree)

        assert "second note" in text
        assert "first note" not in text

    def test_bundled_resources(self, tmp_path):
        """Bundled prompt and skills compose for every agent."""
        for agent in AgentName:
            text = _build(tmp_path, BUNDLED_PROMPT, BUNDLED_SKILLS_DIR, agent=agent)
            assert "## commits.md" in text
            assert text.endswith("<DONE/>\n")
