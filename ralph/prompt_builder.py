"""Effective prompt composition for each loop iteration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ralph.schemas import AgentName

logger = logging.getLogger(__name__)

SHARED_CATEGORY = "common"
SECTION_SEPARATOR = "\n\n---\n\n"
SKILL_SUFFIX = ".md"


@dataclass(frozen=True)
class SkillFragment:
    """A read-only instruction fragment from the skills tree."""

    name: str
    category: str
    content: str


def load_skill_fragments(skills_dir: Path, category: str) -> list[SkillFragment]:
    """Load every fragment in one skills category, sorted by file name.

    A missing category directory yields an empty list.
    """
    category_dir = Path(skills_dir) / category
    if not category_dir.is_dir():
        logger.debug(f"No skills directory for '{category}': {category_dir}")
        return []

    fragments = []
    for path in sorted(category_dir.iterdir(), key=lambda p: p.name):
        if not path.is_file() or path.suffix != SKILL_SUFFIX:
            continue
        fragments.append(
            SkillFragment(
                name=path.name,
                category=category,
                content=path.read_text(encoding="utf-8"),
            )
        )
    return fragments


def _context_section(state_dir: Path) -> str:
    """Persistent context block, or nothing if the file is absent."""
    context_path = state_dir / "context.md"
    if not context_path.is_file():
        return ""
    content = context_path.read_text(encoding="utf-8")
    return f"# Context\n{content}{SECTION_SEPARATOR}"


def _skill_section(fragments: list[SkillFragment]) -> str:
    parts = []
    for fragment in fragments:
        parts.append(f"## {fragment.name}\n\n{fragment.content}\n\n")
    return "".join(parts)


def _completion_instruction(completion_token: str) -> str:
    return (
        "\n---\n\n"
        "When you are fully done, print this exact token on its own line:\n"
        f"{completion_token}\n"
    )


def compose_prompt(
    agent: AgentName,
    base_prompt: str,
    state_dir: Path,
    skills_dir: Path,
    completion_token: str,
) -> str:
    """Compose the effective prompt text without writing it.

    Sections, in order: base prompt, persistent context (if present),
    shared skills, agent-specific skills, completion instruction.
    """
    agent_name = AgentName(agent).value
    shared = load_skill_fragments(skills_dir, SHARED_CATEGORY)
    specific = load_skill_fragments(skills_dir, agent_name)

    return "".join(
        [
            base_prompt,
            SECTION_SEPARATOR,
            _context_section(state_dir),
            "# Loaded skills\n\n",
            _skill_section(shared),
            _skill_section(specific),
            _completion_instruction(completion_token),
        ]
    )


def build_effective_prompt(
    agent: AgentName,
    base_prompt: Path,
    state_dir: Path,
    skills_dir: Path,
    out_path: Path,
    completion_token: str,
) -> str:
    """Compose the effective prompt and overwrite ``out_path`` with it.

    Args:
        agent: Agent identity selecting the agent-specific skills
        base_prompt: Base prompt file, included verbatim
        state_dir: State directory holding ``context.md``
        skills_dir: Root of the skills tree
        out_path: Where to write the effective prompt
        completion_token: Token the agent must print when done

    Returns:
        The composed prompt text
    """
    base = Path(base_prompt).read_text(encoding="utf-8")
    text = compose_prompt(
        agent=agent,
        base_prompt=base,
        state_dir=Path(state_dir),
        skills_dir=Path(skills_dir),
        completion_token=completion_token,
    )

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(text, encoding="utf-8", newline="")
    logger.debug(f"Wrote effective prompt ({len(text)} chars) to {out_path}")
    return text
