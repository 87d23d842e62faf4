"""
Skill Manager
=============

Loads skills from a directory and serves them to the agent.

Layout:
    skills/
        code-review/
            SKILL.md
        release-notes/
            SKILL.md

Only the short summary (name, description, triggers) goes into the system
prompt. The full guide is fetched by the model on demand through the
read_skill tool, which keeps the prompt small when there are many skills.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from agentloop.errors import SkillNotFound, SkillParseError
from agentloop.skills.parser import is_valid_skill_name, parse_skill_file
from agentloop.tools import ToolDefinition
from agentloop.utils.logger import Logger

logger = Logger("Skills")

READ_SKILL_TOOL = "read_skill"
SKILL_FILE = "SKILL.md"


@dataclass(frozen=True)
class Skill:
    """
    A loaded skill.

    Attributes:
        name: Unique skill name from the frontmatter
        description: One-line summary shown to the model
        triggers: Keywords that suggest the skill applies
        version: Optional version string
        content: Markdown guide without frontmatter
        full_content: The SKILL.md file as written
        path: Where the file was loaded from
        last_modified: File modification time
    """
    name: str
    description: str
    triggers: tuple[str, ...]
    version: str | None
    content: str
    full_content: str
    path: Path
    last_modified: datetime


class SkillManager:
    """
    Scans, holds and serves skills.

    Example:
        skills = SkillManager(Path("skills"))
        skills.load_skills()

        system_prompt += "\\n\\n" + skills.summary_text()
        registry.register_builtin(skills.tool_definition(), skills.read_skill_tool)

        guide = skills.read("code-review")
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._skills: dict[str, Skill] = {}

    @property
    def count(self) -> int:
        return len(self._skills)

    def names(self) -> list[str]:
        return list(self._skills)

    def get(self, name: str) -> Skill | None:
        return self._skills.get(name)

    def load_skills(self) -> int:
        """
        Load every <directory>/<skill>/SKILL.md.

        A missing directory means zero skills. Files that fail to parse,
        or whose name is invalid, are skipped with a log line.

        Returns:
            Number of skills loaded
        """
        if not self.directory.is_dir():
            logger.warning(f"Skills directory does not exist: {self.directory}")
            return 0

        failed = 0
        for entry in sorted(self.directory.iterdir()):
            skill_file = entry / SKILL_FILE
            if not entry.is_dir() or not skill_file.is_file():
                continue

            try:
                text = skill_file.read_text(encoding="utf-8")
                parsed = parse_skill_file(text)
            except (OSError, UnicodeDecodeError, SkillParseError) as e:
                failed += 1
                logger.error(f"Failed to load skill from {entry.name}", e)
                continue

            meta = parsed.metadata
            if not is_valid_skill_name(meta.name):
                failed += 1
                logger.warning(f"Skipping skill with invalid name: {meta.name!r}")
                continue
            if meta.name in self._skills:
                failed += 1
                logger.warning(f"Skipping duplicate skill name: {meta.name!r} ({skill_file})")
                continue

            self._skills[meta.name] = Skill(
                name=meta.name,
                description=meta.description,
                triggers=meta.triggers,
                version=meta.version,
                content=parsed.content,
                full_content=parsed.full_content,
                path=skill_file,
                last_modified=datetime.fromtimestamp(skill_file.stat().st_mtime),
            )

        logger.info(f"Loaded {len(self._skills)} skills ({failed} failed)")
        return len(self._skills)

    def reload(self) -> int:
        self._skills.clear()
        return self.load_skills()

    def summary_text(self) -> str:
        """Skill overview appended to the system prompt ("" when there are none)."""
        if not self._skills:
            return ""

        lines = [
            "## Skills",
            "",
            f"1. **Read first**: before doing a task a skill covers, call the `{READ_SKILL_TOOL}` tool to load its full guide",
            "2. **Triggers**: the trigger words listed below help you decide when a skill applies",
            "3. **Follow it**: once you have read a guide, follow its instructions strictly",
            "4. **Output format**: pay particular attention to any output format a skill defines",
            "",
            "Available skills:",
        ]
        for skill in self._skills.values():
            lines.append(f"- **{skill.name}**: {skill.description}")
            if skill.triggers:
                lines.append(f"  Triggers: {', '.join(skill.triggers)}")
        lines.append("")

        return "\n".join(lines)

    def read(self, name: str) -> str:
        """
        Full text of a skill file.

        Raises:
            SkillNotFound: If no skill has that name
        """
        skill = self.get(name)
        if skill is None:
            raise SkillNotFound(name)
        return skill.full_content

    def tool_definition(self) -> ToolDefinition:
        names = list(self._skills)
        return ToolDefinition(
            name=READ_SKILL_TOOL,
            description="Read the full guide and usage instructions of a skill",
            parameters={
                "type": "object",
                "properties": {
                    "skill_name": {
                        "type": "string",
                        "description": f"Name of the skill to read. Available skills: {', '.join(names)}",
                        "enum": names,
                    },
                },
                "required": ["skill_name"],
            },
        )

    async def read_skill_tool(self, arguments: dict) -> dict:
        """Builtin handler for the read_skill tool."""
        skill_name = arguments.get("skill_name")
        if not skill_name:
            raise ValueError("Missing argument: skill_name")

        content = self.read(skill_name)
        logger.debug(f"Read skill: {skill_name}")
        return {"skill_name": skill_name, "content": content}

    def match_skills(self, user_input: str) -> list[Skill]:
        """
        Skills whose triggers appear in the input, most matched triggers first.

        Skills without triggers never match.
        """
        lowered = user_input.lower()
        scored: list[tuple[int, Skill]] = []

        for skill in self._skills.values():
            hits = sum(1 for trigger in skill.triggers if trigger.lower() in lowered)
            if hits:
                scored.append((hits, skill))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [skill for _, skill in scored]

    def skills_context(self, skills: list[Skill]) -> str:
        """Guide text for matched skills, to be placed ahead of the user message."""
        if not skills:
            return ""

        lines = [
            "=== Relevant skill guides ===",
            "",
            "Follow these guides strictly for this task:",
            "",
        ]
        for skill in skills:
            lines.append(f"--- Skill: {skill.name} ---")
            lines.append(skill.content)
            lines.append("")
        lines.append("=== End of skill guides ===")

        return "\n".join(lines)
