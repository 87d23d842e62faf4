"""
Skills
======

Skills are Markdown guides the model can load on demand. Each lives in
its own directory as a SKILL.md file with a small frontmatter block
(name, description, optional triggers and version).

At session start the agent adds a short list of skills to the system
prompt and registers the read_skill builtin tool; the model then pulls
in a full guide only when it needs one.
"""

from agentloop.skills.manager import READ_SKILL_TOOL, Skill, SkillManager
from agentloop.skills.parser import ParsedSkill, SkillMetadata, is_valid_skill_name, parse_skill_file

__all__ = [
    "READ_SKILL_TOOL",
    "Skill",
    "SkillManager",
    "ParsedSkill",
    "SkillMetadata",
    "is_valid_skill_name",
    "parse_skill_file",
]
