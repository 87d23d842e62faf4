"""
SKILL.md parsing.

A skill file is Markdown with a frontmatter block:

    ---
    name: code-review
    description: Review a diff for bugs and style problems
    version: 1.0
    triggers:
      - review
      - "code review"
    ---
    # Code Review
    ...

The frontmatter is a small YAML subset: "key: value" pairs and
"- item" lists under a key with no value. Quotes around values are
stripped. name and description are required.
"""

import re
from dataclasses import dataclass, field

from agentloop.errors import SkillParseError

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)\n---[ \t]*(?:\n(.*))?\Z", re.DOTALL)
_SKILL_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class SkillMetadata:
    name: str
    description: str
    triggers: tuple[str, ...] = ()
    version: str | None = None
    extra: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ParsedSkill:
    metadata: SkillMetadata
    content: str        # Markdown body without frontmatter
    full_content: str   # The file exactly as read


def _unquote(value: str) -> str:
    return re.sub(r"^[\"']|[\"']$", "", value.strip())


def _parse_frontmatter(text: str) -> dict:
    metadata: dict = {}
    list_key: str | None = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("-"):
            if list_key is not None:
                metadata.setdefault(list_key, []).append(_unquote(line[1:]))
            continue

        key, colon, value = line.partition(":")
        if not colon:
            continue

        key = key.strip()
        value = value.strip()
        if not value:
            # Bare "key:" opens a list
            list_key = key
            continue

        list_key = None
        metadata[key] = _unquote(value)

    return metadata


def parse_skill_file(file_content: str) -> ParsedSkill:
    """
    Split a SKILL.md file into metadata and body.

    Raises:
        SkillParseError: No frontmatter, or name/description missing
    """
    text = file_content.strip()
    if not text.startswith("---"):
        raise SkillParseError("Skill file must start with a '---' frontmatter block")

    match = _FRONTMATTER_RE.match(text)
    if not match:
        raise SkillParseError("Skill frontmatter is not closed with '---'")

    frontmatter, body = match.group(1), match.group(2) or ""
    raw = _parse_frontmatter(frontmatter)

    name = raw.pop("name", None)
    description = raw.pop("description", None)
    if not name:
        raise SkillParseError("Skill file is missing required field: name")
    if not description:
        raise SkillParseError("Skill file is missing required field: description")

    triggers = raw.pop("triggers", [])
    if isinstance(triggers, str):
        triggers = [t.strip() for t in triggers.split(",") if t.strip()]

    metadata = SkillMetadata(
        name=name,
        description=description,
        triggers=tuple(triggers),
        version=raw.pop("version", None),
        extra=raw,
    )
    return ParsedSkill(metadata=metadata, content=body.strip(), full_content=file_content)


def is_valid_skill_name(name: str) -> bool:
    """Skill names may only use letters, digits, '-' and '_'."""
    return bool(_SKILL_NAME_RE.match(name))
