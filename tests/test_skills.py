import pytest

from agentloop.errors import SkillNotFound, SkillParseError
from agentloop.skills import SkillManager, is_valid_skill_name, parse_skill_file

from conftest import REVIEW_SKILL, write_skill


class TestParseSkillFile:
    def test_frontmatter_and_body(self):
        parsed = parse_skill_file(REVIEW_SKILL)

        assert parsed.metadata.name == "code-review"
        assert parsed.metadata.description == "Review a diff for bugs and style problems"
        assert parsed.metadata.version == "1.0"
        assert parsed.metadata.triggers == ("review", "pull request")
        assert parsed.content.startswith("# Code Review")
        assert parsed.full_content == REVIEW_SKILL

    def test_comma_separated_triggers(self):
        parsed = parse_skill_file("---\nname: a\ndescription: b\ntriggers: one, two ,three\n---\nbody")
        assert parsed.metadata.triggers == ("one", "two", "three")

    def test_unknown_keys_are_kept(self):
        parsed = parse_skill_file("---\nname: a\ndescription: b\nauthor: 'someone'\n---\n")
        assert parsed.metadata.extra == {"author": "someone"}
        assert parsed.content == ""

    @pytest.mark.parametrize("text", [
        "# No frontmatter at all",
        "---\nname: a\ndescription: b\n",
        "---\ndescription: b\n---\nbody",
        "---\nname: a\n---\nbody",
    ])
    def test_invalid_files(self, text):
        with pytest.raises(SkillParseError):
            parse_skill_file(text)

    @pytest.mark.parametrize("name, valid", [
        ("code-review", True),
        ("release_notes2", True),
        ("has space", False),
        ("dots.not.allowed", False),
        ("", False),
    ])
    def test_skill_names(self, name, valid):
        assert is_valid_skill_name(name) is valid


class TestSkillManager:
    def test_loads_every_skill_directory(self, skills_dir):
        manager = SkillManager(skills_dir)
        assert manager.load_skills() == 2
        assert manager.names() == ["code-review", "release-notes"]
        assert manager.get("release-notes").triggers == ("changelog", "release")

    def test_bad_files_are_skipped(self, skills_dir):
        write_skill(skills_dir, "broken", "no frontmatter here")
        write_skill(skills_dir, "bad-name", "---\nname: bad name\ndescription: x\n---\n")
        write_skill(skills_dir, "zz-duplicate", "---\nname: code-review\ndescription: again\n---\n")
        (skills_dir / "empty-dir").mkdir()

        manager = SkillManager(skills_dir)
        assert manager.load_skills() == 2
        assert manager.get("code-review").description == "Review a diff for bugs and style problems"

    def test_missing_directory_means_no_skills(self, tmp_path):
        manager = SkillManager(tmp_path / "nowhere")
        assert manager.load_skills() == 0
        assert manager.summary_text() == ""

    def test_summary_lists_skills_and_triggers(self, skills_dir):
        manager = SkillManager(skills_dir)
        manager.load_skills()

        summary = manager.summary_text()
        assert "`read_skill`" in summary
        assert "- **code-review**: Review a diff for bugs and style problems" in summary
        assert "  Triggers: review, pull request" in summary

    def test_read_returns_full_file(self, skills_dir):
        manager = SkillManager(skills_dir)
        manager.load_skills()
        assert manager.read("code-review") == REVIEW_SKILL
        with pytest.raises(SkillNotFound):
            manager.read("nope")

    async def test_read_skill_tool(self, skills_dir):
        manager = SkillManager(skills_dir)
        manager.load_skills()

        result = await manager.read_skill_tool({"skill_name": "release-notes"})
        assert result["skill_name"] == "release-notes"
        assert "Group entries by type." in result["content"]

        with pytest.raises(ValueError):
            await manager.read_skill_tool({})

    def test_tool_definition_enumerates_names(self, skills_dir):
        manager = SkillManager(skills_dir)
        manager.load_skills()

        definition = manager.tool_definition()
        assert definition.name == "read_skill"
        assert definition.parameters["properties"]["skill_name"]["enum"] == ["code-review", "release-notes"]
        assert definition.parameters["required"] == ["skill_name"]

    def test_match_skills_orders_by_trigger_hits(self, skills_dir):
        manager = SkillManager(skills_dir)
        manager.load_skills()

        matched = manager.match_skills("Please REVIEW this pull request before the release")
        assert [s.name for s in matched] == ["code-review", "release-notes"]
        assert manager.match_skills("nothing relevant") == []

    def test_skills_context_contains_guides(self, skills_dir):
        manager = SkillManager(skills_dir)
        manager.load_skills()

        context = manager.skills_context([manager.get("code-review")])
        assert "--- Skill: code-review ---" in context
        assert "Read the diff twice" in context
        assert manager.skills_context([]) == ""

    def test_reload_picks_up_new_skills(self, skills_dir):
        manager = SkillManager(skills_dir)
        manager.load_skills()
        write_skill(skills_dir, "triage", "---\nname: triage\ndescription: Sort incoming issues\n---\n")

        assert manager.reload() == 3
        assert manager.count == 3
