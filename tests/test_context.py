from agentloop.agent.context import ContextAugmenter
from agentloop.skills import SkillManager


class StaticRetriever:
    def __init__(self, context: str):
        self.context = context
        self.queries: list[tuple[str, int | None]] = []

    async def retrieve_context(self, query, top_k=None):
        self.queries.append((query, top_k))
        return self.context


class TestContextAugmenter:
    async def test_no_sources_passes_text_through(self):
        assert await ContextAugmenter().augment("hello") == "hello"

    async def test_reference_material_wraps_question(self):
        retriever = StaticRetriever("[Document 1] (source: a.md)\nfacts")
        augmenter = ContextAugmenter(retriever, top_k=2)

        text = await augmenter.augment("what are the facts?")

        assert text == (
            "Reference material:\n\n"
            "[Document 1] (source: a.md)\nfacts"
            "\n\n---\n\n"
            "User question: what are the facts?"
        )
        assert retriever.queries == [("what are the facts?", 2)]

    async def test_empty_retrieval_leaves_text_unchanged(self):
        augmenter = ContextAugmenter(StaticRetriever(""))
        assert await augmenter.augment("hello") == "hello"

    async def test_rag_switch(self):
        retriever = StaticRetriever("facts")
        augmenter = ContextAugmenter(retriever)
        augmenter.set_rag_enabled(False)

        assert not augmenter.rag_enabled
        assert await augmenter.augment("hello") == "hello"
        assert retriever.queries == []

    async def test_set_retriever_enables_rag(self):
        augmenter = ContextAugmenter(enable_rag=False)
        augmenter.set_retriever(StaticRetriever("facts"))
        assert augmenter.rag_enabled
        assert (await augmenter.augment("q")).startswith("Reference material:")

    async def test_skill_injection_then_reference_block(self, skills_dir):
        skills = SkillManager(skills_dir)
        skills.load_skills()
        augmenter = ContextAugmenter(StaticRetriever("facts"), skills=skills)

        text = await augmenter.augment("review my diff")

        assert text.startswith("=== Relevant skill guides ===")
        assert "review my diff\n\nReference material:\n\nfacts" in text
        assert "User question:" not in text

    async def test_skill_injection_without_match(self, skills_dir):
        skills = SkillManager(skills_dir)
        skills.load_skills()
        augmenter = ContextAugmenter(skills=skills)

        assert await augmenter.augment("weather today?") == "weather today?"
