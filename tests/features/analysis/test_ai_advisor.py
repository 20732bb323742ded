"""
Tests for the AI advisor and its rule-based fallback.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError

from website_improver.features.analysis.schemas.analysis import AnalysisOptions
from website_improver.features.analysis.schemas.site import (
    Asset,
    Heading,
    ImageElement,
    PageStructure,
    Scores,
    SiteSnapshot,
)
from website_improver.features.analysis.services.ai.ai_advisor import (
    AIAdvisor,
    build_analysis_prompt,
    build_improvement_prompt,
)

LOW_SCORES = Scores(seo=40, performance=40, accessibility=40, ux=40)
HIGH_SCORES = Scores(seo=95, performance=95, accessibility=95, ux=95)


def make_client(*contents, error=None):
    """Fake AsyncOpenAI client returning the given message contents in order."""
    client = MagicMock()
    if error is not None:
        client.chat.completions.create = AsyncMock(side_effect=error)
        return client

    replies = []
    for content in contents:
        completion = MagicMock()
        completion.choices = [MagicMock(message=MagicMock(content=content))]
        replies.append(completion)
    client.chat.completions.create = AsyncMock(side_effect=replies)
    return client


def sparse_snapshot() -> SiteSnapshot:
    """Short title, no description, seven images without alt text, no headings."""
    images = [ImageElement(src=f"/img/{i}.png") for i in range(7)]
    return SiteSnapshot(
        url="https://sparse.example",
        title="Home",
        description="",
        content="Welcome",
        structure=PageStructure(images=images),
        assets=[Asset(type="image", url=img.src) for img in images],
    )


ANALYSIS_REPLY = {
    "seoRecommendations": ["Lengthen the title"],
    "performanceIssues": [],
    "accessibilityIssues": ["Missing alt text", "Low contrast"],
    "uxSuggestions": ["Add a call to action"],
}

IMPROVEMENT_REPLY = {
    "improvements": [
        {
            "id": "better-title",
            "type": "seo",
            "title": "Better title",
            "description": "Use a descriptive title",
            "impact": "high",
            "effort": "low",
            "before": "Home",
            "after": "Acme Bakery - Fresh Bread Daily",
            "autoApplicable": True,
        }
    ]
}


class TestPrompts:
    def test_analysis_prompt_describes_the_page(self):
        snapshot = SiteSnapshot(
            url="https://acme.example",
            title="Acme",
            content="x" * 42,
            structure=PageStructure(headings=[Heading(level=1, text="Welcome")]),
        )
        prompt = build_analysis_prompt(snapshot)
        assert "https://acme.example" in prompt
        assert "42 characters" in prompt
        assert "H1: Welcome" in prompt
        assert '"seoRecommendations"' in prompt

    def test_improvement_prompt_includes_scores(self):
        prompt = build_improvement_prompt(sparse_snapshot(), Scores(seo=12, performance=34, accessibility=56, ux=78))
        assert "SEO: 12/100" in prompt
        assert "UX: 78/100" in prompt


class TestAnalyze:
    async def test_parses_reply(self):
        advisor = AIAdvisor(client=make_client(json.dumps(ANALYSIS_REPLY)))
        analysis = await advisor.analyze(sparse_snapshot())

        assert analysis.seo_recommendations == ["Lengthen the title"]
        assert analysis.accessibility_issues == ["Missing alt text", "Low contrast"]
        assert analysis.performance_issues == []

    async def test_strips_markdown_code_fence(self):
        fenced = "```json\n" + json.dumps(ANALYSIS_REPLY) + "\n```"
        advisor = AIAdvisor(client=make_client(fenced))
        analysis = await advisor.analyze(sparse_snapshot())
        assert analysis.ux_suggestions == ["Add a call to action"]

    @pytest.mark.parametrize("reply", ["not json at all", "{\"seoRecommendations\": []}", "", "   "])
    async def test_unusable_reply_falls_back(self, reply):
        snapshot = sparse_snapshot()
        advisor = AIAdvisor(client=make_client(reply))
        analysis = await advisor.analyze(snapshot)
        assert analysis == AIAdvisor.fallback_analysis(snapshot)

    async def test_service_error_falls_back(self):
        snapshot = sparse_snapshot()
        advisor = AIAdvisor(client=make_client(error=OpenAIError("connection reset")))
        analysis = await advisor.analyze(snapshot)
        assert analysis == AIAdvisor.fallback_analysis(snapshot)

    async def test_without_api_key_uses_fallback(self):
        advisor = AIAdvisor()
        assert advisor.client is None
        analysis = await advisor.analyze(sparse_snapshot())
        assert analysis.seo_recommendations


class TestGenerateImprovements:
    async def test_parses_reply_and_accepts_type_key(self):
        advisor = AIAdvisor(client=make_client(json.dumps(IMPROVEMENT_REPLY)))
        improvements = await advisor.generate_improvements(sparse_snapshot(), LOW_SCORES)

        assert len(improvements) == 1
        assert improvements[0].id == "better-title"
        assert improvements[0].category == "seo"
        assert improvements[0].auto_applicable is True

    async def test_empty_list_falls_back(self):
        advisor = AIAdvisor(client=make_client(json.dumps({"improvements": []})))
        improvements = await advisor.generate_improvements(sparse_snapshot(), LOW_SCORES)
        assert [item.id for item in improvements] == [
            "seo-title-optimization",
            "performance-image-optimization",
            "accessibility-alt-text-enhancement",
            "ux-content-structure",
        ]

    async def test_invalid_improvement_falls_back(self):
        reply = {"improvements": [{"id": "x", "type": "magic", "title": "t", "description": "d",
                                   "impact": "huge", "effort": "low"}]}
        advisor = AIAdvisor(client=make_client(json.dumps(reply)))
        improvements = await advisor.generate_improvements(sparse_snapshot(), LOW_SCORES)
        assert improvements[0].id == "seo-title-optimization"


class TestFallbackAnalysis:
    def test_hints_for_sparse_page(self):
        analysis = AIAdvisor.fallback_analysis(sparse_snapshot())
        assert len(analysis.seo_recommendations) == 2
        assert analysis.performance_issues == []
        assert analysis.accessibility_issues == ["Add alt text to images for screen readers"]
        assert len(analysis.ux_suggestions) == 1

    def test_no_hints_for_empty_snapshot_with_good_metadata(self):
        snapshot = SiteSnapshot(
            title="A sufficiently long and descriptive page title",
            description="d" * 130,
            structure=PageStructure(headings=[Heading(level=1, text="Hi")]),
        )
        analysis = AIAdvisor.fallback_analysis(snapshot)
        assert analysis.seo_recommendations == []
        assert analysis.accessibility_issues == []
        assert analysis.ux_suggestions == []


class TestFallbackImprovements:
    def test_at_most_one_per_group(self):
        improvements = AIAdvisor.fallback_improvements(sparse_snapshot(), LOW_SCORES)
        categories = [item.id.split("-")[0] for item in improvements]
        assert len(categories) == len(set(categories))

    def test_high_scores_yield_nothing(self):
        assert AIAdvisor.fallback_improvements(sparse_snapshot(), HIGH_SCORES) == []

    def test_meta_description_when_title_is_fine(self):
        snapshot = sparse_snapshot()
        snapshot.title = "A sufficiently long and descriptive page title"
        improvements = AIAdvisor.fallback_improvements(snapshot, LOW_SCORES)
        assert improvements[0].id == "seo-meta-description"
        assert improvements[0].before == "No meta description"

    def test_call_to_action_when_headings_exist(self):
        snapshot = sparse_snapshot()
        snapshot.structure.headings = [Heading(level=1, text="A"), Heading(level=2, text="B")]
        improvements = AIAdvisor.fallback_improvements(snapshot, LOW_SCORES)
        assert improvements[-1].id == "ux-call-to-action"
        assert improvements[-1].category == "layout"

    def test_disabled_options_suppress_groups(self):
        options = AnalysisOptions(seo_analysis=False, performance_analysis=False, accessibility_analysis=False)
        improvements = AIAdvisor.fallback_improvements(sparse_snapshot(), LOW_SCORES, options)
        assert [item.id for item in improvements] == ["ux-content-structure"]

    def test_performance_needs_more_than_five_images(self):
        snapshot = sparse_snapshot()
        snapshot.assets = snapshot.assets[:5]
        ids = [item.id for item in AIAdvisor.fallback_improvements(snapshot, LOW_SCORES)]
        assert "performance-image-optimization" not in ids
