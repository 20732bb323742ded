"""
Tests for the rule-based scoring engine.
"""

import pytest

from website_improver.features.analysis.schemas.site import (
    AIAnalysis,
    Asset,
    Heading,
    ImageElement,
    Link,
    PageStructure,
    Scores,
    SiteSnapshot,
)
from website_improver.features.analysis.services.scoring.scoring_engine import (
    calculate_accessibility_score,
    calculate_performance_score,
    calculate_scores,
    calculate_seo_score,
    calculate_ux_score,
)

SCORERS = [
    calculate_seo_score,
    calculate_performance_score,
    calculate_accessibility_score,
    calculate_ux_score,
]


def well_built_snapshot() -> SiteSnapshot:
    return SiteSnapshot(
        url="https://example.com",
        title="Example Plumbing - Emergency Repairs in Springfield",
        description="x" * 140,
        content="Call us or contact our team today. " + "Quality work. " * 60,
        structure=PageStructure(
            headings=[
                Heading(level=1, text="Plumbing"),
                Heading(level=2, text="Services"),
                Heading(level=2, text="About"),
            ],
            links=[Link(href="/about"), Link(href="/contact")],
            images=[ImageElement(src="/a.png", alt="A van")],
        ),
        assets=[Asset(type="image", url="/a.png")],
    )


class TestEmptySnapshot:
    """Every scorer must cope with a snapshot that has nothing in it."""

    @pytest.mark.parametrize("scorer", SCORERS)
    def test_returns_bounded_integer(self, scorer):
        score = scorer(SiteSnapshot(), [])
        assert isinstance(score, int)
        assert 0 <= score <= 100

    def test_missing_field_penalties(self):
        empty = SiteSnapshot()
        # title, description, no h1, <3 headings, short content
        assert calculate_seo_score(empty) == 100 - 20 - 20 - 15 - 10 - 15
        assert calculate_performance_score(empty) == 100
        assert calculate_accessibility_score(empty) == 100 - 15 - 10
        assert calculate_ux_score(empty) == 100 - 20 - 15 - 15 - 10 - 15 - 10

    def test_none_hints_are_treated_as_empty(self):
        assert calculate_seo_score(SiteSnapshot(), None) == calculate_seo_score(SiteSnapshot(), [])


class TestSeoScore:
    def test_clean_page_scores_full_marks(self):
        assert calculate_seo_score(well_built_snapshot()) == 100

    def test_long_title_and_description(self):
        snapshot = well_built_snapshot()
        snapshot.title = "t" * 61
        snapshot.description = "d" * 161
        assert calculate_seo_score(snapshot) == 80

    def test_missing_alt_text_is_proportional(self):
        snapshot = well_built_snapshot()
        snapshot.structure.images = [ImageElement(src="/a.png", alt=""), ImageElement(src="/b.png", alt="B")]
        # half the images lack alt text: 100 - 15 * 0.5 = 92.5
        assert calculate_seo_score(snapshot) == 93

    def test_hint_penalty_is_capped(self):
        snapshot = well_built_snapshot()
        assert calculate_seo_score(snapshot, ["a", "b"]) == 96
        assert calculate_seo_score(snapshot, ["hint"] * 20) == 90


class TestPerformanceScore:
    def test_image_count_penalties_are_cumulative(self):
        snapshot = well_built_snapshot()
        snapshot.assets = [Asset(type="image", url=f"/{i}.png") for i in range(11)]
        assert calculate_performance_score(snapshot) == 80

        snapshot.assets = [Asset(type="image", url=f"/{i}.png") for i in range(21)]
        assert calculate_performance_score(snapshot) == 50

    def test_stylesheets_do_not_count_as_images(self):
        snapshot = well_built_snapshot()
        snapshot.assets = [Asset(type="css", url=f"/{i}.css") for i in range(30)]
        assert calculate_performance_score(snapshot) == 100

    def test_large_content_and_oversized_image(self):
        snapshot = well_built_snapshot()
        snapshot.content = "x" * 50001
        snapshot.structure.images = [ImageElement(src="/hero.jpg", alt="Hero", width=1920, height=600)]
        assert calculate_performance_score(snapshot) == 70

    def test_hint_penalty_cap(self):
        assert calculate_performance_score(well_built_snapshot(), ["slow"] * 10) == 85


class TestAccessibilityScore:
    def test_all_images_missing_alt(self):
        snapshot = well_built_snapshot()
        snapshot.structure.images = [ImageElement(src="/a.png"), ImageElement(src="/b.png", alt="   ")]
        assert calculate_accessibility_score(snapshot) == 75

    def test_heading_rules(self):
        snapshot = well_built_snapshot()
        snapshot.structure.headings = [Heading(level=2, text="Only")]
        assert calculate_accessibility_score(snapshot) == 75

    def test_hint_penalty_cap(self):
        assert calculate_accessibility_score(well_built_snapshot(), ["x"] * 3) == 88
        assert calculate_accessibility_score(well_built_snapshot(), ["x"] * 9) == 80


class TestUxScore:
    def test_call_to_action_is_case_insensitive(self):
        snapshot = well_built_snapshot()
        snapshot.content = "BUY NOW " + "text " * 200
        assert calculate_ux_score(snapshot) == 100

    def test_missing_call_to_action(self):
        snapshot = well_built_snapshot()
        snapshot.content = "lorem ipsum " * 100
        assert calculate_ux_score(snapshot) == 90


class TestCalculateScores:
    def test_uses_hint_counts_per_dimension(self):
        analysis = AIAnalysis(
            seo_recommendations=["a"],
            performance_issues=["b"],
            accessibility_issues=["c"],
            ux_suggestions=["d"],
        )
        scores = calculate_scores(well_built_snapshot(), analysis)
        assert (scores.seo, scores.performance, scores.accessibility, scores.ux) == (98, 97, 96, 98)
        assert scores.overall == 97

    def test_overall_rounds_halves_up(self):
        assert Scores(seo=1, performance=2, accessibility=0, ux=7).overall == 3
        assert Scores(seo=2, performance=2, accessibility=2, ux=4).overall == 3
        assert Scores(seo=90, performance=90, accessibility=90, ux=91).overall == 90

    def test_hints_never_raise_a_score(self):
        snapshots = [SiteSnapshot(), well_built_snapshot()]
        hints = ["one", "two", "three"]
        for snapshot in snapshots:
            for scorer in SCORERS:
                assert scorer(snapshot, hints) <= scorer(snapshot, [])

    def test_without_analysis(self):
        scores = calculate_scores(well_built_snapshot())
        assert scores.seo == 100
