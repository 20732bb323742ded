"""
Scoring engine.

Each dimension starts at 100, subtracts a fixed set of rule penalties plus a
capped penalty per AI issue hint, and is clamped to an integer in [0, 100].
The functions are pure and accept the empty snapshot.
"""
import math
from typing import Optional, Sequence

from website_improver.features.analysis.schemas.site import AIAnalysis, Scores, SiteSnapshot

CALL_TO_ACTION_KEYWORDS = ("contact", "call", "buy")


def _clamp(score: float) -> int:
    # Halves round up
    return max(0, min(100, int(math.floor(score + 0.5))))


def _missing_alt_ratio(snapshot: SiteSnapshot) -> float:
    images = snapshot.structure.images
    if not images:
        return 0.0
    return len(snapshot.images_missing_alt) / len(images)


def _hint_penalty(hints: Optional[Sequence[str]], per_hint: int, cap: int) -> int:
    return min(cap, per_hint * len(hints or []))


def has_call_to_action(content: str) -> bool:
    lowered = (content or "").lower()
    return any(keyword in lowered for keyword in CALL_TO_ACTION_KEYWORDS)


def calculate_seo_score(snapshot: SiteSnapshot, recommendations: Optional[Sequence[str]] = None) -> int:
    score = 100.0
    title = snapshot.title or ""
    description = snapshot.description or ""
    headings = snapshot.structure.headings

    if len(title) < 30:
        score -= 20
    if len(title) > 60:
        score -= 10

    if len(description) < 120:
        score -= 20
    if len(description) > 160:
        score -= 10

    if not snapshot.has_h1:
        score -= 15
    if len(headings) < 3:
        score -= 10

    if len(snapshot.content or "") < 300:
        score -= 15

    score -= _missing_alt_ratio(snapshot) * 15
    score -= _hint_penalty(recommendations, per_hint=2, cap=10)

    return _clamp(score)


def calculate_performance_score(snapshot: SiteSnapshot, issues: Optional[Sequence[str]] = None) -> int:
    score = 100.0
    image_count = len(snapshot.image_assets)

    if image_count > 10:
        score -= 20
    if image_count > 20:
        score -= 30

    if len(snapshot.content or "") > 50000:
        score -= 15

    oversized = [
        img for img in snapshot.structure.images
        if (img.width and img.width > 1200) or (img.height and img.height > 800)
    ]
    if oversized:
        score -= 15

    score -= _hint_penalty(issues, per_hint=3, cap=15)

    return _clamp(score)


def calculate_accessibility_score(snapshot: SiteSnapshot, issues: Optional[Sequence[str]] = None) -> int:
    score = 100.0

    score -= _missing_alt_ratio(snapshot) * 25

    if not snapshot.has_h1:
        score -= 15
    if len(snapshot.structure.headings) < 2:
        score -= 10

    score -= _hint_penalty(issues, per_hint=4, cap=20)

    return _clamp(score)


def calculate_ux_score(snapshot: SiteSnapshot, suggestions: Optional[Sequence[str]] = None) -> int:
    score = 100.0
    content = snapshot.content or ""

    if len(content) < 500:
        score -= 20
    if len(snapshot.title or "") < 10:
        score -= 15
    if not snapshot.description:
        score -= 15

    if len(snapshot.structure.links) < 2:
        score -= 10
    if not snapshot.structure.headings:
        score -= 15

    if not has_call_to_action(content):
        score -= 10

    score -= _hint_penalty(suggestions, per_hint=2, cap=15)

    return _clamp(score)


def calculate_scores(snapshot: SiteSnapshot, analysis: Optional[AIAnalysis] = None) -> Scores:
    if analysis is None:
        analysis = AIAnalysis(
            seo_recommendations=[],
            performance_issues=[],
            accessibility_issues=[],
            ux_suggestions=[],
        )

    return Scores(
        seo=calculate_seo_score(snapshot, analysis.seo_recommendations),
        performance=calculate_performance_score(snapshot, analysis.performance_issues),
        accessibility=calculate_accessibility_score(snapshot, analysis.accessibility_issues),
        ux=calculate_ux_score(snapshot, analysis.ux_suggestions),
    )
