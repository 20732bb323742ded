"""
AI advisor.

Asks the text-generation service for issue hints and improvement suggestions.
The service is optional: any failure (no API key, network error, empty or
malformed reply) is logged and replaced by deterministic rule-based output,
so the pipeline never fails because of it.
"""
import json
from typing import List, Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from website_improver.features.analysis.schemas.analysis import AnalysisOptions
from website_improver.features.analysis.schemas.site import (
    AIAnalysis,
    Improvement,
    Scores,
    SiteSnapshot,
)
from website_improver.features.analysis.services.scoring.scoring_engine import has_call_to_action
from website_improver.platform.config import settings
from website_improver.platform.exceptions import UpstreamFailureError
from website_improver.platform.logger import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert web developer and UX designer specializing in website optimization. "
    "Provide specific, actionable recommendations for improving websites."
)


class _ImprovementReply(BaseModel):
    improvements: List[Improvement]


def _strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def build_analysis_prompt(snapshot: SiteSnapshot) -> str:
    headings = ", ".join(f"H{h.level}: {h.text[:50]}" for h in snapshot.structure.headings)
    return f"""
Analyze this website and provide specific improvement recommendations:

Website URL: {snapshot.url}
Title: {snapshot.title}
Description: {snapshot.description}
Content Length: {len(snapshot.content)} characters

Structure:
- Headings: {len(snapshot.structure.headings)} ({headings})
- Links: {len(snapshot.structure.links)}
- Images: {len(snapshot.structure.images)}

Assets: {len(snapshot.assets)} total assets

Please analyze and provide:
1. SEO improvements (title, meta description, headings, content structure)
2. Performance optimizations (images, loading speed, asset optimization)
3. Accessibility enhancements (alt text, contrast, keyboard navigation)
4. UX improvements (layout, navigation, call-to-actions)

Format your response as JSON with this structure:
{{
  "seoRecommendations": ["recommendation1", "recommendation2"],
  "performanceIssues": ["issue1", "issue2"],
  "accessibilityIssues": ["issue1", "issue2"],
  "uxSuggestions": ["suggestion1", "suggestion2"]
}}
"""


def build_improvement_prompt(snapshot: SiteSnapshot, scores: Scores) -> str:
    return f"""
Generate specific, actionable improvements for this website:

Website: {snapshot.url}
Title: {snapshot.title}
Current Scores:
- SEO: {scores.seo}/100
- Performance: {scores.performance}/100
- Accessibility: {scores.accessibility}/100
- UX: {scores.ux}/100

Content: {snapshot.content[:1000]}...

Generate 3-5 high-impact improvements. For each improvement, provide:
- A unique ID
- Type (seo, performance, accessibility, layout, content)
- Title (concise description)
- Description (detailed explanation)
- Impact level (low, medium, high)
- Effort level (low, medium, high)
- Before/after examples
- Whether it can be auto-applied

Format as JSON:
{{
  "improvements": [
    {{
      "id": "unique-id",
      "type": "seo|performance|accessibility|layout|content",
      "title": "Short title",
      "description": "Detailed description",
      "impact": "low|medium|high",
      "effort": "low|medium|high",
      "before": "Current state",
      "after": "Improved state",
      "autoApplicable": true
    }}
  ]
}}
"""


class AIAdvisor:
    def __init__(self, client: Optional[AsyncOpenAI] = None):
        if client is None and settings.OPENAI_API_KEY:
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
            )
        self.client = client

    async def _complete(self, prompt: str) -> str:
        if self.client is None:
            raise UpstreamFailureError("AI service is not configured")

        try:
            completion = await self.client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=settings.OPENAI_MAX_TOKENS,
                temperature=settings.OPENAI_TEMPERATURE,
            )
        except OpenAIError as e:
            raise UpstreamFailureError(f"AI service error: {e}")

        text = completion.choices[0].message.content if completion.choices else None
        if not text or not text.strip():
            raise UpstreamFailureError("AI service returned an empty response")
        return _strip_code_fence(text)

    @staticmethod
    def _parse(text: str, model):
        try:
            return model.model_validate(json.loads(text))
        except (ValueError, ValidationError) as e:
            raise UpstreamFailureError(f"AI response did not match the expected shape: {e}")

    async def analyze(self, snapshot: SiteSnapshot) -> AIAnalysis:
        try:
            text = await self._complete(build_analysis_prompt(snapshot))
            return self._parse(text, AIAnalysis)
        except UpstreamFailureError as e:
            logger.warning(f"AI analysis failed for {snapshot.url}, using fallback: {e.message}")
            return self.fallback_analysis(snapshot)

    async def generate_improvements(
        self,
        snapshot: SiteSnapshot,
        scores: Scores,
        options: Optional[AnalysisOptions] = None,
    ) -> List[Improvement]:
        try:
            text = await self._complete(build_improvement_prompt(snapshot, scores))
            improvements = self._parse(text, _ImprovementReply).improvements
        except UpstreamFailureError as e:
            logger.warning(f"AI improvement generation failed for {snapshot.url}, using fallback: {e.message}")
            return self.fallback_improvements(snapshot, scores, options)

        if not improvements:
            logger.info(f"AI returned no improvements for {snapshot.url}, using fallback")
            return self.fallback_improvements(snapshot, scores, options)
        return improvements

    @staticmethod
    def fallback_analysis(snapshot: SiteSnapshot) -> AIAnalysis:
        seo, performance, accessibility, ux = [], [], [], []

        if len(snapshot.title or "") < 30:
            seo.append("Improve page title length and descriptiveness")
        if len(snapshot.description or "") < 120:
            seo.append("Add or improve meta description")

        if len(snapshot.image_assets) > 10:
            performance.append("Consider optimizing or reducing the number of images")

        if snapshot.images_missing_alt:
            accessibility.append("Add alt text to images for screen readers")

        if not snapshot.structure.headings:
            ux.append("Add proper heading structure for better content organization")

        return AIAnalysis(
            seo_recommendations=seo,
            performance_issues=performance,
            accessibility_issues=accessibility,
            ux_suggestions=ux,
        )

    @staticmethod
    def fallback_improvements(
        snapshot: SiteSnapshot,
        scores: Scores,
        options: Optional[AnalysisOptions] = None,
    ) -> List[Improvement]:
        """At most one improvement per score group, each with a stable id."""
        options = options or AnalysisOptions()
        improvements = []
        title = snapshot.title or ""
        description = snapshot.description or ""

        if options.seo_analysis and scores.seo < 80:
            if len(title) < 30:
                improvements.append(Improvement(
                    id="seo-title-optimization",
                    category="seo",
                    title="Optimize page title",
                    description="The page title should be more descriptive, include target keywords, "
                                "and be between 30-60 characters for optimal SEO performance.",
                    impact="high",
                    effort="low",
                    before=title or "No title",
                    after=f"{title or 'Your Business'} - Professional Services & Expert Solutions",
                    auto_applicable=True,
                ))
            elif len(description) < 120:
                improvements.append(Improvement(
                    id="seo-meta-description",
                    category="seo",
                    title="Add compelling meta description",
                    description="A well-crafted meta description between 120-160 characters improves "
                                "click-through rates from search results.",
                    impact="high",
                    effort="low",
                    before=description or "No meta description",
                    after="Professional services and expert solutions tailored to your needs. Contact us "
                          "today for outstanding results and personalized consultation.",
                    auto_applicable=True,
                ))

        if options.performance_analysis and scores.performance < 70:
            image_count = len(snapshot.image_assets)
            if image_count > 5:
                improvements.append(Improvement(
                    id="performance-image-optimization",
                    category="performance",
                    title="Optimize images for faster loading",
                    description="Compress images, convert to modern formats like WebP, and implement lazy "
                                "loading to significantly improve page speed.",
                    impact="high",
                    effort="medium",
                    before=f"{image_count} unoptimized images affecting load time",
                    after="Compressed WebP images with lazy loading and appropriate sizing",
                    auto_applicable=False,
                ))

        if options.accessibility_analysis and scores.accessibility < 80:
            missing_alt = len(snapshot.images_missing_alt)
            if missing_alt > 0:
                improvements.append(Improvement(
                    id="accessibility-alt-text-enhancement",
                    category="accessibility",
                    title="Add descriptive alt text to images",
                    description="Provide meaningful alt text for all images to ensure screen reader users "
                                "can understand the visual content.",
                    impact="high",
                    effort="low",
                    before=f"{missing_alt} images missing alt text",
                    after="All images have descriptive, contextual alt text",
                    auto_applicable=True,
                ))

        if scores.ux < 75:
            if len(snapshot.structure.headings) < 2:
                improvements.append(Improvement(
                    id="ux-content-structure",
                    category="content",
                    title="Improve content organization",
                    description="Add clear headings and structure to make content more scannable and "
                                "user-friendly.",
                    impact="medium",
                    effort="low",
                    before="Unstructured content without clear hierarchy",
                    after="Well-organized content with clear headings and logical flow",
                    auto_applicable=True,
                ))
            elif not has_call_to_action(snapshot.content):
                improvements.append(Improvement(
                    id="ux-call-to-action",
                    category="layout",
                    title="Add clear call-to-action",
                    description="Include prominent, action-oriented buttons that guide users toward "
                                "desired actions.",
                    impact="high",
                    effort="low",
                    before="No clear call-to-action elements",
                    after='Prominent "Contact Us" and "Get Started" buttons with compelling copy',
                    auto_applicable=True,
                ))

        return improvements
