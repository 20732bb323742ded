"""
Site snapshot, improvement and score models.

These are the shapes passed between the extractor, the AI advisor and the
scoring engine, and stored as JSON on a completed job.
"""
import math
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts either spelling on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Snapshot structure
# ============================================================================

class Heading(CamelModel):
    level: int = Field(ge=1, le=6)
    text: str = ""
    id: Optional[str] = None


class Link(CamelModel):
    href: str
    text: str = ""
    type: Literal["internal", "external"] = "internal"
    rel: Optional[str] = None


class ImageElement(CamelModel):
    src: str = ""
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    loading: Optional[str] = None


class FormField(CamelModel):
    type: str = "text"
    name: str = ""
    label: Optional[str] = None
    required: bool = False


class FormElement(CamelModel):
    id: Optional[str] = None
    action: str = ""
    method: Literal["GET", "POST"] = "GET"
    fields: List[FormField] = Field(default_factory=list)


class NavigationItem(CamelModel):
    text: str = ""
    href: str = ""
    active: bool = False


class NavigationElement(CamelModel):
    type: Literal["header", "footer", "sidebar", "breadcrumb"]
    items: List[NavigationItem] = Field(default_factory=list)


class PageStructure(CamelModel):
    headings: List[Heading] = Field(default_factory=list)
    links: List[Link] = Field(default_factory=list)
    images: List[ImageElement] = Field(default_factory=list)
    forms: List[FormElement] = Field(default_factory=list)
    navigation: List[NavigationElement] = Field(default_factory=list)


class Asset(CamelModel):
    type: Literal["image", "css", "js", "font", "video"]
    url: str
    size: Optional[int] = None
    load_time: Optional[float] = None
    optimized: bool = False


class SiteMetadata(CamelModel):
    title: str = ""
    description: str = ""
    keywords: List[str] = Field(default_factory=list)
    og_tags: Dict[str, str] = Field(default_factory=dict)
    twitter_tags: Dict[str, str] = Field(default_factory=dict)
    structured_data: List[Dict[str, Any]] = Field(default_factory=list)
    meta_tags: Dict[str, str] = Field(default_factory=dict)


class Screenshot(CamelModel):
    type: Literal["desktop", "mobile", "tablet"] = "desktop"
    url: str
    width: int = 1920
    height: int = 1080
    timestamp: datetime


class SiteSnapshot(CamelModel):
    url: str = ""
    title: str = ""
    description: str = ""
    content: str = ""
    structure: PageStructure = Field(default_factory=PageStructure)
    assets: List[Asset] = Field(default_factory=list)
    metadata: SiteMetadata = Field(default_factory=SiteMetadata)
    screenshots: List[Screenshot] = Field(default_factory=list)

    @property
    def image_assets(self) -> List[Asset]:
        return [asset for asset in self.assets if asset.type == "image"]

    @property
    def images_missing_alt(self) -> List[ImageElement]:
        return [img for img in self.structure.images if not (img.alt or "").strip()]

    @property
    def has_h1(self) -> bool:
        return any(heading.level == 1 for heading in self.structure.headings)


# ============================================================================
# Advice, improvements and scores
# ============================================================================

ImprovementCategory = Literal["content", "layout", "seo", "performance", "accessibility"]
Level = Literal["low", "medium", "high"]


class Improvement(CamelModel):
    id: str
    category: ImprovementCategory = Field(validation_alias=AliasChoices("category", "type"))
    title: str
    description: str
    impact: Level
    effort: Level
    before: str = ""
    after: str = ""
    auto_applicable: bool = False


class AIAnalysis(CamelModel):
    """Issue hints per dimension. Hint counts drive the scoring penalties."""
    seo_recommendations: List[str]
    performance_issues: List[str]
    accessibility_issues: List[str]
    ux_suggestions: List[str]


class Scores(CamelModel):
    seo: int = Field(ge=0, le=100)
    performance: int = Field(ge=0, le=100)
    accessibility: int = Field(ge=0, le=100)
    ux: int = Field(ge=0, le=100)

    @property
    def overall(self) -> int:
        return int(math.floor((self.seo + self.performance + self.accessibility + self.ux) / 4 + 0.5))
