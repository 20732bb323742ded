import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from website_improver.features.analysis.schemas.site import (
    Asset,
    FormElement,
    FormField,
    Heading,
    ImageElement,
    Link,
    NavigationElement,
    NavigationItem,
    PageStructure,
    Screenshot,
    SiteMetadata,
    SiteSnapshot,
)
from website_improver.features.analysis.services.scraping.scraping_service import ScrapedPage
from website_improver.platform.logger import get_logger

logger = get_logger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
SKIPPED_INPUT_TYPES = {"hidden", "submit", "button", "reset", "image"}
_LEADING_INT = re.compile(r"^\s*(\d+)")


def _parse(html: Optional[str]) -> BeautifulSoup:
    try:
        return BeautifulSoup(html or "", "html.parser")
    except Exception as e:
        logger.warning(f"Could not parse markup, treating page as empty: {e}")
        return BeautifulSoup("", "html.parser")


def _text(el: Tag) -> str:
    return " ".join(el.get_text(" ", strip=True).split())


def _dimension(value: Any) -> Optional[int]:
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def _is_absolute(href: str) -> bool:
    return href.startswith(("http://", "https://", "//"))


def _is_active(el: Tag) -> bool:
    classes = el.get("class") or []
    return el.has_attr("aria-current") or "active" in classes


class ContentExtractor:
    """Turns raw page markup into the structural parts of a site snapshot."""

    @staticmethod
    def extract_headings(soup: BeautifulSoup) -> List[Heading]:
        headings = []
        for el in soup.find_all(HEADING_TAGS):
            headings.append(Heading(level=int(el.name[1]), text=_text(el), id=el.get("id")))
        return headings

    @staticmethod
    def extract_links(soup: BeautifulSoup) -> List[Link]:
        links = []
        for a in soup.find_all("a", href=True):
            href = a["href"].strip()
            rel = a.get("rel")
            links.append(Link(
                href=href,
                text=_text(a),
                type="external" if _is_absolute(href) else "internal",
                rel=" ".join(rel) if isinstance(rel, list) else rel,
            ))
        return links

    @staticmethod
    def extract_images(soup: BeautifulSoup) -> List[ImageElement]:
        images = []
        for img in soup.find_all("img"):
            images.append(ImageElement(
                src=img.get("src") or "",
                alt=img.get("alt") or "",
                width=_dimension(img.get("width")),
                height=_dimension(img.get("height")),
                loading=img.get("loading"),
            ))
        return images

    @staticmethod
    def _field_label(soup: BeautifulSoup, field: Tag) -> Optional[str]:
        field_id = field.get("id")
        if field_id:
            label = soup.find("label", attrs={"for": field_id})
            if label:
                return _text(label) or None
        wrapping = field.find_parent("label")
        if wrapping:
            return _text(wrapping) or None
        return field.get("aria-label") or field.get("placeholder")

    @staticmethod
    def extract_forms(soup: BeautifulSoup) -> List[FormElement]:
        forms = []
        for form in soup.find_all("form"):
            fields = []
            for field in form.find_all(["input", "select", "textarea"]):
                if field.name == "input":
                    field_type = (field.get("type") or "text").lower()
                    if field_type in SKIPPED_INPUT_TYPES:
                        continue
                else:
                    field_type = field.name
                fields.append(FormField(
                    type=field_type,
                    name=field.get("name") or field.get("id") or "",
                    label=ContentExtractor._field_label(soup, field),
                    required=field.has_attr("required"),
                ))

            method = (form.get("method") or "GET").upper()
            forms.append(FormElement(
                id=form.get("id"),
                action=form.get("action") or "",
                method=method if method in ("GET", "POST") else "GET",
                fields=fields,
            ))
        return forms

    @staticmethod
    def _nav_items(container: Tag) -> List[NavigationItem]:
        return [
            NavigationItem(text=_text(a), href=a["href"].strip(), active=_is_active(a))
            for a in container.find_all("a", href=True)
        ]

    @staticmethod
    def extract_navigation(soup: BeautifulSoup) -> List[NavigationElement]:
        navigation = []

        for tag, nav_type in (("header", "header"), ("footer", "footer")):
            for container in soup.find_all(tag):
                items = ContentExtractor._nav_items(container)
                if items:
                    navigation.append(NavigationElement(type=nav_type, items=items))

        for nav in soup.find_all("nav"):
            if nav.find_parent(["header", "footer"]):
                continue
            marker = " ".join([nav.get("aria-label") or ""] + (nav.get("class") or [])).lower()
            if "breadcrumb" in marker:
                nav_type = "breadcrumb"
            elif nav.find_parent("aside") or "sidebar" in marker:
                nav_type = "sidebar"
            else:
                nav_type = "header"
            items = ContentExtractor._nav_items(nav)
            if items:
                navigation.append(NavigationElement(type=nav_type, items=items))

        return navigation

    @staticmethod
    def extract_structure(html: Optional[str]) -> PageStructure:
        soup = _parse(html)
        return PageStructure(
            headings=ContentExtractor.extract_headings(soup),
            links=ContentExtractor.extract_links(soup),
            images=ContentExtractor.extract_images(soup),
            forms=ContentExtractor.extract_forms(soup),
            navigation=ContentExtractor.extract_navigation(soup),
        )

    @staticmethod
    def extract_assets(html: Optional[str]) -> List[Asset]:
        """Images with a src and stylesheet links, all unoptimized until measured."""
        soup = _parse(html)
        assets = []

        for img in soup.find_all("img"):
            src = (img.get("src") or "").strip()
            if src:
                assets.append(Asset(type="image", url=src, optimized=False))

        for link in soup.find_all("link", href=True):
            rel = link.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if "stylesheet" in [r.lower() for r in rel]:
                assets.append(Asset(type="css", url=link["href"].strip(), optimized=False))

        return assets

    @staticmethod
    def extract_metadata(html: Optional[str], scraped_metadata: Optional[Dict[str, Any]] = None) -> SiteMetadata:
        """Meta, Open Graph and Twitter tags plus JSON-LD blocks; scraper metadata fills gaps."""
        soup = _parse(html)
        scraped = scraped_metadata or {}

        meta_tags: Dict[str, str] = {}
        og_tags: Dict[str, str] = {}
        twitter_tags: Dict[str, str] = {}

        for meta in soup.find_all("meta"):
            content = meta.get("content")
            if content is None:
                continue
            key = (meta.get("property") or meta.get("name") or "").strip().lower()
            if not key:
                continue
            if key.startswith("og:"):
                og_tags[key[3:]] = content
            elif key.startswith("twitter:"):
                twitter_tags[key[8:]] = content
            else:
                meta_tags[key] = content

        structured_data: List[Dict[str, Any]] = []
        for script in soup.find_all("script", type="application/ld+json"):
            try:
                payload = json.loads(script.string or "")
            except ValueError:
                continue
            if isinstance(payload, list):
                structured_data.extend(item for item in payload if isinstance(item, dict))
            elif isinstance(payload, dict):
                structured_data.append(payload)

        title_tag = soup.find("title")
        title = _text(title_tag) if title_tag else ""
        title = title or scraped.get("title") or ""
        description = meta_tags.get("description") or scraped.get("description") or ""

        raw_keywords = meta_tags.get("keywords") or scraped.get("keywords") or ""
        if isinstance(raw_keywords, list):
            keywords = [str(k).strip() for k in raw_keywords if str(k).strip()]
        else:
            keywords = [k.strip() for k in str(raw_keywords).split(",") if k.strip()]

        for scraped_key, og_key in (("ogTitle", "title"), ("ogDescription", "description"),
                                    ("ogImage", "image"), ("ogUrl", "url")):
            if scraped.get(scraped_key) and og_key not in og_tags:
                og_tags[og_key] = str(scraped[scraped_key])

        return SiteMetadata(
            title=title,
            description=description,
            keywords=keywords,
            og_tags=og_tags,
            twitter_tags=twitter_tags,
            structured_data=structured_data,
            meta_tags=meta_tags,
        )

    @classmethod
    def build_snapshot(cls, page: ScrapedPage) -> SiteSnapshot:
        metadata = cls.extract_metadata(page.html, page.metadata)
        screenshots = []
        if page.screenshot:
            screenshots.append(Screenshot(
                type="desktop",
                url=page.screenshot,
                width=1920,
                height=1080,
                timestamp=datetime.now(timezone.utc),
            ))

        url = page.metadata.get("ogUrl") or page.metadata.get("sourceURL") or page.url

        return SiteSnapshot(
            url=url or "",
            title=metadata.title,
            description=metadata.description,
            content=page.markdown or "",
            structure=cls.extract_structure(page.html),
            assets=cls.extract_assets(page.html),
            metadata=metadata,
            screenshots=screenshots,
        )
