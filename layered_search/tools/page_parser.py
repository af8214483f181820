"""HTML to PageData parsing pipeline.

Metadata is read from the untouched document first. Boilerplate is then
removed from a separate working copy, the main content container is chosen
from a list of candidate selectors, and that container is rendered to both
Markdown and plain text.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from markdownify import ATX, MarkdownConverter

from layered_search.config import settings
from layered_search.exceptions import ParseError
from layered_search.models.interfaces import PageData
from layered_search.tools.web_utils import normalize_text, site_name_from_url, truncate

BOILERPLATE_SELECTORS = (
    "script",
    "style",
    "noscript",
    "iframe",
    "svg",
    "nav",
    "header",
    "footer",
    "aside",
    ".sidebar",
    ".advertisement",
    ".ads",
    ".ad",
    ".social-share",
    ".comments",
    ".comment",
    ".related-posts",
    ".recommended",
    '[role="banner"]',
    '[role="navigation"]',
    '[role="complementary"]',
    '[aria-hidden="true"]',
)

CONTENT_SELECTORS = (
    "main",
    "article",
    '[role="main"]',
    ".main-content",
    ".content",
    ".post-content",
    ".article-content",
    ".entry-content",
    "#content",
    "#main",
)


class _PageMarkdownConverter(MarkdownConverter):
    """Markdown converter that drops images and collapses non-navigable links."""

    def convert_img(self, el, text, *args, **kwargs):
        return ""

    def convert_a(self, el, text, *args, **kwargs):
        href = (el.get("href") or "").strip()
        if not href or href.startswith("#") or href.lower().startswith("javascript:"):
            return text
        return super().convert_a(el, text, *args, **kwargs)


def html_to_markdown(html: str) -> str:
    converter = _PageMarkdownConverter(heading_style=ATX, bullets="-")
    markdown = converter.convert(html)
    markdown = re.sub(r"[ \t]+\n", "\n", markdown)
    markdown = re.sub(r"\n{3,}", "\n\n", markdown)
    return markdown.strip()


def _meta_content(scope: Tag | BeautifulSoup, name: str) -> str | None:
    for attr in ("name", "property"):
        tag = scope.select_one(f'meta[{attr}="{name}"]')
        if tag is not None:
            content = (tag.get("content") or "").strip()
            if content:
                return content
    return None


def extract_metadata(soup: BeautifulSoup, url: str) -> dict[str, str | None]:
    # Body markup such as an inline SVG <title> must not leak into page metadata.
    head = soup.head or soup
    title_el = next((t for t in head.find_all("title") if t.find_parent("svg") is None), None)
    title_tag = title_el.get_text(strip=True) if title_el else ""
    title = _meta_content(head, "og:title") or _meta_content(head, "twitter:title") or title_tag or "Untitled"

    description = (
        _meta_content(head, "og:description")
        or _meta_content(head, "twitter:description")
        or _meta_content(head, "description")
    )
    preview_image = _meta_content(head, "og:image") or _meta_content(head, "twitter:image")
    site_name = _meta_content(head, "og:site_name") or site_name_from_url(url)

    favicon: str | None = None
    icon = head.select_one('link[rel~="icon"]')
    href = (icon.get("href") or "").strip() if icon is not None else ""
    try:
        favicon = urljoin(url, href) if href else urljoin(url, "/favicon.ico")
    except ValueError:
        favicon = None
    if preview_image:
        preview_image = urljoin(url, preview_image)

    return {
        "title": title,
        "description": description,
        "preview_image": preview_image,
        "site_name": site_name,
        "favicon": favicon,
    }


def remove_boilerplate(soup: BeautifulSoup) -> None:
    for selector in BOILERPLATE_SELECTORS:
        for element in soup.select(selector):
            if element.decomposed:
                continue
            element.decompose()


def select_main_container(soup: BeautifulSoup, *, min_chars: int | None = None) -> Tag:
    """First candidate container with more than min_chars of text, else <body>."""
    threshold = settings.min_container_chars if min_chars is None else min_chars
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        if len(element.get_text().strip()) > threshold:
            return element
    return soup.body or soup


def parse_page(
    html: str,
    url: str,
    *,
    max_text_chars: int | None = None,
    max_markdown_chars: int | None = None,
    min_container_chars: int | None = None,
) -> PageData:
    """Turn one HTML document into PageData. Raises ParseError when nothing is extractable."""
    text_cap = settings.max_text_chars if max_text_chars is None else max_text_chars
    markdown_cap = settings.max_markdown_chars if max_markdown_chars is None else max_markdown_chars

    metadata = extract_metadata(BeautifulSoup(html, "html.parser"), url)

    working = BeautifulSoup(html, "html.parser")
    remove_boilerplate(working)
    container = select_main_container(working, min_chars=min_container_chars)
    container_html = container.decode_contents()

    body_markdown = html_to_markdown(container_html)
    body_text = normalize_text(BeautifulSoup(container_html, "html.parser").get_text("\n"))
    if not body_text and not body_markdown:
        raise ParseError(f"No extractable content at {url}")

    return PageData(
        url=url,
        title=metadata["title"] or "Untitled",
        description=metadata["description"],
        body_text=truncate(body_text, text_cap),
        body_markdown=truncate(body_markdown, markdown_cap),
        favicon=metadata["favicon"],
        preview_image=metadata["preview_image"],
        site_name=metadata["site_name"],
    )
