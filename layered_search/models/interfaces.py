from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from layered_search.exceptions import LayeredSearchError


# --- Page fetching ---


@dataclass(frozen=True, slots=True)
class PageData:
    url: str
    title: str
    description: str | None = None
    body_text: str = ""
    body_markdown: str = ""
    favicon: str | None = None
    preview_image: str | None = None
    site_name: str | None = None


@dataclass(frozen=True, slots=True)
class FetchFailure:
    url: str
    error: LayeredSearchError

    @property
    def kind(self) -> str:
        return self.error.kind

    @property
    def message(self) -> str:
        return str(self.error)


# --- Search providers ---


@dataclass(frozen=True, slots=True)
class WebResult:
    url: str
    title: str
    description: str = ""
    site_name: str | None = None


@dataclass(frozen=True, slots=True)
class NewsResult:
    url: str
    title: str
    description: str = ""
    source: str | None = None
    date: str | None = None
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class ImageResult:
    url: str
    title: str
    image_url: str
    source: str | None = None
    width: int | None = None
    height: int | None = None


@dataclass(slots=True)
class SearchResponse:
    web: list[WebResult] = field(default_factory=list)
    news: list[NewsResult] = field(default_factory=list)
    images: list[ImageResult] = field(default_factory=list)
    provider: str = "none"


# --- Integrated search ---


@dataclass(frozen=True, slots=True)
class WebDocument:
    url: str
    title: str
    description: str | None = None
    body_text: str | None = None
    body_markdown: str | None = None
    favicon: str | None = None
    preview_image: str | None = None
    site_name: str | None = None
    scraped: bool = False


@dataclass(slots=True)
class IntegratedSearchResult:
    web: list[WebDocument] = field(default_factory=list)
    news: list[NewsResult] = field(default_factory=list)
    images: list[ImageResult] = field(default_factory=list)


# --- Multi-layer session ---


@dataclass(frozen=True, slots=True)
class Source:
    url: str
    title: str
    layer: int
    description: str | None = None
    body_text: str | None = None
    body_markdown: str | None = None
    favicon: str | None = None
    preview_image: str | None = None
    site_name: str | None = None

    @classmethod
    def from_document(cls, document: WebDocument, layer: int) -> "Source":
        return cls(
            url=document.url,
            title=document.title,
            layer=layer,
            description=document.description,
            body_text=document.body_text,
            body_markdown=document.body_markdown,
            favicon=document.favicon,
            preview_image=document.preview_image,
            site_name=document.site_name,
        )


@dataclass(frozen=True, slots=True)
class NewsItem:
    url: str
    title: str
    layer: int
    description: str | None = None
    published_date: str | None = None
    source: str | None = None
    image: str | None = None

    @classmethod
    def from_result(cls, result: NewsResult, layer: int) -> "NewsItem":
        return cls(
            url=result.url,
            title=result.title,
            layer=layer,
            description=result.description or None,
            published_date=result.date,
            source=result.source,
            image=result.image_url,
        )


@dataclass(frozen=True, slots=True)
class ImageItem:
    url: str
    title: str
    thumbnail: str | None = None
    source: str | None = None
    width: int | None = None
    height: int | None = None

    @classmethod
    def from_result(cls, result: ImageResult) -> "ImageItem":
        return cls(
            url=result.url,
            title=result.title,
            thumbnail=result.image_url,
            source=result.source,
            width=result.width,
            height=result.height,
        )


@dataclass(frozen=True, slots=True)
class LayerResult:
    layer: int
    query: str
    sources: tuple[Source, ...]
    news: tuple[NewsItem, ...]
    coverage: float
    gaps: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class SessionResult:
    layers: tuple[LayerResult, ...]
    sources: tuple[Source, ...]
    news: tuple[NewsItem, ...]
    images: tuple[ImageItem, ...]
    total_searches: int
    final_coverage: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
