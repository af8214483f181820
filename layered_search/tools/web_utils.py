from __future__ import annotations

import random
import re
from urllib.parse import urlparse

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
)

BROWSER_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
BROWSER_ACCEPT_LANGUAGE = "en-US,en;q=0.7,ja;q=0.3"

_TAG_RE = re.compile(r"<[^>]+>")


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def browser_headers() -> dict[str, str]:
    """Headers for plain HTML requests, with a rotated User-Agent."""
    return {
        "User-Agent": random_user_agent(),
        "Accept": BROWSER_ACCEPT,
        "Accept-Language": BROWSER_ACCEPT_LANGUAGE,
    }


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except Exception:
        return False


def site_name_from_url(url: str) -> str:
    """Hostname without a leading www., or "unknown" when the URL has none."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return "unknown"
    if host.startswith("www."):
        host = host[4:]
    return host or "unknown"


def normalize_url(url: str) -> str:
    """Session dedup key: scheme://host/path without www. and trailing slash."""
    stripped = url.strip()
    try:
        parsed = urlparse(stripped)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return stripped.rstrip("/")
    if not host:
        return stripped.rstrip("/")
    if host.startswith("www."):
        host = host[4:]
    scheme = (parsed.scheme or "https").lower()
    path = parsed.path.rstrip("/")
    return f"{scheme}://{host}{path}"


def strip_tags(text: str) -> str:
    """Remove inline markup such as <strong> from provider snippets."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", _TAG_RE.sub("", text)).strip()


def normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def truncate(text: str, max_chars: int) -> str:
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars]
