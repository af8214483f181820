"""Error taxonomy for retrieval failures.

These are raised inside the page fetchers and search providers and converted
to empty or failure results at their boundary. Nothing above the Integrated
Search layer ever sees them.
"""


class LayeredSearchError(Exception):
    """Base exception for retrieval errors."""

    kind = "error"


class NetworkError(LayeredSearchError):
    """Raised on timeouts and connection failures."""

    kind = "network"


class ProviderError(LayeredSearchError):
    """Raised on non-2xx responses, malformed payloads and anti-bot blocks."""

    kind = "provider"


class ParseError(LayeredSearchError):
    """Raised on unexpected content types or pages with no extractable content."""

    kind = "parse"
