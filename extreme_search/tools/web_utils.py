from __future__ import annotations

from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def clip(text: str, max_length: int, *, suffix: str = "...") -> str:
    """Trim text to max_length characters, marking the cut with suffix."""
    if max_length <= 0 or len(text) <= max_length:
        return text
    return text[:max_length] + suffix


def extract_domain(url: str) -> str:
    """Hostname of the URL, or the URL itself when it has none."""
    try:
        return urlparse(url).netloc or url
    except ValueError:
        return url


def normalized_domain(url: str) -> str:
    """Lower-cased hostname without port or a leading ``www.``."""
    host = extract_domain(url).lower()
    host = host.rsplit("@", 1)[-1].split(":", 1)[0]
    if host.startswith("www."):
        host = host[4:]
    return host
