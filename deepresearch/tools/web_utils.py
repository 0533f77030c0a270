from __future__ import annotations

import html
import re
from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text.replace("\xa0", " ")).strip()


def clean_content(text: str, max_length: int = 8000) -> str:
    """Collapse whitespace and trim to ``max_length``, marking truncation."""
    text = normalize_whitespace(text)
    if max_length > 0 and len(text) > max_length:
        text = text[:max_length] + "..."
    return text


def normalize_domain(url: str) -> str:
    """Lower-cased host without a leading ``www.``; the input itself if unparseable."""
    try:
        host = (urlparse(url).hostname or "").lower().strip()
    except ValueError:
        return url
    if not host:
        return url
    if host.startswith("www."):
        host = host[4:]
    return host


def strip_html(fragment: str) -> str:
    """Drop tags and decode entities from a short HTML snippet."""
    text = re.sub(r"<[^>]*>", "", fragment or "")
    return normalize_whitespace(html.unescape(text))


def word_count(text: str) -> int:
    return len(text.split()) if text else 0
