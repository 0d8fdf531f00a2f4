"""Citation Extractor: rich citation records from a response.

Extracts:
  - Native citations returned by the vendor API (Perplexity)
  - Markdown links: [title](url)
  - Bare URLs: https://example.com and www.example.com

Records are de-duplicated by URL, ordered by first occurrence (native ones
first) and numbered from 1.
"""

from __future__ import annotations

import logging
import re

from brandmonitor.analysis.heuristics import url_to_domain
from brandmonitor.analysis.types import CitationInfo

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# URL / link extraction patterns
# ---------------------------------------------------------------------------

# Markdown-style links: [anchor text](url)
_MD_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")

# Bare URLs, including www. hosts without a scheme
_BARE_URL_PATTERN = re.compile(r"(https?://[^\s)>\]]+)|(?<![/\w.])(www\.[^\s)>\]]+)", re.IGNORECASE)

_TRAILING_PUNCT = ".,;:!?'\""

FAVICON_URL = "https://www.google.com/s2/favicons?domain={domain}&sz=32"


def favicon_url(domain: str) -> str:
    return FAVICON_URL.format(domain=domain)


def _clean_url(url: str) -> str:
    return url.strip().rstrip(_TRAILING_PUNCT)


def extract_citations(text: str, native_urls: list[str] | None = None) -> list[CitationInfo]:
    """Extract citations from *text* plus vendor-native URLs.

    URLs whose host cannot be parsed are dropped.
    """
    found: list[tuple[int, str, str | None, bool]] = []  # (offset, url, title, native)
    seen_urls: set[str] = set()

    # 1. Native citations from vendor API
    for url in native_urls or []:
        url = _clean_url(url or "")
        if url and url not in seen_urls:
            seen_urls.add(url)
            found.append((-1, url, None, True))

    if text:
        # 2. Markdown links keep their anchor text as title
        for match in _MD_LINK_PATTERN.finditer(text):
            url = _clean_url(match.group(2))
            if url and url not in seen_urls:
                seen_urls.add(url)
                found.append((match.start(), url, match.group(1).strip() or None, False))

        # 3. Bare URLs
        for match in _BARE_URL_PATTERN.finditer(text):
            url = _clean_url(match.group(0))
            if url and url not in seen_urls:
                seen_urls.add(url)
                found.append((match.start(), url, None, False))

    # Stable sort keeps native order ahead of in-text ones
    found.sort(key=lambda item: item[0])

    citations: list[CitationInfo] = []
    for offset, url, title, native in found:
        domain = url_to_domain(url)
        if not domain:
            logger.debug("Dropping unparseable citation URL: %s", url[:200])
            continue
        if not url.lower().startswith("http"):
            url = f"https://{url}"
        citations.append(
            CitationInfo(
                url=url,
                domain=domain,
                title=title,
                favicon_url=favicon_url(domain),
                position=len(citations) + 1,
                is_native=native,
            )
        )
    return citations
