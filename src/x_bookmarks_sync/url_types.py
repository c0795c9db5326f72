"""Classify a bookmark by the external URLs it links to.

Rules are checked in order and the first match wins. A post that links
outside X but matches nothing is treated as an article; a post with no
external link is its own subject ("tweet").
"""

import re
from dataclasses import dataclass

from .models import UrlEntity

URL_TYPE_RULES: list[tuple[re.Pattern, str]] = [
    # Video
    (re.compile(r"youtube\.com|youtu\.be", re.I), "video"),
    (re.compile(r"vimeo\.com", re.I), "video"),
    (re.compile(r"twitch\.tv", re.I), "video"),
    (re.compile(r"loom\.com", re.I), "video"),
    # Podcast
    (re.compile(r"open\.spotify\.com/episode", re.I), "podcast"),
    (re.compile(r"podcasts\.apple\.com", re.I), "podcast"),
    (re.compile(r"overcast\.fm", re.I), "podcast"),
    # Code
    (re.compile(r"github\.com", re.I), "code"),
    (re.compile(r"gitlab\.com", re.I), "code"),
    (re.compile(r"codepen\.io", re.I), "code"),
    (re.compile(r"replit\.com", re.I), "code"),
    (re.compile(r"npmjs\.com", re.I), "code"),
    # Newsletter
    (re.compile(r"substack\.com", re.I), "newsletter"),
    (re.compile(r"beehiiv\.com", re.I), "newsletter"),
    (re.compile(r"buttondown\.email", re.I), "newsletter"),
    # Article (known platforms)
    (re.compile(r"medium\.com", re.I), "article"),
    (re.compile(r"dev\.to", re.I), "article"),
    (re.compile(r"techcrunch\.com", re.I), "article"),
    (re.compile(r"theverge\.com", re.I), "article"),
    (re.compile(r"arxiv\.org", re.I), "article"),
    (re.compile(r"reddit\.com", re.I), "article"),
    (re.compile(r"hackernews|news\.ycombinator", re.I), "article"),
    (re.compile(r"wikipedia\.org", re.I), "article"),
]

ARTICLE_PATH_PATTERNS = [
    re.compile(p, re.I)
    for p in (
        r"/blog/",
        r"/post/",
        r"/posts/",
        r"/article/",
        r"/articles/",
        r"/news/",
        r"/engineering/",
        r"/research/",
    )
]

PLATFORM_URL_RE = re.compile(
    r"^https?://(?:www\.|mobile\.)?(?:x\.com|twitter\.com)", re.I
)

TWEET_TYPE = "tweet"
ARTICLE_TYPE = "article"


@dataclass
class ContentType:
    type: str
    url: str = ""  # the external URL that decided the type


def is_platform_url(url: str) -> bool:
    return bool(PLATFORM_URL_RE.match(url))


def extract_external_urls(urls: list[UrlEntity]) -> list[UrlEntity]:
    """Drop URLs that point back to X itself (quotes, attached media)."""
    return [
        u for u in urls if u.resolved_url and not is_platform_url(u.resolved_url)
    ]


def classify_url(url: str) -> str | None:
    for pattern, content_type in URL_TYPE_RULES:
        if pattern.search(url):
            return content_type
    for pattern in ARTICLE_PATH_PATTERNS:
        if pattern.search(url):
            return ARTICLE_TYPE
    return None


def detect_content_type(urls: list[UrlEntity], enabled: bool = True) -> ContentType:
    if not enabled or not urls:
        return ContentType(TWEET_TYPE)

    external = extract_external_urls(urls)
    if not external:
        return ContentType(TWEET_TYPE)

    for entity in external:
        content_type = classify_url(entity.resolved_url)
        if content_type:
            return ContentType(content_type, entity.resolved_url)

    return ContentType(ARTICLE_TYPE, external[0].resolved_url)
