"""Turn one bookmarked post into a NoteRecord.

transform_tweet() has no side effects. It reads existing_files to pick a
unique filename, but adding the chosen name back is the caller's job.
"""

import re
from datetime import date

from .config import AppConfig
from .markdown import format_date, format_tweet_body, tweet_permalink
from .models import Includes, NoteRecord, Tweet, UrlEntity
from .titles import ensure_unique_filename, generate_title
from .url_types import detect_content_type

MAX_DESCRIPTION_LENGTH = 200
MIN_DESCRIPTION_BREAK = 100

_URL_RE = re.compile(r"https?://\S+")
_WHITESPACE_RE = re.compile(r"\s+")


def collect_urls(tweet: Tweet) -> list[UrlEntity]:
    """URLs from the long-form and regular text, de-duplicated by expanded URL."""
    seen: set[str] = set()
    combined: list[UrlEntity] = []
    note_urls = tweet.note_entities.urls if tweet.note_entities else []
    for entity in [*note_urls, *tweet.entities.urls]:
        key = entity.expanded_url or entity.url
        if key not in seen:
            seen.add(key)
            combined.append(entity)
    return combined


def extract_description(tweet: Tweet) -> str:
    cleaned = _WHITESPACE_RE.sub(" ", _URL_RE.sub("", tweet.full_text)).strip()
    if len(cleaned) <= MAX_DESCRIPTION_LENGTH:
        return cleaned
    truncated = cleaned[:MAX_DESCRIPTION_LENGTH]
    last_space = truncated.rfind(" ")
    if last_space > MIN_DESCRIPTION_BREAK:
        truncated = truncated[:last_space]
    return truncated.strip()


def merge_tags(default_tags: list[str], hashtags: list[str]) -> list[str]:
    # dict preserves first-seen order
    return list(dict.fromkeys([*default_tags, *hashtags]))


def transform_tweet(
    tweet: Tweet,
    includes: Includes | None,
    config: AppConfig,
    existing_files: set[str],
    today: date | None = None,
) -> NoteRecord:
    includes = includes or Includes()
    author = includes.users.get(tweet.author_id)
    urls = collect_urls(tweet)

    content_type = detect_content_type(urls, config.detect_url_types)

    # source = where the bookmark came from, link = what it points at
    source = tweet_permalink(author.username if author else "i", tweet.id)
    link = content_type.url or source

    title = generate_title(tweet, author, urls)
    filename = ensure_unique_filename(title, existing_files)

    hashtags = [h.tag for h in tweet.active_entities.hashtags]

    return NoteRecord(
        title=title,
        type=[content_type.type],
        link=link,
        source=source,
        author=[author.name] if author else [],
        description=extract_description(tweet),
        tags=merge_tags(config.default_tags, hashtags),
        created=(today or date.today()).isoformat(),
        filename=filename,
        body=format_tweet_body(tweet, includes),
        tweet_id=tweet.id,
        published_date=format_date(tweet.created_at) or None,
    )
