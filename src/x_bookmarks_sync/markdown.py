"""Render bookmark notes as markdown with YAML frontmatter, and read them back.

A note looks like:

    ---
    type:
      - article
    title: Scaling Queues at Example
    link: https://example.com/blog/scaling-queues
    source: https://x.com/testuser/status/1890000000000000001
    author:
      - Test User
    description: "Worth reading: how we scaled our queue"
    related_to:
    category:
    tags:
      - clippings
    created: 2025-02-11
    published_date: 2025-02-10
    ---

    **Test User** @testuser [2025-02-10](https://x.com/testuser/status/...)

    Worth reading: how we scaled our queue https://example.com/blog/...

Frontmatter is written by hand so the field order and quoting stay stable
across runs; it is read back with PyYAML.
"""

import re

import yaml

from .models import Includes, Media, NoteRecord, Tweet, UrlEntity, User

YAML_SPECIAL_CHARS = re.compile(r"[:#\[\]{}|>&*!,'\"?@`]")
# Characters that cannot start a plain scalar
YAML_INDICATOR_START = ("-", " ", "%")

TWEET_URL_PATTERN = re.compile(r"https?://(?:x\.com|twitter\.com)/\w+/status/(\d+)")


def format_date(iso_date: str | None) -> str:
    """YYYY-MM-DD part of an ISO timestamp."""
    if not iso_date:
        return ""
    return iso_date[:10]


def tweet_permalink(username: str, tweet_id: str) -> str:
    return f"https://x.com/{username}/status/{tweet_id}"


def extract_tweet_id_from_url(url: str) -> str | None:
    match = TWEET_URL_PATTERN.search(url)
    return match.group(1) if match else None


# ── Body ────────────────────────────────────────────────────────


def replace_urls(text: str, urls: list[UrlEntity]) -> str:
    """Replace t.co short links in text with their expanded versions."""
    # Sort by start offset descending so replacements don't shift positions
    for entity in sorted(urls, key=lambda u: u.start, reverse=True):
        expanded = entity.expanded_url or entity.display_url
        if entity.url and expanded:
            text = text.replace(entity.url, expanded)
    return text


def find_media(media_keys: list[str], includes: Includes | None) -> list[Media]:
    if not media_keys or includes is None:
        return []
    return [includes.media[key] for key in media_keys if key in includes.media]


def format_media_markdown(media: list[Media]) -> str:
    embeds: list[str] = []
    for m in media:
        if m.type == "photo" and m.url:
            embeds.append(f"![Image]({m.url})")
        elif m.type in ("video", "animated_gif") and m.preview_image_url:
            embeds.append(f"![Video thumbnail]({m.preview_image_url})")
    return "\n\n".join(embeds)


def format_single_tweet(tweet: Tweet, author: User | None, media: list[Media]) -> str:
    author_name = author.name if author and author.name else "Unknown"
    username = author.username if author and author.username else "unknown"
    date = format_date(tweet.created_at)
    tweet_url = tweet_permalink(username, tweet.id)

    text = replace_urls(tweet.full_text, tweet.active_entities.urls)

    parts = [f"**{author_name}** @{username} [{date}]({tweet_url})", "", text]

    media_markdown = format_media_markdown(media)
    if media_markdown:
        parts.append("")
        parts.append(media_markdown)

    return "\n".join(parts)


def format_tweet_body(tweet: Tweet, includes: Includes | None) -> str:
    """Render the post, then any quoted post as a block quote.

    Only one level of quoting is expanded; a quote inside the quoted post is
    left as its link in the text.
    """
    includes = includes or Includes()
    sections = [
        format_single_tweet(
            tweet,
            includes.users.get(tweet.author_id),
            find_media(tweet.media_keys, includes),
        )
    ]

    for ref in tweet.referenced_tweets:
        if ref.type != "quoted":
            continue
        quoted = includes.tweets.get(ref.id)
        if quoted is None:
            continue
        quoted_body = format_single_tweet(
            quoted,
            includes.users.get(quoted.author_id),
            find_media(quoted.media_keys, includes),
        )
        sections.append("")
        sections.append("\n".join(f"> {line}" for line in quoted_body.split("\n")))

    return "\n".join(sections)


# ── Frontmatter ─────────────────────────────────────────────────


def escape_yaml(value: str) -> str:
    """Double-quote a scalar if YAML would otherwise misread it."""
    if not value:
        return ""
    if (
        YAML_SPECIAL_CHARS.search(value)
        or value.startswith(YAML_INDICATOR_START)
        or not _reads_back_as(value)
    ):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return value


def _reads_back_as(value: str) -> bool:
    """True if value is parsed by YAML as this exact string (not 123, true, null)."""
    try:
        return yaml.safe_load(value) == value
    except yaml.YAMLError:
        return False


def _yaml_list(lines: list[str], key: str, values: list[str]) -> None:
    lines.append(f"{key}:")
    for value in values:
        lines.append(f"  - {escape_yaml(value)}")


def note_to_markdown(note: NoteRecord) -> str:
    lines = ["---"]
    _yaml_list(lines, "type", note.type)
    lines.append(f"title: {escape_yaml(note.title)}")
    lines.append(f"link: {note.link}")
    lines.append(f"source: {note.source}")
    _yaml_list(lines, "author", note.author)
    lines.append(f"description: {escape_yaml(note.description)}")
    lines.append(f"related_to: {escape_yaml(note.related_to)}".rstrip())
    _yaml_list(lines, "category", note.category)
    _yaml_list(lines, "tags", note.tags)
    lines.append(f"created: {note.created}")
    if note.published_date:
        lines.append(f"published_date: {note.published_date}")
    lines.append("---")
    lines.append("")
    lines.append(note.body)
    lines.append("")
    return "\n".join(lines)


def parse_frontmatter(content: str) -> dict:
    """Return the YAML frontmatter of a note as a dict ({} if there is none).

    Raises yaml.YAMLError if the block is not valid YAML.
    """
    if not content.startswith("---"):
        return {}
    match = re.match(r"^---\s*\n(.*?)\n---\s*(?:\n|$)", content, re.DOTALL)
    if not match:
        return {}
    data = yaml.safe_load(match.group(1))
    return data if isinstance(data, dict) else {}
