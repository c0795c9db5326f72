"""Note titles and filenames.

A title is picked from, in order:
    1. the card title of the first external link (if longer than 5 chars)
    2. the first sentence of the post, URLs and @mentions removed
    3. "{author} tweet {last 6 digits of the id}"

The title doubles as the filename, so it is stripped of characters that are
unsafe in paths or wiki-links.
"""

import re

from .models import Tweet, UrlEntity, User
from .url_types import extract_external_urls

UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|#^\[\]]')
MAX_TITLE_LENGTH = 100
# Leaves room for " (n).md" under the common 255-byte name limit
MAX_TITLE_BYTES = 240
MAX_SENTENCE_LENGTH = 80
MIN_WORD_BREAK = 40

_URL_RE = re.compile(r"https?://\S+")
_MENTION_RE = re.compile(r"@\w+")
_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_END_RE = re.compile(r"[.!?\n]")


def sanitize_filename(name: str) -> str:
    name = UNSAFE_FILENAME_CHARS.sub("", name)
    name = _WHITESPACE_RE.sub(" ", name).strip()
    name = name[:MAX_TITLE_LENGTH]
    # Filesystems cap names in bytes; CJK text is 3 bytes per character
    encoded = name.encode("utf-8", "ignore")
    if len(encoded) > MAX_TITLE_BYTES:
        name = encoded[:MAX_TITLE_BYTES].decode("utf-8", "ignore")
    return name.strip()


def strip_mentions_and_urls(text: str) -> str:
    text = _URL_RE.sub("", text)
    text = _MENTION_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def first_sentence(text: str) -> str:
    cleaned = strip_mentions_and_urls(text)
    match = _SENTENCE_END_RE.search(cleaned)
    if match and 0 < match.start() <= MAX_SENTENCE_LENGTH:
        return cleaned[: match.start()].strip()

    if len(cleaned) <= MAX_SENTENCE_LENGTH:
        return cleaned

    truncated = cleaned[:MAX_SENTENCE_LENGTH]
    last_space = truncated.rfind(" ")
    if last_space > MIN_WORD_BREAK:
        return truncated[:last_space].strip()
    return truncated.strip()


def generate_title(tweet: Tweet, author: User | None, urls: list[UrlEntity]) -> str:
    for entity in extract_external_urls(urls):
        if entity.title and len(entity.title.strip()) > 5:
            title = sanitize_filename(entity.title.strip())
            if title:
                return title

    sentence = sanitize_filename(first_sentence(tweet.full_text))
    if len(sentence) > 10:
        return sentence

    author_name = author.name if author and author.name else "Unknown"
    return sanitize_filename(f"{author_name} tweet {tweet.id[-6:]}")


def ensure_unique_filename(desired_name: str, existing_files: set[str]) -> str:
    """Return desired_name, or desired_name (n) for the first unused n >= 2.

    existing_files holds names with the .md extension.
    """
    if f"{desired_name}.md" not in existing_files:
        return desired_name

    counter = 2
    while f"{desired_name} ({counter}).md" in existing_files:
        counter += 1
    return f"{desired_name} ({counter})"
