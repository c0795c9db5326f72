"""Parse X API v2 bookmark responses into model objects.

A bookmarks page looks like:
    {
        "data": [tweet, ...],
        "includes": {"users": [...], "media": [...], "tweets": [...]},
        "meta": {"result_count": 3, "next_token": "..."}
    }

Expanded objects under "includes" are keyed by id (media by media_key) so the
transformer can resolve authors, attachments and quoted posts.
"""

import logging

from .models import (
    BookmarksPage,
    Entities,
    Hashtag,
    Includes,
    Media,
    Mention,
    ReferencedTweet,
    Tweet,
    UrlEntity,
    User,
)

logger = logging.getLogger(__name__)


def parse_bookmarks_response(data: dict) -> BookmarksPage:
    """Parse one page of the bookmarks endpoint."""
    items: list[Tweet] = []
    for raw in data.get("data") or []:
        tweet = _parse_tweet_or_skip(raw)
        if tweet:
            items.append(tweet)

    meta = data.get("meta") or {}
    return BookmarksPage(
        items=items,
        includes=parse_includes(data.get("includes") or {}),
        next_token=meta.get("next_token") or None,
        result_count=int(meta.get("result_count", len(items))),
    )


def parse_includes(raw: dict) -> Includes:
    includes = Includes()
    for u in raw.get("users") or []:
        if u.get("id"):
            includes.users[u["id"]] = User(
                id=u["id"],
                name=u.get("name", "Unknown"),
                username=u.get("username", "unknown"),
            )
    for m in raw.get("media") or []:
        if m.get("media_key"):
            includes.media[m["media_key"]] = Media(
                media_key=m["media_key"],
                type=m.get("type", "photo"),
                url=m.get("url"),
                preview_image_url=m.get("preview_image_url"),
                alt_text=m.get("alt_text"),
            )
    for t in raw.get("tweets") or []:
        tweet = _parse_tweet_or_skip(t)
        if tweet:
            includes.tweets[tweet.id] = tweet
    return includes


def _parse_tweet_or_skip(raw: dict) -> Tweet | None:
    try:
        return parse_tweet(raw)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Skipping malformed tweet %s: %s", _safe_id(raw), e)
        return None


def _safe_id(raw) -> str:
    return raw.get("id", "?") if isinstance(raw, dict) else "?"


def parse_tweet(raw: dict) -> Tweet:
    """Parse a single tweet object. Raises KeyError if it has no id."""
    tweet_id = str(raw["id"])

    note = raw.get("note_tweet") or {}
    note_text = note.get("text") or None
    note_entities = _parse_entities(note["entities"]) if note.get("entities") else None

    referenced = [
        ReferencedTweet(type=r.get("type", ""), id=str(r["id"]))
        for r in raw.get("referenced_tweets") or []
        if r.get("id")
    ]

    return Tweet(
        id=tweet_id,
        text=raw.get("text", ""),
        author_id=str(raw.get("author_id", "")),
        created_at=raw.get("created_at"),
        entities=_parse_entities(raw.get("entities") or {}),
        media_keys=list((raw.get("attachments") or {}).get("media_keys") or []),
        note_text=note_text,
        note_entities=note_entities,
        referenced_tweets=referenced,
        conversation_id=raw.get("conversation_id"),
    )


def _parse_entities(raw: dict) -> Entities:
    urls = [
        UrlEntity(
            url=u.get("url", ""),
            expanded_url=u.get("expanded_url", ""),
            display_url=u.get("display_url", ""),
            start=int(u.get("start", 0)),
            end=int(u.get("end", 0)),
            title=u.get("title"),
            description=u.get("description"),
            unwound_url=u.get("unwound_url"),
        )
        for u in raw.get("urls") or []
        if u.get("url")
    ]
    mentions = [
        Mention(
            username=m.get("username", ""),
            id=str(m.get("id", "")),
            start=int(m.get("start", 0)),
            end=int(m.get("end", 0)),
        )
        for m in raw.get("mentions") or []
    ]
    hashtags = [
        Hashtag(tag=h["tag"], start=int(h.get("start", 0)), end=int(h.get("end", 0)))
        for h in raw.get("hashtags") or []
        if h.get("tag")
    ]
    return Entities(urls=urls, mentions=mentions, hashtags=hashtags)
