"""Data models for bookmarks fetched from the X API v2 and the notes built from them."""

from dataclasses import dataclass, field


@dataclass
class Credential:
    access_token: str
    refresh_token: str
    expires_at: float  # epoch seconds
    client_id: str = ""
    client_secret: str = ""


@dataclass
class UrlEntity:
    url: str  # t.co short link as it appears in the text
    expanded_url: str
    display_url: str = ""
    start: int = 0
    end: int = 0
    title: str | None = None  # card title supplied by X
    description: str | None = None
    unwound_url: str | None = None

    @property
    def resolved_url(self) -> str:
        return self.unwound_url or self.expanded_url


@dataclass
class Mention:
    username: str
    id: str = ""
    start: int = 0
    end: int = 0


@dataclass
class Hashtag:
    tag: str
    start: int = 0
    end: int = 0


@dataclass
class Entities:
    urls: list[UrlEntity] = field(default_factory=list)
    mentions: list[Mention] = field(default_factory=list)
    hashtags: list[Hashtag] = field(default_factory=list)


@dataclass
class ReferencedTweet:
    type: str  # "quoted", "retweeted", "replied_to"
    id: str


@dataclass
class User:
    id: str
    name: str  # display name
    username: str  # handle without @


@dataclass
class Media:
    media_key: str
    type: str  # "photo", "video", "animated_gif"
    url: str | None = None
    preview_image_url: str | None = None
    alt_text: str | None = None


@dataclass
class Tweet:
    id: str
    text: str
    author_id: str = ""
    created_at: str | None = None  # ISO 8601 from the API
    entities: Entities = field(default_factory=Entities)
    media_keys: list[str] = field(default_factory=list)
    note_text: str | None = None  # long-form text for posts over 280 chars
    note_entities: Entities | None = None
    referenced_tweets: list[ReferencedTweet] = field(default_factory=list)
    conversation_id: str | None = None

    @property
    def full_text(self) -> str:
        return self.note_text or self.text

    @property
    def active_entities(self) -> Entities:
        """Entities matching full_text."""
        if self.note_text and self.note_entities is not None:
            return self.note_entities
        return self.entities


@dataclass
class Includes:
    """Expanded objects returned alongside a page of bookmarks."""

    users: dict[str, User] = field(default_factory=dict)
    media: dict[str, Media] = field(default_factory=dict)
    tweets: dict[str, Tweet] = field(default_factory=dict)


@dataclass
class BookmarksPage:
    items: list[Tweet] = field(default_factory=list)
    includes: Includes = field(default_factory=Includes)
    next_token: str | None = None
    result_count: int = 0


@dataclass
class NoteRecord:
    title: str
    type: list[str]
    link: str  # external URL the post shares, or the permalink
    source: str  # permalink of the bookmarked post
    author: list[str]
    description: str
    tags: list[str]
    created: str
    filename: str  # without .md
    body: str
    tweet_id: str
    published_date: str | None = None
    category: list[str] = field(default_factory=list)
    related_to: str = ""


@dataclass
class SyncResult:
    fetched: int = 0
    created: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False
    fatal_error: str | None = None
