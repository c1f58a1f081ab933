# File: src/core/models.py
"""Article and selection models for the feed engine"""
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List, FrozenSet, Iterable

USER_AGENT = "USER"

class StatusFilter(Enum):
    """Primary mode selector of the article list"""
    NEW_NEWS = "New News"
    READ_AND_UNREAD = "Read and Unread News"
    SAVED = "Saved"
    ARCHIVED = "Archived"
    DOWN = "Down"
    UP = "Up"

class SortMode(Enum):
    TOP_SCORE = "Top Score"
    NEWEST = "Newest"

class TagFacet(Enum):
    """The three independent tag dimensions of an article"""
    SCOPE = "scope"
    MOOD = "mood"
    TOPIC = "topic"

    @property
    def attribute(self) -> str:
        return f"tags_{self.value}"

class QueryStatus(Enum):
    OK = "ok"
    NO_ROWS = "no-rows"
    ERROR = "error"

class UpdateStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _tags(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return [str(tag) for tag in value]


@dataclass
class Article:
    """News article as stored and displayed"""
    id: int
    publication: str
    title: Optional[str] = None
    link: Optional[str] = None
    author: Optional[str] = None
    summary: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    read: bool = False
    archived: bool = False
    saved: bool = False
    score: int = 0
    ai_score2: int = 0
    agent: Optional[str] = None
    tags_scope: Optional[List[str]] = None
    tags_mood: Optional[List[str]] = None
    tags_topic: Optional[List[str]] = None

    def __post_init__(self):
        """Normalize field types after initialization"""
        if self.id is None:
            raise ValueError("Article id is required")
        self.published_at = parse_timestamp(self.published_at)
        self.created_at = parse_timestamp(self.created_at)
        self.updated_at = parse_timestamp(self.updated_at)
        self.read = bool(self.read)
        self.archived = bool(self.archived)
        self.saved = bool(self.saved)
        self.score = int(self.score or 0)
        self.ai_score2 = int(self.ai_score2 or 0)
        self.tags_scope = _tags(self.tags_scope)
        self.tags_mood = _tags(self.tags_mood)
        self.tags_topic = _tags(self.tags_topic)

    def tags(self, facet: TagFacet) -> List[str]:
        """Tags of one facet, empty when the article has no opinion"""
        return getattr(self, facet.attribute) or []

    @property
    def user_scored(self) -> bool:
        return self.agent == USER_AGENT

    def merged(self, changes: Dict[str, Any]) -> 'Article':
        """Copy of this article with the given fields replaced"""
        if 'id' in changes and changes['id'] != self.id:
            raise ValueError(f"Cannot change identifier of article {self.id}")
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown article fields: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def short_summary(self, limit: int = 5000) -> Optional[str]:
        if self.summary is not None and len(self.summary) > limit:
            return self.summary[:limit] + "..."
        return self.summary

    def score_label(self) -> str:
        label = f"AI: {self.ai_score2}"
        if self.user_scored:
            label += f" USER: {self.score}"
        return label

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'id': self.id,
            'publication': self.publication,
            'title': self.title,
            'link': self.link,
            'author': self.author,
            'summary': self.summary,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'read': self.read,
            'archived': self.archived,
            'saved': self.saved,
            'score': self.score,
            'ai_score2': self.ai_score2,
            'agent': self.agent,
            'tags_scope': self.tags_scope,
            'tags_mood': self.tags_mood,
            'tags_topic': self.tags_topic
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Article':
        """Create instance from dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass(frozen=True)
class TagSelection:
    """Selected tags per facet; an empty facet means no restriction"""
    scope: FrozenSet[str] = frozenset()
    mood: FrozenSet[str] = frozenset()
    topic: FrozenSet[str] = frozenset()

    def for_facet(self, facet: TagFacet) -> FrozenSet[str]:
        return getattr(self, facet.value)

    def with_facet(self, facet: TagFacet, tags: Iterable[str]) -> 'TagSelection':
        return replace(self, **{facet.value: frozenset(tags)})

    @property
    def is_empty(self) -> bool:
        return not (self.scope or self.mood or self.topic)


@dataclass
class Selection:
    """User selections driving the article list"""
    status_filter: StatusFilter = StatusFilter.READ_AND_UNREAD
    sort: SortMode = SortMode.TOP_SCORE
    publications: FrozenSet[str] = frozenset()
    tags: TagSelection = field(default_factory=TagSelection)
