# File: src/processing/query_composer.py
"""Declarative article queries built from the current selections"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Tuple

from config.settings import FeedConfig
from core.models import SortMode, StatusFilter

ARTICLE_COLLECTION = "article"

SUPPORTED_OPERATORS = ('eq', 'lt', 'gt', 'gte', 'in')

# Filters that show their whole history regardless of score and age
UNBOUNDED_FILTERS = frozenset({
    StatusFilter.DOWN,
    StatusFilter.SAVED,
    StatusFilter.UP,
    StatusFilter.ARCHIVED,
})

@dataclass(frozen=True)
class Predicate:
    """Single conjunctive condition on an article field"""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op}")

@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = True

@dataclass(frozen=True)
class QueryDescriptor:
    """Filters and ordering for one article list, independent of paging"""
    collection: str
    filters: Tuple[Predicate, ...]
    order: Tuple[OrderBy, ...]

    @staticmethod
    def page_range(page: int, page_size: int) -> Tuple[int, int]:
        """Inclusive row range covered by a page"""
        start = page * page_size
        return start, start + page_size - 1


def recency_cutoff(sort: SortMode, now: datetime, settings: FeedConfig) -> datetime:
    """Oldest publication time shown; Newest looks further back than Top Score"""
    if sort is SortMode.TOP_SCORE:
        days = settings.top_score_window_days
    else:
        days = settings.newest_window_days
    return now - timedelta(days=days)


def compose_query(sort: SortMode,
                  status_filter: StatusFilter,
                  publications: Iterable[str],
                  now: datetime,
                  settings: FeedConfig = FeedConfig()) -> QueryDescriptor:
    """Build the query descriptor for a sort, status filter and publication selection"""
    filters = []

    if status_filter is StatusFilter.NEW_NEWS:
        filters.append(Predicate('archived', 'eq', False))
        filters.append(Predicate('read', 'eq', False))
    elif status_filter is StatusFilter.READ_AND_UNREAD:
        filters.append(Predicate('archived', 'eq', False))
    elif status_filter is StatusFilter.SAVED:
        filters.append(Predicate('saved', 'eq', True))
    elif status_filter is StatusFilter.ARCHIVED:
        filters.append(Predicate('archived', 'eq', True))
    elif status_filter is StatusFilter.DOWN:
        filters.append(Predicate('score', 'lt', 0))
    elif status_filter is StatusFilter.UP:
        filters.append(Predicate('score', 'gt', 0))

    if status_filter not in UNBOUNDED_FILTERS:
        # keep a few negative scores visible to see what is being missed
        filters.append(Predicate('score', 'gte', settings.score_floor))
        filters.append(Predicate('published_at', 'gte', recency_cutoff(sort, now, settings)))

    selected = tuple(sorted(set(publications)))
    if selected:
        filters.append(Predicate('publication', 'in', selected))

    if sort is SortMode.TOP_SCORE:
        order = (OrderBy('score'), OrderBy('published_at'))
    else:
        order = (OrderBy('published_at'),)

    return QueryDescriptor(collection=ARTICLE_COLLECTION, filters=tuple(filters), order=order)
