"""
Pytest configuration and shared fixtures.

The fake store keeps articles in memory and answers queries with the same
predicate semantics as the SQLite store, so engine tests run without a
database. Failures can be injected per call.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest
import pytest_asyncio

from config.settings import FeedConfig
from core.models import Article, QueryStatus, UpdateStatus
from orchestration.feed_engine import FeedEngine
from storage.database import ArticleStore, AsyncArticleStore, QueryResult
from storage.preferences import PreferenceStore

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)

_COMPARE = {
    'eq': lambda a, b: a == b,
    'lt': lambda a, b: a is not None and a < b,
    'gt': lambda a, b: a is not None and a > b,
    'gte': lambda a, b: a is not None and a >= b,
    'in': lambda a, b: a in b,
}


class FakeArticleStore(ArticleStore):
    """In-memory article store recording every call"""

    def __init__(self, articles: List[Article] = ()):
        self.rows: Dict[int, Article] = {a.id: a for a in articles}
        self.queries: List[Dict[str, Any]] = []
        self.updates: List[Dict[str, Any]] = []
        self.fail_queries = 0
        self.fail_updates = 0
        self.apply_filters = True
        self.publications = sorted({a.publication for a in articles})

    def add(self, *articles: Article):
        for article in articles:
            self.rows[article.id] = article
        self.publications = sorted({a.publication for a in self.rows.values()})

    async def query(self, collection, filters, order, range_start, range_end):
        self.queries.append({
            'collection': collection,
            'filters': tuple(filters),
            'order': tuple(order),
            'range': (range_start, range_end),
        })
        if self.fail_queries:
            self.fail_queries -= 1
            return QueryResult(status=QueryStatus.ERROR, error="connection reset")

        matching = [
            a for a in self.rows.values()
            if not self.apply_filters or all(_COMPARE[p.op](getattr(a, p.field), p.value) for p in filters)
        ]
        matching.sort(key=lambda a: a.id, reverse=True)
        for item in reversed(order):
            matching.sort(key=lambda a: getattr(a, item.field), reverse=item.descending)

        page = matching[range_start:range_end + 1]
        if not page:
            return QueryResult(status=QueryStatus.NO_ROWS)
        return QueryResult(rows=list(page))

    async def update(self, collection, identifier, changes):
        self.updates.append({'collection': collection, 'id': identifier, 'changes': dict(changes)})
        if self.fail_updates:
            self.fail_updates -= 1
            return UpdateStatus.FAILURE
        if identifier not in self.rows:
            return UpdateStatus.FAILURE
        self.rows[identifier] = self.rows[identifier].merged(changes)
        return UpdateStatus.SUCCESS

    async def list_distinct_publications(self):
        return list(self.publications)


@pytest.fixture
def make_article():
    """Factory for articles with unique ids and recent publication times"""
    counter = itertools.count(1)

    def _make(**overrides) -> Article:
        article_id = overrides.pop('id', None) or next(counter)
        data = {
            'id': article_id,
            'publication': 'The Daily',
            'title': f"Article {article_id}",
            'link': f"https://example.com/{article_id}",
            'published_at': NOW - timedelta(hours=article_id),
        }
        data.update(overrides)
        return Article(**data)

    return _make


@pytest.fixture
def fake_store():
    return FakeArticleStore()


@pytest.fixture
def preferences(tmp_path):
    return PreferenceStore(str(tmp_path / "preferences.json"))


@pytest.fixture
def feed_settings():
    return FeedConfig(page_size=3, score_floor=-6, top_score_window_days=2, newest_window_days=5)


@pytest.fixture
def make_engine(preferences, feed_settings):
    def _make(store: ArticleStore, settings: FeedConfig = None) -> FeedEngine:
        return FeedEngine(store, preferences, settings or feed_settings, clock=lambda: NOW)

    return _make


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    store = AsyncArticleStore(str(tmp_path / "articles.db"), max_connections=2)
    await store.initialize()
    return store
