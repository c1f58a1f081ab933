# File: src/orchestration/article_cache.py
"""Accumulated articles and page cursor for the current query"""
from typing import Dict, Iterable, List, Optional, Set

from core.models import Article
from utils.logger import get_logger

logger = get_logger(__name__)


class ArticleCache:
    """Articles fetched so far for one query, keyed by identifier.

    The first fetched copy of an identifier wins; later pages repeating it are
    ignored. Confirmed mutations go through ``replace``; articles a mutation
    moved out of the status filter are marked with ``evict`` and stay out of
    the visible list until the next reset.
    """

    def __init__(self):
        self._articles: Dict[int, Article] = {}
        self.cursor = 0
        self.generation = 0
        self.exhausted = False
        self.evicted: Set[int] = set()

    def reset(self):
        """Forget everything fetched and start again from page 0"""
        self._articles = {}
        self.cursor = 0
        self.exhausted = False
        self.evicted = set()
        self.generation += 1

    def merge(self, rows: Iterable[Article]) -> List[Article]:
        """Add unseen articles in arrival order and return them"""
        added = []
        duplicates = 0
        for article in rows:
            if article.id in self._articles:
                duplicates += 1
                continue
            self._articles[article.id] = article
            added.append(article)

        if duplicates:
            logger.debug(f"Dropped {duplicates} already loaded article(s)")
        return added

    def advance(self, page: int):
        """Move the cursor past a page that has been merged"""
        self.cursor = max(self.cursor, page + 1)

    def replace(self, article: Article) -> bool:
        """Swap in a newer copy of a loaded article, keeping its position"""
        if article.id not in self._articles:
            return False
        self._articles[article.id] = article
        return True

    def evict(self, article_id: int):
        self.evicted.add(article_id)

    def get(self, article_id: int) -> Optional[Article]:
        return self._articles.get(article_id)

    def __contains__(self, article_id) -> bool:
        return article_id in self._articles

    def __len__(self) -> int:
        return len(self._articles)

    @property
    def articles(self) -> List[Article]:
        return list(self._articles.values())

    @property
    def ids(self) -> frozenset:
        return frozenset(self._articles)
