# File: src/orchestration/feed_engine.py
"""Session-scoped article feed: selections, paging and user actions"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from config.settings import FeedConfig
from core.exceptions import ArticleNotFoundError, FetchError, UpdateError
from core.models import (
    Article, QueryStatus, Selection, SortMode, StatusFilter, TagFacet, TagSelection, UpdateStatus,
)
from orchestration.article_cache import ArticleCache
from processing.query_composer import ARTICLE_COLLECTION, QueryDescriptor, compose_query
from processing.reconciler import reconcile, retains
from processing.score_quantizer import Direction, vote
from processing.tag_filter import filter_visible, unique_tags
from storage.database import ArticleStore
from storage.preferences import (
    FILTER_KEY, PUBLICATIONS_KEY, SORT_KEY, TAGS_MOOD_KEY, TAGS_SCOPE_KEY, TAGS_TOPIC_KEY, PreferenceStore,
)
from utils.logger import get_logger

logger = get_logger(__name__)

TAG_PREFERENCE_KEYS = {
    TagFacet.SCOPE: TAGS_SCOPE_KEY,
    TagFacet.MOOD: TAGS_MOOD_KEY,
    TagFacet.TOPIC: TAGS_TOPIC_KEY,
}


def _string_set(value: Any) -> FrozenSet[str]:
    """Decode a persisted list of strings"""
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise TypeError(f"expected a list of strings, got {value!r}")
    return frozenset(value)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FeedEngine:
    """One user's article list.

    Owns the selections, the accumulated articles of the current query and
    the visible list derived from them. Store calls are awaited; local state
    only changes once the store has answered.
    """

    def __init__(self, store: ArticleStore, preferences: PreferenceStore,
                 settings: FeedConfig = FeedConfig(),
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.preferences = preferences
        self.settings = settings
        self.clock = clock or _utc_now

        self.selection = Selection()
        self.cache = ArticleCache()
        self.visible: List[Article] = []
        self.publications: List[str] = []

    # Preferences

    def load_preferences(self) -> Selection:
        """Restore selections saved by a previous session"""
        defaults = Selection()
        tags = TagSelection()
        for facet, key in TAG_PREFERENCE_KEYS.items():
            tags = tags.with_facet(facet, self.preferences.load(key, frozenset(), _string_set))

        self.selection = Selection(
            status_filter=self.preferences.load(FILTER_KEY, defaults.status_filter, StatusFilter),
            sort=self.preferences.load(SORT_KEY, defaults.sort, SortMode),
            publications=self.preferences.load(PUBLICATIONS_KEY, defaults.publications, _string_set),
            tags=tags,
        )
        logger.info(
            f"Loaded selections: filter='{self.selection.status_filter.value}', "
            f"sort='{self.selection.sort.value}', {len(self.selection.publications)} publication(s)"
        )
        return self.selection

    def _save_selection(self):
        self.preferences.save(FILTER_KEY, self.selection.status_filter.value)
        self.preferences.save(SORT_KEY, self.selection.sort.value)
        self.preferences.save(PUBLICATIONS_KEY, sorted(self.selection.publications))
        for facet, key in TAG_PREFERENCE_KEYS.items():
            self.preferences.save(key, sorted(self.selection.tags.for_facet(facet)))

    # Selections

    async def start(self) -> List[Article]:
        """Load preferences and publications, then fetch the first page"""
        self.load_preferences()
        try:
            await self.load_publications()
        except FetchError as e:
            logger.error(f"Error fetching publications: {e}")
        return await self.reset_and_fetch_first_page()

    async def load_publications(self) -> List[str]:
        self.publications = list(await self.store.list_distinct_publications())
        return self.publications

    async def set_status_filter(self, status_filter: StatusFilter) -> List[Article]:
        return await self._change_query(status_filter=StatusFilter(status_filter))

    async def set_sort(self, sort: SortMode) -> List[Article]:
        return await self._change_query(sort=SortMode(sort))

    async def set_publications(self, publications: Iterable[str]) -> List[Article]:
        return await self._change_query(publications=frozenset(publications))

    async def _change_query(self, **changes) -> List[Article]:
        previous = (self.selection.status_filter, self.selection.sort, self.selection.publications)
        for name, value in changes.items():
            setattr(self.selection, name, value)
        self._save_selection()

        current = (self.selection.status_filter, self.selection.sort, self.selection.publications)
        if current == previous:
            return self.visible
        return await self.reset_and_fetch_first_page()

    def set_tags(self, facet: TagFacet, tags: Iterable[str]) -> List[Article]:
        """Change one tag facet; the loaded articles are filtered again without fetching"""
        facet = TagFacet(facet)
        self.selection.tags = self.selection.tags.with_facet(facet, tags)
        self.preferences.save(TAG_PREFERENCE_KEYS[facet], sorted(self.selection.tags.for_facet(facet)))
        return self.recompute_visible()

    async def clear_selections(self) -> List[Article]:
        """Return every selection to its default and reload"""
        self.selection = Selection()
        self.preferences.clear()
        return await self.reset_and_fetch_first_page()

    def available_tags(self, facet: TagFacet) -> List[str]:
        return unique_tags(self.cache.articles, TagFacet(facet))

    # Paging

    def current_query(self) -> QueryDescriptor:
        return compose_query(
            self.selection.sort,
            self.selection.status_filter,
            self.selection.publications,
            self.clock(),
            self.settings,
        )

    async def refresh(self) -> List[Article]:
        return await self.reset_and_fetch_first_page()

    async def reset_and_fetch_first_page(self) -> List[Article]:
        self.cache.reset()
        self.visible = []
        await self.fetch_next_page()
        return self.visible

    async def fetch_next_page(self) -> List[Article]:
        """Fetch the page at the cursor and return the articles it added"""
        generation = self.cache.generation
        page = self.cache.cursor
        query = self.current_query()
        range_start, range_end = query.page_range(page, self.settings.page_size)

        result = await self.store.query(query.collection, query.filters, query.order, range_start, range_end)

        if generation != self.cache.generation:
            logger.debug(f"Discarding page {page} fetched for a previous query", extra={'page': page})
            return []

        if result.status is QueryStatus.ERROR:
            logger.error(f"Error loading page {page}: {result.error}", extra={'page': page})
            raise FetchError(f"Could not load page {page}: {result.error}")

        added = self.cache.merge(result.rows)
        if result.rows:
            self.cache.advance(page)
        if len(result.rows) < self.settings.page_size:
            self.cache.exhausted = True

        logger.info(
            f"Loaded page {page}: {len(result.rows)} rows, {len(added)} new",
            extra={'page': page, 'status_filter': self.selection.status_filter.value}
        )
        self.recompute_visible()
        return added

    def recompute_visible(self) -> List[Article]:
        """Filter the accumulated articles by tag facets, leaving out evicted ones"""
        remaining = [a for a in self.cache.articles if a.id not in self.cache.evicted]
        self.visible = filter_visible(remaining, self.selection.tags)
        return self.visible

    # User actions

    def _loaded(self, article_id: int) -> Article:
        article = self.cache.get(article_id)
        if article is None:
            raise ArticleNotFoundError(article_id)
        return article

    async def mark_read(self, article_id: int) -> Article:
        article = self._loaded(article_id)
        if article.read:
            return article
        return await self._update(article, {'read': True})

    async def toggle_saved(self, article_id: int) -> Article:
        article = self._loaded(article_id)
        return await self._update(article, {'saved': not article.saved})

    async def toggle_archived(self, article_id: int) -> Article:
        article = self._loaded(article_id)
        return await self._update(article, {'archived': not article.archived})

    async def vote(self, article_id: int, direction: Direction) -> Article:
        article = self._loaded(article_id)
        change = vote(article, Direction(direction))
        return await self._update(article, change.as_changes())

    async def _update(self, article: Article, changes: Dict[str, Any]) -> Article:
        """Write changes to the store, then apply them locally"""
        status = await self.store.update(ARTICLE_COLLECTION, article.id, changes)
        if status is not UpdateStatus.SUCCESS:
            logger.error(f"Update of article {article.id} failed", extra={'article_id': article.id})
            raise UpdateError(f"Could not update article {article.id}")

        # merge onto the newest local copy so completion order wins
        latest = self.cache.get(article.id) or article
        updated = latest.merged(changes)
        self.cache.replace(updated)
        if not retains(updated, self.selection.status_filter):
            self.cache.evict(updated.id)
        self.visible = reconcile(self.visible, updated, self.selection.status_filter)

        logger.debug(
            f"Applied {sorted(changes)} to article {article.id}",
            extra={'article_id': article.id, 'status_filter': self.selection.status_filter.value}
        )
        return updated
