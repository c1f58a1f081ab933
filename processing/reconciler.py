# File: src/processing/reconciler.py
"""Applies confirmed article updates to the visible list"""
from typing import Iterable, List

from core.models import Article, StatusFilter
from utils.logger import get_logger

logger = get_logger(__name__)


def retains(article: Article, status_filter: StatusFilter) -> bool:
    """Whether an article stays visible under the active status filter.

    Saved and Archived views keep everything they already show; the other
    views drop an article as soon as it no longer qualifies.
    """
    if status_filter is StatusFilter.NEW_NEWS:
        return not article.archived and not article.read
    if status_filter is StatusFilter.READ_AND_UNREAD:
        return not article.archived
    if status_filter in (StatusFilter.SAVED, StatusFilter.ARCHIVED):
        return True
    if status_filter is StatusFilter.DOWN:
        return article.score < 0
    if status_filter is StatusFilter.UP:
        return article.score > 0
    return True


def replace_article(articles: Iterable[Article], updated: Article) -> List[Article]:
    """Copy of the list with the article sharing updated's id swapped in"""
    return [updated if article.id == updated.id else article for article in articles]


def reconcile(visible: Iterable[Article], updated: Article, status_filter: StatusFilter) -> List[Article]:
    """Visible list after an update to one article has been confirmed.

    Only the updated article is checked against the filter; the rest of the
    list is left as it is.
    """
    if retains(updated, status_filter):
        return replace_article(visible, updated)

    logger.debug(
        f"Article {updated.id} no longer matches '{status_filter.value}'",
        extra={'article_id': updated.id, 'status_filter': status_filter.value}
    )
    return [article for article in visible if article.id != updated.id]
