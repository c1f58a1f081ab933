from datetime import timedelta

import pytest

from config.settings import FeedConfig
from core.models import SortMode, StatusFilter
from processing.query_composer import ARTICLE_COLLECTION, OrderBy, Predicate, QueryDescriptor, compose_query
from tests.conftest import NOW

SETTINGS = FeedConfig(score_floor=-6, top_score_window_days=2, newest_window_days=5)


def test_new_news_under_top_score():
    query = compose_query(SortMode.TOP_SCORE, StatusFilter.NEW_NEWS, [], NOW, SETTINGS)

    assert query.collection == ARTICLE_COLLECTION
    assert query.filters == (
        Predicate('archived', 'eq', False),
        Predicate('read', 'eq', False),
        Predicate('score', 'gte', -6),
        Predicate('published_at', 'gte', NOW - timedelta(days=2)),
    )
    assert query.order == (OrderBy('score', True), OrderBy('published_at', True))


def test_read_and_unread_under_newest_uses_wider_window():
    query = compose_query(SortMode.NEWEST, StatusFilter.READ_AND_UNREAD, [], NOW, SETTINGS)

    assert query.filters == (
        Predicate('archived', 'eq', False),
        Predicate('score', 'gte', -6),
        Predicate('published_at', 'gte', NOW - timedelta(days=5)),
    )
    assert query.order == (OrderBy('published_at', True),)


@pytest.mark.parametrize("status_filter, predicate", [
    (StatusFilter.SAVED, Predicate('saved', 'eq', True)),
    (StatusFilter.ARCHIVED, Predicate('archived', 'eq', True)),
    (StatusFilter.DOWN, Predicate('score', 'lt', 0)),
    (StatusFilter.UP, Predicate('score', 'gt', 0)),
])
@pytest.mark.parametrize("sort", list(SortMode))
def test_history_filters_have_no_score_floor_or_recency(status_filter, predicate, sort):
    query = compose_query(sort, status_filter, [], NOW, SETTINGS)

    assert query.filters == (predicate,)


def test_publication_selection_restricts_query():
    query = compose_query(SortMode.TOP_SCORE, StatusFilter.SAVED, ["Wired", "BBC", "Wired"], NOW, SETTINGS)

    assert query.filters[-1] == Predicate('publication', 'in', ("BBC", "Wired"))


def test_empty_publication_selection_is_unrestricted():
    query = compose_query(SortMode.TOP_SCORE, StatusFilter.UP, set(), NOW, SETTINGS)

    assert all(p.field != 'publication' for p in query.filters)


def test_score_floor_and_windows_are_tunable():
    settings = FeedConfig(score_floor=-3, top_score_window_days=1, newest_window_days=7)

    top = compose_query(SortMode.TOP_SCORE, StatusFilter.READ_AND_UNREAD, [], NOW, settings)
    newest = compose_query(SortMode.NEWEST, StatusFilter.READ_AND_UNREAD, [], NOW, settings)

    assert Predicate('score', 'gte', -3) in top.filters
    assert Predicate('published_at', 'gte', NOW - timedelta(days=1)) in top.filters
    assert Predicate('published_at', 'gte', NOW - timedelta(days=7)) in newest.filters


def test_same_inputs_give_equal_descriptors():
    first = compose_query(SortMode.NEWEST, StatusFilter.NEW_NEWS, ["b", "a"], NOW, SETTINGS)
    second = compose_query(SortMode.NEWEST, StatusFilter.NEW_NEWS, ["a", "b"], NOW, SETTINGS)

    assert first == second
    assert hash(first) == hash(second)


def test_page_range_is_inclusive():
    assert QueryDescriptor.page_range(0, 100) == (0, 99)
    assert QueryDescriptor.page_range(2, 100) == (200, 299)


def test_unsupported_operator_is_rejected():
    with pytest.raises(ValueError):
        Predicate('score', 'like', 3)
