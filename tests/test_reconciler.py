import pytest

from core.models import StatusFilter
from processing.reconciler import reconcile, retains
from processing.score_quantizer import Direction, vote


def test_archiving_under_read_and_unread_removes_article(make_article):
    current, other = make_article(), make_article(read=True)

    visible = reconcile([current, other], current.merged({'archived': True}), StatusFilter.READ_AND_UNREAD)

    assert [a.id for a in visible] == [other.id]


def test_saving_under_read_and_unread_keeps_article(make_article):
    current, other = make_article(), make_article()
    saved = current.merged({'saved': True})

    visible = reconcile([current, other], saved, StatusFilter.READ_AND_UNREAD)

    assert visible == [saved, other]


def test_reading_under_new_news_removes_article(make_article):
    current = make_article()

    assert reconcile([current], current.merged({'read': True}), StatusFilter.NEW_NEWS) == []


@pytest.mark.parametrize("status_filter, changes", [
    (StatusFilter.SAVED, {'saved': False}),
    (StatusFilter.SAVED, {'archived': True}),
    (StatusFilter.ARCHIVED, {'archived': False}),
    (StatusFilter.ARCHIVED, {'read': True}),
])
def test_saved_and_archived_views_keep_acted_on_article(make_article, status_filter, changes):
    current = make_article(saved=True, archived=True)
    updated = current.merged(changes)

    assert reconcile([current], updated, status_filter) == [updated]


def test_down_view_drops_article_voted_up_to_zero(make_article):
    down = make_article(id=1, score=-5)
    up = make_article(id=2, score=5)
    visible = [down, up]

    for _ in range(2):
        current = next((a for a in visible if a.id == 1), down)
        down = current.merged(vote(current, Direction.UP).as_changes())
        visible = reconcile(visible, down, StatusFilter.DOWN)

    assert down.score == 0
    assert down.agent == "USER"
    assert [a.id for a in visible] == [2]


def test_down_view_keeps_article_still_negative(make_article):
    article = make_article(score=-7)
    updated = article.merged(vote(article, Direction.UP).as_changes())

    assert updated.score == -4
    assert reconcile([article], updated, StatusFilter.DOWN) == [updated]


def test_up_view_drops_article_voted_down_to_zero(make_article):
    article = make_article(score=4)
    updated = article.merged(vote(article, Direction.DOWN).as_changes())

    assert reconcile([article], updated, StatusFilter.UP) == []


def test_reconcile_keeps_positions(make_article):
    articles = [make_article() for _ in range(3)]
    updated = articles[1].merged({'saved': True})

    assert reconcile(articles, updated, StatusFilter.READ_AND_UNREAD) == [articles[0], updated, articles[2]]


@pytest.mark.parametrize("status_filter, expected", [
    (StatusFilter.NEW_NEWS, False),
    (StatusFilter.READ_AND_UNREAD, True),
    (StatusFilter.SAVED, True),
    (StatusFilter.ARCHIVED, True),
    (StatusFilter.DOWN, False),
    (StatusFilter.UP, True),
])
def test_retains_read_positive_article(make_article, status_filter, expected):
    assert retains(make_article(read=True, score=4), status_filter) is expected
