import pytest

from core.models import SortMode, StatusFilter
from main import FeedTriageApp


@pytest.fixture
def app(tmp_path, fake_store, make_article):
    config = tmp_path / "config.yaml"
    config.write_text(
        f"database_path: {tmp_path / 'articles.db'}\n"
        f"preferences_path: {tmp_path / 'cli_preferences.json'}\n"
        "logging:\n  console_enabled: false\n",
        encoding="utf-8",
    )
    fake_store.add(*[make_article(id=i, score=i) for i in range(1, 4)])
    app = FeedTriageApp(str(config))
    app.engine.store = fake_store
    return app


@pytest.mark.asyncio
async def test_filter_command_queries_once(app, fake_store, capsys):
    await app.change_selection(app.engine.set_status_filter, StatusFilter.UP)

    assert len(fake_store.queries) == 1
    assert "Up / Top Score - 3 article(s)" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_unchanged_sort_still_lists_once(app, fake_store, capsys):
    await app.change_selection(app.engine.set_sort, SortMode.TOP_SCORE)

    assert len(fake_store.queries) == 1
    assert "3 article(s)" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_show_publications_does_not_fetch_articles(app, fake_store, capsys):
    await app.show_publications()

    assert fake_store.queries == []
    assert "The Daily" in capsys.readouterr().out
