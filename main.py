# File: src/main.py
"""Command-line host for one feed triage session"""
import asyncio
import json
import sys
from typing import List, Optional

from config.settings import ConfigManager, DEFAULT_CONFIG_PATH
from core.exceptions import ConfigurationError, FeedTriageError, ValidationError
from core.models import Article, SortMode, StatusFilter, TagFacet
from orchestration.feed_engine import FeedEngine
from processing.score_quantizer import Direction
from storage.database import AsyncArticleStore
from storage.preferences import PreferenceStore
from utils.logger import setup_logging, get_logger

FILTER_NAMES = {
    'new': StatusFilter.NEW_NEWS,
    'all': StatusFilter.READ_AND_UNREAD,
    'saved': StatusFilter.SAVED,
    'archived': StatusFilter.ARCHIVED,
    'down': StatusFilter.DOWN,
    'up': StatusFilter.UP,
}

SORT_NAMES = {
    'top': SortMode.TOP_SCORE,
    'newest': SortMode.NEWEST,
}


def format_article(article: Article) -> str:
    flags = ''.join([
        'R' if article.read else '-',
        'S' if article.saved else '-',
        'A' if article.archived else '-',
    ])
    published = article.published_at.strftime('%a %d %b %H:%M') if article.published_at else '?'
    return f"[{article.id:>6}] {flags} {article.publication} ({published}) {article.score_label()}  {article.title or ''}"


class FeedTriageApp:
    """Main application class"""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        self.config_manager = ConfigManager(config_path)
        self.config = self.config_manager.load_config()

        setup_logging(self.config_manager.get_logging_config())
        self.logger = get_logger('main')

        db_config = self.config_manager.get_database_config()
        feed_config = self.config_manager.get_feed_config()

        self.store = AsyncArticleStore(
            db_config.path,
            timeout_seconds=db_config.timeout_seconds,
            publications_window_days=feed_config.publications_window_days
        )
        self.preferences = PreferenceStore(self.config_manager.get_preferences_config().path)
        self.engine = FeedEngine(self.store, self.preferences, feed_config)

    async def initialize(self):
        """Initialize application components"""
        await self.store.initialize()
        self.logger.debug("Application initialized successfully")

    async def show_list(self, pages: int = 1):
        await self.engine.start()
        for _ in range(pages - 1):
            if self.engine.cache.exhausted:
                break
            await self.engine.fetch_next_page()
        self._print_visible()

    async def change_selection(self, setter, value):
        """Apply one query selection on top of the saved ones and print the list"""
        self.engine.load_preferences()
        generation = self.engine.cache.generation
        await setter(value)
        if self.engine.cache.generation == generation:
            # selection already in effect, nothing fetched yet
            await self.engine.reset_and_fetch_first_page()
        self._print_visible()

    def _print_visible(self):
        selection = self.engine.selection
        print(f"{selection.status_filter.value} / {selection.sort.value} - {len(self.engine.visible)} article(s)")
        for article in self.engine.visible:
            print(format_article(article))

    async def show_publications(self):
        self.engine.load_preferences()
        await self.engine.load_publications()
        selected = self.engine.selection.publications
        for publication in self.engine.publications:
            marker = '*' if publication in selected else ' '
            print(f" {marker} {publication}")

    async def show_tags(self, facet: TagFacet):
        await self.engine.start()
        selected = self.engine.selection.tags.for_facet(facet)
        for tag in self.engine.available_tags(facet):
            marker = '*' if tag in selected else ' '
            print(f" {marker} {tag}")

    async def _locate(self, article_id: int):
        """Load pages until the article is part of the session"""
        await self.engine.start()
        while article_id not in self.engine.cache:
            if self.engine.cache.exhausted:
                raise ValidationError(f"Article {article_id} is not part of the current list")
            added = await self.engine.fetch_next_page()
            if not added and self.engine.cache.exhausted:
                raise ValidationError(f"Article {article_id} is not part of the current list")

    async def act(self, action: str, article_id: int, direction: Optional[str] = None):
        await self._locate(article_id)

        if action == 'read':
            article = await self.engine.mark_read(article_id)
        elif action == 'save':
            article = await self.engine.toggle_saved(article_id)
        elif action == 'archive':
            article = await self.engine.toggle_archived(article_id)
        else:
            article = await self.engine.vote(article_id, Direction(direction))

        print(format_article(article))
        if article_id not in {a.id for a in self.engine.visible}:
            print(f"Article {article_id} left the '{self.engine.selection.status_filter.value}' list")

    async def import_articles(self, path: str):
        """Import pre-ingested articles from a JSON file"""
        with open(path, 'r', encoding='utf-8') as f:
            payload = json.load(f)

        rows = payload.get('articles', []) if isinstance(payload, dict) else payload
        articles: List[Article] = []
        for row in rows:
            try:
                articles.append(Article.from_dict(row))
            except (TypeError, ValueError) as e:
                self.logger.warning(f"Skipping invalid article record: {e}")

        result = await self.store.save_article_batch(articles)
        self.logger.info(f"Imported {result['new']} new articles "
                         f"({result['duplicates']} duplicates, {result['errors']} errors)")
        return result

    async def show_stats(self, days: int = 1):
        """Show article store statistics"""
        stats = await self.store.get_database_stats(days)
        self.logger.info(f"=== Article Statistics (last {days} days) ===")
        self.logger.info(f"Articles in period: {stats['total_articles_period']}")
        self.logger.info(f"Total articles: {stats['total_articles_all']}")
        self.logger.info(f"Read: {stats['read']}, saved: {stats['saved']}, archived: {stats['archived']}")
        self.logger.info(f"User scored: {stats['user_scored']}")

        if stats['publication_counts']:
            self.logger.info("Top publications:")
            for publication, count in list(stats['publication_counts'].items())[:10]:
                self.logger.info(f"  {publication}: {count} articles")
        return stats


def print_usage():
    print("Usage:")
    print("  python -m main list [pages]                     # Show the article list")
    print("  python -m main filter <new|all|saved|archived|down|up>")
    print("  python -m main sort <top|newest>")
    print("  python -m main publications [name ...]          # Show or select publications")
    print("  python -m main tags <scope|mood|topic> [tag ...] # Show or select tags")
    print("  python -m main read|save|archive <id>")
    print("  python -m main vote <id> <up|down>")
    print("  python -m main clear                            # Reset all selections")
    print("  python -m main import <file.json>               # Import ingested articles")
    print("  python -m main stats [days]")


async def main():
    """Main CLI interface"""
    if len(sys.argv) < 2:
        print_usage()
        return

    command = sys.argv[1]
    args = sys.argv[2:]

    try:
        app = FeedTriageApp()
        await app.initialize()
        engine = app.engine

        if command == "list":
            await app.show_list(int(args[0]) if args else 1)

        elif command == "filter" and args:
            await app.change_selection(engine.set_status_filter, FILTER_NAMES[args[0]])

        elif command == "sort" and args:
            await app.change_selection(engine.set_sort, SORT_NAMES[args[0]])

        elif command == "publications":
            if args:
                engine.load_preferences()
                await engine.set_publications(args)
            await app.show_publications()

        elif command == "tags" and args:
            facet = TagFacet(args[0])
            if len(args) > 1:
                engine.load_preferences()
                engine.set_tags(facet, args[1:])
            await app.show_tags(facet)

        elif command in ("read", "save", "archive") and args:
            await app.act(command, int(args[0]))

        elif command == "vote" and len(args) > 1:
            await app.act("vote", int(args[0]), args[1])

        elif command == "clear":
            await engine.clear_selections()
            app._print_visible()

        elif command == "import" and args:
            await app.import_articles(args[0])

        elif command == "stats":
            await app.show_stats(int(args[0]) if args else 1)

        else:
            print(f"Unknown command: {' '.join(sys.argv[1:])}")
            print_usage()

    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)
    except FeedTriageError as e:
        print(f"Error: {e}")
    except (KeyError, ValueError) as e:
        print(f"Invalid argument: {e}")
        print_usage()
    except KeyboardInterrupt:
        print("Application stopped by user")

if __name__ == "__main__":
    asyncio.run(main())
