# File: src/storage/database.py
"""Async article store operations"""
import asyncio
import json
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Dict, Any, Sequence, Tuple

import aiosqlite

from core.exceptions import FetchError
from core.models import Article, QueryStatus, UpdateStatus, parse_timestamp
from processing.query_composer import ARTICLE_COLLECTION, OrderBy, Predicate
from utils.logger import get_logger

logger = get_logger(__name__)

ARTICLE_COLUMNS = (
    'id', 'publication', 'title', 'link', 'author', 'summary',
    'published_at', 'created_at', 'updated_at',
    'read', 'archived', 'saved', 'score', 'ai_score2', 'agent',
    'tags_scope', 'tags_mood', 'tags_topic',
)
BOOLEAN_COLUMNS = frozenset({'read', 'archived', 'saved'})
TIMESTAMP_COLUMNS = frozenset({'published_at', 'created_at', 'updated_at'})
TAG_COLUMNS = frozenset({'tags_scope', 'tags_mood', 'tags_topic'})
UPDATABLE_COLUMNS = frozenset(ARTICLE_COLUMNS) - {'id', 'created_at'}

SQL_OPERATORS = {'eq': '=', 'lt': '<', 'gt': '>', 'gte': '>='}

@dataclass
class QueryResult:
    """Rows of one page plus the store's status"""
    rows: List[Article] = field(default_factory=list)
    status: QueryStatus = QueryStatus.OK
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not QueryStatus.ERROR


class ArticleStore(ABC):
    """Query/update contract the feed engine needs from an article store"""

    @abstractmethod
    async def query(self, collection: str, filters: Sequence[Predicate], order: Sequence[OrderBy],
                    range_start: int, range_end: int) -> QueryResult:
        """Rows matching all filters, ordered, limited to the inclusive range"""

    @abstractmethod
    async def update(self, collection: str, identifier: int, changes: Dict[str, Any]) -> UpdateStatus:
        """Apply a partial update to one row; all-or-nothing"""

    @abstractmethod
    async def list_distinct_publications(self) -> List[str]:
        """Publications available for the publication selector"""


def _to_db_timestamp(value: Any) -> Optional[str]:
    dt = parse_timestamp(value)
    return dt.isoformat(timespec='microseconds') if dt else None


def to_db_value(column: str, value: Any) -> Any:
    """Convert an article field value to its SQLite representation"""
    if value is None:
        return None
    if column in BOOLEAN_COLUMNS:
        return int(bool(value))
    if column in TIMESTAMP_COLUMNS:
        return _to_db_timestamp(value)
    if column in TAG_COLUMNS:
        tags = [value] if isinstance(value, str) else value
        return json.dumps(sorted({str(tag) for tag in tags}))
    return value


def row_to_article(row: Dict[str, Any]) -> Article:
    data = dict(row)
    for column in TAG_COLUMNS:
        if data.get(column) is not None:
            data[column] = json.loads(data[column])
    return Article.from_dict(data)


def build_where(filters: Sequence[Predicate]) -> Tuple[str, List[Any]]:
    """Translate predicates into a WHERE clause with bound parameters"""
    clauses = []
    params: List[Any] = []

    for predicate in filters:
        if predicate.field not in ARTICLE_COLUMNS:
            raise ValueError(f"Unknown article column: {predicate.field}")

        if predicate.op == 'in':
            values = [to_db_value(predicate.field, v) for v in predicate.value]
            if not values:
                clauses.append('0')
                continue
            placeholders = ', '.join('?' for _ in values)
            clauses.append(f'"{predicate.field}" IN ({placeholders})')
            params.extend(values)
        else:
            clauses.append(f'"{predicate.field}" {SQL_OPERATORS[predicate.op]} ?')
            params.append(to_db_value(predicate.field, predicate.value))

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ''
    return where, params


def build_order(order: Sequence[OrderBy]) -> str:
    terms = []
    for item in order:
        if item.field not in ARTICLE_COLUMNS:
            raise ValueError(f"Unknown article column: {item.field}")
        terms.append(f'"{item.field}" {"DESC" if item.descending else "ASC"}')
    # stable paging between equal sort keys
    terms.append('"id" DESC')
    return f"ORDER BY {', '.join(terms)}"


class AsyncArticleStore(ArticleStore):
    """SQLite article store with bounded concurrent connections"""

    def __init__(self, db_path: str, max_connections: int = 10, timeout_seconds: float = 5.0,
                 publications_window_days: int = 30):
        self.db_path = db_path
        self.max_connections = max_connections
        self.timeout_seconds = timeout_seconds
        self.publications_window_days = publications_window_days
        self.connection_semaphore = asyncio.Semaphore(max_connections)

    async def initialize(self):
        """Initialize database schema"""
        async with self.get_connection() as db:
            await db.execute('''
                CREATE TABLE IF NOT EXISTS articles (
                    id INTEGER PRIMARY KEY,
                    publication TEXT NOT NULL,
                    title TEXT,
                    link TEXT,
                    author TEXT,
                    summary TEXT,
                    published_at TEXT,
                    created_at TEXT,
                    updated_at TEXT,
                    read INTEGER NOT NULL DEFAULT 0,
                    archived INTEGER NOT NULL DEFAULT 0,
                    saved INTEGER NOT NULL DEFAULT 0,
                    score INTEGER NOT NULL DEFAULT 0,
                    ai_score2 INTEGER NOT NULL DEFAULT 0,
                    agent TEXT,
                    tags_scope TEXT,
                    tags_mood TEXT,
                    tags_topic TEXT
                )
            ''')

            indexes = [
                'CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles(published_at)',
                'CREATE INDEX IF NOT EXISTS idx_articles_score ON articles(score, published_at)',
                'CREATE INDEX IF NOT EXISTS idx_articles_publication ON articles(publication)',
                'CREATE INDEX IF NOT EXISTS idx_articles_status ON articles(archived, read, saved)',
            ]

            for index_sql in indexes:
                await db.execute(index_sql)

            await db.commit()
            logger.info("Article store initialized successfully")

    @asynccontextmanager
    async def get_connection(self):
        """Get database connection with proper configuration"""
        async with self.connection_semaphore:
            async with aiosqlite.connect(self.db_path, timeout=self.timeout_seconds) as db:
                db.row_factory = aiosqlite.Row
                await db.execute('PRAGMA journal_mode=WAL')
                await db.execute('PRAGMA synchronous=NORMAL')
                yield db

    async def query(self, collection: str, filters: Sequence[Predicate], order: Sequence[OrderBy],
                    range_start: int, range_end: int) -> QueryResult:
        if collection != ARTICLE_COLLECTION:
            return QueryResult(status=QueryStatus.ERROR, error=f"Unknown collection: {collection}")
        if range_start < 0 or range_end < range_start:
            return QueryResult(status=QueryStatus.ERROR, error=f"Invalid range {range_start}-{range_end}")

        try:
            where, params = build_where(filters)
            order_sql = build_order(order)
        except ValueError as e:
            return QueryResult(status=QueryStatus.ERROR, error=str(e))

        columns = ', '.join(f'"{c}"' for c in ARTICLE_COLUMNS)
        sql = f'SELECT {columns} FROM articles {where} {order_sql} LIMIT ? OFFSET ?'
        params.extend([range_end - range_start + 1, range_start])

        try:
            async with self.get_connection() as db:
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.error(f"Article query failed: {e}")
            return QueryResult(status=QueryStatus.ERROR, error=str(e))

        articles = [row_to_article(row) for row in rows]
        if not articles:
            return QueryResult(status=QueryStatus.NO_ROWS)
        return QueryResult(rows=articles)

    async def update(self, collection: str, identifier: int, changes: Dict[str, Any]) -> UpdateStatus:
        if collection != ARTICLE_COLLECTION:
            logger.error(f"Update on unknown collection: {collection}")
            return UpdateStatus.FAILURE

        unknown = set(changes) - UPDATABLE_COLUMNS
        if unknown or not changes:
            logger.error(f"Rejected update of article {identifier}: invalid fields {sorted(unknown)}")
            return UpdateStatus.FAILURE

        values = {column: to_db_value(column, value) for column, value in changes.items()}
        values.setdefault('updated_at', _to_db_timestamp(datetime.now(timezone.utc)))

        assignments = ', '.join(f'"{column}" = ?' for column in values)
        params = list(values.values()) + [identifier]

        try:
            async with self.get_connection() as db:
                cursor = await db.execute(f'UPDATE articles SET {assignments} WHERE id = ?', params)
                updated_rows = cursor.rowcount
                await db.commit()
        except aiosqlite.Error as e:
            logger.error(f"Update of article {identifier} failed: {e}", extra={'article_id': identifier})
            return UpdateStatus.FAILURE

        if updated_rows == 0:
            logger.warning(f"Update matched no article with id {identifier}", extra={'article_id': identifier})
            return UpdateStatus.FAILURE

        return UpdateStatus.SUCCESS

    async def list_distinct_publications(self) -> List[str]:
        cutoff = datetime.now(timezone.utc) - timedelta(days=self.publications_window_days)
        try:
            async with self.get_connection() as db:
                cursor = await db.execute('''
                    SELECT DISTINCT publication FROM articles
                    WHERE published_at >= ?
                    ORDER BY publication
                ''', (_to_db_timestamp(cutoff),))
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise FetchError(f"Could not list publications: {e}")

        return [row[0] for row in rows]

    async def save_article_batch(self, articles: List[Article]) -> Dict[str, int]:
        """Insert multiple articles in a single transaction, skipping known ids"""
        new_count = 0
        duplicate_count = 0
        error_count = 0

        if not articles:
            return {'new': 0, 'duplicates': 0, 'errors': 0}

        now = _to_db_timestamp(datetime.now(timezone.utc))
        columns = ', '.join(f'"{c}"' for c in ARTICLE_COLUMNS)
        placeholders = ', '.join('?' for _ in ARTICLE_COLUMNS)

        async with self.get_connection() as db:
            try:
                for article in articles:
                    data = article.to_dict()
                    data['created_at'] = data['created_at'] or now
                    data['updated_at'] = data['updated_at'] or now
                    try:
                        result = await db.execute(
                            f'INSERT OR IGNORE INTO articles ({columns}) VALUES ({placeholders})',
                            [to_db_value(c, data[c]) for c in ARTICLE_COLUMNS]
                        )
                    except aiosqlite.Error as e:
                        error_count += 1
                        logger.error(f"Error saving article {article.id}: {e}", extra={'article_id': article.id})
                        continue

                    if result.rowcount > 0:
                        new_count += 1
                    else:
                        duplicate_count += 1

                await db.commit()

            except Exception as e:
                await db.rollback()
                logger.error(f"Transaction failed, rolling back: {e}")
                raise

        logger.debug(f"Batch save: {new_count} new, {duplicate_count} duplicates, {error_count} errors")
        return {'new': new_count, 'duplicates': duplicate_count, 'errors': error_count}

    async def get_database_stats(self, days: int = 1) -> Dict[str, Any]:
        """Get article counts for the recent period"""
        start_time = _to_db_timestamp(datetime.now(timezone.utc) - timedelta(days=days))

        async with self.get_connection() as db:
            cursor = await db.execute('SELECT COUNT(*) FROM articles WHERE published_at >= ?', (start_time,))
            total_period = (await cursor.fetchone())[0]

            cursor = await db.execute('''
                SELECT publication, COUNT(*) FROM articles
                WHERE published_at >= ?
                GROUP BY publication ORDER BY COUNT(*) DESC
            ''', (start_time,))
            publication_counts = {row[0]: row[1] for row in await cursor.fetchall()}

            cursor = await db.execute('''
                SELECT SUM(read), SUM(saved), SUM(archived), SUM(agent = 'USER'), COUNT(*)
                FROM articles
            ''')
            read_count, saved_count, archived_count, user_scored, total_all = await cursor.fetchone()

        return {
            'total_articles_period': total_period,
            'total_articles_all': total_all,
            'days': days,
            'publication_counts': publication_counts,
            'read': read_count or 0,
            'saved': saved_count or 0,
            'archived': archived_count or 0,
            'user_scored': user_scored or 0
        }
